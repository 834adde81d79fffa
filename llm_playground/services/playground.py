"""
Playground service: owner of the current fan-out run.

WHAT: Start, supersede, cancel and inspect background dispatches
WHY: At most one live set of sessions may feed the visible responses
HOW: One asyncio task per run writing into its own ResponseBoard; a new run cancels the old task
"""

import asyncio
from typing import Iterable
from uuid import uuid4

from ..llm.orchestrator import DispatchSummary, Orchestrator, Selection
from ..llm.types import ProviderConfig
from ..utils.logger import get_logger
from .response_board import ResponseBoard

logger = get_logger(__name__)


class PlaygroundService:
    """Runs prompts through the orchestrator, keeping only the latest run visible."""

    def __init__(self, orchestrator: Orchestrator | None = None):
        self.orchestrator = orchestrator or Orchestrator.from_settings()
        self.board = ResponseBoard()
        self.current_run_id: str | None = None
        self.last_summary: DispatchSummary | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_streaming(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        configs: Iterable[ProviderConfig],
        selection: Selection,
        system_prompt: str,
        user_prompt: str
    ) -> str:
        """
        Start a new run, cancelling any run still streaming.

        The previous run's teardown is not awaited; it keeps writing only to
        its own (now detached) board until its sessions close.

        Returns:
            run id of the new run
        """
        self.cancel()

        run_id = str(uuid4())
        board = ResponseBoard()
        self.board = board
        self.current_run_id = run_id
        self.last_summary = None
        self._task = asyncio.create_task(
            self._run(run_id, list(configs), selection, system_prompt, user_prompt, board),
            name=f"playground:{run_id}",
        )
        logger.info(f"Playground run {run_id} started")
        return run_id

    async def _run(
        self,
        run_id: str,
        configs: list[ProviderConfig],
        selection: Selection,
        system_prompt: str,
        user_prompt: str,
        board: ResponseBoard
    ) -> DispatchSummary:
        summary = await self.orchestrator.dispatch(configs, selection, system_prompt, user_prompt, board)
        if run_id == self.current_run_id:
            self.last_summary = summary
        logger.info(f"Playground run {run_id} finished")
        return summary

    def cancel(self) -> bool:
        """Cancel the current run if it is still streaming. Returns True if something was cancelled."""
        if not self.is_streaming:
            return False
        self._task.cancel()
        logger.info(f"Playground run {self.current_run_id} cancelled")
        return True

    async def wait(self) -> DispatchSummary | None:
        """Wait for the current run; None when it was cancelled or never started."""
        task = self._task
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            if not task.cancelled():
                # The waiter itself is being cancelled
                raise
            return None

    async def aclose(self) -> None:
        """Cancel and await the current run (used on shutdown)."""
        if self.cancel():
            await asyncio.gather(self._task, return_exceptions=True)
