"""
Playground endpoints.

WHAT: Fan a prompt out to the selected models, streamed over SSE or run in the background
WHY: Frontends watch every backend's answer, usage and cost arrive independently
HOW: EventSourceResponse over Orchestrator.stream(); PlaygroundService for background runs
"""

import json
from datetime import datetime
from typing import AsyncIterator, Iterable

from fastapi import APIRouter, Depends, Query
from sse_starlette.sse import EventSourceResponse

from ..dependencies import get_config_store, get_orchestrator, get_playground
from ....core.config import settings
from ....llm.orchestrator import Orchestrator, Selection, resolve_pairs
from ....llm.types import ProviderConfig
from ....models.api_schemas import (
    PromptRequest,
    ResponseSchema,
    RunSnapshotResponse,
    RunStartedResponse,
    StreamEventSchema,
)
from ....services.config_store import ConfigStore
from ....services.playground import PlaygroundService
from ....utils.exceptions import NoActiveRunException
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def select_all(configs: Iterable[ProviderConfig]) -> dict[str, list[str]]:
    """Default selection: every model of every config."""
    return {config.id: [model.id for model in config.models] for config in configs}


def selection_for(request: PromptRequest, configs: list[ProviderConfig]) -> Selection:
    if request.selection is None:
        return select_all(configs)
    return request.selection


async def playground_event_generator(
    orchestrator: Orchestrator,
    configs: list[ProviderConfig],
    selection: Selection,
    system_prompt: str,
    user_prompt: str
) -> AsyncIterator[dict]:
    """
    Generate SSE events for one fan-out.

    Yields:
        One "message" event per StreamEvent, then one "done" event with counts.
        Closing the generator (client disconnect) cancels every session.
    """
    finished = 0
    failed = 0

    try:
        async for event in orchestrator.stream(configs, selection, system_prompt, user_prompt):
            if event.is_error:
                failed += 1
            elif event.is_terminal:
                finished += 1
            yield {
                "event": "message",
                "data": StreamEventSchema.from_domain(event).model_dump_json()
            }

        yield {
            "event": "done",
            "data": json.dumps({
                "sessions": finished + failed,
                "finished": finished,
                "failed": failed,
                "timestamp": datetime.now().isoformat()
            })
        }
    finally:
        logger.info(f"Playground SSE stream ended ({finished} finished, {failed} failed)")


@router.post("/playground/stream")
async def stream_prompt(
    request: PromptRequest,
    store: ConfigStore = Depends(get_config_store),
    orchestrator: Orchestrator = Depends(get_orchestrator)
):
    """
    Stream one prompt to the selected models via SSE.

    Returns:
        EventSourceResponse with StreamEvent JSON payloads
    """
    configs = store.list_configs()
    selection = selection_for(request, configs)
    logger.info(f"SSE fan-out requested ({len(resolve_pairs(configs, selection))} sessions)")

    return EventSourceResponse(
        playground_event_generator(
            orchestrator, configs, selection, request.system_prompt, request.user_prompt
        ),
        ping=settings.SSE_PING_INTERVAL,
    )


@router.post("/playground/runs", response_model=RunStartedResponse, status_code=202)
async def start_run(
    request: PromptRequest,
    store: ConfigStore = Depends(get_config_store),
    playground: PlaygroundService = Depends(get_playground)
):
    """Start a background run; any run still streaming is cancelled."""
    configs = store.list_configs()
    selection = selection_for(request, configs)
    run_id = playground.start(configs, selection, request.system_prompt, request.user_prompt)
    return RunStartedResponse(run_id=run_id, sessions=len(resolve_pairs(configs, selection)))


@router.get("/playground/runs/current", response_model=RunSnapshotResponse)
async def current_run(
    multiplier: int = Query(default=1, ge=1, description="Show cost for N repeated calls"),
    store: ConfigStore = Depends(get_config_store),
    playground: PlaygroundService = Depends(get_playground)
):
    """
    Snapshot of the current run's accumulated responses with costs.

    Raises:
        NoActiveRunException: No run started yet
    """
    if playground.current_run_id is None:
        raise NoActiveRunException()

    views = playground.board.views(store.list_configs(), multiplier)
    return RunSnapshotResponse(
        run_id=playground.current_run_id,
        is_streaming=playground.is_streaming,
        responses=[ResponseSchema.from_view(view) for view in views],
    )


@router.delete("/playground/runs/current")
async def cancel_run(playground: PlaygroundService = Depends(get_playground)):
    """Cancel the current run if it is still streaming."""
    return {"run_id": playground.current_run_id, "cancelled": playground.cancel()}
