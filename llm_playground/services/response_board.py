"""
Response board: caller-side accumulation of stream events.

WHAT: Fold StreamEvent deltas into one response per (config, model)
WHY: The orchestrator only emits deltas; presentation state lives here
HOW: Lock-guarded dict keyed by "configId|modelId", cost rendered on read
"""

import threading
from dataclasses import dataclass, replace
from typing import Iterable

from ..llm.types import DurationRecord, ProviderConfig, StreamEvent, UsageRecord
from ..llm.usage import CostReport, cost_report


@dataclass
class ResponseEntry:
    """Accumulated state of one session as seen by the caller."""
    config_id: str
    model_id: str
    content: str = ""
    error: str | None = None
    usage: UsageRecord | None = None
    duration: DurationRecord | None = None

    @property
    def done(self) -> bool:
        return self.error is not None or self.duration is not None


@dataclass
class ResponseView:
    """Entry joined with its config/model for display, including cost."""
    entry: ResponseEntry
    provider: str | None
    model_name: str | None
    cost: CostReport | None


class ResponseBoard:
    """Thread-safe sink for StreamEvents."""

    def __init__(self):
        self._entries: dict[str, ResponseEntry] = {}
        self._lock = threading.Lock()

    def __call__(self, event: StreamEvent) -> None:
        self.apply(event)

    def apply(self, event: StreamEvent) -> None:
        with self._lock:
            entry = self._entries.get(event.key)
            if entry is None:
                entry = ResponseEntry(config_id=event.config_id, model_id=event.model_id)
                self._entries[event.key] = entry

            if event.error is not None:
                # The error replaces whatever partial text was shown
                entry.content = event.error
                entry.error = event.error
            else:
                entry.content += event.content

            if event.usage is not None:
                entry.usage = event.usage
            if event.duration is not None:
                entry.duration = event.duration

    def get(self, config_id: str, model_id: str) -> ResponseEntry | None:
        """Snapshot of one entry; later events do not change it."""
        with self._lock:
            entry = self._entries.get(f"{config_id}|{model_id}")
            return replace(entry) if entry is not None else None

    def entries(self) -> list[ResponseEntry]:
        """Snapshots of all entries in first-event order."""
        with self._lock:
            return [replace(entry) for entry in self._entries.values()]

    def views(self, configs: Iterable[ProviderConfig], multiplier: int = 1) -> list[ResponseView]:
        """
        Join entries with their config/model and price them.

        Entries whose config or model has since disappeared are still listed,
        without provider, model name or cost.
        """
        by_id = {config.id: config for config in configs}
        views = []
        for entry in self.entries():
            config = by_id.get(entry.config_id)
            model = config.find_model(entry.model_id) if config else None
            views.append(
                ResponseView(
                    entry=entry,
                    provider=config.provider if config else None,
                    model_name=model.name if model else None,
                    cost=cost_report(entry.usage, model, multiplier),
                )
            )
        return views
