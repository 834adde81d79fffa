"""
Shared FastAPI dependencies.

WHAT: Provide the config store, orchestrator and playground service to endpoints
WHY: One place to swap collaborators (tests override these via dependency_overrides)
HOW: Module-level singletons returned by plain dependency functions
"""

from ...llm.orchestrator import Orchestrator
from ...services.config_store import ConfigStore, config_store
from ...services.playground import PlaygroundService

_playground: PlaygroundService | None = None


def get_config_store() -> ConfigStore:
    return config_store


def get_orchestrator() -> Orchestrator:
    return Orchestrator.from_settings()


def get_playground() -> PlaygroundService:
    """Process-wide playground; created lazily inside the running event loop."""
    global _playground
    if _playground is None:
        _playground = PlaygroundService()
    return _playground


async def shutdown_playground() -> None:
    """Cancel any live run and drop the singleton."""
    global _playground
    if _playground is not None:
        await _playground.aclose()
        _playground = None
