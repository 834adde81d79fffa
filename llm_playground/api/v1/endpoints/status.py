"""
Status and health check endpoints.

WHAT: Health monitoring for the configuration store
WHY: Quick diagnostics for frontend and ops
HOW: FastAPI endpoints calling the database ping
"""

from fastapi import APIRouter

from ....core.database import ping_database
from ....core.config import settings
from ....llm.types import ProviderKind

router = APIRouter()


@router.get("/status")
async def app_status():
    """
    Component status.

    Returns:
        JSON with database status, supported providers and fan-out limits
    """
    return {
        "database": ping_database(),
        "providers": [kind.value for kind in ProviderKind],
        "limits": {
            "max_concurrent_sessions": settings.LLM_MAX_CONCURRENT_SESSIONS,
            "session_timeout": settings.LLM_SESSION_TIMEOUT,
        }
    }


@router.get("/health")
async def health_check():
    """
    Overall application health check.

    Returns:
        JSON with overall health status
    """
    db_status = ping_database()

    return {
        "status": "healthy" if db_status["available"] else "degraded",
        "version": settings.APP_VERSION,
        "app_name": settings.APP_NAME,
        "components": {
            "database": {
                "available": db_status["available"]
            }
        }
    }
