"""
API v1 router aggregation.

WHAT: Combine all v1 endpoint routers
WHY: Single place to register all API routes
HOW: Include routers from endpoints with prefixes
"""

from fastapi import APIRouter

from .endpoints import status, providers, playground

api_router = APIRouter()

api_router.include_router(
    status.router,
    prefix="/api/v1",
    tags=["status"]
)

api_router.include_router(
    providers.router,
    prefix="/api/v1",
    tags=["providers"]
)

api_router.include_router(
    playground.router,
    prefix="/api/v1",
    tags=["playground"]
)
