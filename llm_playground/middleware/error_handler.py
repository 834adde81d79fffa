"""
Global error handling middleware.

WHAT: Translate exceptions to appropriate HTTP responses
WHY: Consistent error responses with proper status codes
HOW: FastAPI exception handlers for custom exceptions
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from datetime import datetime

from ..llm.types import (
    ConfigurationError,
    LLMError,
    ProviderError,
    TransportError,
    UnsupportedProviderError,
)
from ..utils.exceptions import (
    BusinessException,
    ConfigNotFoundException,
    NoActiveRunException,
    ValidationException,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _error_body(code: str, message: str, details=None) -> dict:
    return {
        "error": code,
        "message": message,
        "details": details,
        "timestamp": datetime.now().isoformat()
    }


async def llm_error_handler(request: Request, exc: LLMError):
    """
    Handle LLMError escaping a request.

    WHAT: Provider/config error outside the orchestrator's isolation
    WHY: Map the taxonomy onto HTTP semantics
    HOW: 400 for configuration, 502 for provider errors, 503 for transport errors
    """
    if isinstance(exc, (ConfigurationError, UnsupportedProviderError)):
        status_code, code = status.HTTP_400_BAD_REQUEST, "LLM_CONFIGURATION_ERROR"
    elif isinstance(exc, TransportError):
        status_code, code = status.HTTP_503_SERVICE_UNAVAILABLE, "LLM_UNAVAILABLE"
    elif isinstance(exc, ProviderError):
        status_code, code = status.HTTP_502_BAD_GATEWAY, "LLM_BAD_GATEWAY"
    else:
        status_code, code = status.HTTP_500_INTERNAL_SERVER_ERROR, "LLM_ERROR"

    logger.error(f"LLM error: {code} - {exc.message}")
    return JSONResponse(status_code=status_code, content=_error_body(code, exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Handle FastAPI RequestValidationError.

    WHAT: Request validation failed
    WHY: Invalid request payload
    HOW: Return 400 with field errors
    """
    logger.warning(f"Validation error: {exc.errors()}")

    # Clean up error details to be JSON serializable
    cleaned_errors = []
    for error in exc.errors():
        cleaned_error = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
        }
        if "ctx" in error:
            cleaned_error["ctx"] = {
                k: str(v) if isinstance(v, Exception) else v
                for k, v in error["ctx"].items()
            }
        cleaned_errors.append(cleaned_error)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("VALIDATION_ERROR", "Request validation failed", cleaned_errors)
    )


async def business_exception_handler(request: Request, exc: BusinessException):
    """
    Handle BusinessException.

    WHAT: Domain-specific API error
    WHY: Map to the right status code
    HOW: Return status code based on exception type
    """
    status_code = status.HTTP_400_BAD_REQUEST

    if isinstance(exc, (ConfigNotFoundException, NoActiveRunException)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationException):
        status_code = status.HTTP_400_BAD_REQUEST

    logger.warning(f"API exception: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, exc.details)
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(LLMError, llm_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(BusinessException, business_exception_handler)

    logger.info("Exception handlers registered")
