"""
Custom business exceptions for API endpoints.

WHAT: Domain-specific exceptions that map to HTTP status codes
WHY: Consistent error handling across all API endpoints
HOW: Custom exception classes with error codes and messages
"""

from typing import Optional, List, Dict, Any


class BusinessException(Exception):
    """Base class for business logic exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class ConfigNotFoundException(BusinessException):
    """Raised when a provider configuration is not found."""

    def __init__(self, config_id: str):
        super().__init__(
            message=f"Provider config not found: {config_id}",
            code="CONFIG_NOT_FOUND",
            details={"config_id": config_id}
        )


class NoActiveRunException(BusinessException):
    """Raised when a playground run is requested but none was started."""

    def __init__(self):
        super().__init__(
            message="No playground run has been started",
            code="NO_ACTIVE_RUN"
        )


class ValidationException(BusinessException):
    """Raised for validation errors."""

    def __init__(self, message: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field_errors": field_errors} if field_errors else None
        )
