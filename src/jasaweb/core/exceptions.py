"""
Custom exceptions for the JasaWeb API.

Provides structured error handling with appropriate HTTP status codes
and error details for API responses.
"""

from typing import Any, Dict, List, Optional


class JasaWebException(Exception):
    """Base exception for the JasaWeb API."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing or invalid."""

    def __init__(self, message: str, problems: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.problems = problems or []


class ValidationError(JasaWebException):
    """Raised when request validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="validation_error",
            details=details,
        )


class AuthenticationError(JasaWebException):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="authentication_error",
        )


class AuthorizationError(JasaWebException):
    """Raised when an authenticated subject may not perform an action."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code="authorization_error",
        )


class CsrfError(JasaWebException):
    """Raised when the CSRF header does not match the CSRF cookie."""

    def __init__(self, message: str = "Invalid CSRF token") -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code="csrf_error",
        )


class NotFoundError(JasaWebException):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity: str = "Resource", entity_id: Optional[str] = None) -> None:
        details = {"entity": entity}
        if entity_id:
            details["id"] = entity_id
        super().__init__(
            message=f"{entity} not found",
            status_code=404,
            error_code="not_found",
            details=details,
        )


class ConflictError(JasaWebException):
    """Raised when a write collides with existing state (unique keys, dependents)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_code="conflict",
            details=details,
        )


class RateLimitError(JasaWebException):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        retry_after: Optional[int] = None,
    ) -> None:
        details = {}
        if retry_after:
            details["retry_after"] = retry_after

        super().__init__(
            message=message,
            status_code=429,
            error_code="rate_limit_exceeded",
            details=details,
        )


class PaymentError(JasaWebException):
    """Raised when the payment gateway rejects or fails a request."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=502,
            error_code="payment_error",
            details=details,
        )


class ServiceUnavailableError(JasaWebException):
    """Raised when a dependency needed by the request is not configured or reachable."""

    def __init__(self, message: str = "Service unavailable") -> None:
        super().__init__(
            message=message,
            status_code=503,
            error_code="service_unavailable",
        )
