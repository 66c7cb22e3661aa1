"""
Shared error handling for the Campus Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(AccessLayerException):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class ConfigurationError(AccessLayerException):
    """An unrecognized plan, role or catalog entry reached the engine."""

    def __init__(self, message: str = "Invalid configuration value", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class ExternalServiceError(AccessLayerException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error",
                 details: Optional[Dict[str, Any]] = None, code: str = "EXTERNAL_SERVICE_ERROR"):
        super().__init__(code, f"{service}: {message}", details)
        self.service = service


class MembershipLookupError(ExternalServiceError):
    """The membership store could not answer (as opposed to: no membership)."""

    def __init__(self, message: str = "Membership lookup failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("membership", message, details, code="MEMBERSHIP_LOOKUP_ERROR")


class OverrideFetchError(ExternalServiceError):
    """Tenant feature overrides could not be fetched."""

    def __init__(self, message: str = "Tenant override fetch failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("tenant_features", message, details, code="OVERRIDE_FETCH_ERROR")
