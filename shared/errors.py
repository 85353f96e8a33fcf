"""
Shared error handling for the Policy Layer.
"""

from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class PolicyLayerException(Exception):
    """Base exception for Policy Layer services."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class NotFoundError(PolicyLayerException):
    """A grant, provider or other record does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ValidationError(PolicyLayerException):
    """Validation-related errors."""

    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class PolicyConfigurationError(PolicyLayerException):
    """A stored rule cannot be evaluated, e.g. its pattern is not a valid regex.

    This is an authoring error in the rule data, not a policy decision.
    """

    status_code = 422

    def __init__(self, message: str = "Invalid policy rule", details: Optional[Dict[str, Any]] = None):
        super().__init__("POLICY_CONFIGURATION_ERROR", message, details)


class PolicyViolationError(PolicyLayerException):
    """Raised when a provider action is denied by policy rules."""

    status_code = 403

    def __init__(
        self,
        message: str,
        provider_type: str,
        action: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.provider_type = provider_type
        self.action = action
        merged = {"provider_type": provider_type, "action": action}
        merged.update(details or {})
        super().__init__("POLICY_VIOLATION", message, merged)


class PersistenceError(PolicyLayerException):
    """The record store failed to serve a read or write."""

    status_code = 503

    def __init__(self, message: str = "Record store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("PERSISTENCE_ERROR", message, details)
