"""Custom exceptions for the application.

Every exception carries the HTTP status code it maps to when it reaches the
API layer, and optional extra fields that are merged into the error body.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base exception for all application-specific exceptions."""

    status_code: int = 500

    def __init__(self, message: str = "", **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra


class ConfigurationError(AppError):
    """Raised when required upstream configuration is missing."""

    status_code = 500


class StoreError(AppError):
    """Raised when the task store backend cannot be reached."""

    status_code = 500


class ServiceError(AppError):
    """Raised when a service operation fails due to business logic."""

    status_code = 400


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    status_code = 400


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    status_code = 404


class TaskExpiredError(NotFoundError):
    """Raised when a task existed but is past its expiry window."""

    status_code = 410


class InvalidTransitionError(ServiceError):
    """Raised when a task update would move its status backwards."""

    status_code = 409


class UpstreamError(AppError):
    """Raised when the upstream workflow service rejects a call.

    Attributes:
        upstream_status: HTTP status returned by the upstream, if any
        body: Raw response body returned by the upstream, if any
    """

    status_code = 502

    def __init__(
        self,
        message: str = "",
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
        **extra: Any,
    ) -> None:
        super().__init__(message, **extra)
        self.upstream_status = upstream_status
        self.body = body


class UploadError(UpstreamError):
    """Raised when the image upload to the upstream fails."""


class WorkflowError(UpstreamError):
    """Raised when the workflow execution call fails."""


class ExtractionError(UpstreamError):
    """Raised when the workflow event stream reports an explicit error."""
