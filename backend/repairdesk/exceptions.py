"""
RepairDesk Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for each failure class of a submission.
How:   Each exception carries a user-facing message and an optional context
       dict. Context is logged server-side and never returned to the client.
Who:   Raised by services; caught by the submission orchestrator (which turns
       them into a result value) or by the global handlers in main.py.

Exception Hierarchy:
    RepairDeskError (base)
    ├── ValidationError          → 400 Bad Request (field-scoped, no network)
    ├── NotFoundError            → 404 Not Found
    ├── PermissionDeniedError    → media input could not be acquired
    ├── StorageBackendError      → raw object-storage failure (classified later)
    ├── UploadError              → 502, or the status of its `code`
    │   ├── ConfigurationError   → 503 storage not configured
    │   ├── SizeExceededError    → 413
    │   └── UnsupportedTypeError → 415
    ├── PersistError             → 500 (generic message, detail logged)
    └── NotificationError        → logged only, never aborts a submission
        └── EmailProviderError   → provider rejected the message (502 on the
                                   confirmation endpoint, handled in the route)
"""

from typing import Any, Dict, Optional


class RepairDeskError(Exception):
    """
    Base exception for all RepairDesk application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RepairDeskError):
    """
    Raised when form input fails validation.

    Carries the whole field → message mapping so one response can mark every
    offending field at once.

    Example response:
        {
            "error": "validation_error",
            "message": "Please correct the highlighted fields",
            "details": {"fields": {"email": "Please enter a valid email address"}}
        }
    """

    def __init__(
        self,
        message: str = "Please correct the highlighted fields",
        field_errors: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.field_errors = dict(field_errors or {})
        ctx = context or {}
        ctx["fields"] = self.field_errors
        super().__init__(message=message, context=ctx)


class PermissionDeniedError(RepairDeskError):
    """Raised when an audio input cannot be acquired (declined or absent)."""

    def __init__(
        self,
        message: str = "Unable to access microphone. Please check your permissions.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageBackendError(RepairDeskError):
    """
    Raw failure reported by an object-storage backend.

    What:    The storage service refused or failed an upload.
    How:     Backends fill in whatever structure they have: the HTTP status,
             a machine-readable error code, and the human message. The upload
             client classifies it into one of the UploadError subclasses.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        if error_code:
            ctx["error_code"] = error_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
        self.error_code = error_code


class UploadError(RepairDeskError):
    """
    Raised when a media payload could not be stored.

    Attributes:
        code:    Machine-readable classification (upload_failed, ...);
                 subclasses fix it, `code=` overrides it per instance
        reason:  The underlying message, shown to the user inside the
                 orchestrator's failure text
    """

    code = "upload_failed"

    def __init__(
        self,
        reason: str = "Upload failed",
        context: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message=reason, context=context)
        self.reason = reason
        if code is not None:
            self.code = code


class ConfigurationError(UploadError):
    """The destination bucket does not exist. Non-retryable."""

    code = "storage_not_configured"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            reason="Storage not configured. Please contact support.",
            context=context,
        )


class SizeExceededError(UploadError):
    """The payload is larger than the storage limit. Non-retryable."""

    code = "size_exceeded"

    def __init__(self, max_size_mb: int = 10, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            reason=f"File too large. Maximum size is {max_size_mb}MB.",
            context=context,
        )

    @classmethod
    def for_limit(cls, limit_bytes: int, context: Optional[Dict[str, Any]] = None) -> "SizeExceededError":
        """Build from a byte ceiling; the message rounds down to whole MB (at least 1)."""
        return cls(max_size_mb=max(1, limit_bytes // (1024 * 1024)), context=context)


class UnsupportedTypeError(UploadError):
    """The storage refused the payload's content type. Non-retryable."""

    code = "unsupported_type"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(reason="File type not supported.", context=context)


class PersistError(RepairDeskError):
    """
    Raised when the repair request could not be written to the store.

    The message is always generic; the store's own error goes to the log.
    """

    def __init__(
        self,
        message: str = "Failed to save request. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotificationError(RepairDeskError):
    """Raised when the confirmation email could not be sent."""

    def __init__(
        self,
        message: str = "Confirmation email could not be sent",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EmailProviderError(NotificationError):
    """The email provider answered with a rejection; `payload` is its raw body."""

    def __init__(
        self,
        payload: Any,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message="Email provider rejected the message", context=ctx)
        self.payload = payload
        self.status_code = status_code


class NotFoundError(RepairDeskError):
    """Raised when a requested resource (e.g. a stored object) does not exist. HTTP 404."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        super().__init__(message=message, context=ctx)
