"""Error handling module for instancevol.

This module defines error codes, exception classes, and response models.

Error Response Format:
{
    "error": {
        "code": "VOLUME_NOT_FOUND",
        "message": "Volume not found"
    }
}

Usage:
    from instancevol.core.errors import ValidationError, RemoteFatalError

    # Raise with default message
    raise VolumeAttachedError()

    # Raise with custom message
    raise ValidationError("block volumes cannot be resized down")
"""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    VOLUME_NOT_FOUND = "VOLUME_NOT_FOUND"
    VOLUME_ATTACHED = "VOLUME_ATTACHED"
    REMOTE_ERROR = "REMOTE_ERROR"
    OPERATION_FAILED = "OPERATION_FAILED"
    OPERATION_TIMEOUT = "OPERATION_TIMEOUT"


class ErrorDetail(BaseModel):
    """Error detail containing code and message."""

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Error response format."""

    error: ErrorDetail


class VolumeError(Exception):
    """Base exception for instancevol.

    All instancevol specific exceptions should inherit from this class.
    This enables centralized exception handling in FastAPI.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
        status_code: HTTP status code to return
    """

    def __init__(self, code: ErrorCode, message: str, status_code: int) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(
            error=ErrorDetail(code=self.code.value, message=self.message)
        )


class ValidationError(VolumeError):
    """400 Bad Request - Rejected before any remote call."""

    def __init__(self, message: str = "Invalid volume request") -> None:
        super().__init__(ErrorCode.VALIDATION_FAILED, message, 400)


class RemoteNotFoundError(VolumeError):
    """404 Not Found - The remote API does not know the volume."""

    def __init__(self, message: str = "Volume not found") -> None:
        super().__init__(ErrorCode.VOLUME_NOT_FOUND, message, 404)


class VolumeAttachedError(VolumeError):
    """409 Conflict - Volume is still attached to a server (retryable)."""

    def __init__(
        self,
        message: str = "volume is still attached to a server",
        server_id: str | None = None,
    ) -> None:
        self.server_id = server_id
        super().__init__(ErrorCode.VOLUME_ATTACHED, message, 409)


class RemoteAPIError(VolumeError):
    """502 Bad Gateway - Remote API answered with an error status."""

    def __init__(self, message: str = "Remote API error", status: int = 0) -> None:
        self.status = status
        super().__init__(ErrorCode.REMOTE_ERROR, message, 502)


class RemoteFatalError(VolumeError):
    """502 Bad Gateway - Remote failure wrapped with operation context."""

    def __init__(self, message: str = "Remote operation failed") -> None:
        super().__init__(ErrorCode.OPERATION_FAILED, message, 502)


class OperationTimeoutError(VolumeError):
    """504 Gateway Timeout - Bounded wait exhausted its deadline."""

    def __init__(self, message: str = "Operation timed out") -> None:
        super().__init__(ErrorCode.OPERATION_TIMEOUT, message, 504)
