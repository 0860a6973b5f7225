"""
Shared error handling for the Records Service.
"""

from typing import Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    error: str
    details: Optional[str] = None


class RecordServiceError(Exception):
    """Base exception for Records Service operations."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[str] = None):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            error=self.message,
            details=self.details
        )

    def to_body(self) -> dict:
        """Response body with empty fields dropped."""
        return self.to_response().model_dump(exclude_none=True)


class InvalidInput(RecordServiceError):
    """Malformed request body or missing required parameter."""

    status_code = 400

    def __init__(self, message: str = "Invalid input", details: Optional[str] = None):
        super().__init__("INVALID_INPUT", message, details)


class NotFound(RecordServiceError):
    """Requested field or document is absent."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[str] = None):
        super().__init__("NOT_FOUND", message, details)


class StoreUnavailable(RecordServiceError):
    """Durable store connectivity or permission failure."""

    def __init__(self, message: str = "Durable store unavailable", details: Optional[str] = None):
        super().__init__("STORE_UNAVAILABLE", message, details)


class WriteAborted(StoreUnavailable):
    """A write was abandoned because the existing document could not be read."""

    def __init__(self, message: str = "Failed to fetch existing data", details: Optional[str] = None):
        super().__init__(message, details)
        self.code = "WRITE_ABORTED"


class CacheUnavailable(RecordServiceError):
    """Cache tier failure. Absorbed everywhere except an explicit flush."""

    def __init__(self, message: str = "Cache unavailable", details: Optional[str] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)


class CacheFlushFailed(RecordServiceError):
    """The cache could not be cleared."""

    def __init__(self, message: str = "Failed to clear Redis cache", details: Optional[str] = None):
        super().__init__("CACHE_FLUSH_FAILED", message, details)
