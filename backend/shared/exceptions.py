"""Custom exceptions for the retro catalog backend."""

from typing import Any, Dict, Optional


class CatalogException(Exception):
    """Base exception for all catalog errors."""

    kind: str = "CatalogError"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CatalogValidationError(CatalogException):
    """Raised when input validation fails."""
    kind = "ValidationError"


class MissingFieldError(CatalogValidationError):
    """Raised when a required record field is absent or empty."""
    kind = "MissingField"


class InvalidYearError(CatalogValidationError):
    """Raised when the year field is not a whole number."""
    kind = "InvalidYear"


class MissingAttachmentError(CatalogValidationError):
    """Raised when a record is created without a ROM file."""
    kind = "MissingAttachment"


class InvalidPayloadError(CatalogValidationError):
    """Raised when an import payload is not a list of records."""
    kind = "InvalidPayload"


class NotFoundError(CatalogException):
    """Raised when a record or its attachment does not exist."""
    kind = "NotFound"


class PayloadTooLargeError(CatalogException):
    """Raised when an upload exceeds the configured size limit."""
    kind = "PayloadTooLarge"


class IOFailureError(CatalogException):
    """Raised when reading or writing the store or content directory fails."""
    kind = "IOFailure"
