"""Error types for the invoice pipeline.

Every failure that concerns a single invoice carries that invoice's
identifier, so the batch runner can report it and carry on with the rest.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(Enum):
    """Enumeration of error types in the invoice pipeline."""

    # Input
    RECORD_SOURCE_MISSING = "RECORD_SOURCE_MISSING"
    INVOICE_INVALID = "INVOICE_INVALID"

    # Documents
    RENDER_FAILED = "RENDER_FAILED"
    DOCUMENT_DECODE_FAILED = "DOCUMENT_DECODE_FAILED"
    LETTERHEAD_NO_PAGE = "LETTERHEAD_NO_PAGE"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class KostennoteError(Exception):
    """Base class. ``recoverable`` means the invoice can still be written unstamped."""

    error_type = ErrorType.UNKNOWN_ERROR
    recoverable = False

    def __init__(self, message: str, invoice_id: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.invoice_id = invoice_id
        self.details = details or {}

    def __str__(self):
        if self.invoice_id:
            return f"[{self.invoice_id}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary form for logging and batch reports."""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "invoice_id": self.invoice_id,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class RecordSourceError(KostennoteError):
    """CSV input missing or unreadable. Fatal for the whole run."""
    error_type = ErrorType.RECORD_SOURCE_MISSING


class InvoiceValidationError(KostennoteError):
    error_type = ErrorType.INVOICE_INVALID


class RenderError(KostennoteError):
    error_type = ErrorType.RENDER_FAILED


class DocumentDecodeError(KostennoteError):
    """Content or letterhead PDF could not be decoded."""
    error_type = ErrorType.DOCUMENT_DECODE_FAILED
    recoverable = True


class LetterheadPageError(KostennoteError):
    """Letterhead has no page for the requested role."""
    error_type = ErrorType.LETTERHEAD_NO_PAGE
    recoverable = True
