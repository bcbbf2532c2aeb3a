"""Domain exceptions for the sharegate application.

Defines domain-level exceptions for rejected uploads, unresolved entries and
failed HTTP preconditions. These exceptions are independent of infrastructure
concerns. The presentation layer maps them to HTTP responses in exception
handlers.
"""

from typing import Any


class ShareGateException(Exception):
    """Base exception for all sharegate errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, entry_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error body: error, message and (if any) details."""
        body: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationException(ShareGateException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class MalformedUploadException(ShareGateException):
    """Raised when an upload body is not parseable as multipart form data."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            "Upload body is not valid multipart/form-data",
            "MALFORMED_UPLOAD",
            {"reason": reason},
        )


class EntryNotFoundException(ShareGateException):
    """Raised when an identifier does not resolve to a published entry."""

    def __init__(self, entry_id: str) -> None:
        """Initialize with the identifier that was looked up.

        Args:
            entry_id: The requested identifier (after extension stripping).
        """
        super().__init__(
            "Entry not found",
            "ENTRY_NOT_FOUND",
            {"entry_id": entry_id},
        )


class PreconditionFailedException(ShareGateException):
    """Raised when If-Match or If-Unmodified-Since does not hold."""

    def __init__(self, header: str) -> None:
        super().__init__(
            f"Precondition failed: {header}",
            "PRECONDITION_FAILED",
            {"header": header},
        )


class RangeNotSatisfiableException(ShareGateException):
    """Raised when none of the requested byte ranges overlap the blob."""

    def __init__(self, size: int) -> None:
        """Initialize with the blob size reported in Content-Range.

        Args:
            size: Total byte length of the requested entry.
        """
        self.size = size
        super().__init__(
            "Requested range not satisfiable",
            "RANGE_NOT_SATISFIABLE",
            {"size": size},
        )
