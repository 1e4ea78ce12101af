"""
Structured Error Types

Every failure a bank book operation can report maps to one ErrorKind and an
HTTP status. Handlers never build error bodies by hand: services raise a
BankBookError subclass and the application exception handler renders it.

Error Response Format:
{
    "success": false,
    "error": "Bank book entry not found",
    "kind": "NotFound",
    "details": {...}            # optional
}
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import status


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "ValidationError"
    NOT_FOUND = "NotFound"
    BAD_REQUEST = "BadRequest"
    CONFLICT = "Conflict"
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    INTERNAL_ERROR = "InternalError"


class BankBookError(Exception):
    """Base exception for bank book operations."""

    kind: ErrorKind = ErrorKind.BAD_REQUEST
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": False,
            "error": self.message,
            "kind": self.kind.value,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BankBookError):
    """Missing or malformed input."""

    kind = ErrorKind.VALIDATION_ERROR
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(BankBookError):
    """Entity absent, or owned by another tenant."""

    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class BadRequestError(BankBookError):
    """Request cannot be processed at all (e.g. missing upload)."""

    kind = ErrorKind.BAD_REQUEST
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(BankBookError):
    """Uniqueness constraint would be violated."""

    kind = ErrorKind.CONFLICT
    status_code = status.HTTP_409_CONFLICT


def missing_parameter(parameter: str, message: Optional[str] = None) -> ValidationError:
    return ValidationError(
        message or f"{parameter} is required",
        details={"parameter": parameter},
    )


def row_errors(message: str, errors: List[Dict[str, Any]]) -> ValidationError:
    """Build a ValidationError carrying a per-row error list."""
    return ValidationError(
        message,
        details={"error_count": len(errors), "rows": errors},
    )


def error_body(message: str, kind: ErrorKind, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Render the error envelope for errors raised outside the service layer."""
    body: Dict[str, Any] = {"success": False, "error": message, "kind": kind.value}
    if details:
        body["details"] = details
    return body


_STATUS_KINDS = {
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorKind.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorKind.CONFLICT,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ErrorKind.VALIDATION_ERROR,
}


def kind_for_status(status_code: int) -> ErrorKind:
    """ErrorKind for an HTTP error raised by the framework or auth dependencies."""
    if status_code >= 500:
        return ErrorKind.INTERNAL_ERROR
    return _STATUS_KINDS.get(status_code, ErrorKind.BAD_REQUEST)
