"""
Utils Package

Provides utility modules for:
- errors: ErrorKind taxonomy and the exceptions services raise
"""

from .errors import (
    ErrorKind,
    BankBookError,
    ValidationError,
    NotFoundError,
    BadRequestError,
    ConflictError,
    missing_parameter,
    row_errors,
    error_body,
)

__all__ = [
    'ErrorKind',
    'BankBookError',
    'ValidationError',
    'NotFoundError',
    'BadRequestError',
    'ConflictError',
    'missing_parameter',
    'row_errors',
    'error_body',
]
