"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConfigurationError,
    UpstreamError,
    AuthError,
    DatabaseError,

    # Specific
    SupplierNotFoundError,
    InvalidSKUError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConfigurationError",
    "UpstreamError",
    "AuthError",
    "DatabaseError",

    # Specific
    "SupplierNotFoundError",
    "InvalidSKUError",
]
