"""
Custom exception classes for the application.

Every failure surfaced to a caller is an AppError, rendered as
{"ok": false, "error": {...}} by the routes.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "SUPPLIER_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "ok": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConfigurationError(AppError):
    """Required setting missing (500). Raised before any network I/O."""

    def __init__(self, missing: list[str], operation: Optional[str] = None):
        super().__init__(
            code="CONFIGURATION_ERROR",
            message=f"Missing configuration: {', '.join(missing)}",
            status_code=500,
            details={"missing": missing, "operation": operation}
        )


class UpstreamError(AppError):
    """
    Upstream ERP answered with a non-2xx status.

    status_code mirrors the upstream status; the body is truncated
    to the first 500 characters.
    """

    BODY_LIMIT = 500

    def __init__(
        self,
        status_code: int,
        body: str,
        operation: Optional[str] = None
    ):
        truncated = (body or "")[:self.BODY_LIMIT]
        super().__init__(
            code="UPSTREAM_ERROR",
            message=truncated or f"Upstream returned HTTP {status_code}",
            status_code=status_code,
            details={"service": "magazord", "operation": operation, "body": truncated}
        )

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class AuthError(AppError):
    """Missing or invalid caller identity (401)."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401
        )


class DatabaseError(AppError):
    """Local store operation failed (500). Carries the store's message verbatim."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=message,
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SPECIFIC ERRORS
# ===================

class SupplierNotFoundError(NotFoundError):
    """Supplier not found."""

    def __init__(self, supplier_id: int):
        super().__init__(
            resource="Supplier",
            identifier=str(supplier_id),
            code="SUPPLIER_NOT_FOUND"
        )


class InvalidSKUError(ValidationError):
    """Empty or missing SKU."""

    def __init__(self, sku: Optional[str] = None):
        super().__init__(
            code="INVALID_SKU",
            message="sku required",
            details={"provided": sku}
        )
