"""
Supplier extras API routes.
"""

from fastapi import APIRouter, Query, Depends
from fastapi.responses import JSONResponse
import structlog

from models.identity import Identity
from models.supplier import (
    SupplierExtraUpdate,
    SupplierExtraResponse,
    SupplierExtraListResponse,
)
from services.auth_service import require_identity
from services.extras_service import get_extras_service
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.get("", response_model=SupplierExtraListResponse)
async def list_extras(skus: str = Query("", description="Comma-separated SKUs")):
    """
    Extras for a list of SKUs.

    Raises:
        422: No SKUs given
    """
    try:
        sku_list = [s.strip() for s in skus.split(",") if s.strip()]
        if not sku_list:
            raise ValidationError("skus required", code="SKUS_REQUIRED")

        extras = get_extras_service().get_for_skus(sku_list)
        return SupplierExtraListResponse(extras=list(extras.values()))

    except Exception as e:
        return handle_error(e)


@router.put("/{sku}", response_model=SupplierExtraResponse)
async def save_extras(
    sku: str,
    data: SupplierExtraUpdate,
    identity: Identity = Depends(require_identity)
):
    """
    Save extras of one SKU, replacing its supplier set.

    Raises:
        401: Missing or invalid token
    """
    try:
        return get_extras_service().save(sku, data, identity)

    except Exception as e:
        return handle_error(e)
