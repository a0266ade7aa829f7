"""
Inventory API routes: live stock reads and movements.
"""

from fastapi import APIRouter, Query, Depends
from fastapi.responses import JSONResponse
import structlog

from models.identity import Identity
from models.inventory import InventoryListResponse, MovementCreate, MovementResponse
from services.auth_service import require_identity
from services.inventory_service import get_inventory_service
from exceptions import AppError

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

@router.get("", response_model=InventoryListResponse)
def get_inventory(
    sku: str = Query("", description="SKU to look up"),
    limit: int = Query(100, description="Max rows (clamped to 1..100)")
):
    """
    Live inventory for one SKU.

    Raises:
        422: Missing SKU
    """
    try:
        items = get_inventory_service().get_levels(sku, limit=limit)
        return InventoryListResponse(items=items)

    except Exception as e:
        return handle_error(e)


@router.post("/movements", response_model=MovementResponse)
def create_movement(data: MovementCreate, identity: Identity = Depends(require_identity)):
    """
    Submit an inventory movement to the ERP.

    Raises:
        401: Missing or invalid token
        422: Empty SKU or zero quantity
    """
    try:
        upstream = get_inventory_service().move(data, identity)
        return MovementResponse(upstream=upstream)

    except Exception as e:
        return handle_error(e)
