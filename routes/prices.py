"""
Price API routes.
"""

from fastapi import APIRouter, Query, Depends
from fastapi.responses import JSONResponse
import structlog

from models.identity import Identity
from models.price import PriceResponse, PriceUpdate
from services.auth_service import require_identity
from services.price_service import get_price_service
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

@router.get("", response_model=PriceResponse)
def get_price(sku: str = Query("", description="SKU to look up")):
    """Current sell price on the configured price list (null when absent)."""
    try:
        preco = get_price_service().get_price(sku)
        return PriceResponse(sku=sku.strip(), preco=preco)

    except Exception as e:
        return handle_error(e)


@router.put("")
def set_price(data: PriceUpdate, identity: Identity = Depends(require_identity)):
    """
    Set the sell price of a SKU.

    Raises:
        401: Missing or invalid token
        422: Empty SKU or non-positive price
    """
    try:
        get_price_service().set_price(data, identity)
        return {"ok": True}

    except Exception as e:
        return handle_error(e)
