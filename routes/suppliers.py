"""
Supplier API routes. All privileged.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import structlog

from models.identity import Identity
from models.supplier import (
    SupplierCreate,
    SupplierUpdate,
    SupplierResponse,
    SupplierListResponse,
)
from services.auth_service import require_identity
from services.supplier_service import get_supplier_service
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

@router.get("", response_model=SupplierListResponse)
async def list_suppliers(identity: Identity = Depends(require_identity)):
    """All suppliers ordered by name."""
    try:
        return SupplierListResponse(fornecedores=get_supplier_service().get_all())

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=SupplierResponse, status_code=201)
async def create_supplier(data: SupplierCreate, identity: Identity = Depends(require_identity)):
    """
    Create a supplier.

    Raises:
        422: Empty name
    """
    try:
        return get_supplier_service().create(data, identity)

    except Exception as e:
        return handle_error(e)


@router.patch("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: int,
    data: SupplierUpdate,
    identity: Identity = Depends(require_identity)
):
    """
    Rename and/or toggle a supplier.

    Raises:
        404: Supplier not found
        422: Nothing to update
    """
    try:
        return get_supplier_service().update(supplier_id, data, identity)

    except Exception as e:
        return handle_error(e)


@router.delete("/{supplier_id}")
async def delete_supplier(supplier_id: int, identity: Identity = Depends(require_identity)):
    """Delete a supplier together with its SKU associations."""
    try:
        get_supplier_service().delete(supplier_id, identity)
        return {"ok": True}

    except Exception as e:
        return handle_error(e)
