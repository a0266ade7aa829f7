"""
Catalog API routes: mirror reads, upstream page proxy, sync and live rows.
"""

from fastapi import APIRouter, Query, Depends
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from integrations.magazord import get_magazord_client, LIMIT_MAX
from models.catalog import (
    CatalogEntry,
    CatalogListResponse,
    UpstreamCatalogResponse,
    LiveRequest,
    LiveResponse,
    SyncResult,
)
from models.identity import Identity
from services.auth_service import require_identity
from services.sync_service import get_sync_service
from services.view_service import get_view_service
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

@router.get("", response_model=CatalogListResponse)
def list_catalog(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
    sku: Optional[str] = Query(None, description="SKU contains (case-insensitive)"),
    name: Optional[str] = Query(None, description="Name contains (case-insensitive)"),
    supplier: Optional[str] = Query(None, description="Supplier name or supplier code contains"),
    active_only: bool = Query(False, description="Only active SKUs"),
    live: bool = Query(False, description="Overlay live stock, cost and price")
):
    """
    Page of the catalog mirror joined with supplier extras.

    With live=true the response waits for the enrichment workers.
    """
    try:
        service = get_view_service()
        rows, total = service.page(
            page=page,
            page_size=page_size,
            sku=sku,
            name=name,
            supplier=supplier,
            active_only=active_only,
            live=live
        )
        return CatalogListResponse.create(data=rows, total=total, page=page, page_size=page_size)

    except Exception as e:
        return handle_error(e)


@router.get("/upstream", response_model=UpstreamCatalogResponse)
def upstream_catalog_page(
    page: int = Query(1, description="Upstream page (clamped to >= 1)"),
    limit: int = Query(LIMIT_MAX, description="Page size (clamped to 1..100)")
):
    """One upstream listing page, derivations only, mapped to mirror shape."""
    try:
        client = get_magazord_client()
        result = client.list_catalog_page(page=page, limit=limit)
        catalogo = [CatalogEntry(**row) for row in client.map_derivations(result.items) if row["sku"]]

        return UpstreamCatalogResponse(
            page=result.page,
            limit=result.limit,
            total=result.total or len(catalogo),
            has_more=result.has_more,
            catalogo=catalogo
        )

    except Exception as e:
        return handle_error(e)


@router.post("/sync", response_model=SyncResult)
def sync_catalog(identity: Identity = Depends(require_identity)):
    """
    Mirror the full upstream catalog.

    Raises:
        401: Missing or invalid token
        5xx/4xx: Upstream status of the failing page
    """
    try:
        return get_sync_service().run(identity)

    except Exception as e:
        return handle_error(e)


@router.post("/live", response_model=LiveResponse)
def live_rows(data: LiveRequest):
    """Rows for an explicit SKU list with live figures overlaid."""
    try:
        rows = get_view_service().live_rows(data.skus)
        return LiveResponse(rows=rows)

    except Exception as e:
        return handle_error(e)
