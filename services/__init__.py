"""
Business logic services.

Each service handles one domain area.
"""

from services.catalog_service import CatalogService, get_catalog_service
from services.sync_service import SyncService, get_sync_service
from services.enrichment_service import EnrichmentFetcher, LiveRowStore, get_enrichment_fetcher
from services.extras_service import ExtrasService, get_extras_service
from services.supplier_service import SupplierService, get_supplier_service
from services.inventory_service import InventoryService, get_inventory_service
from services.price_service import PriceService, get_price_service
from services.view_service import CatalogViewService, get_view_service
from services.auth_service import AuthService, get_auth_service, require_identity

__all__ = [
    "CatalogService",
    "get_catalog_service",
    "SyncService",
    "get_sync_service",
    "EnrichmentFetcher",
    "LiveRowStore",
    "get_enrichment_fetcher",
    "ExtrasService",
    "get_extras_service",
    "SupplierService",
    "get_supplier_service",
    "InventoryService",
    "get_inventory_service",
    "PriceService",
    "get_price_service",
    "CatalogViewService",
    "get_view_service",
    "AuthService",
    "get_auth_service",
    "require_identity",
]
