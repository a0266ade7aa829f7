"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    PaginatedResponse
)
from models.catalog import (
    CatalogEntry,
    LiveFields,
    CatalogRow,
    CatalogListResponse,
    UpstreamCatalogResponse,
    LiveRequest,
    LiveResponse,
    SyncResult,
)
from models.inventory import (
    InventoryLevel,
    InventoryListResponse,
    MovementCreate,
    MovementResponse,
)
from models.price import (
    PriceResponse,
    PriceUpdate,
)
from models.supplier import (
    SupplierCreate,
    SupplierUpdate,
    SupplierResponse,
    SupplierListResponse,
    SupplierExtraUpdate,
    SupplierExtraResponse,
    SupplierExtraListResponse,
)
from models.identity import Identity

__all__ = [
    # Base
    "BaseSchema",
    "PaginatedResponse",

    # Catalog
    "CatalogEntry",
    "LiveFields",
    "CatalogRow",
    "CatalogListResponse",
    "UpstreamCatalogResponse",
    "LiveRequest",
    "LiveResponse",
    "SyncResult",

    # Inventory
    "InventoryLevel",
    "InventoryListResponse",
    "MovementCreate",
    "MovementResponse",

    # Price
    "PriceResponse",
    "PriceUpdate",

    # Suppliers
    "SupplierCreate",
    "SupplierUpdate",
    "SupplierResponse",
    "SupplierListResponse",
    "SupplierExtraUpdate",
    "SupplierExtraResponse",
    "SupplierExtraListResponse",

    # Identity
    "Identity",
]
