"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.catalog import router as catalog_router
from routes.inventory import router as inventory_router
from routes.prices import router as prices_router
from routes.extras import router as extras_router
from routes.suppliers import router as suppliers_router

__all__ = [
    "catalog_router",
    "inventory_router",
    "prices_router",
    "extras_router",
    "suppliers_router",
]
