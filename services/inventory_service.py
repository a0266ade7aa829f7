"""
Live inventory reads and inventory movements against Magazord.
"""

from typing import Any, Optional
import structlog

from integrations.magazord import MagazordClient, get_magazord_client
from models.identity import Identity
from models.inventory import InventoryLevel, MovementCreate

logger = structlog.get_logger(__name__)


class InventoryService:
    """
    Inventory business logic.

    Nothing here is persisted locally; the ERP is the system of record.
    """

    def __init__(self, client: Optional[MagazordClient] = None):
        self.client = client or get_magazord_client()

    def get_levels(self, sku: str, limit: int = 100) -> list[InventoryLevel]:
        """Live inventory rows for a SKU (empty when upstream has none)."""
        levels = self.client.fetch_inventory(sku, limit=limit)
        logger.info("inventory_retrieved", sku=sku, rows=len(levels))
        return levels

    def move(self, data: MovementCreate, identity: Identity) -> Any:
        """
        Submit one inventory movement on behalf of `identity`.

        Returns:
            Upstream response payload, verbatim
        """
        logger.info(
            "inventory_movement_requested",
            sku=data.sku,
            quantidade=data.quantidade,
            motivo=data.motivo,
            user=identity.id
        )

        result = self.client.post_inventory_movement(
            sku=data.sku,
            quantity=data.quantidade,
            actor=identity.label,
            motivo=data.motivo,
            deposito_id=data.deposito,
            custo_base=data.custo_base,
        )

        logger.info("inventory_movement_submitted", sku=data.sku, user=identity.id)
        return result


# Singleton instance for convenience
_inventory_service: Optional[InventoryService] = None


def get_inventory_service() -> InventoryService:
    """Get or create InventoryService instance."""
    global _inventory_service
    if _inventory_service is None:
        _inventory_service = InventoryService()
    return _inventory_service
