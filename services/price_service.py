"""
Sell price reads and writes against Magazord price lists.
"""

from typing import Optional
import structlog

from integrations.magazord import MagazordClient, get_magazord_client
from models.identity import Identity
from models.price import PriceUpdate

logger = structlog.get_logger(__name__)


class PriceService:
    """Price business logic."""

    def __init__(self, client: Optional[MagazordClient] = None):
        self.client = client or get_magazord_client()

    def get_price(self, sku: str) -> Optional[float]:
        """Current sell price on the configured price list, or None."""
        return self.client.fetch_price(sku)

    def set_price(self, data: PriceUpdate, identity: Identity) -> None:
        """Set the sell price of a SKU on behalf of `identity`."""
        logger.info("price_update_requested", sku=data.sku, preco=data.preco, user=identity.id)
        self.client.post_price(data.sku, data.preco, tabela_preco_id=data.tabela_preco)
        logger.info("price_updated", sku=data.sku, user=identity.id)


# Singleton instance for convenience
_price_service: Optional[PriceService] = None


def get_price_service() -> PriceService:
    """Get or create PriceService instance."""
    global _price_service
    if _price_service is None:
        _price_service = PriceService()
    return _price_service
