"""
Price schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional

from models.base import BaseSchema


class PriceResponse(BaseModel):
    ok: bool = True
    sku: str
    preco: Optional[float] = None


class PriceUpdate(BaseSchema):
    """Set the sell price of one SKU on a price list."""

    sku: str = Field(..., description="SKU to reprice")
    preco: float = Field(..., description="New sell price")
    tabela_preco: Optional[str] = Field(None, description="Price list id, defaults to the configured one")
