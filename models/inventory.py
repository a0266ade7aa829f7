"""
Live inventory and inventory movement schemas.
"""

from pydantic import BaseModel, Field
from typing import Any, Optional

from models.base import BaseSchema


class InventoryLevel(BaseSchema):
    """Per-SKU live inventory figures from the ERP."""

    sku: str = ""
    estoque_atual: float = 0.0
    estoque_reservado: float = 0.0
    custo_medio: float = 0.0


class InventoryListResponse(BaseModel):
    ok: bool = True
    items: list[InventoryLevel]


class MovementCreate(BaseSchema):
    """
    Request an inventory movement for one SKU.

    Positive quantities add stock, negative quantities reduce it.
    custo_base only matters for positive movements.
    """

    sku: str = Field(..., description="SKU to move")
    quantidade: float = Field(..., description="Signed quantity, non-zero")
    motivo: str = Field(
        default="AJUSTE",
        max_length=120,
        description="Reason code written into the audit observation"
    )
    custo_base: Optional[float] = Field(None, ge=0, description="Unit cost for positive movements")
    deposito: Optional[str] = Field(None, description="Warehouse id, defaults to the configured one")


class MovementResponse(BaseModel):
    """Upstream response payload, returned verbatim."""

    ok: bool = True
    upstream: Any = None
