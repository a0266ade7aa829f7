"""
Supplier and supplier-extras schemas.

Tables: `fornecedores`, `produto_extra`, `produto_fornecedor` (sku, fornecedor_id).
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from models.base import BaseSchema


class SupplierCreate(BaseSchema):
    """
    Create a new supplier.

    Required: nome
    """

    nome: str = Field(..., description="Supplier name")


class SupplierUpdate(BaseSchema):
    """
    Rename and/or toggle a supplier.

    All fields optional - only provided fields are updated.
    """

    nome: Optional[str] = Field(None, description="Supplier name")
    ativo: Optional[bool] = Field(None, description="Whether supplier is active")


class SupplierResponse(BaseSchema):
    id: int
    nome: str
    ativo: bool = True
    created_at: Optional[datetime] = None


class SupplierListResponse(BaseModel):
    ok: bool = True
    fornecedores: list[SupplierResponse]


class SupplierExtraUpdate(BaseSchema):
    """
    Locally owned metadata for one SKU.

    fornecedores replaces the whole association set.
    """

    cod_fornecedor: str = Field(default="", description="Supplier's own code for the SKU")
    fora_de_linha: bool = Field(default=False, description="Discontinued flag")
    observacoes: str = Field(default="", description="Free-text notes")
    fornecedores: list[int] = Field(default_factory=list, description="Supplier ids")

    @field_validator("cod_fornecedor", "observacoes", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("fornecedores")
    @classmethod
    def drop_empty_ids(cls, v: list[int]) -> list[int]:
        """Zero ids are dropped and duplicates collapsed, keeping order."""
        seen: list[int] = []
        for supplier_id in v:
            if supplier_id and supplier_id not in seen:
                seen.append(supplier_id)
        return seen


class SupplierExtraResponse(BaseSchema):
    sku: str
    cod_fornecedor: str = ""
    fora_de_linha: bool = False
    observacoes: str = ""
    fornecedores: list[str] = Field(default_factory=list, description="Supplier names")


class SupplierExtraListResponse(BaseModel):
    ok: bool = True
    extras: list[SupplierExtraResponse]
