"""
Catalog schemas: the mirrored CatalogEntry and the merged view row.

Column names follow the Supabase `catalogo` table.
"""

from pydantic import BaseModel, Field
from typing import Optional

from models.base import BaseSchema, PaginatedResponse


class CatalogEntry(BaseSchema):
    """
    Mirrored copy of an upstream derivation (sellable variant).

    Written only by the catalog sync; a re-sync overwrites every field.
    """

    sku: str = Field(..., min_length=1, description="Upstream 'codigo', unique key")
    nome_derivacao: str = Field(
        default="",
        description="'<parent name> - <variant name>' or the parent name alone"
    )
    codigo_pai: str = Field(default="", description="Upstream parent/grouping code")
    id_derivacao: Optional[int] = Field(None, description="Upstream derivation id")
    url_imagem: str = Field(default="", description="Derived CDN URL of the first media item")
    ativo: bool = Field(default=True, description="False only when upstream says so")
    preco: Optional[float] = Field(None, description="Listing price at sync time")


class LiveFields(BaseModel):
    """Live figures fetched from the ERP per view session. Never persisted."""

    estoque_atual: Optional[float] = Field(None, description="On-hand quantity available for sale")
    estoque_reservado: Optional[float] = Field(None, description="Reserved quantity")
    custo_medio: Optional[float] = Field(None, description="Average cost")
    preco_venda: Optional[float] = Field(None, description="Current sell price")


class CatalogRow(CatalogEntry, LiveFields):
    """
    One row of the spreadsheet view.

    Mirror columns, locally owned extras and (optionally) live figures.
    """

    cod_fornecedor: str = Field(default="", description="Supplier's own code for the SKU")
    fora_de_linha: bool = Field(default=False, description="Discontinued flag")
    observacoes: str = Field(default="", description="Free-text notes")
    fornecedores: list[str] = Field(default_factory=list, description="Associated supplier names")


class CatalogListResponse(PaginatedResponse):
    """Paged catalog rows."""

    data: list[CatalogRow]


class UpstreamCatalogResponse(BaseModel):
    """One upstream catalog page mapped to CatalogEntry shape."""

    ok: bool = True
    page: int
    limit: int
    total: int
    has_more: bool
    catalogo: list[CatalogEntry]


class LiveRequest(BaseModel):
    """SKUs to enrich with live figures."""

    skus: list[str] = Field(..., min_length=1, max_length=200)


class LiveResponse(BaseModel):
    ok: bool = True
    rows: list[CatalogRow]


class SyncResult(BaseModel):
    """Outcome of one catalog sync run."""

    ok: bool = True
    total: int = Field(..., description="Rows upserted into the mirror")
    pages: int = Field(..., description="Upstream pages walked")
    truncated: bool = Field(
        default=False,
        description="True when the page ceiling stopped the walk before has_more went false"
    )
