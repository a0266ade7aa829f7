"""
Spreadsheet view assembly.

Reads a filtered page from the mirror, joins the locally owned extras and,
when asked, overlays live ERP figures through the enrichment fetcher.
"""

from typing import Optional
import structlog

from models.catalog import CatalogEntry, CatalogRow
from models.supplier import SupplierExtraResponse
from services.catalog_service import CatalogService, get_catalog_service
from services.enrichment_service import EnrichmentFetcher, get_enrichment_fetcher
from services.extras_service import ExtrasService, get_extras_service

logger = structlog.get_logger(__name__)


def build_row(entry: CatalogEntry, extra: Optional[SupplierExtraResponse]) -> CatalogRow:
    """Join a mirror entry with its extras (if any)."""
    row = CatalogRow(**entry.model_dump())
    if extra is None:
        return row
    return row.model_copy(update={
        "cod_fornecedor": extra.cod_fornecedor,
        "fora_de_linha": extra.fora_de_linha,
        "observacoes": extra.observacoes,
        "fornecedores": list(extra.fornecedores),
    })


class CatalogViewService:
    """Catalog rows as shown in the operations panel."""

    def __init__(
        self,
        catalog: Optional[CatalogService] = None,
        extras: Optional[ExtrasService] = None,
        fetcher: Optional[EnrichmentFetcher] = None,
    ):
        self.catalog = catalog or get_catalog_service()
        self.extras = extras or get_extras_service()
        self._fetcher = fetcher

    @property
    def fetcher(self) -> EnrichmentFetcher:
        # Lazily built so mirror-only reads never need Magazord settings
        if self._fetcher is None:
            self._fetcher = get_enrichment_fetcher()
        return self._fetcher

    def _join(self, entries: list[CatalogEntry]) -> list[CatalogRow]:
        extras = self.extras.get_for_skus([entry.sku for entry in entries])
        return [build_row(entry, extras.get(entry.sku)) for entry in entries]

    def page(
        self,
        page: int = 1,
        page_size: int = 50,
        sku: Optional[str] = None,
        name: Optional[str] = None,
        supplier: Optional[str] = None,
        active_only: bool = False,
        live: bool = False,
    ) -> tuple[list[CatalogRow], int]:
        """
        One page of the view.

        Returns:
            Tuple of (rows, total count)
        """
        entries, total = self.catalog.search(
            page=page,
            page_size=page_size,
            sku=sku,
            name=name,
            supplier=supplier,
            active_only=active_only,
        )
        rows = self._join(entries)

        if live and rows:
            rows = self.fetcher.enrich_rows(rows)

        return rows, total

    def live_rows(self, skus: list[str]) -> list[CatalogRow]:
        """
        Enrich an explicit SKU list, in the order given.

        SKUs missing from the mirror still get a row carrying live data.
        """
        ordered: list[str] = []
        for sku in skus:
            sku = (sku or "").strip()
            if sku and sku not in ordered:
                ordered.append(sku)

        entries = {entry.sku: entry for entry in self.catalog.get_by_skus(ordered)}
        rows = self._join([entries.get(sku) or CatalogEntry(sku=sku) for sku in ordered])

        logger.info("live_rows_requested", skus=len(ordered), mirrored=len(entries))
        return self.fetcher.enrich_rows(rows)


# Singleton instance for convenience
_view_service: Optional[CatalogViewService] = None


def get_view_service() -> CatalogViewService:
    """Get or create CatalogViewService instance."""
    global _view_service
    if _view_service is None:
        _view_service = CatalogViewService()
    return _view_service
