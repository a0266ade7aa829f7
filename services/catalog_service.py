"""
Catalog mirror access: bulk upsert and filtered, paged reads.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.catalog import CatalogEntry
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)

# Max values per in_() filter; PostgREST sends them in the query string
IN_CHUNK_SIZE = 200


def _like(term: str) -> str:
    """Case-insensitive substring pattern for ilike."""
    return f"%{term.strip()}%"


def _chunks(values: list, size: int = IN_CHUNK_SIZE):
    for start in range(0, len(values), size):
        yield values[start:start + size]


class CatalogService:
    """
    Catalog mirror business logic.

    Rows are written only by the sync; reads never touch the ERP.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "catalogo"

    # ===================
    # READ OPERATIONS
    # ===================

    def search(
        self,
        page: int = 1,
        page_size: int = 50,
        sku: Optional[str] = None,
        name: Optional[str] = None,
        supplier: Optional[str] = None,
        active_only: bool = False
    ) -> tuple[list[CatalogEntry], int]:
        """
        Filtered page of the mirror, ordered by SKU.

        Args:
            page: Page number (1-indexed)
            page_size: Items per page
            sku: Substring of the SKU (case-insensitive)
            name: Substring of the derivation name (case-insensitive)
            supplier: Substring of an associated supplier name or of the
                supplier's own code for the SKU
            active_only: Only return active rows

        Returns:
            Tuple of (entries, total count)
        """
        logger.info(
            "searching_catalog",
            page=page,
            page_size=page_size,
            sku=sku,
            name=name,
            supplier=supplier
        )

        supplier_skus = None
        if supplier and supplier.strip():
            supplier_skus = self.skus_for_supplier(supplier)
            if not supplier_skus:
                logger.info("catalog_retrieved", count=0, total=0, reason="no_supplier_match")
                return [], 0

        if supplier_skus is not None:
            return self._search_within(supplier_skus, page, page_size, sku, name, active_only)

        try:
            query = self._filtered(
                self.db.table(self.table).select("*", count="exact"), sku, name, active_only
            )

            offset = (page - 1) * page_size
            query = query.order("sku").range(offset, offset + page_size - 1)

            result = query.execute()

            entries = [CatalogEntry(**row) for row in result.data]
            total = result.count or 0

            logger.info("catalog_retrieved", count=len(entries), total=total)
            return entries, total

        except Exception as e:
            logger.error("search_catalog_failed", error=str(e))
            raise DatabaseError("select", str(e))

    @staticmethod
    def _filtered(query, sku: Optional[str], name: Optional[str], active_only: bool):
        if sku and sku.strip():
            query = query.ilike("sku", _like(sku))
        if name and name.strip():
            query = query.ilike("nome_derivacao", _like(name))
        if active_only:
            query = query.eq("ativo", True)
        return query

    def _search_within(
        self,
        candidates: list[str],
        page: int,
        page_size: int,
        sku: Optional[str],
        name: Optional[str],
        active_only: bool
    ) -> tuple[list[CatalogEntry], int]:
        """
        Paged search restricted to a SKU set of any size.

        Matching SKUs are collected in chunks of IN_CHUNK_SIZE, then the
        requested page is read by SKU.
        """
        try:
            matched: list[str] = []
            for chunk in _chunks(candidates):
                result = self._filtered(
                    self.db.table(self.table).select("sku"), sku, name, active_only
                ).in_("sku", chunk).execute()
                matched.extend(row["sku"] for row in result.data)

            matched.sort()
            total = len(matched)
            offset = (page - 1) * page_size
            page_skus = matched[offset:offset + page_size]

            entries: list[CatalogEntry] = []
            for chunk in _chunks(page_skus):
                result = (
                    self.db.table(self.table)
                    .select("*")
                    .in_("sku", chunk)
                    .execute()
                )
                entries.extend(CatalogEntry(**row) for row in result.data)
            entries.sort(key=lambda entry: entry.sku)

            logger.info("catalog_retrieved", count=len(entries), total=total, candidates=len(candidates))
            return entries, total

        except Exception as e:
            logger.error("search_catalog_failed", candidates=len(candidates), error=str(e))
            raise DatabaseError("select", str(e))

    def skus_for_supplier(self, term: str) -> list[str]:
        """
        SKUs linked to a supplier whose name matches `term`, plus SKUs whose
        supplier code matches it.

        Joins fornecedores -> produto_fornecedor and checks produto_extra.
        """
        pattern = _like(term)

        try:
            suppliers = (
                self.db.table("fornecedores")
                .select("id")
                .ilike("nome", pattern)
                .execute()
            )
            supplier_ids = [row["id"] for row in suppliers.data]

            skus: set[str] = set()
            if supplier_ids:
                links = (
                    self.db.table("produto_fornecedor")
                    .select("sku")
                    .in_("fornecedor_id", supplier_ids)
                    .execute()
                )
                skus.update(row["sku"] for row in links.data)

            extras = (
                self.db.table("produto_extra")
                .select("sku")
                .ilike("cod_fornecedor", pattern)
                .execute()
            )
            skus.update(row["sku"] for row in extras.data)

            return sorted(skus)

        except Exception as e:
            logger.error("skus_for_supplier_failed", term=term, error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_skus(self, skus: list[str]) -> list[CatalogEntry]:
        """
        Mirror rows for the given SKUs.

        Returns:
            Entries found (may be fewer than requested)
        """
        if not skus:
            return []

        logger.debug("getting_catalog_by_skus", count=len(skus))

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .in_("sku", skus)
                .execute()
            )
            return [CatalogEntry(**row) for row in result.data]

        except Exception as e:
            logger.error("get_catalog_by_skus_failed", count=len(skus), error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def bulk_upsert(self, rows: list[dict]) -> int:
        """
        Upsert mirror rows keyed by sku, overwriting every column.

        Args:
            rows: `catalogo` rows (unique skus)

        Returns:
            Number of rows sent
        """
        if not rows:
            return 0

        logger.info("bulk_upsert_catalog", count=len(rows))

        try:
            self.db.table(self.table).upsert(rows, on_conflict="sku").execute()
        except Exception as e:
            logger.error("bulk_upsert_catalog_failed", count=len(rows), error=str(e))
            raise DatabaseError("upsert", str(e))

        logger.info("bulk_upsert_catalog_complete", count=len(rows))
        return len(rows)

    def count(self, active_only: bool = False) -> int:
        """Count mirrored rows."""
        try:
            query = self.db.table(self.table).select("sku", count="exact")
            if active_only:
                query = query.eq("ativo", True)
            result = query.execute()
            return result.count or 0
        except Exception as e:
            logger.error("count_catalog_failed", error=str(e))
            raise DatabaseError("count", str(e))


# Singleton instance for convenience
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
