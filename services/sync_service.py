"""
Catalog sync: mirrors the Magazord derivation listing into `catalogo`.

Walks the paginated listing sequentially, keeps derivation records,
maps them to mirror rows and finishes with one upsert keyed by sku.
A failing page aborts the run before anything is written, so the
mirror is never left half-updated by a failed run.
"""

from typing import Optional
import structlog

from config import settings
from integrations.magazord import MagazordClient, get_magazord_client
from models.catalog import SyncResult
from models.identity import Identity
from services.catalog_service import CatalogService, get_catalog_service

logger = structlog.get_logger(__name__)


class SyncService:
    """
    Catalog mirror synchronization.

    Not cancellable; one outstanding upstream request at a time.
    """

    def __init__(
        self,
        client: Optional[MagazordClient] = None,
        catalog: Optional[CatalogService] = None,
        max_pages: Optional[int] = None,
        page_limit: Optional[int] = None,
    ):
        self.client = client or get_magazord_client()
        self.catalog = catalog or get_catalog_service()
        self.max_pages = max_pages or settings.sync_max_pages
        self.page_limit = page_limit or settings.sync_page_limit

    def collect_rows(self) -> tuple[list[dict], int, bool]:
        """
        Walk the listing until has_more is false or the page ceiling is hit.

        Returns:
            Tuple of (rows keyed uniquely by sku, pages walked, truncated)

        Raises:
            UpstreamError: First failing page aborts the walk
        """
        rows: dict[str, dict] = {}
        page = 1
        has_more = True

        while has_more and page <= self.max_pages:
            result = self.client.list_catalog_page(page=page, limit=self.page_limit)
            mapped = self.client.map_derivations(result.items)

            for row in mapped:
                if not row["sku"]:
                    continue
                # Same sku twice in one batch would break the upsert; last wins
                rows[row["sku"]] = row

            logger.debug(
                "catalog_page_collected",
                page=page,
                items=len(result.items),
                derivations=len(mapped),
                has_more=result.has_more
            )

            has_more = result.has_more
            page += 1

        pages = page - 1
        truncated = has_more
        if truncated:
            logger.warning("catalog_sync_page_ceiling_reached", max_pages=self.max_pages)

        return list(rows.values()), pages, truncated

    def run(self, identity: Optional[Identity] = None) -> SyncResult:
        """
        Run one full sync.

        Args:
            identity: Caller that triggered the run (None for scheduled runs)

        Returns:
            SyncResult with the number of rows upserted

        Raises:
            ConfigurationError: Magazord not configured
            UpstreamError: A page request failed
            DatabaseError: The upsert failed
        """
        self.client.require_config("catalog_sync")
        logger.info(
            "catalog_sync_started",
            triggered_by=identity.label if identity else "scheduler",
            max_pages=self.max_pages
        )

        rows, pages, truncated = self.collect_rows()

        if rows:
            self.catalog.bulk_upsert(rows)

        logger.info(
            "catalog_sync_complete",
            total=len(rows),
            pages=pages,
            truncated=truncated
        )
        return SyncResult(total=len(rows), pages=pages, truncated=truncated)


# Singleton instance for convenience
_sync_service: Optional[SyncService] = None


def get_sync_service() -> SyncService:
    """Get or create SyncService instance."""
    global _sync_service
    if _sync_service is None:
        _sync_service = SyncService()
    return _sync_service
