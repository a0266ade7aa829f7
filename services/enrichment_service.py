"""
Live enrichment: overlays ERP stock, cost and price onto catalog rows.

A fixed pool of worker threads pulls SKUs from a shared cursor and merges
results into a row store keyed by SKU as they arrive. Both the cursor claim
and the merge run under a lock. Every merge carries the store generation it
was started for, so workers left over from a replaced row set write nothing.
"""

import threading
import time
from typing import Callable, Iterable, Optional
import structlog

from config import settings
from exceptions import AppError, UpstreamError
from integrations.magazord import MagazordClient, get_magazord_client
from models.catalog import CatalogRow

logger = structlog.get_logger(__name__)


def merge_live_fields(row: CatalogRow, patch: dict) -> CatalogRow:
    """Return a copy of `row` with `patch` applied. Does not mutate `row`."""
    return row.model_copy(update=patch)


class SkuCursor:
    """Hands out each SKU exactly once across workers."""

    def __init__(self, skus: Iterable[str]):
        self._skus = list(skus)
        self._next = 0
        self._lock = threading.Lock()

    def claim(self) -> Optional[str]:
        """Next unclaimed SKU, or None when exhausted."""
        with self._lock:
            if self._next >= len(self._skus):
                return None
            sku = self._skus[self._next]
            self._next += 1
            return sku

    def __len__(self) -> int:
        return len(self._skus)


class LiveRowStore:
    """
    Rows of one view session, keyed by SKU.

    load() replaces the whole set and bumps the generation; after that,
    rows only change through merge().
    """

    def __init__(self, rows: Optional[Iterable[CatalogRow]] = None):
        self._lock = threading.Lock()
        self._rows: dict[str, CatalogRow] = {}
        self._order: list[str] = []
        self.generation = 0
        if rows is not None:
            self.load(rows)

    def load(self, rows: Iterable[CatalogRow]) -> int:
        """Replace the row set. Returns the new generation."""
        rows = list(rows)
        with self._lock:
            self.generation += 1
            self._rows = {row.sku: row for row in rows}
            self._order = [row.sku for row in rows]
            return self.generation

    def merge(self, generation: int, sku: str, patch: dict) -> bool:
        """
        Patch one row by SKU.

        Returns:
            False when the generation is stale or the SKU is unknown
        """
        with self._lock:
            if generation != self.generation:
                return False
            row = self._rows.get(sku)
            if row is None:
                return False
            self._rows[sku] = merge_live_fields(row, patch)
            return True

    def skus(self) -> list[str]:
        with self._lock:
            return list(self._order)

    def rows(self) -> list[CatalogRow]:
        """Snapshot of the rows in load order."""
        with self._lock:
            return [self._rows[sku] for sku in self._order]

    def get(self, sku: str) -> Optional[CatalogRow]:
        with self._lock:
            return self._rows.get(sku)


class EnrichmentFetcher:
    """
    Bounded-concurrency fetcher of live figures per SKU.

    Every upstream request is followed by a pause. HTTP 429 puts the
    worker to sleep and retries the same SKU, without limit. Any other
    failure leaves that SKU without live data.
    """

    def __init__(
        self,
        client: Optional[MagazordClient] = None,
        pool_size: Optional[int] = None,
        request_delay: Optional[float] = None,
        rate_limit_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client or get_magazord_client()
        self.pool_size = pool_size or settings.enrichment_pool_size
        self.request_delay = (
            settings.enrichment_request_delay_seconds if request_delay is None else request_delay
        )
        self.rate_limit_delay = (
            settings.enrichment_rate_limit_delay_seconds if rate_limit_delay is None else rate_limit_delay
        )
        self.sleep = sleep

    def fetch_live(self, sku: str) -> dict:
        """
        Fetch live figures for one SKU.

        Quantities are summed across warehouse rows. The worker pause is
        also taken between the inventory and price requests.

        Returns:
            Patch of LiveFields columns; empty when upstream has no data
        """
        patch = {}

        levels = self.client.fetch_inventory(sku)
        matching = [lvl for lvl in levels if lvl.sku == sku] or levels
        if matching:
            if len(matching) > 1:
                logger.debug("enrichment_multiple_warehouses", sku=sku, rows=len(matching))
            # One row per warehouse when no default deposito is configured
            patch.update(
                estoque_atual=sum(lvl.estoque_atual for lvl in matching),
                estoque_reservado=sum(lvl.estoque_reservado for lvl in matching),
                custo_medio=next(
                    (lvl.custo_medio for lvl in matching if lvl.custo_medio),
                    matching[0].custo_medio
                ),
            )

        if self.client.tabela_preco_id:
            self.sleep(self.request_delay)
            price = self.client.fetch_price(sku)
            if price is not None:
                patch["preco_venda"] = price

        return patch

    def _worker(self, worker_id: int, cursor: SkuCursor, store: LiveRowStore, generation: int) -> None:
        while True:
            sku = cursor.claim()
            if sku is None:
                return

            while True:
                try:
                    patch = self.fetch_live(sku)
                except UpstreamError as e:
                    if e.is_rate_limited:
                        logger.warning("enrichment_rate_limited", sku=sku, worker=worker_id)
                        self.sleep(self.rate_limit_delay)
                        continue
                    logger.warning(
                        "enrichment_sku_failed",
                        sku=sku,
                        worker=worker_id,
                        status_code=e.status_code
                    )
                except AppError as e:
                    logger.warning("enrichment_sku_failed", sku=sku, worker=worker_id, code=e.code)
                except Exception as e:
                    logger.error(
                        "enrichment_sku_failed",
                        sku=sku,
                        worker=worker_id,
                        error=str(e),
                        error_type=type(e).__name__
                    )
                else:
                    if patch and not store.merge(generation, sku, patch):
                        logger.debug("enrichment_merge_discarded", sku=sku, generation=generation)
                break

            self.sleep(self.request_delay)

    def run(
        self,
        store: LiveRowStore,
        skus: Optional[list[str]] = None,
        generation: Optional[int] = None
    ) -> None:
        """
        Enrich `store` in place and return once every worker has exited.

        Args:
            store: Rows to merge into
            skus: SKUs to fetch, in order (defaults to the store's SKUs)
            generation: Store generation the merges belong to (defaults to current)

        Raises:
            ConfigurationError: Magazord not configured, raised before any worker starts
        """
        self.client.require_config("enrichment")
        generation = store.generation if generation is None else generation
        cursor = SkuCursor(store.skus() if skus is None else skus)
        if not len(cursor):
            return

        pool = min(self.pool_size, len(cursor))
        logger.info("enrichment_started", skus=len(cursor), workers=pool, generation=generation)

        workers = [
            threading.Thread(
                target=self._worker,
                args=(worker_id, cursor, store, generation),
                name=f"enrichment-{worker_id}",
                daemon=True,
            )
            for worker_id in range(pool)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        logger.info("enrichment_complete", skus=len(cursor), generation=generation)

    def enrich_rows(self, rows: list[CatalogRow]) -> list[CatalogRow]:
        """Convenience: enrich a row list and return the merged rows in order."""
        store = LiveRowStore(rows)
        self.run(store)
        return store.rows()


# Singleton instance for convenience
_enrichment_fetcher: Optional[EnrichmentFetcher] = None


def get_enrichment_fetcher() -> EnrichmentFetcher:
    """Get or create EnrichmentFetcher instance."""
    global _enrichment_fetcher
    if _enrichment_fetcher is None:
        _enrichment_fetcher = EnrichmentFetcher()
    return _enrichment_fetcher
