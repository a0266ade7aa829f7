"""
Unit tests for live enrichment.

Run: pytest tests/unit/test_enrichment_service.py -v
"""

import threading
from collections import Counter

import pytest

from services.enrichment_service import (
    EnrichmentFetcher,
    LiveRowStore,
    SkuCursor,
    merge_live_fields,
)
from exceptions import ConfigurationError, UpstreamError
from models.catalog import CatalogRow
from models.inventory import InventoryLevel


# ===================
# FAKES
# ===================

class FakeMagazord:
    """Scripted stand-in for MagazordClient's live lookups."""

    def __init__(
        self,
        tabela_preco_id="9",
        failures=None,
        prices=None,
        configured=True,
        levels=None,
        crashes=None,
        events=None,
    ):
        self.tabela_preco_id = tabela_preco_id
        self.failures = failures or {}
        self.prices = prices or {}
        self.configured = configured
        self.levels = levels or {}
        self.crashes = crashes or {}
        self.events = events if events is not None else []
        self.inventory_calls = []
        self.price_calls = []
        self._lock = threading.Lock()

    def require_config(self, operation, **extra):
        if not self.configured:
            raise ConfigurationError(["MAGAZORD_BASE_URL"], operation)

    def fetch_inventory(self, sku, limit=1, deposito_id=None):
        with self._lock:
            self.inventory_calls.append(sku)
            self.events.append(("listEstoque", sku))
            if sku in self.crashes:
                raise self.crashes[sku]
            pending = self.failures.get(sku)
            if pending:
                status = pending.pop(0)
                raise UpstreamError(status, "upstream says no", "fetch_inventory")
        if sku in self.levels:
            return self.levels[sku]
        return [InventoryLevel(sku=sku, estoque_atual=10, estoque_reservado=2, custo_medio=5.5)]

    def fetch_price(self, sku, tabela_preco_id=None):
        with self._lock:
            self.price_calls.append(sku)
            self.events.append(("listPreco", sku))
        return self.prices.get(sku, 99.9)


def make_rows(*skus):
    return [CatalogRow(sku=sku, nome_derivacao=f"Produto {sku}") for sku in skus]


@pytest.fixture
def sleeps():
    return []


def make_fetcher(client, sleeps, pool_size=4):
    return EnrichmentFetcher(
        client=client,
        pool_size=pool_size,
        request_delay=0.12,
        rate_limit_delay=0.8,
        sleep=sleeps.append,
    )


# ===================
# MERGE / CURSOR
# ===================

class TestMergeLiveFields:

    def test_returns_new_row_without_mutating(self):
        row = CatalogRow(sku="A1", nome_derivacao="Camiseta")

        merged = merge_live_fields(row, {"estoque_atual": 4.0, "preco_venda": 19.9})

        assert merged is not row
        assert merged.estoque_atual == 4.0
        assert merged.preco_venda == 19.9
        assert merged.nome_derivacao == "Camiseta"
        assert row.estoque_atual is None
        assert row.preco_venda is None


class TestSkuCursor:

    def test_hands_out_each_sku_once_in_order(self):
        cursor = SkuCursor(["A1", "A2"])

        assert cursor.claim() == "A1"
        assert cursor.claim() == "A2"
        assert cursor.claim() is None
        assert len(cursor) == 2

    def test_concurrent_claims_never_repeat(self):
        skus = [f"S{i}" for i in range(500)]
        cursor = SkuCursor(skus)
        claimed = []

        def drain():
            while True:
                sku = cursor.claim()
                if sku is None:
                    return
                claimed.append(sku)

        threads = [threading.Thread(target=drain) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(claimed) == sorted(skus)


class TestLiveRowStore:

    def test_merge_patches_known_sku(self):
        store = LiveRowStore(make_rows("A1", "A2"))

        assert store.merge(store.generation, "A1", {"estoque_atual": 3.0}) is True
        assert store.get("A1").estoque_atual == 3.0
        assert store.get("A2").estoque_atual is None

    def test_merge_unknown_sku_ignored(self):
        store = LiveRowStore(make_rows("A1"))

        assert store.merge(store.generation, "ZZ", {"estoque_atual": 3.0}) is False
        assert [row.sku for row in store.rows()] == ["A1"]

    def test_stale_generation_discarded(self):
        store = LiveRowStore(make_rows("A1"))
        old = store.generation

        store.load(make_rows("A1"))

        assert store.merge(old, "A1", {"estoque_atual": 3.0}) is False
        assert store.get("A1").estoque_atual is None

    def test_rows_keep_load_order(self):
        store = LiveRowStore(make_rows("B", "A", "C"))

        assert store.skus() == ["B", "A", "C"]
        assert [row.sku for row in store.rows()] == ["B", "A", "C"]


# ===================
# FETCHER
# ===================

class TestEnrichmentFetcher:
    """Tests for EnrichmentFetcher.run()"""

    def test_every_sku_fetched_exactly_once(self, sleeps):
        skus = [f"S{i}" for i in range(10)]
        client = FakeMagazord()
        store = LiveRowStore(make_rows(*skus))

        make_fetcher(client, sleeps, pool_size=4).run(store)

        assert Counter(client.inventory_calls) == Counter({sku: 1 for sku in skus})
        for row in store.rows():
            assert row.estoque_atual == 10
            assert row.estoque_reservado == 2
            assert row.custo_medio == 5.5
            assert row.preco_venda == 99.9

    def test_rate_limited_sku_retried_after_pause(self, sleeps):
        client = FakeMagazord(failures={"A2": [429]})
        store = LiveRowStore(make_rows("A1", "A2", "A3"))

        make_fetcher(client, sleeps, pool_size=1).run(store)

        assert client.inventory_calls == ["A1", "A2", "A2", "A3"]
        assert sleeps == [0.12, 0.12, 0.8, 0.12, 0.12, 0.12, 0.12]
        assert store.get("A2").estoque_atual == 10

    def test_rate_limited_without_price_list(self, sleeps):
        client = FakeMagazord(tabela_preco_id=None, failures={"A2": [429]})
        store = LiveRowStore(make_rows("A1", "A2", "A3"))

        make_fetcher(client, sleeps, pool_size=1).run(store)

        assert sleeps == [0.12, 0.8, 0.12, 0.12]

    def test_pause_after_every_upstream_request(self):
        events = []
        client = FakeMagazord(events=events)
        store = LiveRowStore(make_rows("A1", "A2"))
        fetcher = EnrichmentFetcher(
            client=client,
            pool_size=1,
            request_delay=0.12,
            rate_limit_delay=0.8,
            sleep=lambda seconds: events.append(("sleep", seconds)),
        )

        fetcher.run(store)

        assert events == [
            ("listEstoque", "A1"), ("sleep", 0.12), ("listPreco", "A1"), ("sleep", 0.12),
            ("listEstoque", "A2"), ("sleep", 0.12), ("listPreco", "A2"), ("sleep", 0.12),
        ]
        for current, following in zip(events, events[1:]):
            assert not (current[0] != "sleep" and following[0] != "sleep")

    def test_stock_summed_across_warehouses(self, sleeps):
        client = FakeMagazord(levels={"A1": [
            InventoryLevel(sku="A1", estoque_atual=5, estoque_reservado=1, custo_medio=0),
            InventoryLevel(sku="A1", estoque_atual=7, estoque_reservado=2, custo_medio=4.2),
            InventoryLevel(sku="A1-X", estoque_atual=100, estoque_reservado=0, custo_medio=9),
        ]})
        store = LiveRowStore(make_rows("A1"))

        make_fetcher(client, sleeps).run(store)

        row = store.get("A1")
        assert row.estoque_atual == 12
        assert row.estoque_reservado == 3
        assert row.custo_medio == 4.2

    def test_unexpected_error_does_not_stop_worker(self, sleeps):
        client = FakeMagazord(crashes={"A1": KeyError("quantidade")})
        store = LiveRowStore(make_rows("A1", "A2", "A3"))

        make_fetcher(client, sleeps, pool_size=1).run(store)

        assert client.inventory_calls == ["A1", "A2", "A3"]
        assert store.get("A1").estoque_atual is None
        assert store.get("A2").estoque_atual == 10
        assert store.get("A3").estoque_atual == 10

    def test_repeated_rate_limits_keep_retrying(self, sleeps):
        client = FakeMagazord(failures={"A1": [429, 429, 429]})
        store = LiveRowStore(make_rows("A1"))

        make_fetcher(client, sleeps, pool_size=1).run(store)

        assert client.inventory_calls == ["A1"] * 4
        assert sleeps.count(0.8) == 3
        assert store.get("A1").estoque_atual == 10

    def test_other_failure_leaves_row_unenriched(self, sleeps):
        client = FakeMagazord(failures={"A2": [500]})
        store = LiveRowStore(make_rows("A1", "A2", "A3"))

        make_fetcher(client, sleeps, pool_size=1).run(store)

        assert client.inventory_calls == ["A1", "A2", "A3"]
        assert store.get("A2").estoque_atual is None
        assert store.get("A1").estoque_atual == 10
        assert store.get("A3").estoque_atual == 10

    def test_no_price_lookup_without_price_list(self, sleeps):
        client = FakeMagazord(tabela_preco_id=None)
        store = LiveRowStore(make_rows("A1"))

        make_fetcher(client, sleeps).run(store)

        assert client.price_calls == []
        assert store.get("A1").preco_venda is None
        assert store.get("A1").estoque_atual == 10

    def test_results_for_replaced_row_set_discarded(self, sleeps):
        client = FakeMagazord()
        store = LiveRowStore(make_rows("A1"))
        old = store.generation
        store.load(make_rows("A1"))

        make_fetcher(client, sleeps).run(store, generation=old)

        assert client.inventory_calls == ["A1"]
        assert store.get("A1").estoque_atual is None

    def test_unconfigured_fails_before_workers(self, sleeps):
        client = FakeMagazord(configured=False)
        store = LiveRowStore(make_rows("A1"))

        with pytest.raises(ConfigurationError):
            make_fetcher(client, sleeps).run(store)

        assert client.inventory_calls == []

    def test_empty_store_is_noop(self, sleeps):
        client = FakeMagazord()

        make_fetcher(client, sleeps).run(LiveRowStore())

        assert client.inventory_calls == []
        assert sleeps == []

    def test_enrich_rows_returns_merged_rows_in_order(self, sleeps):
        client = FakeMagazord(prices={"B": 12.5})

        rows = make_fetcher(client, sleeps, pool_size=2).enrich_rows(make_rows("B", "A"))

        assert [row.sku for row in rows] == ["B", "A"]
        assert rows[0].preco_venda == 12.5
