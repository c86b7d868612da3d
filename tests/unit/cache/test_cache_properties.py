"""End-to-end behaviour of the cache layer with a controllable clock."""

from __future__ import annotations

import itertools

import httpx
import pytest

from catalog_cache.cache.backends import MemoryStorage
from catalog_cache.cache.manager import CacheManager
from catalog_cache.cache.recipes import RecipeName
from catalog_cache.client.api import CatalogApiClient
from catalog_cache.core.types import DataType
from catalog_cache.utils.error_handling import ApiError

THIRTY_MINUTES = 30 * 60


class TestKeys:
    """Key determinism and separation."""

    def test_parameter_order_is_irrelevant(self, cache: CacheManager):
        params = [("category", "Footwear"), ("page", 1), ("limit", 12), ("sale", False)]
        keys = {cache.key(DataType.PRODUCTS, dict(order)) for order in itertools.permutations(params)}
        assert len(keys) == 1

    def test_types_are_separate(self, cache: CacheManager):
        for first, second in itertools.combinations(DataType, 2):
            assert cache.key(first, {"id": "1"}) != cache.key(second, {"id": "1"})


class TestExpiry:
    """A product detail lives exactly thirty minutes."""

    @pytest.mark.parametrize("elapsed", [0, 1, THIRTY_MINUTES - 0.001])
    def test_live_before_ttl(self, cache: CacheManager, clock, elapsed):
        cache.set("productDetail", {"id": "X"}, {"id": "X"})
        clock.advance(elapsed)
        assert cache.get("productDetail", {"id": "X"}) == {"id": "X"}

    @pytest.mark.parametrize("elapsed", [THIRTY_MINUTES, THIRTY_MINUTES + 1, 10 * THIRTY_MINUTES])
    def test_absent_from_ttl(self, cache: CacheManager, clock, backend: MemoryStorage, elapsed):
        cache.set("productDetail", {"id": "X"}, {"id": "X"})
        clock.advance(elapsed)
        assert cache.get("productDetail", {"id": "X"}) is None
        assert backend.keys() == []


class TestWriteThrough:
    """set followed by get returns the same payload."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"success": True, "data": [{"name": "Air Max", "price": 129.99, "sizes": [8, 9.5]}]},
            ["a", 1, 2.5, True, None, {"nested": {"deep": []}}],
            "plain string",
            0,
        ],
    )
    def test_payload_unchanged(self, cache: CacheManager, payload):
        cache.set(DataType.SEARCH, payload, {"query": "x"})
        assert cache.get(DataType.SEARCH, {"query": "x"}) == payload


class TestFanOut:
    """Product mutation purges listings, the detail and category options."""

    def test_product_mutation(self, cache: CacheManager):
        cache.set("products", "A", {"q": "shoes"})
        cache.set("productDetail", "B", {"id": "42"})
        cache.set("categoryOptions", "C", {"category": "Footwear"})

        cache.run_recipe(RecipeName.PRODUCT_MUTATION, {"product_id": "42"})

        assert cache.get("products", {"q": "shoes"}) is None
        assert cache.get("productDetail", {"id": "42"}) is None
        assert cache.get("categoryOptions", {"category": "Footwear"}) is None


class TestFailedWrite:
    """A failed mutation leaves every live entry in place."""

    @pytest.mark.asyncio
    async def test_no_invalidation_on_failure(self, cache: CacheManager):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"message": "db down"}))
        cache.set("products", "A", {"q": "shoes"})
        cache.set("productDetail", "B", {"id": "42"})
        before = cache.stats()

        async with httpx.AsyncClient(transport=transport) as http:
            api = CatalogApiClient(cache, http=http)
            with pytest.raises(ApiError):
                await api.update_product("42", {"price": 1}, token="t")

        assert cache.stats() == before
        assert cache.get("productDetail", {"id": "42"}) == "B"


class TestCorruptEntry:
    """A non-JSON value under a valid key heals itself."""

    def test_self_heals(self, cache: CacheManager, backend: MemoryStorage):
        key = cache.key("productDetail", {"id": "9"})
        backend.set_item(key, "<<not json>>")
        assert cache.stats().total_entries == 1

        assert cache.get("productDetail", {"id": "9"}) is None
        assert cache.stats().total_entries == 0


class TestCategoryScenario:
    """Adding a brand to a category forces the category list to be refetched."""

    def test_category_option_added(self, cache: CacheManager):
        categories = [{"categoryName": "Footwear", "availableFields": {"brands": ["Nike"]}}]
        cache.set("categories", categories, {})
        assert cache.get("categories", {}) == categories

        cache.run_recipe(RecipeName.CATEGORY_OPTION_MUTATION, {"category": "Footwear"})

        assert cache.get("categories", {}) is None
