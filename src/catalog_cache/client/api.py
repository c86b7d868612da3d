"""
Cache-aware client for the remote catalog service.

Reads go through ``fetch_cached``: a hit returns the stored body without any
network call; a miss performs the request and stores the decoded JSON body
verbatim. Writes go through ``mutate``: the request runs first and only a
successful response triggers the invalidation recipe and the UI broadcast.
Failures from the remote service always propagate unchanged and are never
cached.

Classes:
    CatalogApiClient: Read and write methods per catalog resource

Example:
    >>> async with CatalogApiClient(CacheManager()) as api:
    ...     products = await api.get_products({"page": 1, "limit": 12})
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any
from urllib.parse import quote, urlencode

import httpx
import orjson

from ..cache.manager import CacheManager
from ..cache.recipes import RecipeName
from ..core.config import ClientConfig
from ..core.types import CacheParams, DataType
from ..utils.error_handling import ApiError, InvalidResponseError
from ..utils.logging_config import get_logger
from .events import CatalogEvent, CategoryUpdated, EventBus, ProductUpdated

NetworkCall = Callable[[], Awaitable[Any]]

# Preloaded on application start
PRELOAD_PRODUCT_QUERIES: tuple[dict[str, Any], ...] = (
    {"page": 1, "limit": 12},
    {"category": "Men", "page": 1, "limit": 6},
)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(item) for item in value)
    return str(value)


def normalize_product_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Flatten list-valued product filters the way the products endpoint expects.

    Single-item ``brand``/``type`` lists become scalars, ``colors`` becomes
    ``color`` and empty lists are dropped.
    """
    processed = dict(params or {})

    for name in ("brand", "type"):
        value = processed.get(name)
        if isinstance(value, (list, tuple)):
            if len(value) == 1:
                processed[name] = value[0]
            elif not value:
                del processed[name]

    colors = processed.get("colors")
    if isinstance(colors, (list, tuple)):
        if len(colors) == 1:
            processed["color"] = colors[0]
            del processed["colors"]
        elif not colors:
            del processed["colors"]

    return processed


def build_query_string(params: Mapping[str, Any]) -> str:
    return urlencode([(name, _query_value(value)) for name, value in params.items()])


def _require_envelope(payload: Any, url: str) -> Any:
    if not isinstance(payload, dict) or not payload.get("success") or payload.get("data") is None:
        raise InvalidResponseError(f"Invalid response structure from {url}", url=url)
    return payload


class CatalogApiClient:
    """
    Catalog service client with an injected cache and event bus.

    The client owns its ``httpx.AsyncClient`` unless one is passed in.
    """

    def __init__(
        self,
        cache: CacheManager,
        events: EventBus | None = None,
        config: ClientConfig | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self.config = config or ClientConfig()
        self.config.validate()
        self.cache = cache
        self.events = events or EventBus()
        self.logger = get_logger()

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=self.config.timeout)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> CatalogApiClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    # Core contracts

    async def fetch_cached(
        self,
        data_type: DataType | str,
        params: CacheParams | None,
        network_call: NetworkCall,
    ) -> Any:
        """
        Read through the cache.

        Args:
            data_type: Data family of the response
            params: Parameters identifying the request
            network_call: Performs the request on a miss

        Returns:
            The cached payload on a hit, otherwise the fresh payload
        """
        if self.config.cache_enabled:
            cached = self.cache.get(data_type, params)
            if cached is not None:
                return cached

        payload = await network_call()

        if self.config.cache_enabled:
            self.cache.set(data_type, payload, params)
        return payload

    async def mutate(
        self,
        network_call: NetworkCall,
        recipe: RecipeName | str,
        context: Mapping[str, Any] | None = None,
        event: CatalogEvent | None = None,
    ) -> Any:
        """
        Run a write and, only if it succeeds, invalidate and broadcast.

        Args:
            network_call: Performs the write
            recipe: Invalidation recipe to run after success
            context: Narrowing values for the recipe
            event: Broadcast after invalidation

        Returns:
            The write's response body
        """
        result = await network_call()
        self.cache.run_recipe(recipe, context)
        if event is not None:
            self.events.dispatch(event)
        return result

    # HTTP

    def url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        files: Any = None,
    ) -> Any:
        url = self.url(path)
        headers = {"Authorization": f"Bearer {token}"} if token else None

        try:
            response = await self.http.request(
                method, url, headers=headers, json=json, data=data, files=files
            )
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {url} failed: {e}", url=url) from e

        if response.is_error:
            message, body = self._error_details(response)
            raise ApiError(message, status_code=response.status_code, url=url, payload=body)

        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(f"Response from {url} is not JSON", url=url) from e

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[str, Any]:
        fallback = f"HTTP error! status: {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            return response.text or fallback, None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"]), body
        return fallback, body

    def _get(
        self,
        data_type: DataType,
        path: str,
        params: CacheParams | None = None,
        validate: bool = False,
    ) -> Awaitable[Any]:
        async def call() -> Any:
            payload = await self._request("GET", path)
            if validate:
                _require_envelope(payload, self.url(path))
            return payload

        return self.fetch_cached(data_type, params, call)

    # Reads

    async def get_products(self, params: Mapping[str, Any] | None = None) -> Any:
        query = build_query_string(normalize_product_params(params))
        path = f"/products?{query}" if query else "/products"
        return await self._get(DataType.PRODUCTS, path, {"query": query})

    async def get_product(self, product_id: str) -> Any:
        return await self._get(
            DataType.PRODUCT_DETAIL, f"/products/{quote(str(product_id), safe='')}", {"id": product_id}
        )

    async def search_products(self, query: str, params: Mapping[str, Any] | None = None) -> Any:
        params = dict(params or {})
        query_string = build_query_string({"q": query, **params})
        cache_params = {
            "query": query,
            "params": orjson.dumps(params, option=orjson.OPT_SORT_KEYS).decode("utf-8"),
        }
        return await self._get(DataType.SEARCH, f"/products/search?{query_string}", cache_params)

    async def get_field_options(self) -> Any:
        return await self._get(DataType.FIELD_OPTIONS, "/products/field-options")

    async def get_category_specific_options(self, category: str) -> Any:
        if not category:
            raise ValueError("Category parameter is required")
        return await self._get(
            DataType.CATEGORY_OPTIONS,
            f"/products/category-options/{quote(category, safe='')}",
            {"category": category},
            validate=True,
        )

    async def get_all_category_options(self) -> Any:
        return await self._get(
            DataType.ALL_CATEGORY_OPTIONS, "/products/category-options", validate=True
        )

    async def get_multiple_category_options(self, categories: Iterable[str]) -> dict[str, Any]:
        """
        Fetch options for several categories concurrently.

        Categories whose fetch fails are logged and left out; if every fetch
        fails the first error is raised.
        """
        categories = list(categories)
        if not categories:
            raise ValueError("Categories must be a non-empty list")

        results = await asyncio.gather(
            *(self.get_category_specific_options(category) for category in categories),
            return_exceptions=True,
        )

        options: dict[str, Any] = {}
        errors: list[BaseException] = []
        for category, result in zip(categories, results):
            if isinstance(result, BaseException):
                self.logger.warning(f"Failed to fetch options for {category}: {result}")
                errors.append(result)
            else:
                options[category] = result["data"]

        if errors and not options:
            raise errors[0]
        return {"success": True, "data": options}

    async def get_categories(self) -> Any:
        return await self._get(DataType.CATEGORIES, "/categories", validate=True)

    async def get_category_options(self, category: str) -> Any:
        # Same type as the product-derived options; ``view`` keeps the keys apart
        return await self._get(
            DataType.CATEGORY_OPTIONS,
            f"/categories/{quote(category, safe='')}",
            {"category": category, "view": "config"},
        )

    async def get_category_field_options(self, category: str, field: str) -> Any:
        return await self._get(
            DataType.FIELD_OPTIONS,
            f"/categories/{quote(category, safe='')}/options/{quote(field, safe='')}",
            {"category": category, "field": field},
        )

    # Product writes

    async def create_product(self, product: Mapping[str, Any], token: str) -> Any:
        return await self.mutate(
            lambda: self._request("POST", "/products", token=token, json=dict(product)),
            RecipeName.PRODUCT_MUTATION,
            event=ProductUpdated(action="created"),
        )

    async def update_product(self, product_id: str, product: Mapping[str, Any], token: str) -> Any:
        return await self.mutate(
            lambda: self._request(
                "PUT", f"/products/{quote(str(product_id), safe='')}", token=token, json=dict(product)
            ),
            RecipeName.PRODUCT_MUTATION,
            {"product_id": product_id},
            ProductUpdated(product_id=product_id, action="updated"),
        )

    async def delete_product(self, product_id: str, token: str) -> Any:
        return await self.mutate(
            lambda: self._request("DELETE", f"/products/{quote(str(product_id), safe='')}", token=token),
            RecipeName.PRODUCT_MUTATION,
            {"product_id": product_id},
            ProductUpdated(product_id=product_id, action="deleted"),
        )

    async def upload_product_with_images(
        self, fields: Mapping[str, Any], files: Any, token: str
    ) -> Any:
        return await self.mutate(
            lambda: self._request(
                "POST", "/products/upload", token=token, data=dict(fields), files=files
            ),
            RecipeName.PRODUCT_MUTATION,
            event=ProductUpdated(action="created"),
        )

    async def update_product_with_images(
        self, product_id: str, fields: Mapping[str, Any], files: Any, token: str
    ) -> Any:
        return await self.mutate(
            lambda: self._request(
                "PUT",
                f"/products/{quote(str(product_id), safe='')}/images",
                token=token,
                data=dict(fields),
                files=files,
            ),
            RecipeName.PRODUCT_MUTATION,
            {"product_id": product_id},
            ProductUpdated(product_id=product_id, action="updated"),
        )

    # Category writes

    async def create_or_update_category(self, category: Mapping[str, Any], token: str) -> Any:
        name = category.get("categoryName")
        return await self.mutate(
            lambda: self._request("POST", "/categories", token=token, json=dict(category)),
            RecipeName.CATEGORY_MUTATION,
            {"category": name},
            CategoryUpdated(category=name, action="updated"),
        )

    create_category = create_or_update_category

    async def update_category_options(
        self, category: str, updates: Mapping[str, Any], token: str
    ) -> Any:
        return await self.mutate(
            lambda: self._request(
                "PUT", f"/categories/{quote(category, safe='')}", token=token, json=dict(updates)
            ),
            RecipeName.CATEGORY_MUTATION,
            {"category": category},
            CategoryUpdated(category=category, action="updated"),
        )

    async def add_category_option(
        self,
        category_id: str,
        field: str,
        option: str,
        token: str,
        category: str | None = None,
    ) -> Any:
        """
        Add an option to a category field.

        ``category`` is the category name used to narrow invalidation; without
        it every category-options entry is purged.
        """
        return await self.mutate(
            lambda: self._request(
                "POST",
                f"/categories/{quote(str(category_id), safe='')}/options",
                token=token,
                json={"field": field, "option": option},
            ),
            RecipeName.CATEGORY_OPTION_MUTATION,
            {"category": category},
            CategoryUpdated(category=category or category_id, field=field, option=option, action="added"),
        )

    async def remove_category_option(
        self,
        category_id: str,
        field: str,
        option: str,
        token: str,
        category: str | None = None,
    ) -> Any:
        return await self.mutate(
            lambda: self._request(
                "DELETE",
                f"/categories/{quote(str(category_id), safe='')}/options",
                token=token,
                json={"field": field, "option": option},
            ),
            RecipeName.CATEGORY_OPTION_MUTATION,
            {"category": category},
            CategoryUpdated(category=category or category_id, field=field, option=option, action="removed"),
        )

    async def toggle_category_status(self, category: str, token: str) -> Any:
        return await self.mutate(
            lambda: self._request("PATCH", f"/categories/{quote(category, safe='')}/toggle", token=token),
            RecipeName.CATEGORY_MUTATION,
            {"category": category},
            CategoryUpdated(category=category, action="updated"),
        )

    async def initialize_default_categories(self, token: str) -> Any:
        return await self.mutate(
            lambda: self._request("POST", "/categories/initialize", token=token),
            RecipeName.CATEGORY_MUTATION,
            event=CategoryUpdated(action="updated"),
        )

    # Maintenance

    async def preload_data(self) -> int:
        """
        Warm the cache with the most requested product listings.

        Returns:
            Number of listings loaded
        """
        loaded = 0
        for params in PRELOAD_PRODUCT_QUERIES:
            try:
                await self.get_products(params)
                loaded += 1
            except (ApiError, InvalidResponseError) as e:
                self.logger.warning(f"Failed to preload products {params}: {e}")
        return loaded

    async def preload_category_options(self, categories: Iterable[str] | None = None) -> int:
        categories = list(categories) if categories is not None else list(self.config.default_categories)
        results = await asyncio.gather(
            *(self.get_category_specific_options(category) for category in categories),
            return_exceptions=True,
        )
        loaded = 0
        for category, result in zip(categories, results):
            if isinstance(result, BaseException):
                self.logger.warning(f"Failed to preload options for {category}: {result}")
            else:
                loaded += 1
        self.logger.debug(f"Category options preloading completed: {loaded}/{len(categories)}")
        return loaded

    async def get_cache_stats(self, token: str | None = None) -> dict[str, Any]:
        """
        Client cache statistics, plus the server's when a token is given.

        Returns:
            ``{"client": {...}, "server": {...} | None}``
        """
        client = {**self.cache.stats().to_dict(), "counters": self.cache.counters()}
        server = None
        if token:
            try:
                body = await self._request("GET", "/cache/stats", token=token)
                server = body.get("stats") if isinstance(body, dict) else None
            except (ApiError, InvalidResponseError) as e:
                self.logger.error(f"Error fetching server cache stats: {e}")
        return {"client": client, "server": server}

    async def clear_all_caches(self, token: str | None = None) -> bool:
        self.cache.clear_all()
        if token:
            try:
                await self._request("POST", "/cache/clear", token=token)
                self.logger.info("Server-side cache cleared")
            except (ApiError, InvalidResponseError) as e:
                self.logger.error(f"Error clearing server cache: {e}")
        return True

    def clear_if_unhealthy(self, threshold: float = 0.5) -> bool:
        """
        Clear the cache when fewer than ``threshold`` of its entries are live.

        Returns:
            True if the cache was cleared
        """
        snapshot = self.cache.stats()
        if snapshot.total_entries > 0 and snapshot.health < threshold:
            self.logger.info(
                f"Cache health {snapshot.health:.0%} below {threshold:.0%}; clearing",
                live=snapshot.live_entries,
                total=snapshot.total_entries,
            )
            self.cache.clear_all()
            return True
        return False
