"""
Category filter synchronization.

Keeps an in-memory snapshot of every category's filter options (brands,
types, colors) consistent with the catalog service. Two triggers feed one
refresh transition:

- a broadcast ``categoryUpdated``/``productUpdated`` event forces a
  cache-bypassing refresh;
- a periodic poll refreshes through the cache once the snapshot is older
  than the poll interval.

Concurrent refresh requests share one in-flight fetch. A failed refresh
keeps the previous snapshot.

Classes:
    SyncState: Lifecycle of the snapshot
    CategoryFilterSync: Snapshot owner with optimistic local mutators
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..cache.manager import CacheManager
from ..client.events import CATEGORY_UPDATED, PRODUCT_UPDATED, CatalogEvent, EventBus
from ..core.config import SyncConfig
from ..core.types import CategoryFilters, DataType
from ..utils.error_handling import InvalidResponseError
from ..utils.logging_config import get_logger

if TYPE_CHECKING:
    from ..client.api import CatalogApiClient

logger = get_logger()

SnapshotListener = Callable[[dict[str, CategoryFilters]], Any]


class SyncState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


def parse_category_filters(response: Any) -> dict[str, CategoryFilters]:
    """
    Build the snapshot from a ``/categories`` response body.

    Raises:
        InvalidResponseError: If the body is not a successful category list
    """
    if not isinstance(response, dict) or not response.get("success"):
        raise InvalidResponseError("Category list response was not successful")
    categories = response.get("data")
    if not isinstance(categories, list):
        raise InvalidResponseError("Category list response has no category array")

    filters: dict[str, CategoryFilters] = {}
    for category in categories:
        if not isinstance(category, dict) or not category.get("categoryName"):
            continue
        name = category["categoryName"]
        fields = category.get("availableFields") or {}
        if not isinstance(fields, dict):
            raise InvalidResponseError(f"Category {name!r} has malformed availableFields")
        filters[name] = CategoryFilters(
            brands=_field_values(name, "brands", fields.get("brands")),
            types=_field_values(name, "types", fields.get("types")),
            colors=_field_values(name, "colors", fields.get("colors")),
        )
    return filters


def _field_values(category: str, field: str, values: Any) -> list[str]:
    # Anything but a list of strings is dropped rather than split or coerced
    if values is None:
        return []
    if not isinstance(values, list):
        logger.warning(
            f"Ignoring non-list {field} for category {category!r}",
            category=category,
            field=field,
        )
        return []
    return [value for value in values if isinstance(value, str)]


class CategoryFilterSync:
    """
    Owns the category filter snapshot shown by UI surfaces.

    Call ``start()`` from a running event loop and ``stop()`` on teardown.
    """

    def __init__(
        self,
        api: CatalogApiClient,
        cache: CacheManager,
        events: EventBus,
        config: SyncConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.api = api
        self.cache = cache
        self.events = events
        self.config = config or SyncConfig()
        self.config.validate()
        self._clock = clock

        self._filters: dict[str, CategoryFilters] = {}
        self._state = SyncState.IDLE
        self._last_updated: float | None = None

        self._inflight: asyncio.Task[None] | None = None
        self._inflight_forced = False
        self._pending_force = False
        self._poll_task: asyncio.Task[None] | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._listeners: list[SnapshotListener] = []

    # Lifecycle

    async def start(self) -> None:
        """Subscribe to change events, start polling and load the snapshot."""
        if not self._unsubscribers:
            for name in (CATEGORY_UPDATED, PRODUCT_UPDATED):
                self._unsubscribers.append(self.events.subscribe(name, self._on_event))
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(
                self._poll_worker(), name="CategoryFilterPoll"
            )
        await self.request_refresh(force=False)

    async def stop(self) -> None:
        """Unsubscribe and cancel the poll task and any in-flight refresh."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        for task in (self._poll_task, self._inflight):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poll_task = None
        self._inflight = None
        self._pending_force = False

    async def __aenter__(self) -> CategoryFilterSync:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    # Refresh

    def request_refresh(self, force: bool = False) -> asyncio.Task[None]:
        """
        Ask for a refresh, joining one already in flight.

        A forced request that arrives while an unforced fetch is running
        schedules one forced fetch after it, inside the same task.

        Returns:
            The task performing the refresh
        """
        if self._inflight is not None and not self._inflight.done():
            if force and not self._inflight_forced:
                self._pending_force = True
            return self._inflight

        self._inflight_forced = force
        self._inflight = asyncio.get_running_loop().create_task(self._run(force))
        return self._inflight

    async def refresh(self, force: bool = True) -> None:
        await self.request_refresh(force)

    async def wait_idle(self) -> None:
        while self._inflight is not None and not self._inflight.done():
            await self._inflight

    async def poll_once(self) -> bool:
        """
        Refresh through the cache if the snapshot is older than the poll interval.

        Returns:
            True if a refresh ran
        """
        if not self.is_stale():
            return False
        await self.request_refresh(force=False)
        return True

    def is_stale(self) -> bool:
        if self._last_updated is None:
            return True
        return self._clock() - self._last_updated > self.config.poll_interval

    def _on_event(self, event: CatalogEvent) -> asyncio.Task[None]:
        logger.debug(f"Received {event.name}; forcing filter refresh", event=event.name)
        return self.request_refresh(force=True)

    async def _poll_worker(self) -> None:
        while True:
            await asyncio.sleep(self.config.poll_interval)
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(f"Error in filter poll: {e}")

    async def _run(self, force: bool) -> None:
        while True:
            await self._load(force)
            if not self._pending_force:
                break
            self._pending_force = False
            force = True
            self._inflight_forced = True

    async def _load(self, force: bool) -> bool:
        self._state = SyncState.LOADING
        try:
            if force:
                self.cache.invalidate(DataType.CATEGORIES)
            response = await self.api.get_categories()
            filters = parse_category_filters(response)
        except Exception as e:
            logger.error(f"Error loading category filters: {e}", forced=force, error=type(e).__name__)
            return False
        finally:
            self._state = SyncState.READY

        self._filters = filters
        self._last_updated = self._clock()
        logger.debug(f"Loaded filters for {len(filters)} categories", forced=force)
        self._notify()
        return True

    # Snapshot access

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state is SyncState.LOADING

    @property
    def last_updated(self) -> float | None:
        return self._last_updated

    @property
    def category_filters(self) -> dict[str, CategoryFilters]:
        return {name: filters.copy() for name, filters in self._filters.items()}

    def get_filters_for_category(self, category: str) -> CategoryFilters:
        """Filters for a category; empty lists when the category is unknown."""
        filters = self._filters.get(category)
        return filters.copy() if filters is not None else CategoryFilters()

    def has_option(self, category: str, field: str, option: str) -> bool:
        return option in self.get_filters_for_category(category).field_values(field)

    def get_all_options_for_field(self, field: str) -> list[str]:
        options: set[str] = set()
        for filters in self._filters.values():
            options.update(filters.field_values(field))
        return sorted(options)

    # Optimistic mutators

    def _check_field(self, field: str) -> None:
        if field not in self.config.default_fields:
            raise ValueError(f"Unknown filter field: {field!r}")

    def update_category_filters(self, category: str, **fields: list[str]) -> None:
        current = self.get_filters_for_category(category)
        for field, values in fields.items():
            self._check_field(field)
            setattr(current, field, list(values))
        self._replace(category, current)

    def add_option(self, category: str, field: str, option: str) -> None:
        self._check_field(field)
        current = self.get_filters_for_category(category)
        values = current.field_values(field)
        if option not in values:
            setattr(current, field, sorted([*values, option]))
        self._replace(category, current)

    def remove_option(self, category: str, field: str, option: str) -> None:
        self._check_field(field)
        current = self.get_filters_for_category(category)
        setattr(current, field, [value for value in current.field_values(field) if value != option])
        self._replace(category, current)

    def _replace(self, category: str, filters: CategoryFilters) -> None:
        self._filters = {**self._filters, category: filters}
        self._last_updated = self._clock()
        self._notify()

    # Listeners

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a callback receiving the snapshot after every change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.category_filters
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Filter snapshot listener failed: {e}")
