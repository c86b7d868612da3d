"""
UI-facing change notifications.

Successful catalog mutations broadcast an event naming the affected data so
that long-lived views (see ``catalog_cache.sync``) refresh immediately
instead of waiting for their next poll. Any component may dispatch or listen.

Classes:
    CatalogEvent: Base class for broadcast payloads
    CategoryUpdated: An option was added to or removed from a category field
    ProductUpdated: A product was created, updated or deleted
    EventBus: Name-keyed listener registry
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, ClassVar

from ..utils.logging_config import get_logger

logger = get_logger()

CATEGORY_UPDATED = "categoryUpdated"
PRODUCT_UPDATED = "productUpdated"


@dataclass(frozen=True)
class CatalogEvent:
    name: ClassVar[str] = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CategoryUpdated(CatalogEvent):
    name: ClassVar[str] = CATEGORY_UPDATED

    category: str | None = None
    field: str | None = None
    option: str | None = None
    action: str = "added"  # "added" | "removed"


@dataclass(frozen=True)
class ProductUpdated(CatalogEvent):
    name: ClassVar[str] = PRODUCT_UPDATED

    product_id: str | None = None
    action: str = "updated"  # "created" | "updated" | "deleted"


Listener = Callable[[CatalogEvent], Any]


class EventBus:
    """
    Synchronous dispatch to listeners registered by event name.

    A listener that raises is logged and skipped; the others still run.
    Listeners returning a coroutine have it scheduled on the running loop;
    ``drain()`` waits for those tasks.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, name: str, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.setdefault(name, []).append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(name, listener)

        return unsubscribe

    def unsubscribe(self, name: str, listener: Listener) -> bool:
        listeners = self._listeners.get(name, [])
        if listener not in listeners:
            return False
        listeners.remove(listener)
        return True

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, []))

    def dispatch(self, event: CatalogEvent) -> int:
        """
        Deliver an event to every listener registered for its name.

        Returns:
            Number of listeners that accepted the event without raising
        """
        delivered = 0
        for listener in list(self._listeners.get(event.name, [])):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    self._track(result)
                delivered += 1
            except Exception as e:
                logger.error(f"Listener for {event.name} failed: {e}", event=event.name)
        return delivered

    def _track(self, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async listener failed: {task.exception()}")

    async def drain(self) -> None:
        """Wait for every scheduled listener task, including ones they schedule."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
