"""
Remote catalog access.

- Cache-aware API client
- UI-facing change events
"""

from .api import CatalogApiClient
from .events import CATEGORY_UPDATED, PRODUCT_UPDATED, CatalogEvent, CategoryUpdated, EventBus, ProductUpdated

__all__ = [
    "CatalogApiClient",
    "CATEGORY_UPDATED",
    "PRODUCT_UPDATED",
    "CatalogEvent",
    "CategoryUpdated",
    "EventBus",
    "ProductUpdated",
]
