from .filters import CategoryFilterSync, SyncState, parse_category_filters

__all__ = [
    "CategoryFilterSync",
    "SyncState",
    "parse_category_filters",
]
