"""
Invalidation recipes.

A recipe is a named fan-out: the list of purge steps to run when some piece
of catalog data changes. Each step names a data type and, optionally, the
context value that narrows the purge to matching entries. When that context
value is missing the step purges the whole type, so a recipe invoked with
too little information errs towards dropping more cache, never less.

Classes:
    RecipeName: Known recipes
    MatchMode: How a step's context value selects entries
    PurgeStep: One data type to purge
    InvalidationRecipe: Ordered purge steps under a name

Constants:
    RECIPES: The recipe table
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..core.types import DataType


class RecipeName(str, Enum):
    PRODUCT_MUTATION = "product_mutation"
    CATEGORY_OPTION_MUTATION = "category_option_mutation"
    CATEGORY_MUTATION = "category_mutation"


class MatchMode(str, Enum):
    ALL = "all"
    # Entry params equal {param: value}
    EXACT = "exact"
    # Entry params contain {param: value} among others
    SUBSET = "subset"


@dataclass(frozen=True)
class PurgeStep:
    data_type: DataType
    mode: MatchMode = MatchMode.ALL
    # Key read from the recipe context
    context_key: str | None = None
    # Name of the cache parameter the context value is matched against
    param: str | None = None

    def target(self, context: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        Resolve the parameter filter for this step.

        Returns:
            ``{param: value}`` to narrow the purge, or None to purge the whole type
        """
        if self.mode is MatchMode.ALL or self.context_key is None:
            return None
        value = context.get(self.context_key)
        if value is None or value == "":
            return None
        return {self.param or self.context_key: value}


@dataclass(frozen=True)
class InvalidationRecipe:
    name: RecipeName
    steps: tuple[PurgeStep, ...]
    description: str = ""


RECIPES: Mapping[RecipeName, InvalidationRecipe] = {
    RecipeName.PRODUCT_MUTATION: InvalidationRecipe(
        name=RecipeName.PRODUCT_MUTATION,
        description="Product created, updated or deleted",
        steps=(
            PurgeStep(DataType.PRODUCTS),
            PurgeStep(DataType.SEARCH),
            PurgeStep(DataType.PRODUCT_DETAIL, MatchMode.EXACT, "product_id", "id"),
            # Product attributes feed the distinct-value computations
            PurgeStep(DataType.CATEGORIES),
            PurgeStep(DataType.CATEGORY_OPTIONS),
            PurgeStep(DataType.ALL_CATEGORY_OPTIONS),
            PurgeStep(DataType.FIELD_OPTIONS),
        ),
    ),
    RecipeName.CATEGORY_OPTION_MUTATION: InvalidationRecipe(
        name=RecipeName.CATEGORY_OPTION_MUTATION,
        description="Brand, type or color added to or removed from a category",
        steps=(
            PurgeStep(DataType.CATEGORIES),
            PurgeStep(DataType.CATEGORY_OPTIONS, MatchMode.SUBSET, "category"),
            PurgeStep(DataType.ALL_CATEGORY_OPTIONS),
            PurgeStep(DataType.FIELD_OPTIONS, MatchMode.SUBSET, "category"),
        ),
    ),
    RecipeName.CATEGORY_MUTATION: InvalidationRecipe(
        name=RecipeName.CATEGORY_MUTATION,
        description="Category created, reconfigured, toggled or reinitialized",
        steps=(
            PurgeStep(DataType.CATEGORIES),
            PurgeStep(DataType.CATEGORY_OPTIONS, MatchMode.SUBSET, "category"),
            PurgeStep(DataType.ALL_CATEGORY_OPTIONS),
            PurgeStep(DataType.FIELD_OPTIONS, MatchMode.SUBSET, "category"),
            PurgeStep(DataType.PRODUCTS),
        ),
    ),
}


def get_recipe(name: RecipeName | str) -> InvalidationRecipe:
    return RECIPES[RecipeName(name)]
