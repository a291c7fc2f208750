from __future__ import annotations
import logging
from enum import Enum
from typing import Iterable
from guided_cookbook.models import Difficulty, Recipe

logger = logging.getLogger(__name__)


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def filter_by_difficulty(recipes: list[Recipe], selected: Iterable[Difficulty]) -> list[Recipe]:
    wanted = set(selected)
    if not wanted:
        return list(recipes)
    return [r for r in recipes if r.difficulty in wanted]


def sort_by_total_duration(recipes: list[Recipe], order: SortOrder = SortOrder.ASC) -> list[Recipe]:
    # sorted() stays stable with reverse=True, so equal totals keep catalog order
    return sorted(recipes, key=lambda r: r.total_duration_minutes, reverse=order == SortOrder.DESC)


def favorites(recipes: list[Recipe]) -> list[Recipe]:
    return [r for r in recipes if r.is_favorite]


def toggle_favorite(recipes: list[Recipe], recipe_id: str) -> list[Recipe]:
    """Return a new list with the favourite flag of ``recipe_id`` flipped.

    An unknown id leaves the collection as it was.
    """
    found = False
    updated = []
    for recipe in recipes:
        if recipe.id == recipe_id:
            recipe = recipe.model_copy(update={"is_favorite": not recipe.is_favorite})
            found = True
        updated.append(recipe)
    if not found:
        logger.debug("toggle_favorite: no recipe with id %s", recipe_id)
    return updated
