from __future__ import annotations
import json
import logging
from pathlib import Path
import pydantic
from guided_cookbook.browse import toggle_favorite
from guided_cookbook.models import Recipe

logger = logging.getLogger(__name__)

STORAGE_KEY = "recipes:v1"


class NotFoundError(Exception):
    pass


def find_recipe(recipes: list[Recipe], recipe_id: str) -> Recipe:
    for recipe in recipes:
        if recipe.id == recipe_id:
            return recipe
    raise NotFoundError(f"Recipe '{recipe_id}' not found.")


def dump_recipes(recipes: list[Recipe]) -> str:
    return json.dumps(
        [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in recipes],
        indent=2,
        ensure_ascii=False,
    )


class RecipeCatalog:
    """Whole-collection JSON storage of the recipe catalog."""

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = base_dir or (Path.home() / ".guided_cookbook")
        self._path = self.base_dir / f"{STORAGE_KEY.replace(':', '-')}.json"

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Recipe]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not read recipe catalog %s: %s", self._path.name, e)
            return []
        if not isinstance(data, list):
            logger.warning("Recipe catalog %s is not a JSON array; ignoring it", self._path.name)
            return []

        recipes = []
        for index, item in enumerate(data):
            try:
                recipes.append(Recipe.model_validate(item))
            except pydantic.ValidationError:
                logger.warning("Skipping malformed recipe #%d in %s", index, self._path.name)
        return recipes

    def save(self, recipes: list[Recipe]) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._path.write_text(dump_recipes(recipes), encoding="utf-8")

    def get(self, recipe_id: str) -> Recipe:
        return find_recipe(self.load(), recipe_id)

    def add(self, recipe: Recipe) -> None:
        self.save(self.load() + [recipe])

    def remove(self, recipe_id: str) -> Recipe:
        recipes = self.load()
        removed = find_recipe(recipes, recipe_id)
        self.save([r for r in recipes if r.id != recipe_id])
        return removed

    def toggle_favorite(self, recipe_id: str) -> Recipe:
        recipes = self.load()
        find_recipe(recipes, recipe_id)
        updated = toggle_favorite(recipes, recipe_id)
        self.save(updated)
        return find_recipe(updated, recipe_id)
