from __future__ import annotations
from enum import Enum
from typing import Any
import pydantic
from pydantic import BaseModel
from guided_cookbook.models import CookingStep, InstructionStep, Recipe


class ValidationRule(str, Enum):
    MALFORMED = "malformed"
    TITLE_TOO_SHORT = "title_too_short"
    NO_INGREDIENTS = "no_ingredients"
    NO_STEPS = "no_steps"
    NON_POSITIVE_DURATION = "non_positive_duration"
    INSTRUCTION_WITHOUT_INGREDIENTS = "instruction_without_ingredients"
    COOKING_WITHOUT_SETTINGS = "cooking_without_settings"


MESSAGES = {
    ValidationRule.TITLE_TOO_SHORT: "Title must be at least 3 characters long",
    ValidationRule.NO_INGREDIENTS: "At least one ingredient is required",
    ValidationRule.NO_STEPS: "At least one step is required",
    ValidationRule.NON_POSITIVE_DURATION: "Step duration must be greater than 0",
    ValidationRule.INSTRUCTION_WITHOUT_INGREDIENTS: "Instruction steps must reference at least one ingredient",
    ValidationRule.COOKING_WITHOUT_SETTINGS: "Cooking steps require temperature and speed settings",
}


class ValidationError(BaseModel):
    """A violated authoring rule. Returned to the caller, never raised."""

    rule: ValidationRule
    message: str

    def __str__(self) -> str:
        return self.message


def _violation(rule: ValidationRule) -> ValidationError:
    return ValidationError(rule=rule, message=MESSAGES[rule])


def validate_recipe(recipe: Recipe) -> ValidationError | None:
    """Check a recipe against the authoring checklist.

    Rules are checked in order and the first violation is returned.
    ``None`` means the recipe may be saved.
    """
    if len(recipe.title.strip()) < 3:
        return _violation(ValidationRule.TITLE_TOO_SHORT)
    if not recipe.ingredients:
        return _violation(ValidationRule.NO_INGREDIENTS)
    if not recipe.steps:
        return _violation(ValidationRule.NO_STEPS)
    for step in recipe.steps:
        if step.duration_minutes <= 0:
            return _violation(ValidationRule.NON_POSITIVE_DURATION)
        if isinstance(step, InstructionStep):
            if not step.ingredient_ids:
                return _violation(ValidationRule.INSTRUCTION_WITHOUT_INGREDIENTS)
        elif isinstance(step, CookingStep):
            if step.cooking_settings is None:
                return _violation(ValidationRule.COOKING_WITHOUT_SETTINGS)
    return None


def validate_recipe_data(data: Any) -> tuple[Recipe | None, ValidationError | None]:
    """Build a recipe from a raw JSON document and run the checklist on it."""
    try:
        recipe = Recipe.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        message = f"Malformed recipe at '{location}': {first['msg']}" if location else f"Malformed recipe: {first['msg']}"
        return None, ValidationError(rule=ValidationRule.MALFORMED, message=message)
    error = validate_recipe(recipe)
    if error:
        return None, error
    return recipe, None
