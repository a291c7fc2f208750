from __future__ import annotations
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Unit(str, Enum):
    GRAM = "g"
    KILOGRAM = "kg"
    MILLILITER = "ml"
    LITER = "l"
    TEASPOON = "tsp"
    TABLESPOON = "tbsp"
    CUP = "cup"
    OUNCE = "oz"
    POUND = "lb"
    UNIT = "unit"


class Ingredient(_CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    quantity: float = Field(gt=0)
    unit: Unit = Unit.GRAM


class CookingSettings(_CamelModel):
    temperature: float = Field(ge=40, le=200)
    speed: int = Field(ge=1, le=5)


class InstructionStep(_CamelModel):
    id: str = Field(default_factory=new_id)
    description: str = ""
    type: Literal["instruction"] = "instruction"
    duration_minutes: int = 1
    ingredient_ids: list[str] = Field(default_factory=list)

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60


class CookingStep(_CamelModel):
    id: str = Field(default_factory=new_id)
    description: str = ""
    type: Literal["cooking"] = "cooking"
    duration_minutes: int = 1
    cooking_settings: Optional[CookingSettings] = None

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60


Step = Annotated[Union[InstructionStep, CookingStep], Field(discriminator="type")]


class Recipe(_CamelModel):
    id: str = Field(default_factory=new_id)
    title: str
    difficulty: Difficulty = Difficulty.EASY
    ingredients: list[Ingredient] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    is_favorite: bool = False

    @model_validator(mode="after")
    def check_ingredient_references(self) -> Recipe:
        known = {i.id for i in self.ingredients}
        for step in self.steps:
            if isinstance(step, InstructionStep):
                for ingredient_id in step.ingredient_ids:
                    if ingredient_id not in known:
                        raise ValueError(f"Step '{step.id}' references unknown ingredient '{ingredient_id}'")
        return self

    @property
    def total_duration_minutes(self) -> int:
        return sum(step.duration_minutes for step in self.steps)

    @property
    def total_duration_seconds(self) -> int:
        return self.total_duration_minutes * 60

    def ingredient(self, ingredient_id: str) -> Ingredient | None:
        return next((i for i in self.ingredients if i.id == ingredient_id), None)


class CookSession(BaseModel):
    """Live timer state for the recipe being cooked. Never persisted."""

    recipe_id: str
    current_step_index: int = Field(default=0, ge=0)
    remaining_seconds: int = Field(default=0, ge=0)
    is_running: bool = False
    last_tick_timestamp: float = 0.0
