from __future__ import annotations
from guided_cookbook.models import CookingStep, CookSession, InstructionStep, Recipe, Step


def _round_percent(part: int, whole: int) -> int:
    # half-up, so 2.5% shows as 3 rather than banker's 2
    return (200 * part + whole) // (2 * whole)


def format_time(seconds: int) -> str:
    if seconds < 0:
        raise ValueError(f"Cannot format a negative duration: {seconds}")
    return f"{seconds // 60}:{seconds % 60:02d}"


def current_step(session: CookSession, recipe: Recipe) -> Step:
    return recipe.steps[session.current_step_index]


def step_progress_percent(session: CookSession, recipe: Recipe) -> int:
    duration = current_step(session, recipe).duration_seconds
    return _round_percent(duration - session.remaining_seconds, duration)


def overall_progress_percent(session: CookSession, recipe: Recipe) -> int:
    done = recipe.steps[: session.current_step_index]
    step_elapsed = current_step(session, recipe).duration_seconds - session.remaining_seconds
    elapsed = sum(s.duration_seconds for s in done) + step_elapsed
    return _round_percent(elapsed, recipe.total_duration_seconds)


def step_heading(session: CookSession, recipe: Recipe) -> str:
    return f"Step {session.current_step_index + 1} of {len(recipe.steps)}"


def format_quantity(quantity: float) -> str:
    return f"{quantity:g}"


def step_details(step: Step, recipe: Recipe) -> list[str]:
    """Lines shown under a step's description."""
    if isinstance(step, CookingStep):
        if step.cooking_settings is None:
            return []
        settings = step.cooking_settings
        return [f"Temperature: {settings.temperature:g}°C | Speed: {settings.speed}"]
    if isinstance(step, InstructionStep):
        lines = []
        for ingredient_id in step.ingredient_ids:
            ingredient = recipe.ingredient(ingredient_id)
            if ingredient is None:
                continue
            lines.append(f"{ingredient.name} - {format_quantity(ingredient.quantity)}{ingredient.unit.value}")
        return lines
    raise TypeError(f"Unknown step type: {type(step).__name__}")


def mini_player_line(session: CookSession, recipe: Recipe) -> str:
    return (
        f"{recipe.title} · Step {session.current_step_index + 1}/{len(recipe.steps)}"
        f" · {format_time(session.remaining_seconds)}"
    )


def format_recipe_summary(recipe: Recipe) -> str:
    star = "★" if recipe.is_favorite else "☆"
    return (
        f"{star} {recipe.title} ({recipe.difficulty.value}, "
        f"{len(recipe.steps)} steps, {recipe.total_duration_minutes} min)"
    )
