from __future__ import annotations
import json
import threading
from pathlib import Path
import click
from pydantic import ValidationError
from rich.console import Console, Group
from rich.live import Live
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text
from guided_cookbook.browse import SortOrder, favorites, filter_by_difficulty, sort_by_total_duration
from guided_cookbook.catalog import NotFoundError, RecipeCatalog
from guided_cookbook.config import Config
from guided_cookbook.formatter import (
    current_step,
    format_quantity,
    format_recipe_summary,
    format_time,
    mini_player_line,
    overall_progress_percent,
    step_details,
    step_heading,
    step_progress_percent,
)
from guided_cookbook.logging_setup import setup_logging
from guided_cookbook.models import Difficulty, utc_now
from guided_cookbook.session import CookSessionMachine, InvalidRecipeError, SessionState
from guided_cookbook.ticker import ticker_factory
from guided_cookbook.validation import validate_recipe_data

console = Console()
err_console = Console(stderr=True)


def _load_config() -> Config:
    try:
        config = Config()
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] Invalid configuration: {e.errors()[0]['msg']}")
        raise SystemExit(1)
    setup_logging(config.log_level)
    return config


def _catalog(config: Config) -> RecipeCatalog:
    return RecipeCatalog(base_dir=config.data_dir)


@click.group()
def cli():
    """Guided Cookbook — keep your recipes and cook them step by step."""
    pass


@cli.group("recipe")
def recipe():
    """Manage the recipe catalog."""
    pass


@recipe.command("list")
@click.option(
    "--difficulty", "difficulties", multiple=True,
    type=click.Choice([d.value for d in Difficulty], case_sensitive=False),
    help="Only show recipes of this difficulty (repeatable)"
)
@click.option(
    "--sort", "order", default=SortOrder.ASC.value, show_default=True,
    type=click.Choice([o.value for o in SortOrder]),
    help="Sort by total cooking time"
)
@click.option("--favorites", "only_favorites", is_flag=True, help="Only show favourite recipes")
def recipe_list(difficulties: tuple[str, ...], order: str, only_favorites: bool):
    """Show the recipes in your catalog."""
    config = _load_config()
    recipes = _catalog(config).load()
    if not recipes:
        console.print("No recipes yet. Run [bold]cookbook recipe add FILE[/bold] to import one.")
        return

    selected = [Difficulty(d.capitalize()) for d in difficulties]
    shown = sort_by_total_duration(filter_by_difficulty(recipes, selected), SortOrder(order))
    if only_favorites:
        shown = favorites(shown)
    if not shown:
        console.print("No recipes match these filters.")
        return

    table = Table(title="Recipes")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Difficulty")
    table.add_column("Steps", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Fav", justify="center")

    for r in shown:
        table.add_row(
            r.id, r.title, r.difficulty.value, str(len(r.steps)),
            f"{r.total_duration_minutes} min", "[yellow]★[/yellow]" if r.is_favorite else "☆",
        )

    console.print(table)


@recipe.command("show")
@click.argument("recipe_id")
def recipe_show(recipe_id: str):
    """Show one recipe with its ingredients and steps."""
    config = _load_config()
    try:
        r = _catalog(config).get(recipe_id)
    except NotFoundError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    console.print(f"\n[bold]{format_recipe_summary(r)}[/bold]\n")
    console.print("[bold]Ingredients[/bold]")
    for ing in r.ingredients:
        console.print(f"  • {ing.name} - {format_quantity(ing.quantity)}{ing.unit.value}")
    console.print("\n[bold]Steps[/bold]")
    for i, step in enumerate(r.steps, start=1):
        console.print(f"  {i}. {step.description} [dim]({step.type}, {step.duration_minutes} min)[/dim]")
        for line in step_details(step, r):
            console.print(f"       [dim]{line}[/dim]")
    console.print()


@recipe.command("add")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def recipe_add(path: Path):
    """Import a recipe from a JSON file into the catalog."""
    config = _load_config()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        err_console.print(f"[red]Error:[/red] {path.name} is not valid UTF-8 JSON: {e}")
        raise SystemExit(1)

    new_recipe, error = validate_recipe_data(data)
    if error:
        err_console.print(f"[red]Error:[/red] {error}")
        raise SystemExit(1)

    catalog = _catalog(config)
    if any(r.id == new_recipe.id for r in catalog.load()):
        err_console.print(f"[red]Error:[/red] A recipe with id '{new_recipe.id}' already exists.")
        raise SystemExit(1)

    now = utc_now()
    new_recipe = new_recipe.model_copy(update={"title": new_recipe.title.strip(), "created_at": now, "updated_at": now})
    catalog.add(new_recipe)
    console.print(f"[green]✓[/green] Added recipe: [bold]{new_recipe.title}[/bold] ({new_recipe.id})")


@recipe.command("remove")
@click.argument("recipe_id")
def recipe_remove(recipe_id: str):
    """Remove a recipe from the catalog."""
    config = _load_config()
    try:
        removed = _catalog(config).remove(recipe_id)
    except NotFoundError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    console.print(f"[green]✓[/green] Removed: {removed.title}")


@recipe.command("favorite")
@click.argument("recipe_id")
def recipe_favorite(recipe_id: str):
    """Mark or unmark a recipe as a favourite."""
    config = _load_config()
    try:
        r = _catalog(config).toggle_favorite(recipe_id)
    except NotFoundError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    label = "Added to" if r.is_favorite else "Removed from"
    console.print(f"[green]✓[/green] {label} favourites: [bold]{r.title}[/bold]")


def _render(machine: CookSessionMachine):
    session, r = machine.session, machine.recipe
    if session is None or r is None:
        return Text("")
    step = current_step(session, r)
    step_pct = step_progress_percent(session, r)
    overall_pct = overall_progress_percent(session, r)
    status = "[green]running[/green]" if session.is_running else "[yellow]paused[/yellow]"
    parts = [
        Text.from_markup(f"[bold]{r.title}[/bold] ({r.difficulty.value}) · {status}"),
        Text.from_markup(f"\n[bold]{step_heading(session, r)}[/bold]: {step.description}"),
    ]
    parts.extend(Text(f"  {line}", style="dim") for line in step_details(step, r))
    parts += [
        Text.from_markup(f"\n[bold cyan]{format_time(session.remaining_seconds)}[/bold cyan] left in this step"),
        ProgressBar(total=100, completed=step_pct, width=40),
        Text(f"\nOverall progress: {overall_pct}%"),
        ProgressBar(total=100, completed=overall_pct, width=40),
        Text("\nCtrl+C to pause, skip or quit", style="dim"),
    ]
    return Group(*parts)


def _run_session(machine: CookSessionMachine) -> bool:
    """Drive the live view until the recipe completes. False if the user quit."""
    finished = threading.Event()

    while machine.state is not SessionState.COMPLETED:
        try:
            with Live(_render(machine), console=console, auto_refresh=False) as live:

                def on_change(m: CookSessionMachine) -> None:
                    if m.state is SessionState.COMPLETED:
                        finished.set()
                    if live.is_started:
                        live.update(_render(m), refresh=True)

                unsubscribe = machine.subscribe(on_change)
                try:
                    while machine.state is not SessionState.COMPLETED and not finished.wait(0.2):
                        pass
                finally:
                    unsubscribe()
        except KeyboardInterrupt:
            if machine.state is SessionState.RUNNING:
                machine.toggle_run()
            console.print(f"\n[yellow]Paused[/yellow] · {mini_player_line(machine.session, machine.recipe)}")
            choice = click.prompt(
                "  [r]esume, [s]kip step, [q]uit",
                type=click.Choice(["r", "s", "q"]), default="r", show_choices=False,
            )
            if choice == "q":
                return False
            if choice == "s":
                machine.skip_to_next_step()
            elif machine.state is SessionState.PAUSED:
                machine.toggle_run()
    return True


@cli.command()
@click.argument("recipe_id")
def cook(recipe_id: str):
    """Cook a recipe with a step-by-step timer."""
    config = _load_config()
    recipes = _catalog(config).load()
    machine = CookSessionMachine(tick_source_factory=ticker_factory(config.tick_interval_seconds))
    try:
        machine.start_by_id(recipe_id, recipes)
    except (NotFoundError, InvalidRecipeError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    title = machine.recipe.title
    machine.toggle_run()
    try:
        completed = _run_session(machine)
    finally:
        machine.stop()

    if completed:
        console.print(f"\n[green]✓[/green] Recipe complete: [bold]{title}[/bold]")
    else:
        console.print(f"\nStopped cooking [bold]{title}[/bold].")
