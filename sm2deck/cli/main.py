"""
CLI entry point for sm2deck.
"""

# Standard library imports
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from uuid import UUID

# Third-party imports
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Local application imports
from sm2deck.cli._review_logic import review_logic
from sm2deck.config import settings
from sm2deck.db.database import CardDatabase
from sm2deck.exceptions import DatabaseError
from sm2deck.selector import select_next_due


console = Console()

app = typer.Typer(
    name="sm2deck",
    help="sm2deck: SM-2 spaced repetition flashcards.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Helpers for resolving the --db path
# ---------------------------------------------------------------------------


def _resolve_db_path(db: Optional[Path]) -> Path:
    """Resolve db path from CLI flag, SM2DECK_DB envvar, or settings."""
    if db is not None:
        return db
    env_val = os.environ.get("SM2DECK_DB")
    if env_val:
        return Path(env_val)
    return settings.db_path


# Common typer options reused across commands
_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to SM2DECK_DB env var, then SM2DECK_DB_PATH.",
    envvar="SM2DECK_DB",
)


def _format_due(card_due: datetime, now: datetime) -> str:
    if card_due <= now:
        return "[yellow]due now[/yellow]"
    return card_due.astimezone().strftime("%Y-%m-%d %H:%M")


# ---------------------------------------------------------------------------
# Card management
# ---------------------------------------------------------------------------


@app.command()
def add(
    front: str = typer.Argument(..., help="Prompt shown first."),  # noqa: B008
    back: str = typer.Argument(..., help="Answer revealed second."),  # noqa: B008
    db: Optional[Path] = _db_option,
):
    """Add a new card; it is due for review immediately."""
    db_path = _resolve_db_path(db)
    try:
        with CardDatabase(db_path=db_path) as db_inst:
            card = db_inst.add_card(front=front, back=back)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except ValueError as e:
        console.print(f"[bold red]Invalid card:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    console.print(f"[green]Added card[/green] [dim]{card.uuid}[/dim]")


@app.command()
def delete(
    card_id: UUID = typer.Argument(..., help="UUID of the card to delete."),  # noqa: B008
    db: Optional[Path] = _db_option,
):
    """Delete a card together with its review history."""
    db_path = _resolve_db_path(db)
    try:
        with CardDatabase(db_path=db_path) as db_inst:
            deleted = db_inst.delete_card(card_id)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if not deleted:
        console.print(f"[bold red]Error: card {card_id} not found.[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Deleted card[/green] [dim]{card_id}[/dim]")


@app.command(name="list")
def list_cards(
    db: Optional[Path] = _db_option,
):
    """List all cards with their scheduling state."""
    db_path = _resolve_db_path(db)
    try:
        with CardDatabase(db_path=db_path) as db_inst:
            cards = db_inst.get_all_cards()
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if not cards:
        console.print("[yellow]No cards found in the database.[/yellow]")
        return

    now = datetime.now(timezone.utc)
    table = Table(title="Cards")
    table.add_column("UUID", style="dim")
    table.add_column("Front", style="cyan")
    table.add_column("Back")
    table.add_column("Interval", justify="right")
    table.add_column("Reps", justify="right")
    table.add_column("Ease", justify="right", style="magenta")
    table.add_column("Due")
    for card in cards:
        table.add_row(
            str(card.uuid),
            card.front,
            card.back,
            str(card.interval),
            str(card.repetition),
            f"{card.ease_factor:.2f}",
            _format_due(card.due_at, now),
        )
    console.print(table)


@app.command(name="next")
def next_card(
    db: Optional[Path] = _db_option,
):
    """Show the card that would be reviewed next, without grading it."""
    db_path = _resolve_db_path(db)
    try:
        with CardDatabase(db_path=db_path) as db_inst:
            cards = db_inst.get_all_cards()
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    card = select_next_due(cards, datetime.now(timezone.utc))
    if card is None:
        console.print("[yellow]No cards are due for review.[/yellow]")
        return
    console.print(Panel(card.front, title=str(card.uuid), border_style="green"))


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@app.command()
def stats(
    db: Optional[Path] = _db_option,
):
    """Display statistics about the card database."""
    db_path = _resolve_db_path(db)
    try:
        with CardDatabase(db_path=db_path) as db_inst:
            stats_data = db_inst.get_database_stats()
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e

    overall_table = Table(title="Overall Database Stats", show_header=False)
    overall_table.add_column("Metric", style="cyan")
    overall_table.add_column("Value", style="magenta")
    overall_table.add_row("Total Cards", str(stats_data["total_cards"]))
    overall_table.add_row("Total Reviews", str(stats_data["total_reviews"]))
    overall_table.add_row("Due Now", str(stats_data["due_cards"]))
    console.print(overall_table)

    if not stats_data["total_cards"]:
        console.print("[yellow]No cards found in the database.[/yellow]")
        return

    streak_table = Table(title="Repetition Streaks")
    streak_table.add_column("Consecutive Passes", style="cyan")
    streak_table.add_column("Cards", style="magenta")
    for bucket in ("0", "1", "2+"):
        streak_table.add_row(
            bucket, str(stats_data["repetition_buckets"].get(bucket, 0))
        )
    console.print(streak_table)
    console.print(
        f"Average ease factor: [bold]{stats_data['average_ease_factor']:.2f}[/bold]"
    )


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


@app.command()
def review(
    db: Optional[Path] = _db_option,
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        min=1,
        help="Maximum number of cards to review (defaults to SM2DECK_REVIEW_LIMIT).",
    ),
):
    """Start a review session over all due cards."""
    db_path = _resolve_db_path(db)
    try:
        review_logic(
            db_path=db_path,
            limit=limit if limit is not None else settings.review_limit,
            max_grade=settings.max_grade,
        )
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application, exiting with status 1 on any unexpected error.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
