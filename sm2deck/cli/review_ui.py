"""
Command-line interface for reviewing cards.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from sm2deck.constants import MIN_GRADE
from sm2deck.exceptions import DatabaseError
from sm2deck.models import Card
from sm2deck.review_manager import ReviewSessionManager

logger = logging.getLogger(__name__)
console = Console()


def _get_user_grade(max_grade: int) -> int:
    """
    Prompt until the user enters an integer grade between 0 and `max_grade`.
    """
    while True:
        grade_str = console.input(
            f"[bold]Grade ({MIN_GRADE}=forgot .. {max_grade}=perfect): [/bold]"
        )
        try:
            grade = int(grade_str)
        except (ValueError, TypeError):
            console.print(
                "[bold red]Invalid input. Please enter a number.[/bold red]"
            )
            continue
        if MIN_GRADE <= grade <= max_grade:
            return grade
        console.print(
            "[bold red]Invalid grade. Please enter a number between "
            f"{MIN_GRADE} and {max_grade}.[/bold red]"
        )


def _display_card(card: Card) -> None:
    """Show a card's front, wait for Enter, then reveal the back."""
    console.print(Panel(card.front, title="Front", border_style="green"))
    console.input("[italic]Press Enter to see the back...[/italic]")
    console.print(Panel(card.back, title="Back", border_style="blue"))


def start_review_flow(
    manager: ReviewSessionManager,
    limit: Optional[int] = 20,
    max_grade: int = 5,
) -> None:
    """
    Manages the command-line review session flow.

    Args:
        manager: An instance of ReviewSessionManager.
        limit: Maximum number of cards to review.
        max_grade: Highest grade offered at the prompt.
    """
    console.print("[bold cyan]Starting review session...[/bold cyan]")
    manager.initialize_session(limit=limit)

    due_cards_count = len(manager.review_queue)
    if due_cards_count == 0:
        console.print(
            "[bold yellow]No cards are due for review.[/bold yellow]"
        )
        console.print("[bold cyan]Review session finished.[/bold cyan]")
        return

    reviewed_count = 0
    while (card := manager.get_next_card()) is not None:
        reviewed_count += 1
        console.rule(
            f"[bold]Card {reviewed_count} of {due_cards_count}[/bold]"
        )

        _display_card(card)
        grade = _get_user_grade(max_grade)

        try:
            updated_card = manager.submit_review(card_uuid=card.uuid, grade=grade)
        except DatabaseError as e:
            logger.error(f"Failed to submit review for {card.uuid}: {e}")
            console.print(
                "[bold red]Error submitting review. "
                "Card will be reviewed again later.[/bold red]"
            )
            manager.skip_card(card.uuid)
            continue

        days = updated_card.interval
        due_str = updated_card.due_at.astimezone().strftime("%Y-%m-%d %H:%M")
        console.print(
            f"[green]Reviewed.[/green] Next due in [bold]{days} "
            f"{'day' if days == 1 else 'days'}[/bold] on {due_str}."
        )
        console.print("")

    stats = manager.get_session_stats()
    console.print(
        f"[bold cyan]Review session finished. Well done![/bold cyan] "
        f"{stats['passed']} passed, {stats['failed']} failed."
    )
