"""Interactive CLI application."""
import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table

from flashdeck.cards import count_due_cards, get_decks, now_ms
from flashdeck.db import init_db, DEFAULT_DB_PATH
from flashdeck.errors import EmptySessionError, PersistenceError
from flashdeck.importer import import_deck
from flashdeck.intervals import interval_description
from flashdeck.scheduler import ReviewOutcome, schedule
from flashdeck.session import StudySession
from flashdeck.stats import get_mastery_distribution, get_recent_stats, get_study_summary
from flashdeck.study import get_direction_reversed, set_direction_reversed

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")
RATINGS = {"k": ReviewOutcome.KNOWN, "a": ReviewOutcome.AGAIN, "l": ReviewOutcome.LATER}


class SessionExitRequested(Exception):
    """Raised when the user leaves a study session from a prompt."""


def session_prompt(prompt: str, choices: list[str] | None = None, default: str = "") -> str:
    if choices is not None:
        choices = list(choices) + [w for w in EXIT_WORDS if w not in choices]
        answer = Prompt.ask(prompt, choices=choices, show_choices=False)
    else:
        answer = Prompt.ask(prompt, default=default, show_default=False)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def setup_logging() -> None:
    level = os.environ.get("FLASHDECK_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Flashdeck[/bold]\n[dim]Spaced repetition drills[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("study", "Study a deck"),
        ("decks", "List decks and due cards"),
        ("stats", "Streak and progress"),
        ("import", "Import a deck from a file"),
        ("direction", "Flip question/answer side"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def pick_deck(db_path: str):
    decks = get_decks(db_path)
    if not decks:
        console.print("[yellow]No decks yet. Use 'import' to add one.[/yellow]")
        return None
    if len(decks) == 1:
        return decks[0]
    for d in decks:
        console.print(f"  [cyan]{d.id}[/cyan]) {d.name}")
    deck_id = IntPrompt.ask("Select deck", choices=[str(d.id) for d in decks])
    return next(d for d in decks if d.id == deck_id)


def run_study_session(session: StudySession) -> None:
    """Drive a session until it completes or the user exits with q/menu."""
    while not session.is_completed:
        card = session.current_card()
        state = session.state
        question, answer = (card.back, card.front) if state.direction else (card.front, card.back)
        title = f"Card {state.progress_text}" + (" [dim](again)[/dim]" if state.in_deferred_pass else "")
        console.print(Panel(question, title=title, border_style="cyan"))
        if not state.revealed:
            reply = session_prompt("[dim]Press Enter to reveal answer (t to flip sides)[/dim]")
            if reply.strip().lower() == "t":
                try:
                    session.toggle_direction()
                except PersistenceError as e:
                    logger.error("Saving the side flip failed: %s", e)
                    console.print("[red]Could not flip sides. Staying on this card.[/red]")
                continue
            session.reveal()
        body = answer + (f"\n[dim]{card.example}[/dim]" if card.example else "")
        console.print(Panel(body, border_style="green"))
        key = session_prompt("Rate: [green]k[/green]nown  [red]a[/red]gain  [yellow]l[/yellow]ater",
                             choices=list(RATINGS))
        outcome = RATINGS[key.strip().lower()]
        try:
            session.evaluate(outcome)
        except PersistenceError as e:
            logger.error("Saving the review failed: %s", e)
            if session.is_completed:
                break
            console.print("[red]Could not save that answer. Rate the card again to retry.[/red]")
            continue
        if outcome is not ReviewOutcome.LATER or state.in_deferred_pass:
            level = schedule(card.mastery_level, outcome, 0).new_level
            console.print(f"[dim]Next review in: {interval_description(level)}[/dim]")
        console.print()


def show_summary(session: StudySession) -> None:
    summary = session.summary()
    color = "green" if summary.is_perfect else "cyan"
    console.print(Panel(
        f"Cards: [bold]{summary.total_cards}[/bold]  |  "
        f"Known: [green]{summary.known_count}[/green]  |  "
        f"Again: [red]{summary.again_count}[/red]  |  "
        f"Later: [yellow]{summary.later_count}[/yellow]\n"
        f"Accuracy: [bold]{summary.accuracy_percent}%[/bold]  |  "
        f"Time: {summary.duration_formatted}  |  Streak: [bold]{summary.streak}[/bold] day(s)",
        title="Session Complete", border_style=color,
    ))


def cmd_study(db_path: str):
    deck = pick_deck(db_path)
    if deck is None:
        return
    try:
        session = StudySession.start(db_path, deck.id)
    except EmptySessionError:
        console.print("[yellow]No cards due right now![/yellow]")
        return
    if session.state.cursor or session.state.deferred_queue:
        console.print(f"[dim]Resuming where you left off ({session.state.progress_text}).[/dim]")
    console.print(f"\n[bold]{deck.name}[/bold] - {len(session.state.primary_queue)} cards\n")
    try:
        run_study_session(session)
    except SessionExitRequested:
        session.abandon()
        console.print("[dim]Progress saved. Pick up later with 'study'.[/dim]")
        return
    try:
        session.record_completion()
    except PersistenceError as e:
        logger.error("Updating daily stats failed: %s", e)
    show_summary(session)


def cmd_decks(db_path: str):
    decks = get_decks(db_path)
    if not decks:
        console.print("[yellow]No decks yet.[/yellow]")
        return
    now = now_ms()
    table = Table(title="Decks")
    table.add_column("ID", justify="right")
    table.add_column("Deck", style="cyan")
    table.add_column("Due", justify="right")
    table.add_column("Not started", justify="right")
    table.add_column("Learning", justify="right")
    table.add_column("Mastered", justify="right")
    for d in decks:
        dist = get_mastery_distribution(db_path, d.id)
        table.add_row(
            str(d.id), d.name, str(count_due_cards(db_path, d.id, now)),
            *(str(b["count"]) for b in dist),
        )
    console.print(table)


def cmd_stats(db_path: str):
    stats = get_study_summary(db_path)
    console.print(Panel(
        f"Today: [bold]{stats['studied_today']}[/bold] cards  |  "
        f"Streak: [bold]{stats['current_streak']}[/bold] (best {stats['max_streak']})",
        title="Progress", border_style="blue",
    ))
    console.print(f"\n  Sessions: [bold]{stats['sessions_completed']}[/bold]  |  "
                  f"Total studied: [bold]{stats['total_studied']}[/bold]  |  "
                  f"Daily average: [bold]{stats['average_studied']}[/bold]  |  "
                  f"Reviews: [bold]{stats['reviews_logged']}[/bold]")

    recent = get_recent_stats(db_path, days=7)
    if recent:
        table = Table(title="Last 7 Days")
        table.add_column("Date")
        table.add_column("Studied", justify="right")
        table.add_column("Streak", justify="right")
        for row in recent:
            table.add_row(row.date, str(row.studied_count), str(row.streak))
        console.print(table)

    dist = get_mastery_distribution(db_path)
    console.print("  " + "  |  ".join(f"{b['label']}: [bold]{b['count']}[/bold]" for b in dist))


def cmd_import(db_path: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_deck(db_path, file_path)
    skipped = f", {result['skipped']} skipped" if result["skipped"] else ""
    console.print(f"[green]Imported {result['imported']} cards into '{result['name']}'{skipped}[/green]")


def cmd_direction(db_path: str):
    reversed_ = not get_direction_reversed(db_path)
    set_direction_reversed(db_path, reversed_)
    side = "back -> front" if reversed_ else "front -> back"
    console.print(f"[green]New sessions will show {side}.[/green]")


def main():
    setup_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="study").strip().lower()
        try:
            if choice == "study":
                cmd_study(db_path)
            elif choice == "decks":
                cmd_decks(db_path)
            elif choice == "stats":
                cmd_stats(db_path)
            elif choice == "import":
                cmd_import(db_path)
            elif choice == "direction":
                cmd_direction(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you tomorrow![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.debug("Command %r failed", choice, exc_info=True)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
