"""Interactive CLI application."""
import logging
import os
import time
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from flashdeck.auth import get_user_by_session, login, logout, register_user
from flashdeck.config import settings
from flashdeck.dashboard import get_goal_color, get_goal_label, get_overview, get_set_breakdown
from flashdeck.db import DEFAULT_DB_PATH, init_db
from flashdeck.errors import FlashdeckError
from flashdeck.flashcards import (
    create_flashcard, delete_flashcard, list_flashcards, reorder_flashcards, toggle_star,
    update_flashcard,
)
from flashdeck.importer import import_file
from flashdeck.log import setup_logging
from flashdeck.models import Profile, ReviewResult
from flashdeck.profiles import update_profile
from flashdeck.scheduler import days_overdue
from flashdeck.sets import create_set, delete_set, get_set, list_sets, update_set
from flashdeck.study import (
    build_study_queue, clear_progress, end_session, get_progress, get_recent_sessions,
    get_session_stats, record_card_review, save_progress, start_session,
)
from flashdeck.validation import ReviewInput, validate

logger = logging.getLogger(__name__)
console = Console()

EXIT_WORDS = ("q", "menu")
TOKEN_FILENAME = "session"


class SessionExitRequested(Exception):
    """Raised when the user leaves a study run early."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    while True:
        answer = session_prompt(prompt).strip()
        if answer in choices:
            return int(answer)
        console.print(f"[red]Please enter one of: {', '.join(choices)}[/red]")


def token_path() -> Path:
    return settings.data_dir / TOKEN_FILENAME


def load_token() -> str | None:
    path = token_path()
    return path.read_text().strip() if path.exists() else None


def save_token(token: str | None) -> None:
    path = token_path()
    if token is None:
        path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    # O_CREAT only applies the mode to new files
    path.unlink(missing_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        f.write(token)


def show_welcome(user: Profile):
    console.print(Panel(
        f"[bold]flashdeck[/bold]\n[dim]Signed in as {user.name} ({user.email})[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("sets", "List your sets"),
        ("new", "Create a set"),
        ("edit", "Rename or describe a set"),
        ("delete", "Delete a set"),
        ("cards", "Show, edit, star or delete cards"),
        ("add", "Add cards to a set"),
        ("import", "Import cards from a file"),
        ("reorder", "Change card order"),
        ("study", "Study a set"),
        ("dashboard", "Progress overview"),
        ("settings", "Study goal and preferences"),
        ("logout", "Sign out"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def authenticate(db_path: str) -> tuple[Profile, str] | None:
    """Reuse a stored session or walk the user through login/registration."""
    token = load_token()
    user = get_user_by_session(db_path, token)
    if user:
        return user, token
    while True:
        choice = Prompt.ask("[bold]login[/bold], [bold]register[/bold] or [bold]quit[/bold]",
                            choices=["login", "register", "quit"], default="login")
        if choice == "quit":
            return None
        try:
            if choice == "register":
                name = Prompt.ask("Name")
                email = Prompt.ask("Email")
                password = Prompt.ask("Password", password=True)
                register_user(db_path, name, email, password)
                console.print("[green]Account created.[/green]")
            else:
                email = Prompt.ask("Email")
                password = Prompt.ask("Password", password=True)
            user, token = login(db_path, email, password)
            save_token(token)
            return user, token
        except FlashdeckError as e:
            console.print(f"[red]{e}[/red]")


def pick_set(db_path: str, user: Profile) -> int | None:
    decks = list_sets(db_path, user.id)
    if not decks:
        console.print("[yellow]No sets yet. Use 'new' to create one.[/yellow]")
        return None
    for d in decks:
        star = "★ " if d.starred else ""
        console.print(f"  [cyan]{d.id}[/cyan]) {star}{d.name} [dim]({d.card_count} cards)[/dim]")
    return IntPrompt.ask("Select set", choices=[str(d.id) for d in decks])


def run_study_session(
    db_path: str,
    user: Profile,
    set_id: int,
    mode: str = "mixed",
    starred_only: bool = False,
    shuffle: bool = False,
) -> dict | None:
    cards = build_study_queue(db_path, user.id, set_id, mode, starred_only=starred_only, shuffle=shuffle)
    # Due queues shrink as cards get reviewed and filtered or shuffled queues
    # differ run to run, so only the plain full walk-through resumes
    resumable = mode == "all" and not (starred_only or shuffle)
    if not cards:
        console.print("[yellow]No cards due right now![/yellow]")
        if resumable:
            clear_progress(db_path, user.id, set_id)
        return None
    start = (get_progress(db_path, user.id, set_id) or 0) if resumable else 0
    if start >= len(cards):
        start = 0
    session = start_session(db_path, user.id, set_id, len(cards), mode)
    console.print(f"\n[bold]{session.set_name}[/bold]: {len(cards)} cards "
                  f"[dim](type q to stop)[/dim]\n")
    try:
        for i in range(start, len(cards)):
            card = cards[i]
            label = "new" if card.performance is None else (
                f"{days_overdue(card.performance):.1f}d overdue"
                if days_overdue(card.performance) > 0 else "due")
            console.print(Panel(card.front, title=f"Card {i + 1}/{len(cards)} [{label}]", border_style="cyan"))
            shown = time.monotonic()
            session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
            response_time = int((time.monotonic() - shown) * 1000)
            console.print(Panel(card.back, border_style="green"))
            difficulty = session_int_prompt(
                "How hard was it? (1=easy … 5=forgot)", choices=["1", "2", "3", "4", "5"],
            )
            checked = validate(ReviewInput, {"difficulty": difficulty, "response_time": response_time})
            if not checked.ok:
                raise FlashdeckError(checked.error)
            review = checked.data
            record_card_review(db_path, session, card.id, ReviewResult(
                correct=review.correct, difficulty=review.difficulty, response_time=review.response_time,
            ))
            if resumable:
                save_progress(db_path, user.id, set_id, i + 1, len(cards))
            console.print()
        if resumable:
            clear_progress(db_path, user.id, set_id)
    except SessionExitRequested:
        console.print("[dim]Stopped early. Reviews so far are saved.[/dim]")
    finally:
        end_session(db_path, session)
    stats = get_session_stats(session)
    if stats:
        console.print(
            f"[bold]Reviewed {stats['total_reviewed']} cards, "
            f"{stats['accuracy']:.0f}% correct, {stats['time_spent']:.1f} min[/bold]\n"
        )
    return stats


def cmd_sets(db_path: str, user: Profile):
    search = Prompt.ask("Search (blank for all)", default="", show_default=False)
    decks = list_sets(db_path, user.id, search=search or None)
    table = Table(title="Your Sets")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Cards", justify="right")
    table.add_column("Difficulty", justify="right")
    for d in decks:
        table.add_row(str(d.id), ("★ " if d.starred else "") + d.name, str(d.card_count), str(d.difficulty))
    console.print(table)


def cmd_new(db_path: str, user: Profile):
    name = Prompt.ask("Set name")
    description = Prompt.ask("Description", default="")
    difficulty = IntPrompt.ask("Difficulty (1-5)", choices=["1", "2", "3", "4", "5"], default=3)
    deck = create_set(db_path, user.id, {"name": name, "description": description, "difficulty": difficulty})
    console.print(f"[green]Created set {deck.name} (id {deck.id})[/green]")


def cmd_edit(db_path: str, user: Profile):
    set_id = pick_set(db_path, user)
    if set_id is None:
        return
    changes = {}
    name = Prompt.ask("New name (blank to keep)", default="", show_default=False)
    if name:
        changes["name"] = name
    description = Prompt.ask("New description (blank to keep)", default="", show_default=False)
    if description:
        changes["description"] = description
    changes["starred"] = Confirm.ask("Starred?", default=get_set(db_path, user.id, set_id).starred)
    deck = update_set(db_path, user.id, set_id, changes)
    console.print(f"[green]Updated {deck.name}[/green]")


def cmd_delete(db_path: str, user: Profile):
    set_id = pick_set(db_path, user)
    if set_id is None:
        return
    if Confirm.ask("Delete this set and all its cards?", default=False):
        deck = delete_set(db_path, user.id, set_id)
        console.print(f"[green]Deleted {deck.name}[/green]")


def cmd_cards(db_path: str, user: Profile):
    set_id = pick_set(db_path, user)
    if set_id is None:
        return
    while True:
        cards = list_flashcards(db_path, user.id, set_id)
        table = Table(title="Cards")
        table.add_column("ID", justify="right")
        table.add_column("Front", style="cyan")
        table.add_column("Back")
        table.add_column("Next review")
        for c in cards:
            nxt = c.performance.next_review.date().isoformat() if c.performance else "new"
            table.add_row(str(c.id), ("★ " if c.starred else "") + c.front, c.back, nxt)
        console.print(table)
        if not cards:
            return
        action = Prompt.ask("Action", choices=["edit", "star", "delete", "done"], default="done")
        if action == "done":
            return
        by_id = {c.id: c for c in cards}
        card = by_id[IntPrompt.ask("Card ID", choices=[str(cid) for cid in by_id])]
        if action == "edit":
            front = Prompt.ask("Front", default=card.front)
            back = Prompt.ask("Back", default=card.back)
            update_flashcard(db_path, user.id, set_id, card.id, {"front": front, "back": back})
            console.print("[green]Card updated.[/green]")
        elif action == "star":
            starred = toggle_star(db_path, user.id, set_id, card.id).starred
            console.print(f"[green]Card {'starred' if starred else 'unstarred'}.[/green]")
        elif Confirm.ask("Delete this card?", default=False):
            delete_flashcard(db_path, user.id, set_id, card.id)
            console.print("[green]Card deleted.[/green]")


def cmd_add(db_path: str, user: Profile):
    set_id = pick_set(db_path, user)
    if set_id is None:
        return
    console.print("[dim]Leave the front empty to finish.[/dim]")
    added = 0
    while True:
        front = Prompt.ask("Front", default="", show_default=False)
        if not front.strip():
            break
        back = Prompt.ask("Back")
        try:
            create_flashcard(db_path, user.id, set_id, {"front": front, "back": back})
            added += 1
        except FlashdeckError as e:
            console.print(f"[red]{e}[/red]")
    console.print(f"[green]Added {added} cards.[/green]")


def cmd_import(db_path: str, user: Profile):
    set_id = pick_set(db_path, user)
    if set_id is None:
        return
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_file(db_path, user.id, set_id, file_path)
    console.print(f"[green]Imported {result.success_count} cards.[/green]")
    for failure in result.failed:
        console.print(f"  [red]Item {failure.index + 1}: {failure.error}[/red]")


def cmd_reorder(db_path: str, user: Profile):
    set_id = pick_set(db_path, user)
    if set_id is None:
        return
    for c in list_flashcards(db_path, user.id, set_id):
        console.print(f"  [cyan]{c.id}[/cyan]) {c.front}")
    raw = Prompt.ask("Card IDs in the new order, comma separated")
    ids = [int(part) for part in raw.replace(" ", "").split(",") if part.isdigit()]
    reorder_flashcards(db_path, user.id, set_id, ids)
    console.print("[green]Order saved.[/green]")


def cmd_study(db_path: str, user: Profile):
    set_id = pick_set(db_path, user)
    if set_id is None:
        return
    mode = Prompt.ask("Mode", choices=["mixed", "review", "new", "all"], default="mixed")
    starred_only = Confirm.ask("Starred cards only?", default=False)
    shuffle = mode == "all" and Confirm.ask("Shuffle?", default=False)
    run_study_session(db_path, user, set_id, mode, starred_only=starred_only, shuffle=shuffle)


def cmd_dashboard(db_path: str, user: Profile):
    overview = get_overview(db_path, user.id)
    stats = overview["stats"]
    pct = overview["goal_pct"]
    color = get_goal_color(pct)
    console.print(Panel(
        f"[bold]{overview['total_sets']} sets · {stats.total_cards} cards[/bold]",
        title="Dashboard", border_style="blue",
    ))

    bar_filled = int(pct / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(f"\n  Today: [bold]{overview['studied_today']}/{overview['study_goal']}[/bold] "
                  f"{bar} [{color}]{get_goal_label(pct)}[/{color}]\n")

    table = Table(title="Sets")
    table.add_column("Set", style="cyan")
    table.add_column("New", justify="right")
    table.add_column("Due", justify="right")
    table.add_column("Overdue", justify="right")
    table.add_column("Avg ease", justify="right")
    for row in get_set_breakdown(db_path, user.id):
        s = row["stats"]
        table.add_row(row["name"], str(s.new_cards), str(s.due_cards),
                      str(s.overdue_cards), f"{s.average_ease_factor:.2f}")
    console.print(table)

    console.print(f"\n  Streak: [bold]{overview['current_streak']}[/bold] days  |  "
                  f"Best: [bold]{overview['longest_streak']}[/bold]  |  "
                  f"Sessions: [bold]{overview['total_study_sessions']}[/bold]  |  "
                  f"Cards studied: [bold]{overview['total_cards_studied']}[/bold]")

    recent = get_recent_sessions(db_path, user.id)
    if recent:
        console.print("\n[bold]Recent sessions:[/bold]")
        for r in recent:
            console.print(f"  {r['ended_at']:%Y-%m-%d} {r['set_name']}: "
                          f"{r['reviewed']} cards, {r['accuracy']}%")


def cmd_settings(db_path: str, user: Profile) -> Profile:
    goal = IntPrompt.ask("Daily study goal (cards)", default=user.study_goal)
    theme = Prompt.ask("Theme", choices=["system", "light", "dark"], default=user.theme)
    notifications = Confirm.ask("Notifications?", default=user.notifications)
    updated = update_profile(db_path, user.id, {
        "study_goal": goal, "theme": theme, "notifications": notifications,
    })
    console.print("[green]Settings saved.[/green]")
    return updated


COMMANDS = {
    "sets": cmd_sets,
    "new": cmd_new,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "cards": cmd_cards,
    "add": cmd_add,
    "import": cmd_import,
    "reorder": cmd_reorder,
    "study": cmd_study,
    "dashboard": cmd_dashboard,
}


def main():
    setup_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)

    auth = authenticate(db_path)
    if auth is None:
        return
    user, token = auth
    show_welcome(user)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="study").strip().lower()
        try:
            if choice in COMMANDS:
                COMMANDS[choice](db_path, user)
            elif choice == "settings":
                user = cmd_settings(db_path, user)
            elif choice == "logout":
                logout(db_path, token)
                save_token(None)
                console.print("[dim]Signed out.[/dim]")
                break
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Happy studying![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except FlashdeckError as e:
            console.print(f"[red]{e}[/red]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
