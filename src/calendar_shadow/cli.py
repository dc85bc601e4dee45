"""
Command-line interface for Calendar Shadow.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from calendar_shadow.config import build_shadow_config
from calendar_shadow.config import load_config_file
from calendar_shadow.db import StateDatabase
from calendar_shadow.db import query_status_all
from calendar_shadow.models import DEFAULT_CONFIG
from calendar_shadow.models import DEFAULT_CREDENTIALS
from calendar_shadow.models import DEFAULT_STATE_DB
from calendar_shadow.models import DEFAULT_TOKEN
from calendar_shadow.models import CalendarShadowError
from calendar_shadow.models import ShadowConfig
from calendar_shadow.notify import ConsoleNotificationSink
from calendar_shadow.sync import SyncCoordinator

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Mirror a main calendar onto a shadow calendar shared with a fixed attendee list.",
)

console = Console()


# ---------------------------------------------------------------------------
# Global state shared across subcommands
# ---------------------------------------------------------------------------


@dataclass
class _State:
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG)
    state_db: Path = field(default_factory=lambda: DEFAULT_STATE_DB)
    verbose: bool = False


state = _State()


@app.callback()
def _global(
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help=f"Config file path (default: {DEFAULT_CONFIG})"),
    ] = DEFAULT_CONFIG,
    state_db: Annotated[
        Path,
        typer.Option("--state-db", help=f"State DB path (default: {DEFAULT_STATE_DB})"),
    ] = DEFAULT_STATE_DB,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose debug output"),
    ] = False,
) -> None:
    state.config_path = config
    state.state_db = state_db
    state.verbose = verbose
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False, console=console)],
    )
    # googleapiclient logs every request at INFO
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)


def _store_key(cfg: ShadowConfig) -> str:
    """State is keyed by the configured main calendar ('primary' when unset)."""
    return cfg.main_calendar_id or "primary"


def _connect_backend(file_values: dict[str, str]):
    from calendar_shadow.google_backend import GoogleCalendarBackend

    credentials = Path(file_values.get("credentials_file") or DEFAULT_CREDENTIALS).expanduser()
    token = Path(file_values.get("token_file") or DEFAULT_TOKEN).expanduser()
    return GoogleCalendarBackend.connect(credentials, token)


# ---------------------------------------------------------------------------
# Subcommand: sync
# ---------------------------------------------------------------------------

_ATTENDEE_OPT = Annotated[
    list[str] | None,
    typer.Option("--attendee", "-a", help="Attendee email to invite (repeatable; overrides config)"),
]
_MAIN_OPT = Annotated[
    str | None,
    typer.Option("--main-calendar", "-m", help="Main calendar id (default: primary)"),
]
_DETAILS_OPT = Annotated[
    bool | None,
    typer.Option(
        "--details/--no-details",
        help="Copy title and description to shadow events instead of 'busy'",
        show_default=False,
    ),
]
_ACCEPTED_OPT = Annotated[
    bool | None,
    typer.Option(
        "--accepted-only/--all-responses",
        help="Mirror only events you have accepted (tentative/unanswered are skipped)",
        show_default=False,
    ),
]
_DRY_RUN = Annotated[bool, typer.Option("--dry-run", "-n", help="Preview changes without applying")]


@app.command()
def sync(
    full: Annotated[
        bool, typer.Option("--full", help="Discard the sync token and re-scan the next year")
    ] = False,
    attendee: _ATTENDEE_OPT = None,
    main_calendar: _MAIN_OPT = None,
    details: _DETAILS_OPT = None,
    accepted_only: _ACCEPTED_OPT = None,
    dry_run: _DRY_RUN = False,
) -> None:
    """Synchronise the shadow calendar (incremental by default)."""
    file_values = load_config_file(state.config_path)
    cfg = build_shadow_config(
        file_values,
        attendees=attendee,
        main_calendar_id=main_calendar,
        show_full_details=details,
        accepted_only=accepted_only,
    )
    if not cfg.attendee_emails:
        console.print(
            "[yellow]Warning:[/] no attendees configured — shadow events will not be shared."
        )

    sink = ConsoleNotificationSink(console)
    try:
        backend = _connect_backend(file_values)
    except CalendarShadowError as e:
        sink.error(str(e))
        raise typer.Exit(1) from None

    with StateDatabase(state.state_db, _store_key(cfg)) as state_db:
        coordinator = SyncCoordinator(cfg, backend, state_db, dry_run=dry_run)
        try:
            outcome = coordinator.full_sync() if full else coordinator.incremental_sync()
        except KeyboardInterrupt:
            console.print("[yellow]Interrupted by user[/]")
            raise typer.Exit(130) from None

    if not outcome.ok:
        sink.error(outcome.error or "unknown error")
        sink.summary(outcome)
        raise typer.Exit(1)
    sink.summary(outcome)


# ---------------------------------------------------------------------------
# Subcommand: status
# ---------------------------------------------------------------------------


@app.command()
def status() -> None:
    """Show configuration and stored sync state."""
    config_exists = state.config_path.exists()
    db_exists = state.state_db.exists()

    cfg = build_shadow_config(load_config_file(state.config_path))

    info = Text()
    info.append("  Config:     ", style="bold")
    info.append(str(state.config_path) + " ")
    info.append("✓" if config_exists else "(not found)", style="green" if config_exists else "red")
    info.append("\n  State DB:   ", style="bold")
    info.append(str(state.state_db) + " ")
    info.append("✓" if db_exists else "(not found)", style="green" if db_exists else "yellow")
    info.append("\n\n  Main:       ", style="bold")
    info.append(cfg.main_calendar_id or "primary")
    info.append("\n  Details:    ", style="bold")
    info.append("full" if cfg.show_full_details else "busy only")
    info.append("\n  Responses:  ", style="bold")
    info.append("accepted only" if cfg.accepted_only else "all but declined")
    info.append("\n  Attendees:  ", style="bold")
    info.append(", ".join(cfg.attendee_emails) or "(none)")

    console.print(Panel(info, title="[bold]Calendar Shadow — Status[/bold]"))

    rows = query_status_all(state.state_db)
    if not rows:
        console.print(
            "[yellow]No sync recorded yet — run[/] [cyan]calendar-shadow sync --full[/]"
        )
        return

    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("Main calendar")
    table.add_column("Shadow calendar", overflow="fold")
    table.add_column("Sync token")
    table.add_column("Last update")
    for row in rows:
        ts = row["last_update"] or 0
        table.add_row(
            row["main_calendar_id"],
            row["shadow_calendar_id"] or "—",
            Text("stored", style="green") if row["has_sync_token"] else Text("none", style="dim"),
            datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S") if ts else "—",
        )
    console.print(Panel(table, title="[bold]Stored state[/bold]", expand=False))


# ---------------------------------------------------------------------------
# Subcommand: reset
# ---------------------------------------------------------------------------


@app.command()
def reset(
    main_calendar: _MAIN_OPT = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Forget the stored shadow calendar id and sync token.

    The shadow calendar itself is left in place; the next sync creates a new one.
    """
    cfg = build_shadow_config(load_config_file(state.config_path), main_calendar_id=main_calendar)
    if not state.state_db.exists():
        console.print(f"[yellow]State database not found:[/] {state.state_db}")
        return
    if not yes:
        typer.confirm(f"Forget stored state for '{_store_key(cfg)}'?", abort=True)
    with StateDatabase(state.state_db, _store_key(cfg)) as state_db:
        state_db.clear_all()
    console.print("[green]Stored state cleared.[/]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    app()
