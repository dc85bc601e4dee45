"""
Operator-facing completion summaries.
"""

from typing import Protocol

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from calendar_shadow.models import SyncOutcome
from calendar_shadow.models import TriggerIntent

_TRIGGER_HINTS = {
    TriggerIntent.MONTHLY_FULL_RESYNC: "Run [cyan]calendar-shadow sync --full[/] monthly "
    "(e.g. cron [dim]0 3 1 * *[/dim]) to pick up new attendees on existing events.",
    TriggerIntent.EVENT_CHANGE_INCREMENTAL: "Run [cyan]calendar-shadow sync[/] whenever the "
    "main calendar changes (or on a short interval) for incremental updates.",
}


class NotificationSink(Protocol):
    def summary(self, outcome: SyncOutcome) -> None: ...

    def error(self, message: str) -> None: ...


class ConsoleNotificationSink:
    """Renders pass results with rich."""

    def __init__(self, console: Console):
        self.console = console

    def summary(self, outcome: SyncOutcome) -> None:
        results = Table.grid(padding=(0, 2))
        results.add_column(style="bold")
        results.add_column(justify="right")
        for name, value in outcome.result.as_dict().items():
            results.add_row(name.capitalize(), str(value))

        title = f"[bold]Results — {outcome.mode.value} sync"
        if outcome.dry_run:
            title += " (dry run)"
        title += "[/bold]"
        self.console.print(Panel(results, title=title, expand=False))

        if outcome.fell_back_to_full:
            self.console.print(
                "[yellow]Sync token had expired — this pass re-scanned the full window.[/]"
            )

        if outcome.trigger_intents:
            info = Text()
            info.append(
                "Your shadow calendar has been synced and invites have been sent to the "
                "configured attendees for events in the next year.\n"
            )
            for intent in outcome.trigger_intents:
                info.append("\n  • ")
                info.append_text(Text.from_markup(_TRIGGER_HINTS[intent]))
            self.console.print(Panel(info, title="[bold]Sync Completed[/bold]"))

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]An error was encountered:[/] {message}")
