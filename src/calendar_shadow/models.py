"""
Pure data models and error types — no Google API or sqlite imports.
"""

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from enum import Enum
from pathlib import Path

DEFAULT_STATE_DB = Path.home() / ".local/share/calendar-shadow-state.db"
DEFAULT_CONFIG = Path.home() / ".config/calendar-shadow.conf"
DEFAULT_CREDENTIALS = Path.home() / ".config/calendar-shadow/credentials.json"
DEFAULT_TOKEN = Path.home() / ".config/calendar-shadow/token.json"

# Key under extendedProperties.shared linking a shadow event to its source.
ORIGIN_ID_KEY = "originId"
SHADOW_SUFFIX = "[shadow]"
BUSY_SUMMARY = f"busy {SHADOW_SUFFIX}"
BUSY_DESCRIPTION = "shadow event"
SHADOW_CALENDAR_NAME = "Shadow"


class CalendarShadowError(Exception):
    """Base exception for calendar shadow errors."""

    pass


class ConfigurationError(CalendarShadowError):
    """The main calendar cannot be resolved; aborts a pass before any mutation."""

    pass


class StaleSyncTokenError(CalendarShadowError):
    """The stored sync token was rejected; the caller must fall back to a full fetch."""

    pass


class BackendError(CalendarShadowError):
    """Failure reported by the calendar backend."""

    pass


class NotFoundError(BackendError):
    pass


class InvalidSyncTokenError(BackendError):
    pass


class TransientBackendError(BackendError):
    """Network, 5xx or rate-limit failure; retried by the gateway."""

    pass


class RateLimitedError(TransientBackendError):
    pass


class ShadowCategory(str, Enum):
    FOUND = "found"
    DUPLICATE = "duplicate"
    MISSING = "missing"


class OperationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncMode(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


class TriggerIntent(str, Enum):
    """Scheduling the coordinator asks its caller to install after a full sync."""

    MONTHLY_FULL_RESYNC = "monthly-full-resync"
    EVENT_CHANGE_INCREMENTAL = "event-change-incremental"


@dataclass(frozen=True)
class ShadowConfig:
    """Immutable configuration for one sync pass."""

    attendee_emails: tuple[str, ...] = ()
    main_calendar_id: str = ""
    show_full_details: bool = False
    accepted_only: bool = False


@dataclass(frozen=True)
class Attendee:
    email: str
    self: bool = False
    response_status: str | None = None


@dataclass(frozen=True)
class TimeWindow:
    """Timed start/end of an event; both are timezone-aware."""

    start: datetime
    end: datetime
    start_tz: str | None = None
    end_tz: str | None = None


@dataclass(frozen=True)
class SourceEvent:
    """An event on the main calendar. Read-only to the sync engine."""

    id: str
    window: TimeWindow | None = None
    status: str = "confirmed"
    transparency: str = "opaque"
    summary: str | None = None
    description: str | None = None
    attendees: tuple[Attendee, ...] = ()


@dataclass(frozen=True)
class ShadowEvent:
    """An event on the shadow calendar, as last read from the backend."""

    id: str
    origin_id: str | None
    window: TimeWindow | None = None
    summary: str | None = None
    description: str | None = None
    attendee_emails: tuple[str, ...] = ()


@dataclass(frozen=True)
class ShadowPayload:
    """Candidate body for a shadow event."""

    origin_id: str
    window: TimeWindow
    summary: str
    description: str | None
    attendee_emails: tuple[str, ...]


@dataclass(frozen=True)
class ShadowOperation:
    """One planned mutation of the shadow calendar."""

    kind: OperationKind
    origin_id: str
    shadow_id: str | None = None
    payload: ShadowPayload | None = None
    changed_fields: tuple[str, ...] = ()
    reason: str = ""


@dataclass
class SyncState:
    """Persisted cursor state for one main calendar."""

    shadow_calendar_id: str | None = None
    sync_token: str | None = None


@dataclass
class ReconciliationResult:
    """Statistics for a sync pass."""

    created: int = 0
    updated: int = 0
    deleted: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"created": self.created, "updated": self.updated, "deleted": self.deleted}


@dataclass
class SyncOutcome:
    """Structured result of a pass; failures are reported here rather than raised."""

    mode: SyncMode
    result: ReconciliationResult = field(default_factory=ReconciliationResult)
    ok: bool = True
    error: str | None = None
    fell_back_to_full: bool = False
    dry_run: bool = False
    trigger_intents: tuple[TriggerIntent, ...] = ()
