"""
Source → shadow reconciliation: decides which shadow events to create, update or delete.
"""

import logging
from collections.abc import Iterable
from collections.abc import Sequence
from datetime import datetime
from datetime import timezone

from calendar_shadow.filters import is_event_cancelled
from calendar_shadow.filters import is_free_time
from calendar_shadow.filters import should_mirror
from calendar_shadow.models import OperationKind
from calendar_shadow.models import ShadowConfig
from calendar_shadow.models import ShadowEvent
from calendar_shadow.models import ShadowOperation
from calendar_shadow.models import ShadowPayload
from calendar_shadow.models import SourceEvent
from calendar_shadow.models import TimeWindow
from calendar_shadow.sanitizer import EventSanitizer

logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def sort_source_events(events: Iterable[SourceEvent]) -> list[SourceEvent]:
    """Order by start instant, then id. Events without a window come first."""
    return sorted(events, key=lambda e: (e.window.start if e.window else _EARLIEST, e.id))


def index_by_origin(shadow_events: Iterable[ShadowEvent]) -> dict[str, list[ShadowEvent]]:
    """Group managed shadow events by origin id, keeping list order within each group."""
    index: dict[str, list[ShadowEvent]] = {}
    for shadow in shadow_events:
        if EventSanitizer.is_managed_event(shadow):
            index.setdefault(shadow.origin_id, []).append(shadow)
    return index


# ---------------------------------------------------------------------------
# Field comparisons
# ---------------------------------------------------------------------------


def attendees_equal(a: Sequence[str], b: Sequence[str]) -> bool:
    """Compare attendee lists as case-insensitive email sets."""
    return {e.lower() for e in a} == {e.lower() for e in b}


def instants_equal(a: datetime | None, b: datetime | None) -> bool:
    """Compare two timestamps as absolute instants, ignoring their timezones."""
    if a is None or b is None:
        return a is b
    return a == b


def _start(window: TimeWindow | None) -> datetime | None:
    return window.start if window else None


def _end(window: TimeWindow | None) -> datetime | None:
    return window.end if window else None


def diff_shadow(payload: ShadowPayload, shadow: ShadowEvent) -> list[str]:
    """Return the names of the fields where the existing shadow differs from the payload."""
    changed = []
    if not attendees_equal(payload.attendee_emails, shadow.attendee_emails):
        changed.append("attendees")
    if not instants_equal(payload.window.start, _start(shadow.window)):
        changed.append("start")
    if not instants_equal(payload.window.end, _end(shadow.window)):
        changed.append("end")
    if payload.summary != shadow.summary:
        changed.append("summary")
    if payload.description != shadow.description:
        changed.append("description")
    if payload.origin_id != shadow.origin_id:
        changed.append("extendedProperties")
    return changed


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def _retraction_reason(event: SourceEvent, accepted_only: bool) -> str | None:
    if is_event_cancelled(event):
        return "cancelled"
    if is_free_time(event):
        return "free"
    if not should_mirror(event, accepted_only):
        return "declined or not accepted"
    return None


class Reconciler:
    """Plans shadow-calendar mutations for one pass. Planning has no side effects."""

    def __init__(self, config: ShadowConfig):
        self.config = config

    def plan(
        self,
        source_events: Iterable[SourceEvent],
        shadow_events: Iterable[ShadowEvent],
    ) -> list[ShadowOperation]:
        """
        Compare source events with the shadow calendar.

        Only the first shadow event per origin id is created, updated or
        deleted here; further copies are left to the duplicate scanner.
        """
        by_origin = index_by_origin(shadow_events)
        operations: list[ShadowOperation] = []

        for event in sort_source_events(source_events):
            existing = by_origin.get(event.id, [])
            match = existing[0] if existing else None
            reason = _retraction_reason(event, self.config.accepted_only)

            if reason is not None:
                if match is not None:
                    logger.debug(f"Retracting shadow of {event.id} ({reason})")
                    operations.append(
                        ShadowOperation(
                            kind=OperationKind.DELETE,
                            origin_id=event.id,
                            shadow_id=match.id,
                            reason=reason,
                        )
                    )
                continue

            if event.window is None:
                logger.debug(f"Skipping {event.id}: no start/end time (all-day or malformed)")
                continue

            payload = EventSanitizer.sanitize(event, self.config)

            if match is None:
                operations.append(
                    ShadowOperation(kind=OperationKind.CREATE, origin_id=event.id, payload=payload)
                )
                continue

            changed = diff_shadow(payload, match)
            if changed:
                operations.append(
                    ShadowOperation(
                        kind=OperationKind.UPDATE,
                        origin_id=event.id,
                        shadow_id=match.id,
                        payload=payload,
                        changed_fields=tuple(changed),
                    )
                )
            else:
                logger.debug(f"No updates to shadow of {event.id}")

        return operations
