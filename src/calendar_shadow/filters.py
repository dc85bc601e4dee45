"""
Stateless predicates deciding which source events are mirrored.
"""

from collections.abc import Iterable

from calendar_shadow.models import SourceEvent


def is_event_cancelled(event: SourceEvent) -> bool:
    return event.status == "cancelled"


def is_free_time(event: SourceEvent) -> bool:
    """Return True if the event is transparent (shown as free).

    The default transparency is opaque, which blocks time.
    """
    return event.transparency == "transparent"


def should_mirror(event: SourceEvent, accepted_only: bool) -> bool:
    """Apply the owner's RSVP and the acceptance policy.

    Events without attendees or without a self entry are always mirrored.
    A declined invitation is never mirrored; an accepted one always is.
    Tentative and unanswered invitations are mirrored unless the policy
    restricts mirroring to accepted events.
    """
    me = next((a for a in event.attendees if a.self), None)
    if me is None:
        return True
    if me.response_status == "declined":
        return False
    if me.response_status == "accepted":
        return True
    return not accepted_only


def is_mirrorable(event: SourceEvent, accepted_only: bool) -> bool:
    """True if the event should currently have a shadow copy."""
    return (
        event.window is not None
        and not is_event_cancelled(event)
        and not is_free_time(event)
        and should_mirror(event, accepted_only)
    )


def live_source_ids(events: Iterable[SourceEvent], accepted_only: bool) -> set[str]:
    return {e.id for e in events if is_mirrorable(e, accepted_only)}
