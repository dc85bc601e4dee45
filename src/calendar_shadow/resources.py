"""
Conversion between Calendar API event resources (plain dicts) and the typed models.
"""

import logging
from datetime import datetime
from datetime import timezone
from typing import Any

from calendar_shadow.models import ORIGIN_ID_KEY
from calendar_shadow.models import Attendee
from calendar_shadow.models import ShadowEvent
from calendar_shadow.models import ShadowPayload
from calendar_shadow.models import SourceEvent
from calendar_shadow.models import TimeWindow

_logger = logging.getLogger(__name__)


def parse_datetime(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime (naive values are taken as UTC)."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(value: datetime) -> str:
    return value.isoformat()


def parse_window(resource: dict[str, Any]) -> TimeWindow | None:
    """Return the timed window of an event resource.

    All-day events (``date`` instead of ``dateTime``) and events without
    start/end, such as cancelled entries in an incremental feed, yield None.
    """
    start = resource.get("start") or {}
    end = resource.get("end") or {}
    if not start.get("dateTime") or not end.get("dateTime"):
        return None
    try:
        return TimeWindow(
            start=parse_datetime(start["dateTime"]),
            end=parse_datetime(end["dateTime"]),
            start_tz=start.get("timeZone"),
            end_tz=end.get("timeZone"),
        )
    except ValueError:
        _logger.warning(f"Unparseable time window on event {resource.get('id')}")
        return None


def _empty_to_none(value: str | None) -> str | None:
    return value if value else None


def get_origin_id(resource: dict[str, Any]) -> str | None:
    """Read the origin tag from a shadow event resource (None if untagged)."""
    shared = (resource.get("extendedProperties") or {}).get("shared") or {}
    return shared.get(ORIGIN_ID_KEY)


def parse_source_event(resource: dict[str, Any]) -> SourceEvent:
    attendees = tuple(
        Attendee(
            email=a.get("email", ""),
            self=bool(a.get("self", False)),
            response_status=a.get("responseStatus"),
        )
        for a in resource.get("attendees") or []
    )
    return SourceEvent(
        id=resource["id"],
        window=parse_window(resource),
        status=resource.get("status", "confirmed"),
        transparency=resource.get("transparency", "opaque"),
        summary=resource.get("summary"),
        description=_empty_to_none(resource.get("description")),
        attendees=attendees,
    )


def parse_shadow_event(resource: dict[str, Any]) -> ShadowEvent:
    return ShadowEvent(
        id=resource["id"],
        origin_id=get_origin_id(resource),
        window=parse_window(resource),
        summary=_empty_to_none(resource.get("summary")),
        description=_empty_to_none(resource.get("description")),
        attendee_emails=tuple(
            a["email"] for a in resource.get("attendees") or [] if a.get("email")
        ),
    )


def _time_field(value: datetime, tz: str | None) -> dict[str, str]:
    body = {"dateTime": format_datetime(value)}
    if tz:
        body["timeZone"] = tz
    return body


def payload_to_resource(payload: ShadowPayload) -> dict[str, Any]:
    """Serialize a payload into the body sent on insert and patch."""
    return {
        "summary": payload.summary,
        "description": payload.description,
        "start": _time_field(payload.window.start, payload.window.start_tz),
        "end": _time_field(payload.window.end, payload.window.end_tz),
        "attendees": [{"email": email} for email in payload.attendee_emails],
        "extendedProperties": {"shared": {ORIGIN_ID_KEY: payload.origin_id}},
    }
