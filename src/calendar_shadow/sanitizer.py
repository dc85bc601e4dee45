"""
Shadow payload construction — strips event details unless full details are enabled.
"""

from calendar_shadow.models import BUSY_DESCRIPTION
from calendar_shadow.models import BUSY_SUMMARY
from calendar_shadow.models import SHADOW_SUFFIX
from calendar_shadow.models import CalendarShadowError
from calendar_shadow.models import ShadowConfig
from calendar_shadow.models import ShadowEvent
from calendar_shadow.models import ShadowPayload
from calendar_shadow.models import SourceEvent


class EventSanitizer:
    """Builds the body of a shadow event from a source event."""

    @staticmethod
    def is_managed_event(event: ShadowEvent) -> bool:
        """Check if a shadow-calendar event was created by this tool."""
        return bool(event.origin_id)

    @staticmethod
    def shadow_summary(summary: str | None) -> str:
        title = (summary or "").strip()
        return f"{title} {SHADOW_SUFFIX}" if title else SHADOW_SUFFIX

    @classmethod
    def sanitize(cls, event: SourceEvent, config: ShadowConfig) -> ShadowPayload:
        """
        Build the candidate shadow payload for a source event.

        Args:
            event: Source event with a time window
            config: Pass configuration; ``show_full_details`` selects the mode:
                    details = title (suffixed) and description copied,
                    busy    = generic placeholder title and description

        Returns:
            ShadowPayload tagged with the source event id and carrying the
            configured attendee list in place of the original guests
        """
        if event.window is None:
            raise CalendarShadowError(f"Event {event.id} has no time window")

        if config.show_full_details:
            summary = cls.shadow_summary(event.summary)
            description = event.description or None
        else:
            summary = BUSY_SUMMARY
            description = BUSY_DESCRIPTION

        return ShadowPayload(
            origin_id=event.id,
            window=event.window,
            summary=summary,
            description=description,
            attendee_emails=tuple(config.attendee_emails),
        )
