"""
Tests for EventSanitizer — shadow payload content in busy and detail modes.
"""

import pytest

from calendar_shadow.models import BUSY_DESCRIPTION
from calendar_shadow.models import BUSY_SUMMARY
from calendar_shadow.models import ORIGIN_ID_KEY
from calendar_shadow.models import CalendarShadowError
from calendar_shadow.models import ShadowConfig
from calendar_shadow.resources import parse_shadow_event
from calendar_shadow.resources import parse_source_event
from calendar_shadow.resources import payload_to_resource
from calendar_shadow.sanitizer import EventSanitizer
from tests.fake_backend import make_event

ATTENDEES = ("a@example.org", "b@example.org")


def _source(**kwargs):
    return parse_source_event(
        make_event("E1", summary="Board review", description="Quarterly numbers", **kwargs)
    )


class TestBusyMode:
    def test_details_are_replaced(self):
        payload = EventSanitizer.sanitize(_source(), ShadowConfig(attendee_emails=ATTENDEES))
        assert payload.summary == BUSY_SUMMARY
        assert payload.description == BUSY_DESCRIPTION

    def test_original_guests_are_replaced_by_configured_attendees(self):
        payload = EventSanitizer.sanitize(
            _source(response="accepted"), ShadowConfig(attendee_emails=ATTENDEES)
        )
        assert payload.attendee_emails == ATTENDEES

    def test_payload_is_tagged_with_origin(self):
        payload = EventSanitizer.sanitize(_source(), ShadowConfig())
        resource = payload_to_resource(payload)
        assert resource["extendedProperties"]["shared"][ORIGIN_ID_KEY] == "E1"

    def test_time_window_is_copied_with_timezone(self):
        payload = EventSanitizer.sanitize(_source(), ShadowConfig())
        resource = payload_to_resource(payload)
        assert resource["start"]["timeZone"] == "America/New_York"
        assert resource["start"]["dateTime"].startswith("2026-11-02T14:00:00")


class TestDetailMode:
    def test_summary_is_suffixed(self):
        payload = EventSanitizer.sanitize(_source(), ShadowConfig(show_full_details=True))
        assert payload.summary == "Board review [shadow]"
        assert payload.description == "Quarterly numbers"

    def test_untitled_event(self):
        resource = make_event("E1")
        del resource["summary"]
        payload = EventSanitizer.sanitize(
            parse_source_event(resource), ShadowConfig(show_full_details=True)
        )
        assert payload.summary == "[shadow]"
        assert payload.description is None


def test_event_without_window_is_rejected():
    event = parse_source_event(make_event("E1", start=None, end=None))
    with pytest.raises(CalendarShadowError):
        EventSanitizer.sanitize(event, ShadowConfig())


def test_untagged_shadow_event_is_not_managed():
    shadow = parse_shadow_event({"id": "x", "summary": "Lunch"})
    assert EventSanitizer.is_managed_event(shadow) is False
