"""
Tests for GoogleCalendarBackend request building and HttpError translation.

The discovery service is replaced by a MagicMock so no network is needed.
"""

import json
from unittest.mock import MagicMock

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from calendar_shadow import google_backend as google_backend_module
from calendar_shadow.google_backend import GoogleCalendarBackend
from calendar_shadow.google_backend import load_credentials
from calendar_shadow.google_backend import translate_http_error
from calendar_shadow.models import BackendError
from calendar_shadow.models import CalendarShadowError
from calendar_shadow.models import InvalidSyncTokenError
from calendar_shadow.models import NotFoundError
from calendar_shadow.models import RateLimitedError
from calendar_shadow.models import TransientBackendError


def _http_error(status: int, reason: str = "", message: str = "error") -> HttpError:
    body = {"error": {"code": status, "message": message}}
    if reason:
        body["error"]["errors"] = [{"reason": reason, "message": message}]
    return HttpError(httplib2.Response({"status": status}), json.dumps(body).encode("utf-8"))


class TestTranslateHttpError:
    def test_gone_on_sync_listing_is_invalid_token(self):
        assert isinstance(translate_http_error(_http_error(410), sync_listing=True), InvalidSyncTokenError)

    @pytest.mark.parametrize("status", [404, 410])
    def test_missing_objects(self, status):
        assert type(translate_http_error(_http_error(status))) is NotFoundError

    def test_too_many_requests(self):
        assert isinstance(translate_http_error(_http_error(429)), RateLimitedError)

    def test_forbidden_rate_limit_reason(self):
        err = translate_http_error(_http_error(403, reason="rateLimitExceeded"))
        assert isinstance(err, RateLimitedError)

    def test_forbidden_usage_limit_message(self):
        err = translate_http_error(_http_error(403, message="Calendar usage limits exceeded."))
        assert isinstance(err, RateLimitedError)

    def test_forbidden_permission_is_permanent(self):
        err = translate_http_error(_http_error(403, reason="forbidden", message="Forbidden"))
        assert type(err) is BackendError

    @pytest.mark.parametrize("status", [500, 502, 503])
    def test_server_errors_are_transient(self, status):
        assert type(translate_http_error(_http_error(status))) is TransientBackendError

    def test_bad_request_is_permanent(self):
        assert type(translate_http_error(_http_error(400))) is BackendError


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def google(service):
    return GoogleCalendarBackend(service)


class TestRequests:
    def test_window_listing(self, google, service):
        service.events().list().execute.return_value = {"items": []}

        google.list_events("cal", time_min="2026-10-19T12:00:00+00:00", time_max="2027-10-19T12:00:00+00:00")

        service.events().list.assert_called_with(
            calendarId="cal",
            singleEvents=True,
            timeMin="2026-10-19T12:00:00+00:00",
            timeMax="2027-10-19T12:00:00+00:00",
        )

    def test_sync_listing_drops_window(self, google, service):
        google.list_events("cal", time_min="x", time_max="y", sync_token="tok", page_token="p2")

        service.events().list.assert_called_with(
            calendarId="cal", singleEvents=True, syncToken="tok", pageToken="p2"
        )

    def test_expired_sync_token(self, google, service):
        service.events().list().execute.side_effect = _http_error(410)
        with pytest.raises(InvalidSyncTokenError):
            google.list_events("cal", sync_token="tok")

    def test_mutations_notify_attendees(self, google, service):
        google.insert_event({"summary": "busy [shadow]"}, "cal")
        service.events().insert.assert_called_with(
            calendarId="cal", body={"summary": "busy [shadow]"}, sendUpdates="all"
        )

        google.delete_event("cal", "ev", notify=False)
        service.events().delete.assert_called_with(calendarId="cal", eventId="ev", sendUpdates="none")

    def test_patch(self, google, service):
        google.patch_event({"summary": "x"}, "cal", "ev")
        service.events().patch.assert_called_with(
            calendarId="cal", eventId="ev", body={"summary": "x"}, sendUpdates="all"
        )

    def test_retries_left_to_gateway(self, google, service):
        google.get_calendar("primary")
        service.calendars().get().execute.assert_called_with(num_retries=0)

    def test_network_errors_are_transient(self, google, service):
        service.calendars().get().execute.side_effect = httplib2.ServerNotFoundError("dns")
        with pytest.raises(TransientBackendError):
            google.get_calendar("primary")

    def test_missing_calendar(self, google, service):
        service.calendars().get().execute.side_effect = _http_error(404)
        with pytest.raises(NotFoundError):
            google.get_calendar("gone")

    def test_revoked_authorization_is_a_backend_error(self, google, service):
        service.events().list().execute.side_effect = RefreshError("invalid_grant: Token has been revoked.")
        with pytest.raises(BackendError) as excinfo:
            google.list_events("cal")
        assert not isinstance(excinfo.value, TransientBackendError)
        assert "invalid_grant" in str(excinfo.value)


def test_failed_token_refresh_is_reported(tmp_path, monkeypatch):
    token_file = tmp_path / "token.json"
    token_file.write_text("{}")
    stale = MagicMock(valid=False, expired=True, refresh_token="refresh")
    stale.refresh.side_effect = RefreshError("invalid_grant")
    monkeypatch.setattr(
        google_backend_module.Credentials,
        "from_authorized_user_file",
        MagicMock(return_value=stale),
    )

    with pytest.raises(CalendarShadowError, match="invalid_grant"):
        load_credentials(tmp_path / "credentials.json", token_file)
