"""
Google Calendar API connectivity wrapper.
"""

import logging
from pathlib import Path
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.exceptions import TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from calendar_shadow.models import BackendError
from calendar_shadow.models import CalendarShadowError
from calendar_shadow.models import InvalidSyncTokenError
from calendar_shadow.models import NotFoundError
from calendar_shadow.models import RateLimitedError
from calendar_shadow.models import TransientBackendError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]

# 403 reasons Google uses for quota and rate limiting (as opposed to permission errors).
_RATE_LIMIT_REASONS = frozenset(
    {
        "rateLimitExceeded",
        "userRateLimitExceeded",
        "quotaExceeded",
        "dailyLimitExceeded",
    }
)
_USAGE_LIMIT_TEXT = "usage limits exceeded"


def _error_reasons(e: HttpError) -> set[str]:
    details = getattr(e, "error_details", None) or []
    if isinstance(details, str):
        return set()
    return {d.get("reason", "") for d in details if isinstance(d, dict)}


def translate_http_error(e: HttpError, sync_listing: bool = False) -> BackendError:
    """Map a googleapiclient HttpError onto the backend error kinds.

    A 410 Gone on a listing that carried a sync token means the token
    expired; elsewhere 404 and 410 both mean the object no longer exists.
    """
    status = getattr(e.resp, "status", None)
    message = str(e)
    if status == 410 and sync_listing:
        return InvalidSyncTokenError(message)
    if status in (404, 410):
        return NotFoundError(message)
    if status == 429:
        return RateLimitedError(message)
    if status == 403 and (
        _error_reasons(e) & _RATE_LIMIT_REASONS or _USAGE_LIMIT_TEXT in message.lower()
    ):
        return RateLimitedError(message)
    if status is not None and 500 <= int(status) < 600:
        return TransientBackendError(message)
    return BackendError(message)


def load_credentials(credentials_file: Path, token_file: Path) -> Credentials:
    """Load a stored OAuth token, refreshing it or running the installed-app flow."""
    creds = None
    if token_file.exists():
        creds = Credentials.from_authorized_user_file(str(token_file), SCOPES)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        logger.debug("Refreshing expired Google token")
        try:
            creds.refresh(Request())
        except GoogleAuthError as e:
            raise CalendarShadowError(
                f"Could not refresh the Google token in {token_file}: {e}. "
                "Delete the file to sign in again."
            ) from e
    else:
        if not credentials_file.exists():
            raise CalendarShadowError(
                f"Google OAuth client secrets not found: {credentials_file}. "
                "Download them from the Google Cloud Console."
            )
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_file), SCOPES)
        creds = flow.run_local_server(port=0)

    token_file.parent.mkdir(parents=True, exist_ok=True)
    token_file.write_text(creds.to_json(), encoding="utf-8")
    return creds


class GoogleCalendarBackend:
    """CalendarBackend implementation over the Google Calendar v3 API."""

    def __init__(self, service=None):
        self._service = service

    @classmethod
    def connect(cls, credentials_file: Path, token_file: Path) -> "GoogleCalendarBackend":
        creds = load_credentials(credentials_file, token_file)
        return cls(build("calendar", "v3", credentials=creds, cache_discovery=False))

    @property
    def service(self):
        if self._service is None:
            raise CalendarShadowError("Backend not connected")
        return self._service

    def _execute(self, request, sync_listing: bool = False) -> Any:
        try:
            return request.execute(num_retries=0)
        except HttpError as e:
            raise translate_http_error(e, sync_listing=sync_listing) from e
        except (TransportError, httplib2.HttpLib2Error, OSError) as e:
            raise TransientBackendError(f"Network error: {e}") from e
        except GoogleAuthError as e:
            raise BackendError(f"Google authorization failed: {e}") from e

    def list_events(
        self,
        calendar_id: str,
        *,
        time_min: str | None = None,
        time_max: str | None = None,
        sync_token: str | None = None,
        page_token: str | None = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"calendarId": calendar_id, "singleEvents": True}
        if sync_token:
            kwargs["syncToken"] = sync_token
        else:
            if time_min:
                kwargs["timeMin"] = time_min
            if time_max:
                kwargs["timeMax"] = time_max
        if page_token:
            kwargs["pageToken"] = page_token
        return self._execute(self.service.events().list(**kwargs), sync_listing=bool(sync_token))

    def insert_event(self, body: dict[str, Any], calendar_id: str, notify: bool = True) -> dict[str, Any]:
        return self._execute(
            self.service.events().insert(
                calendarId=calendar_id, body=body, sendUpdates="all" if notify else "none"
            )
        )

    def patch_event(
        self, body: dict[str, Any], calendar_id: str, event_id: str, notify: bool = True
    ) -> dict[str, Any]:
        return self._execute(
            self.service.events().patch(
                calendarId=calendar_id,
                eventId=event_id,
                body=body,
                sendUpdates="all" if notify else "none",
            )
        )

    def delete_event(self, calendar_id: str, event_id: str, notify: bool = True) -> None:
        self._execute(
            self.service.events().delete(
                calendarId=calendar_id, eventId=event_id, sendUpdates="all" if notify else "none"
            )
        )

    def get_calendar(self, calendar_id: str) -> dict[str, Any]:
        return self._execute(self.service.calendars().get(calendarId=calendar_id))

    def insert_calendar(self, summary: str) -> dict[str, Any]:
        return self._execute(self.service.calendars().insert(body={"summary": summary}))
