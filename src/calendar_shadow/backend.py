"""
Narrow calendar backend interface consumed by the sync engine.
"""

from typing import Any
from typing import Protocol


class CalendarBackend(Protocol):
    """Calendar operations the sync engine needs.

    Implementations raise NotFoundError, InvalidSyncTokenError,
    RateLimitedError or TransientBackendError (all from
    calendar_shadow.models) so the gateway and coordinator can tell
    failures apart.
    """

    def list_events(
        self,
        calendar_id: str,
        *,
        time_min: str | None = None,
        time_max: str | None = None,
        sync_token: str | None = None,
        page_token: str | None = None,
    ) -> dict[str, Any]:
        """Return one page: ``{"items", "nextPageToken"?, "nextSyncToken"?}``."""
        ...

    def insert_event(self, body: dict[str, Any], calendar_id: str, notify: bool = True) -> dict[str, Any]: ...

    def patch_event(
        self, body: dict[str, Any], calendar_id: str, event_id: str, notify: bool = True
    ) -> dict[str, Any]: ...

    def delete_event(self, calendar_id: str, event_id: str, notify: bool = True) -> None: ...

    def get_calendar(self, calendar_id: str) -> dict[str, Any]: ...

    def insert_calendar(self, summary: str) -> dict[str, Any]: ...
