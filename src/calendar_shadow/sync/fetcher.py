"""
Paginated event retrieval, full-window or incremental.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Any

from calendar_shadow.backend import CalendarBackend
from calendar_shadow.gateway import RetryingApiGateway
from calendar_shadow.models import InvalidSyncTokenError
from calendar_shadow.models import StaleSyncTokenError
from calendar_shadow.resources import format_datetime

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    events: list[dict[str, Any]] = field(default_factory=list)
    next_sync_token: str | None = None


class EventFetcher:
    """Retrieves every page of a calendar listing before returning."""

    def __init__(self, backend: CalendarBackend, gateway: RetryingApiGateway):
        self.backend = backend
        self.gateway = gateway

    def fetch(
        self,
        calendar_id: str,
        window_start: datetime,
        window_end: datetime,
        sync_token: str | None = None,
    ) -> FetchResult:
        """
        List events on a calendar.

        With a sync token only the changes since that token are requested and
        the window bounds are not sent (the API rejects them in that mode).
        Without one the listing covers [window_start, window_end).

        Raises:
            StaleSyncTokenError: the backend no longer accepts ``sync_token``
        """
        params: dict[str, Any] = {}
        if sync_token:
            logger.debug(f"Incremental listing of {calendar_id}")
            params["sync_token"] = sync_token
        else:
            logger.debug(
                f"Full listing of {calendar_id} from {window_start:%Y-%m-%d} to {window_end:%Y-%m-%d}"
            )
            params["time_min"] = format_datetime(window_start)
            params["time_max"] = format_datetime(window_end)

        events: list[dict[str, Any]] = []
        page_token = None
        pages = 0
        while True:
            try:
                response = self.gateway.call(
                    "list",
                    self.backend.list_events,
                    calendar_id,
                    page_token=page_token,
                    **params,
                )
            except InvalidSyncTokenError as e:
                raise StaleSyncTokenError(f"Sync token for {calendar_id} is no longer valid") from e
            pages += 1
            events.extend(response.get("items") or [])
            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.debug(f"Fetched {len(events)} events from {calendar_id} in {pages} page(s)")
        return FetchResult(events=events, next_sync_token=response.get("nextSyncToken"))
