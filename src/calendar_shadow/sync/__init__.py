"""
SyncCoordinator — orchestrates fetch, reconcile and cleanup for one pass.
"""

import logging
from collections.abc import Callable
from collections.abc import Sequence
from datetime import datetime
from datetime import timedelta
from datetime import timezone

from calendar_shadow.backend import CalendarBackend
from calendar_shadow.db import StateDatabase
from calendar_shadow.filters import is_free_time
from calendar_shadow.filters import live_source_ids
from calendar_shadow.filters import should_mirror
from calendar_shadow.gateway import RetryingApiGateway
from calendar_shadow.models import SHADOW_CALENDAR_NAME
from calendar_shadow.models import BackendError
from calendar_shadow.models import ConfigurationError
from calendar_shadow.models import NotFoundError
from calendar_shadow.models import OperationKind
from calendar_shadow.models import ReconciliationResult
from calendar_shadow.models import ShadowConfig
from calendar_shadow.models import ShadowOperation
from calendar_shadow.models import StaleSyncTokenError
from calendar_shadow.models import SyncMode
from calendar_shadow.models import SyncOutcome
from calendar_shadow.models import SyncState
from calendar_shadow.models import TriggerIntent
from calendar_shadow.resources import parse_shadow_event
from calendar_shadow.resources import parse_source_event
from calendar_shadow.resources import payload_to_resource
from calendar_shadow.sync.fetcher import EventFetcher
from calendar_shadow.sync.fetcher import FetchResult
from calendar_shadow.sync.reconciler import Reconciler
from calendar_shadow.sync.scanner import DuplicateScanner

PROGRESS_EVERY = 25


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def one_year_after(moment: datetime) -> datetime:
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:  # 29 February
        return moment + timedelta(days=365)


class SyncCoordinator:
    """Runs full or incremental passes against one main/shadow calendar pair."""

    def __init__(
        self,
        config: ShadowConfig,
        backend: CalendarBackend,
        state_db: StateDatabase,
        gateway: RetryingApiGateway | None = None,
        dry_run: bool = False,
        now: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.backend = backend
        self.state_db = state_db
        self.gateway = gateway or RetryingApiGateway()
        self.dry_run = dry_run
        self.now = now
        self.logger = logging.getLogger(__name__)
        self.fetcher = EventFetcher(backend, self.gateway)
        self.reconciler = Reconciler(config)
        self.scanner = DuplicateScanner()

    def full_sync(self) -> SyncOutcome:
        """Discard the sync token and rebuild the shadow calendar for the next year."""
        return self._run(SyncMode.FULL)

    def incremental_sync(self) -> SyncOutcome:
        """Apply source changes since the stored sync token."""
        return self._run(SyncMode.INCREMENTAL)

    # ------------------------------------------------------------------ #
    # Pass                                                                 #
    # ------------------------------------------------------------------ #

    def _run(self, mode: SyncMode) -> SyncOutcome:
        outcome = SyncOutcome(mode=mode, dry_run=self.dry_run)
        try:
            main_id = self._resolve_main_calendar()
            self.logger.info(f"Main calendar using: {main_id}")

            state = self.state_db.load_state()
            if mode == SyncMode.FULL:
                state.sync_token = None

            shadow_id = self._resolve_shadow_calendar(state)

            window_start = self.now()
            window_end = one_year_after(window_start)

            source, dupe_only, outcome.fell_back_to_full = self._fetch_source(
                main_id, window_start, window_end, state
            )

            source_events = [parse_source_event(r) for r in source.events]
            self._log_filter_counts(source_events)

            shadow_snapshot = []
            if shadow_id:
                listing = self.fetcher.fetch(shadow_id, window_start, window_end)
                shadow_snapshot = [parse_shadow_event(r) for r in listing.events]
            self.logger.info(f"{len(shadow_snapshot)} shadow events...")

            operations = self.reconciler.plan(source_events, shadow_snapshot)
            deleted_ids = self._apply(operations, shadow_id, outcome.result)

            cleanup = self.scanner.plan(
                shadow_snapshot,
                live_source_ids(source_events, self.config.accepted_only),
                dupe_only=dupe_only,
                already_deleted=deleted_ids,
            )
            self._apply(cleanup, shadow_id, outcome.result)
            # the new token is stored only once every change it covers is applied
            self._save(state)

            if mode == SyncMode.FULL:
                outcome.trigger_intents = (
                    TriggerIntent.MONTHLY_FULL_RESYNC,
                    TriggerIntent.EVENT_CHANGE_INCREMENTAL,
                )
        except ConfigurationError as e:
            self.logger.error(f"Sync aborted: {e}")
            outcome.ok = False
            outcome.error = str(e)
        except BackendError as e:
            self.logger.error(f"Sync failed: {e}")
            outcome.ok = False
            outcome.error = str(e)

        r = outcome.result
        self.logger.info(
            f"{mode.value} sync finished: created={r.created} updated={r.updated} deleted={r.deleted}"
        )
        return outcome

    def _save(self, state: SyncState):
        if not self.dry_run:
            self.state_db.save_state(state)

    def _resolve_main_calendar(self) -> str:
        calendar_id = self.config.main_calendar_id
        if not calendar_id:
            return self.gateway.call("get", self.backend.get_calendar, "primary")["id"]
        try:
            return self.gateway.call("get", self.backend.get_calendar, calendar_id)["id"]
        except NotFoundError as e:
            raise ConfigurationError(f"Main calendar not found: {calendar_id}") from e

    def _resolve_shadow_calendar(self, state: SyncState) -> str | None:
        """Return the stored shadow calendar, creating one if none exists (or it was deleted)."""
        if state.shadow_calendar_id:
            try:
                self.gateway.call("get", self.backend.get_calendar, state.shadow_calendar_id)
                self.logger.info(f"Shadow calendar found with id: {state.shadow_calendar_id}")
                return state.shadow_calendar_id
            except NotFoundError:
                self.logger.warning(
                    f"Shadow calendar {state.shadow_calendar_id} no longer exists, creating a new one"
                )
                state.shadow_calendar_id = None

        if self.dry_run:
            self.logger.info("[DRY RUN] Would create a new shadow calendar")
            return None

        created = self.gateway.call("insert", self.backend.insert_calendar, SHADOW_CALENDAR_NAME)
        state.shadow_calendar_id = created["id"]
        self._save(state)
        self.logger.info(f"Created new calendar with id: {state.shadow_calendar_id}")
        return state.shadow_calendar_id

    def _fetch_source(
        self,
        main_id: str,
        window_start: datetime,
        window_end: datetime,
        state: SyncState,
    ) -> tuple[FetchResult, bool, bool]:
        """Fetch the main calendar and advance ``state.sync_token``.

        Returns (result, dupe_only, fell_back_to_full). ``dupe_only`` is True
        when the result is a delta feed, in which absent events are not orphans.
        """
        fell_back = False
        if state.sync_token:
            self.logger.info("Initiating incremental sync...")
            try:
                result = self.fetcher.fetch(main_id, window_start, window_end, state.sync_token)
                dupe_only = True
            except StaleSyncTokenError as e:
                self.logger.warning(f"{e}; falling back to a full sync for this pass")
                state.sync_token = None
                fell_back = True
                result = self.fetcher.fetch(main_id, window_start, window_end)
                dupe_only = False
        else:
            self.logger.info("Initiating full sync...")
            result = self.fetcher.fetch(main_id, window_start, window_end)
            dupe_only = False

        if result.next_sync_token:
            self.logger.debug("Storing sync token for incremental updates...")
            state.sync_token = result.next_sync_token
        return result, dupe_only, fell_back

    def _log_filter_counts(self, events: Sequence) -> None:
        self.logger.info(f"{len(events)} total events...")
        busy = [e for e in events if not is_free_time(e)]
        self.logger.info(f"{len(busy)} events after transparent (free) removed...")
        accepted = [e for e in busy if should_mirror(e, self.config.accepted_only)]
        self.logger.info(f"{len(accepted)} events after response filter applied...")

    # ------------------------------------------------------------------ #
    # Applying operations                                                  #
    # ------------------------------------------------------------------ #

    def _apply(
        self,
        operations: Sequence[ShadowOperation],
        shadow_id: str | None,
        result: ReconciliationResult,
    ) -> set[str]:
        """Execute planned operations in order; returns the shadow ids deleted.

        A backend failure that outlasts the gateway's backoff propagates and
        aborts the pass; operations already applied are kept and the stored
        sync token is left at its previous value.
        """
        deleted: set[str] = set()
        for count, op in enumerate(operations, 1):
            if self.dry_run:
                self.logger.info(
                    f"[DRY RUN] Would {op.kind.value.upper()} shadow of {op.origin_id}"
                    + (f" ({', '.join(op.changed_fields)})" if op.changed_fields else "")
                )
                self._count(op, result)
                if op.kind == OperationKind.DELETE:
                    deleted.add(op.shadow_id)
                continue

            if op.kind == OperationKind.CREATE:
                self.gateway.call(
                    "insert",
                    self.backend.insert_event,
                    payload_to_resource(op.payload),
                    shadow_id,
                    notify=True,
                )
                self.logger.info(f"Created shadow event for: {op.origin_id}")
            elif op.kind == OperationKind.UPDATE:
                self.gateway.call(
                    "patch",
                    self.backend.patch_event,
                    payload_to_resource(op.payload),
                    shadow_id,
                    op.shadow_id,
                    notify=True,
                )
                self.logger.info(
                    f"Updated shadow event for: {op.origin_id} "
                    f"(fields: {', '.join(op.changed_fields)})"
                )
            else:
                try:
                    self.gateway.call(
                        "remove", self.backend.delete_event, shadow_id, op.shadow_id, notify=True
                    )
                except NotFoundError:
                    self.logger.debug(f"Shadow event {op.shadow_id} already gone")
                    deleted.add(op.shadow_id)
                    continue
                deleted.add(op.shadow_id)
                self.logger.info(
                    f"Deleted shadow event {op.shadow_id} for: {op.origin_id} ({op.reason})"
                )
            self._count(op, result)

            if count % PROGRESS_EVERY == 0:
                self.logger.info(f"Progress: {count}/{len(operations)} operations applied")
        return deleted

    @staticmethod
    def _count(op: ShadowOperation, result: ReconciliationResult):
        if op.kind == OperationKind.CREATE:
            result.created += 1
        elif op.kind == OperationKind.UPDATE:
            result.updated += 1
        else:
            result.deleted += 1
