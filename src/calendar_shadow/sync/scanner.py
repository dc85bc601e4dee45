"""
Post-reconciliation sweep for duplicate and orphaned shadow events.
"""

import logging
from collections.abc import Iterable
from collections.abc import Sequence

from calendar_shadow.models import OperationKind
from calendar_shadow.models import ShadowCategory
from calendar_shadow.models import ShadowEvent
from calendar_shadow.models import ShadowOperation
from calendar_shadow.sanitizer import EventSanitizer

logger = logging.getLogger(__name__)


def classify(
    shadow_events: Sequence[ShadowEvent], live_ids: set[str]
) -> list[tuple[ShadowEvent, ShadowCategory]]:
    """Categorise managed shadow events in list order.

    The first event seen for an origin id is ``found`` (or ``missing`` if
    its origin is no longer live); every later one is a ``duplicate``.
    """
    seen: set[str] = set()
    result = []
    for shadow in shadow_events:
        if not EventSanitizer.is_managed_event(shadow):
            continue
        if shadow.origin_id in seen:
            category = ShadowCategory.DUPLICATE
        elif shadow.origin_id not in live_ids:
            category = ShadowCategory.MISSING
        else:
            category = ShadowCategory.FOUND
        seen.add(shadow.origin_id)
        result.append((shadow, category))
    return result


class DuplicateScanner:
    """Plans deletion of stale shadow events from the pre-pass snapshot."""

    def plan(
        self,
        shadow_events: Sequence[ShadowEvent],
        live_ids: set[str],
        dupe_only: bool,
        already_deleted: Iterable[str] = (),
    ) -> list[ShadowOperation]:
        """
        Args:
            shadow_events: Shadow calendar as listed before this pass mutated it
            live_ids: Ids of source events that should currently be mirrored
            dupe_only: Incremental pass; ``missing`` events are expected churn
                       (outside the delta feed) and are kept
            already_deleted: Shadow ids the reconciler removed in this pass
        """
        skip = set(already_deleted)
        stale = [(s, c) for s, c in classify(shadow_events, live_ids) if c != ShadowCategory.FOUND]
        if dupe_only:
            stale = [(s, c) for s, c in stale if c == ShadowCategory.DUPLICATE]

        operations = []
        for shadow, category in stale:
            if shadow.id in skip:
                continue
            operations.append(
                ShadowOperation(
                    kind=OperationKind.DELETE,
                    origin_id=shadow.origin_id,
                    shadow_id=shadow.id,
                    reason=category.value,
                )
            )
        logger.info(f"{len(operations)} stale event(s) on shadow calendar to remove")
        return operations
