"""
Unit tests for duplicate / orphan classification on the shadow calendar.
"""

from calendar_shadow.models import OperationKind
from calendar_shadow.models import ShadowCategory
from calendar_shadow.resources import parse_shadow_event
from calendar_shadow.sync.scanner import DuplicateScanner
from calendar_shadow.sync.scanner import classify
from tests.fake_backend import make_shadow


def _shadows(*pairs):
    return [parse_shadow_event(make_shadow(shadow_id, origin)) for shadow_id, origin in pairs]


class TestClassify:
    def test_all_but_first_occurrence_are_duplicates(self):
        shadows = _shadows(("S1", "E1"), ("S2", "E2"), ("S3", "E1"), ("S4", "E1"))
        categories = {s.id: c for s, c in classify(shadows, {"E1", "E2"})}
        assert categories == {
            "S1": ShadowCategory.FOUND,
            "S2": ShadowCategory.FOUND,
            "S3": ShadowCategory.DUPLICATE,
            "S4": ShadowCategory.DUPLICATE,
        }

    def test_duplicate_takes_precedence_over_missing(self):
        shadows = _shadows(("S1", "gone"), ("S2", "gone"))
        assert [c for _, c in classify(shadows, set())] == [
            ShadowCategory.MISSING,
            ShadowCategory.DUPLICATE,
        ]

    def test_untagged_events_are_not_classified(self):
        shadows = _shadows(("S0", None), ("S1", "E1"))
        assert [s.id for s, _ in classify(shadows, {"E1"})] == ["S1"]


class TestPlan:
    def test_full_pass_deletes_duplicates_and_orphans(self):
        shadows = _shadows(("S1", "E1"), ("S2", "E1"), ("S3", "gone"))
        ops = DuplicateScanner().plan(shadows, {"E1"}, dupe_only=False)
        assert [(op.shadow_id, op.reason) for op in ops] == [
            ("S2", "duplicate"),
            ("S3", "missing"),
        ]
        assert all(op.kind == OperationKind.DELETE for op in ops)

    def test_incremental_pass_keeps_missing(self):
        """Two shadows of unchanged E1 during an incremental pass: only the copy goes."""
        shadows = _shadows(("S1", "E1"), ("S2", "E1"), ("S3", "outside-window"))
        ops = DuplicateScanner().plan(shadows, {"E1"}, dupe_only=True)
        assert [op.shadow_id for op in ops] == ["S2"]

    def test_events_deleted_by_reconciler_are_skipped(self):
        shadows = _shadows(("S1", "E1"), ("S2", "gone"))
        ops = DuplicateScanner().plan(shadows, {"E1"}, dupe_only=False, already_deleted={"S2"})
        assert ops == []
