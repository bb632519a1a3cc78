"""Tests for set diffing and sync state transitions."""

from datetime import datetime

from risklist_sync.models.risk import RiskTier
from risklist_sync.models.snapshot import ExpectedState, SyncState
from risklist_sync.reconciler.diff import compute_diff, sets_equal
from risklist_sync.reconciler.state import SyncEvent, apply_event, next_state


class TestComputeDiff:
    def test_scenario_add_and_remove(self):
        diff = compute_diff({"a@x.com", "b@x.com"}, {"b@x.com", "c@x.com"})
        assert diff.to_add == ["a@x.com"]
        assert diff.to_remove == ["c@x.com"]

    def test_empty_expected_removes_everything(self):
        diff = compute_diff([], ["d@x.com"])
        assert diff.to_add == []
        assert diff.to_remove == ["d@x.com"]

    def test_applying_diff_yields_expected(self):
        expected = {"a", "b", "e", "f"}
        actual = {"b", "c", "d", "f"}
        diff = compute_diff(expected, actual)
        after = (actual | set(diff.to_add)) - set(diff.to_remove)
        assert after == expected

    def test_identical_sets(self):
        assert compute_diff(["a", "b"], ["b", "a"]).is_empty


class TestSetsEqual:
    def test_order_independent(self):
        assert sets_equal({"a", "b"}, {"b", "a"})

    def test_size_mismatch(self):
        assert not sets_equal({"x"}, {"x", "y"})

    def test_same_size_different_members(self):
        assert not sets_equal({"x", "y"}, {"x", "z"})


class TestTransitions:
    def test_defined_transitions(self):
        assert next_state(SyncState.SYNCED, SyncEvent.DIFF_DETECTED) == SyncState.PENDING_WRITE
        assert next_state(SyncState.PENDING_WRITE, SyncEvent.CONVERGED) == SyncState.SYNCED
        assert next_state(SyncState.PENDING_WRITE, SyncEvent.MISMATCH) == SyncState.DRIFTED
        assert next_state(SyncState.DRIFTED, SyncEvent.RECHECK_CONSISTENT) == SyncState.SYNCED

    def test_drifted_only_leaves_through_recheck(self):
        assert next_state(SyncState.DRIFTED, SyncEvent.CONVERGED) == SyncState.DRIFTED
        assert next_state(SyncState.DRIFTED, SyncEvent.DIFF_DETECTED) == SyncState.DRIFTED

    def test_apply_event_sets_drift_fields(self):
        now = datetime(2026, 10, 1, 12, 0)
        state = ExpectedState(
            list_id="l1",
            tier=RiskTier.HIGH,
            last_updated=now,
            sync_state=SyncState.PENDING_WRITE,
        )

        drifted = apply_event(state, SyncEvent.MISMATCH, now)
        assert drifted.sync_state == SyncState.DRIFTED
        assert drifted.drift_detected is True
        assert drifted.last_reconciliation_attempt == now

        cleared = apply_event(drifted, SyncEvent.RECHECK_CONSISTENT, now)
        assert cleared.sync_state == SyncState.SYNCED
        assert cleared.drift_detected is False
