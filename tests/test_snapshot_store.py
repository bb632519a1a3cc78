"""Tests for the Snapshot Store."""

from datetime import datetime

from risklist_sync.models.risk import RiskTier
from risklist_sync.models.snapshot import SyncState
from risklist_sync.snapshot.store import SnapshotStore, expected_state_key


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestKeyValue:
    def setup_method(self):
        self.clock = FakeClock()
        self.store = SnapshotStore(db_path=":memory:", clock=self.clock)

    def test_get_absent(self):
        assert self.store.get("missing") is None

    def test_put_overwrites(self):
        self.store.put("k", "v1")
        self.store.put("k", "v2")
        assert self.store.get("k") == "v2"

    def test_ttl_expiry(self):
        self.store.put("k", "v", ttl_seconds=10)
        self.clock.now += 9
        assert self.store.get("k") == "v"
        self.clock.now += 2
        assert self.store.get("k") is None

    def test_put_if_absent(self):
        assert self.store.put_if_absent("k", "a") is True
        assert self.store.put_if_absent("k", "b") is False
        assert self.store.get("k") == "a"

    def test_put_if_absent_replaces_expired(self):
        self.store.put("k", "old", ttl_seconds=1)
        self.clock.now += 5
        assert self.store.put_if_absent("k", "new") is True
        assert self.store.get("k") == "new"

    def test_count_by_prefix(self):
        self.store.put("log_1", "x", ttl_seconds=5)
        self.store.put("log_2", "x")
        self.store.put("other", "x")
        assert self.store.count("log_") == 2
        self.clock.now += 10
        assert self.store.count("log_") == 1

    def test_count_prefix_underscore_is_literal(self):
        self.store.put("lease_1", "x")
        self.store.put("leaseX", "x")
        self.store.put("release_1", "x")
        assert self.store.count("lease_") == 1


class TestLeases:
    def setup_method(self):
        self.clock = FakeClock()
        self.store = SnapshotStore(db_path=":memory:", clock=self.clock)

    def test_lease_is_exclusive(self):
        assert self.store.acquire_lease("l1", "holder-a", 60)
        assert not self.store.acquire_lease("l1", "holder-b", 60)
        assert self.store.acquire_lease("l2", "holder-b", 60)

    def test_only_holder_can_release(self):
        self.store.acquire_lease("l1", "holder-a", 60)
        assert self.store.release_lease("l1", "holder-b") is False
        assert self.store.release_lease("l1", "holder-a") is True
        assert self.store.acquire_lease("l1", "holder-b", 60)

    def test_crashed_holder_lease_expires(self):
        self.store.acquire_lease("l1", "crashed", 60)
        self.clock.now += 61
        assert self.store.acquire_lease("l1", "next", 60)


class TestExpectedState:
    def setup_method(self):
        self.store = SnapshotStore(db_path=":memory:")

    def test_load_absent(self):
        assert self.store.load_expected_state("l1") is None

    def test_write_and_load(self):
        now = datetime(2026, 10, 1, 12, 0)
        self.store.write_expected_state("l1", RiskTier.HIGH, ["b@x.com", "a@x.com"], now=now)

        state = self.store.load_expected_state("l1")
        assert state.identifiers == ["a@x.com", "b@x.com"]
        assert state.tier == RiskTier.HIGH
        assert state.last_updated == now
        assert state.last_attempt == now
        assert self.store.get(expected_state_key("l1")) is not None

    def test_overwrite_is_wholesale_but_keeps_drift(self):
        first = self.store.write_expected_state("l1", RiskTier.LOW, ["a@x.com", "b@x.com"])
        self.store.save_expected_state(first.model_copy(update={
            "sync_state": SyncState.DRIFTED,
            "drift_detected": True,
            "last_reconciliation_attempt": datetime(2026, 10, 1),
        }))

        second = self.store.write_expected_state("l1", RiskTier.LOW, ["c@x.com"])

        assert second.identifiers == ["c@x.com"]
        assert second.sync_state == SyncState.DRIFTED
        assert second.drift_detected is True
        assert second.last_reconciliation_attempt == datetime(2026, 10, 1)
