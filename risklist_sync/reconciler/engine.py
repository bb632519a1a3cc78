"""
List Reconciler — drives each tier's remote list to its expected membership.

Per tier, once per cycle:
  1. Expected identifiers = users whose current classification is this tier
  2. Persist the expected state (durability checkpoint, always overwritten)
  3. Fetch the remote list fresh
  4. Diff; an empty diff means nothing to do
  5. Apply one combined incremental patch (append + remove)
  6. The store's verdict is authoritative; failures are returned verbatim
  7. Optionally verify convergence after a propagation wait

Tiers are processed sequentially and independently: a failure in one tier
never blocks the others. An empty expected set is a valid target.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
from uuid import uuid4

import httpx

from risklist_sync.clients.base import ApiError, ListStore, RiskSource
from risklist_sync.models.reconciler import (
    CycleResult,
    ReconcilerConfig,
    TierReconcileResult,
)
from risklist_sync.models.risk import ListItem, RiskRecord, RiskTier
from risklist_sync.models.snapshot import ExpectedState
from risklist_sync.pagination.fetcher import PaginatedFetcher, PaginationError
from risklist_sync.reconciler.diff import compute_diff, sets_equal
from risklist_sync.reconciler.state import SyncEvent, apply_event
from risklist_sync.snapshot.store import SnapshotStore

logger = logging.getLogger(__name__)

# Most severe first
TIER_ORDER = sorted(RiskTier, key=lambda t: t.rank, reverse=True)

METHOD_PATCH = "PATCH"
METHOD_PUT = "PUT"


def classify(records: Iterable[RiskRecord]) -> Dict[RiskTier, List[str]]:
    """
    Partition identifiers by tier. Every tier is present in the result, and
    each identifier lands in exactly one tier (the last classification seen).
    """
    latest: Dict[str, RiskTier] = {}
    for record in records:
        previous = latest.get(record.identifier)
        if previous is not None and previous != record.tier:
            logger.warning(
                "Conflicting classifications for %s: %s then %s; using %s",
                record.identifier, previous.value, record.tier.value, record.tier.value,
            )
        latest[record.identifier] = record.tier

    tiers: Dict[RiskTier, List[str]] = {tier: [] for tier in TIER_ORDER}
    for identifier, tier in latest.items():
        tiers[tier].append(identifier)
    return tiers


class ListReconciler:
    """
    The reconciliation service. One instance is shared by every entry point
    (scheduled trigger, manual trigger, HTTP surface).
    """

    def __init__(
        self,
        risk_source: RiskSource,
        list_store: ListStore,
        snapshot_store: SnapshotStore,
        list_ids: Dict[RiskTier, str],
        config: Optional[ReconcilerConfig] = None,
        fetcher: Optional[PaginatedFetcher] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.risk_source = risk_source
        self.list_store = list_store
        self.snapshot_store = snapshot_store
        self.list_ids = dict(list_ids)
        self.config = config or ReconcilerConfig()
        self.fetcher = fetcher or PaginatedFetcher(self.config, sleep=sleep)
        self._sleep = sleep

    # --- Cycle ---

    def run_cycle(self, now: Optional[datetime] = None) -> CycleResult:
        """Fetch risk scores, then reconcile every tier."""
        started_at = now or datetime.utcnow()
        start = time.monotonic()

        try:
            fetched = self.fetcher.fetch_risk_records(self.risk_source)
        except PaginationError as e:
            logger.error("Failed to fetch user risk scores, aborting cycle: %s", e)
            return CycleResult(
                success=False,
                started_at=started_at,
                duration_seconds=round(time.monotonic() - start, 3),
                error=str(e),
                errors=e.errors,
            )

        tiers = classify(fetched.records)
        tier_counts = {tier.value: len(ids) for tier, ids in tiers.items()}
        logger.info(
            "Processing %d user risk scores (high=%d, medium=%d, low=%d)",
            len(fetched.records),
            tier_counts["high"], tier_counts["medium"], tier_counts["low"],
        )

        results = []
        for tier in TIER_ORDER:
            try:
                result = self.reconcile_tier(tier, tiers[tier], now=started_at)
            except Exception as e:
                logger.exception("Reconciliation of %s risk list failed", tier.value)
                result = TierReconcileResult(
                    tier=tier,
                    list_id=self.list_ids.get(tier, ""),
                    success=False,
                    total_users=len(tiers[tier]),
                    errors=[{"message": str(e)}],
                )
            results.append(result)

        logger.info(
            "Sync results - %s",
            ", ".join(
                f"{r.tier.value}: {'Success' if r.success else 'Failed'}" for r in results
            ),
        )

        return CycleResult(
            success=all(r.success for r in results),
            started_at=started_at,
            duration_seconds=round(time.monotonic() - start, 3),
            total_users=sum(tier_counts.values()),
            tier_counts=tier_counts,
            tiers=results,
        )

    # --- Incremental path (canonical) ---

    def reconcile_tier(
        self,
        tier: RiskTier,
        identifiers: Iterable[str],
        now: Optional[datetime] = None,
    ) -> TierReconcileResult:
        """Run steps 1-7 for one tier under its lease."""
        now = now or datetime.utcnow()
        list_id = self.list_ids[tier]
        holder = uuid4().hex

        if not self.snapshot_store.acquire_lease(list_id, holder, self.config.lease_ttl_seconds):
            logger.warning("Skipping %s risk list %s: reconciliation already in progress", tier.value, list_id)
            return TierReconcileResult(
                tier=tier,
                list_id=list_id,
                success=False,
                skipped=True,
                message="Reconciliation already in progress",
            )

        try:
            state = self.snapshot_store.write_expected_state(
                list_id, tier, identifiers, now=now,
                ttl_seconds=self.config.snapshot_ttl_seconds,
            )
            logger.info("Stored expected state for %s risk list: %d users", tier.value, state.user_count)
            return self._apply_incremental(state, now)
        finally:
            self.snapshot_store.release_lease(list_id, holder)

    def _apply_incremental(self, state: ExpectedState, now: datetime) -> TierReconcileResult:
        tier, list_id = state.tier, state.list_id

        current = self.fetcher.fetch_list_items(self.list_store, list_id)
        if not current.complete:
            # A partial read is not an empty list; do not act on it
            logger.error("Failed to fetch current %s risk list %s: %s", tier.value, list_id, current.error)
            return self._result(state, success=False, errors=[{"message": current.error}])

        diff = compute_diff(state.identifiers, current.identifiers)
        logger.info(
            "Changes needed for %s risk list: +%d users, -%d users",
            tier.value, len(diff.to_add), len(diff.to_remove),
        )

        if diff.is_empty:
            state = self._transition(state, SyncEvent.CONVERGED, now)
            return self._result(state, success=True, message="Already in sync")

        state = self._transition(state, SyncEvent.DIFF_DETECTED, now)
        append = [ListItem(value=i, description=state.item_description) for i in diff.to_add]

        try:
            self.list_store.apply_incremental(list_id, append, diff.to_remove)
        except ApiError as e:
            logger.error("Failed to patch %s risk list %s: %s", tier.value, list_id, e.errors)
            return self._result(
                state, success=False, added=len(diff.to_add), removed=len(diff.to_remove),
                method=METHOD_PATCH, errors=e.errors,
            )
        except httpx.HTTPError as e:
            logger.error("Failed to patch %s risk list %s: %s", tier.value, list_id, e)
            return self._result(
                state, success=False, added=len(diff.to_add), removed=len(diff.to_remove),
                method=METHOD_PATCH, errors=[{"message": str(e)}],
            )

        logger.info(
            "Patched %s risk list: %d added, %d removed",
            tier.value, len(diff.to_add), len(diff.to_remove),
        )
        if self.config.verify_after_write:
            state = self._verify(state, now)

        return self._result(
            state, success=True, added=len(diff.to_add), removed=len(diff.to_remove),
            method=METHOD_PATCH,
        )

    # --- Full-replace path (deprecated) ---

    def full_resync(self, tier: RiskTier, now: Optional[datetime] = None) -> TierReconcileResult:
        """
        Deprecated secondary path: replace the whole remote list with the
        snapshot's expected membership, then verify. Kept for operator-driven
        resyncs; the incremental path is canonical.

        Drift found by verification is flagged, never retried automatically.
        """
        now = now or datetime.utcnow()
        list_id = self.list_ids[tier]
        holder = uuid4().hex

        if not self.snapshot_store.acquire_lease(list_id, holder, self.config.lease_ttl_seconds):
            return TierReconcileResult(
                tier=tier, list_id=list_id, success=False, skipped=True,
                message="Reconciliation already in progress",
            )

        try:
            state = self.snapshot_store.load_expected_state(list_id)
            if state is None:
                return TierReconcileResult(
                    tier=tier, list_id=list_id, success=False,
                    message="No expected state in snapshot store",
                )
            return self._replace_all(state, now)
        finally:
            self.snapshot_store.release_lease(list_id, holder)

    def _replace_all(self, state: ExpectedState, now: datetime) -> TierReconcileResult:
        tier, list_id = state.tier, state.list_id
        try:
            list_info = self.list_store.get_list(list_id)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Failed to get list info for %s: %s", list_id, e)
            return self._result(state, success=False, errors=getattr(e, "errors", [{"message": str(e)}]))

        current = self.fetcher.fetch_list_items(self.list_store, list_id)
        if not current.complete:
            return self._result(state, success=False, errors=[{"message": current.error}])

        diff = compute_diff(state.identifiers, current.identifiers)
        if not diff.is_empty:
            state = self._transition(state, SyncEvent.DIFF_DETECTED, now)

        items = [ListItem(value=i, description=state.item_description) for i in state.identifiers]
        try:
            self.list_store.replace_all(
                list_id,
                name=list_info.get("name", f"{tier.value.title()} Risk Users"),
                description=list_info.get("description") or "",
                items=items,
            )
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Failed to replace %s risk list %s: %s", tier.value, list_id, e)
            return self._result(
                state, success=False, added=len(diff.to_add), removed=len(diff.to_remove),
                method=METHOD_PUT, errors=getattr(e, "errors", [{"message": str(e)}]),
            )

        state = state.model_copy(update={"last_attempt": now})
        self.snapshot_store.save_expected_state(state, self.config.full_resync_ttl_seconds)
        state = self._verify(state, now, ttl_seconds=self.config.full_resync_ttl_seconds)

        return self._result(
            state, success=True, added=len(diff.to_add), removed=len(diff.to_remove),
            method=METHOD_PUT,
        )

    # --- Shared helpers ---

    def _verify(
        self,
        state: ExpectedState,
        now: datetime,
        ttl_seconds: Optional[float] = None,
    ) -> ExpectedState:
        """Wait for propagation, re-fetch, and flag drift on mismatch."""
        self._sleep(self.config.propagation_wait_seconds)
        actual = self.fetcher.fetch_list_items(self.list_store, state.list_id)
        if not actual.complete:
            logger.warning(
                "Could not verify %s risk list %s: %s", state.tier.value, state.list_id, actual.error
            )
            return state

        expected_set = set(state.identifiers)
        actual_set = set(actual.identifiers)
        logger.info(
            "Verification of %s risk list: expected %d items, found %d items",
            state.tier.value, len(expected_set), len(actual_set),
        )
        if sets_equal(expected_set, actual_set):
            return self._transition(state, SyncEvent.CONVERGED, now, ttl_seconds)

        logger.warning(
            "Drift detected on %s risk list %s. Expected: [%s], Actual: [%s]",
            state.tier.value, state.list_id,
            ", ".join(sorted(expected_set)), ", ".join(sorted(actual_set)),
        )
        return self._transition(state, SyncEvent.MISMATCH, now, ttl_seconds)

    def _transition(
        self,
        state: ExpectedState,
        event: SyncEvent,
        now: datetime,
        ttl_seconds: Optional[float] = None,
    ) -> ExpectedState:
        updated = apply_event(state, event, now)
        if ttl_seconds is None:
            ttl_seconds = self.config.snapshot_ttl_seconds
        return self.snapshot_store.save_expected_state(updated, ttl_seconds)

    def _result(self, state: ExpectedState, success: bool, **kwargs) -> TierReconcileResult:
        return TierReconcileResult(
            tier=state.tier,
            list_id=state.list_id,
            success=success,
            total_users=state.user_count,
            sync_state=state.sync_state,
            drift_detected=state.drift_detected,
            **kwargs,
        )

    def expected_states(self) -> Dict[RiskTier, Optional[ExpectedState]]:
        """Current snapshot per tier (None where nothing was stored yet)."""
        return {
            tier: self.snapshot_store.load_expected_state(list_id)
            for tier, list_id in self.list_ids.items()
        }
