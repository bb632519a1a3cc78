"""
Consistency Checker — compares snapshot state against remote lists.

check() is strictly read-only and safe to call at any frequency.
recheck() is the explicit operator action that moves tiers found consistent
back to SYNCED, clearing any drift flag. Neither ever mutates a remote list.
"""

import logging
from datetime import datetime
from typing import Dict, Optional
from uuid import uuid4

from risklist_sync.clients.base import ListStore
from risklist_sync.models.reconciler import (
    ConsistencyReport,
    ReconcilerConfig,
    TierConsistency,
)
from risklist_sync.models.risk import RiskTier
from risklist_sync.models.snapshot import SyncState
from risklist_sync.pagination.fetcher import PaginatedFetcher
from risklist_sync.reconciler.diff import sets_equal
from risklist_sync.reconciler.engine import TIER_ORDER
from risklist_sync.reconciler.state import SyncEvent, apply_event
from risklist_sync.snapshot.store import SnapshotStore

logger = logging.getLogger(__name__)


class ConsistencyChecker:
    def __init__(
        self,
        list_store: ListStore,
        snapshot_store: SnapshotStore,
        list_ids: Dict[RiskTier, str],
        config: Optional[ReconcilerConfig] = None,
        fetcher: Optional[PaginatedFetcher] = None,
    ):
        self.list_store = list_store
        self.snapshot_store = snapshot_store
        self.list_ids = dict(list_ids)
        self.config = config or ReconcilerConfig()
        self.fetcher = fetcher or PaginatedFetcher(self.config)

    def check(self, now: Optional[datetime] = None) -> ConsistencyReport:
        """Compare every tier that has a snapshot. Tiers without one are skipped."""
        entries = []
        for tier in TIER_ORDER:
            entry = self.check_tier(tier)
            if entry is not None:
                entries.append(entry)
        return ConsistencyReport(timestamp=now or datetime.utcnow(), reconciliation=entries)

    def check_tier(self, tier: RiskTier) -> Optional[TierConsistency]:
        list_id = self.list_ids[tier]
        state = self.snapshot_store.load_expected_state(list_id)
        if state is None:
            logger.info("No snapshot found for %s risk list %s", tier.value, list_id)
            return None

        expected = set(state.identifiers)
        current = self.fetcher.fetch_list_items(self.list_store, list_id)
        actual = set(current.identifiers)

        if not current.complete:
            logger.error("Failed to fetch items for %s risk list: %s", tier.value, current.error)
            consistent = None
        else:
            consistent = sets_equal(expected, actual)
            if not consistent:
                logger.warning(
                    "Inconsistency detected in %s risk list %s. Expected: [%s], Actual: [%s]",
                    tier.value, list_id,
                    ", ".join(sorted(expected)), ", ".join(sorted(actual)),
                )

        return TierConsistency(
            list_id=list_id,
            list_name=tier,
            consistent=consistent,
            expected_count=len(expected),
            actual_count=len(actual),
            expected_emails=sorted(expected),
            actual_emails=sorted(actual),
            last_updated=state.last_updated,
            reconciliation_needed=state.drift_detected,
            sync_state=state.sync_state,
            error=current.error,
        )

    def recheck(self, now: Optional[datetime] = None) -> ConsistencyReport:
        """
        Run check() and clear drift on every tier confirmed consistent.

        A tier is compared again once its lease is held, so a cycle that
        rewrote the snapshot in between is never cleared on a stale verdict.
        Tiers currently leased by a reconciliation pass are left untouched.
        """
        now = now or datetime.utcnow()
        report = self.check(now)

        entries = []
        for entry in report.reconciliation:
            if entry.consistent is not True or entry.sync_state == SyncState.SYNCED:
                entries.append(entry)
                continue

            holder = uuid4().hex
            if not self.snapshot_store.acquire_lease(entry.list_id, holder, self.config.lease_ttl_seconds):
                logger.info("Skipping recheck of %s: reconciliation in progress", entry.list_id)
                entries.append(entry)
                continue
            try:
                fresh = self.check_tier(entry.list_name)
                if fresh is None:
                    continue
                entries.append(fresh)
                if fresh.consistent is not True:
                    logger.info("Not clearing drift on %s: list changed since check", entry.list_id)
                    continue

                state = self.snapshot_store.load_expected_state(entry.list_id)
                updated = apply_event(state, SyncEvent.RECHECK_CONSISTENT, now)
                self.snapshot_store.save_expected_state(updated, self.config.snapshot_ttl_seconds)
                logger.info("Cleared drift on %s risk list %s", entry.list_name.value, entry.list_id)
                fresh.sync_state = updated.sync_state
                fresh.reconciliation_needed = updated.drift_detected
            finally:
                self.snapshot_store.release_lease(entry.list_id, holder)

        report.reconciliation = entries
        return report
