"""Per-tier sync state transitions."""

from datetime import datetime
from enum import Enum

from risklist_sync.models.snapshot import ExpectedState, SyncState


class SyncEvent(str, Enum):
    DIFF_DETECTED = "diff_detected"
    CONVERGED = "converged"                 # Remote verified equal to expected
    MISMATCH = "mismatch"                   # Post-write verification failed
    RECHECK_CONSISTENT = "recheck_consistent"


# Pairs not listed leave the state unchanged. In particular DRIFTED only
# leaves through an explicit consistency recheck.
_TRANSITIONS = {
    (SyncState.SYNCED, SyncEvent.DIFF_DETECTED): SyncState.PENDING_WRITE,
    (SyncState.SYNCED, SyncEvent.MISMATCH): SyncState.DRIFTED,
    (SyncState.PENDING_WRITE, SyncEvent.CONVERGED): SyncState.SYNCED,
    (SyncState.PENDING_WRITE, SyncEvent.MISMATCH): SyncState.DRIFTED,
    (SyncState.PENDING_WRITE, SyncEvent.RECHECK_CONSISTENT): SyncState.SYNCED,
    (SyncState.DRIFTED, SyncEvent.RECHECK_CONSISTENT): SyncState.SYNCED,
}


def next_state(current: SyncState, event: SyncEvent) -> SyncState:
    return _TRANSITIONS.get((current, event), current)


def apply_event(state: ExpectedState, event: SyncEvent, now: datetime) -> ExpectedState:
    """Return a copy of `state` advanced by `event`, with drift fields kept in step."""
    new_state = next_state(state.sync_state, event)
    updates = {
        "sync_state": new_state,
        "drift_detected": new_state == SyncState.DRIFTED,
    }
    if event == SyncEvent.MISMATCH:
        updates["last_reconciliation_attempt"] = now
    return state.model_copy(update=updates)
