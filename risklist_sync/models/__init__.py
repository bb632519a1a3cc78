"""Risk list sync data models."""

from risklist_sync.models.observability import (
    ExecutionLogEntry,
    ExecutionStats,
    HealthCheck,
    HealthReport,
)
from risklist_sync.models.reconciler import (
    ConsistencyReport,
    CycleResult,
    ListDiff,
    ReconcilerConfig,
    TierConsistency,
    TierReconcileResult,
)
from risklist_sync.models.risk import ListItem, ListPage, RiskPage, RiskRecord, RiskTier
from risklist_sync.models.snapshot import ExpectedState, SyncState

__all__ = [
    "ConsistencyReport",
    "CycleResult",
    "ExecutionLogEntry",
    "ExecutionStats",
    "ExpectedState",
    "HealthCheck",
    "HealthReport",
    "ListDiff",
    "ListItem",
    "ListPage",
    "ReconcilerConfig",
    "RiskPage",
    "RiskRecord",
    "RiskTier",
    "SyncState",
    "TierConsistency",
    "TierReconcileResult",
]
