"""Reconciler configuration, diffs and per-tier results."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from risklist_sync.models.risk import RiskTier
from risklist_sync.models.snapshot import SyncState

SEVEN_DAYS = 86400 * 7


class ReconcilerConfig(BaseModel):
    """Tunables for transport, pagination, verification and scheduling."""

    max_attempts: int = Field(ge=1, default=3)
    risk_page_size: int = 50
    risk_max_requests: int = 100
    risk_page_delay_seconds: float = 0.1
    list_page_size: int = 100
    list_max_requests: int = 50
    list_page_delay_seconds: float = 0.05
    propagation_wait_seconds: float = 3.0
    verify_after_write: bool = True
    lease_ttl_seconds: int = 300
    snapshot_ttl_seconds: Optional[int] = None     # None = never expires
    full_resync_ttl_seconds: int = SEVEN_DAYS
    execution_log_ttl_seconds: int = SEVEN_DAYS
    schedule: str = "* * * * *"                    # Cron expression


class ListDiff(BaseModel):
    """Ephemeral set difference between expected and remote membership."""

    to_add: List[str] = []                  # Expected - Remote
    to_remove: List[str] = []               # Remote - Expected

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


class TierReconcileResult(BaseModel):
    """Outcome of one tier's reconciliation pass."""

    tier: RiskTier
    list_id: str
    success: bool
    added: int = 0
    removed: int = 0
    total_users: int = 0
    method: Optional[str] = None            # "PATCH" | "PUT" | None when nothing was sent
    message: Optional[str] = None
    errors: List[dict] = []
    sync_state: Optional[SyncState] = None
    drift_detected: bool = False
    skipped: bool = False


class CycleResult(BaseModel):
    """Outcome of one full reconciliation cycle over all tiers."""

    success: bool
    started_at: datetime
    duration_seconds: float = 0.0
    total_users: int = 0
    tier_counts: Dict[str, int] = {}
    tiers: List[TierReconcileResult] = []
    error: Optional[str] = None
    errors: List[dict] = []


class TierConsistency(BaseModel):
    """Read-only comparison of a tier's snapshot against its remote list."""

    list_id: str
    list_name: RiskTier
    consistent: Optional[bool]              # None when the remote could not be read in full
    expected_count: int
    actual_count: int
    expected_emails: List[str]
    actual_emails: List[str]
    last_updated: datetime
    reconciliation_needed: bool = False     # Drift flagged by an earlier pass
    sync_state: SyncState = SyncState.SYNCED
    error: Optional[str] = None


class ConsistencyReport(BaseModel):
    success: bool = True
    timestamp: datetime
    reconciliation: List[TierConsistency] = []
