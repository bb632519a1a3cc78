"""Expected State — the locally authoritative membership of one remote list."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, field_validator

from risklist_sync.models.risk import RiskTier


class SyncState(str, Enum):
    """
    Explicit per-tier reconciliation state.

      SYNCED --diff detected--> PENDING_WRITE
      PENDING_WRITE --verified convergence--> SYNCED
      PENDING_WRITE --verification mismatch--> DRIFTED
      DRIFTED --explicit consistency recheck--> SYNCED
    """
    SYNCED = "synced"
    PENDING_WRITE = "pending_write"
    DRIFTED = "drifted"


class ExpectedState(BaseModel):
    """
    Snapshot entry for one list. Owned by the Snapshot Store and overwritten
    wholesale each cycle; drift metadata is carried across overwrites.
    """

    list_id: str
    tier: RiskTier
    identifiers: List[str] = []
    last_updated: datetime
    last_attempt: Optional[datetime] = None
    sync_state: SyncState = SyncState.SYNCED
    drift_detected: bool = False
    last_reconciliation_attempt: Optional[datetime] = None

    @field_validator("identifiers")
    @classmethod
    def _unique_identifiers(cls, value: List[str]) -> List[str]:
        # Set semantics; sorted so that stored snapshots are deterministic
        return sorted(set(value))

    @property
    def user_count(self) -> int:
        return len(self.identifiers)

    @property
    def item_description(self) -> str:
        """Description attached to items appended on this tier's behalf."""
        return f"{self.tier.value} risk user - updated {self.last_updated.isoformat()}"
