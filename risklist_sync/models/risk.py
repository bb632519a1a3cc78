"""Risk Records — per-user classifications pulled from the risk source."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class RiskTier(str, Enum):
    """The three ordered risk tiers. Each maps to one remote list."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)


_TIER_ORDER = [RiskTier.LOW, RiskTier.MEDIUM, RiskTier.HIGH]


class RiskRecord(BaseModel):
    """One user's current classification. Produced fresh every fetch cycle."""

    identifier: str                         # Stable user handle, e.g. email
    tier: RiskTier
    event_count: int = 0                    # Telemetry, not used in reconciliation
    last_event: Optional[datetime] = None


class RiskPage(BaseModel):
    """A single page returned by the risk source."""

    records: List[RiskRecord]
    current_page: Optional[int] = None
    total_pages: Optional[int] = None


class ListItem(BaseModel):
    """An item currently held by a remote list."""

    value: str
    description: Optional[str] = None


class ListPage(BaseModel):
    """A single page of remote list items."""

    items: List[ListItem]
    current_page: Optional[int] = None
    total_pages: Optional[int] = None
