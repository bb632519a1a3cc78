"""
Execution Metrics — cumulative counters persisted in the snapshot store.

Each recorded execution also leaves a short-lived log entry. Recording is
best-effort: a storage failure is logged and never fails the cycle.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import ValidationError

from risklist_sync.models.observability import ExecutionLogEntry, ExecutionStats
from risklist_sync.models.reconciler import SEVEN_DAYS
from risklist_sync.snapshot.store import SnapshotStore

logger = logging.getLogger(__name__)

STATS_KEY = "execution_stats"
LOG_KEY_PREFIX = "log_"


class MetricsRecorder:
    def __init__(self, snapshot_store: SnapshotStore, log_ttl_seconds: int = SEVEN_DAYS):
        self.snapshot_store = snapshot_store
        self.log_ttl_seconds = log_ttl_seconds

    def get_stats(self) -> ExecutionStats:
        raw = self.snapshot_store.get(STATS_KEY)
        if not raw:
            return ExecutionStats()
        try:
            return ExecutionStats.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable execution stats")
            return ExecutionStats()

    def record(
        self,
        operation: str,
        success: bool,
        duration: float,
        details: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> Optional[ExecutionStats]:
        now = now or datetime.utcnow()
        entry = ExecutionLogEntry(
            timestamp=now,
            operation=operation,
            success=success,
            duration=duration,
            details=details or {},
        )
        try:
            log_key = f"{LOG_KEY_PREFIX}{int(now.timestamp() * 1000)}_{uuid4().hex[:9]}"
            self.snapshot_store.put(log_key, entry.model_dump_json(), self.log_ttl_seconds)

            stats = self.get_stats()
            stats.total_executions += 1
            if success:
                stats.successful_executions += 1
            else:
                stats.failed_executions += 1
            stats.last_execution = now
            # Running mean over all executions
            stats.average_duration += (duration - stats.average_duration) / stats.total_executions
            self.snapshot_store.put(STATS_KEY, stats.model_dump_json())
            return stats
        except sqlite3.Error:
            logger.exception("Failed to record execution metrics for %s", operation)
            return None

    def recent_log_count(self) -> int:
        return self.snapshot_store.count(LOG_KEY_PREFIX)
