"""
Reconciler Loop — the scheduling trigger.

Fires one reconciliation cycle per tick of the configured cron schedule.
Cycles never overlap within one loop: the next wait only starts after the
current cycle completes. Scheduled cycles are fire-and-forget; their
outcome goes to the log and the execution metrics.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Optional

from croniter import croniter

from risklist_sync.models.reconciler import CycleResult, ReconcilerConfig
from risklist_sync.observability.metrics import MetricsRecorder
from risklist_sync.reconciler.engine import ListReconciler

logger = logging.getLogger(__name__)


class ReconcilerLoop:
    """
    States:
      IDLE → WAITING → RUNNING_CYCLE → WAITING ... → STOPPED
    """

    def __init__(
        self,
        reconciler: ListReconciler,
        metrics: MetricsRecorder,
        config: Optional[ReconcilerConfig] = None,
    ):
        self.reconciler = reconciler
        self.metrics = metrics
        self.config = config or reconciler.config
        self._running = False
        self._cycle_count = 0
        self.last_result: Optional[CycleResult] = None

        if not croniter.is_valid(self.config.schedule):
            raise ValueError(f"Invalid cron schedule: {self.config.schedule!r}")

    @property
    def status(self) -> str:
        return "running" if self._running else "stopped"

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    def next_run_after(self, current_time: Optional[datetime] = None) -> datetime:
        current_time = current_time or datetime.utcnow()
        return croniter(self.config.schedule, current_time).get_next(datetime)

    def reconcile_once(self, operation: str = "scheduled_update") -> CycleResult:
        """Run one cycle and record it. Never raises."""
        start = time.monotonic()
        started_at = datetime.utcnow()
        try:
            result = self.reconciler.run_cycle(now=started_at)
        except Exception as e:
            logger.exception("Reconciliation cycle crashed")
            result = CycleResult(
                success=False,
                started_at=started_at,
                duration_seconds=round(time.monotonic() - start, 3),
                error=str(e),
            )

        self._cycle_count += 1
        self.last_result = result
        self.metrics.record(
            operation,
            success=result.success,
            duration=result.duration_seconds,
            details={
                "total_users": result.total_users,
                "tier_counts": result.tier_counts,
                "failed_tiers": [r.tier.value for r in result.tiers if not r.success],
                "error": result.error,
            },
            now=started_at,
        )
        logger.info(
            "Risk list update %s in %.2fs",
            "completed" if result.success else "finished with failures",
            result.duration_seconds,
        )
        return result

    async def run_async(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run cycles on schedule until `stop_event` is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        try:
            while not stop_event.is_set():
                delay = (self.next_run_after() - datetime.utcnow()).total_seconds()
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=max(0.0, delay))
                    break
                except asyncio.TimeoutError:
                    pass
                await asyncio.to_thread(self.reconcile_once)
        finally:
            self._running = False
