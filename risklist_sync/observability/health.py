"""Health probe — independent reachability checks of both collaborators."""

import time
from datetime import datetime
from typing import Callable, Dict

import httpx

from risklist_sync.clients.base import ApiError, ListStore, RiskSource
from risklist_sync.models.observability import HealthCheck, HealthReport


def _probe(ping: Callable[[], int]) -> HealthCheck:
    start = time.monotonic()
    try:
        status_code = ping()
    except (httpx.HTTPError, ApiError) as e:
        return HealthCheck(
            status="unhealthy",
            response_time_ms=round((time.monotonic() - start) * 1000, 1),
            error=str(e),
        )
    return HealthCheck(
        status="healthy" if 200 <= status_code < 300 else "unhealthy",
        response_time_ms=round((time.monotonic() - start) * 1000, 1),
        status_code=status_code,
    )


class HealthProbe:
    def __init__(self, risk_source: RiskSource, list_store: ListStore):
        self.risk_source = risk_source
        self.list_store = list_store

    def check(self) -> HealthReport:
        start = time.monotonic()
        checks: Dict[str, HealthCheck] = {
            "list_store_api": _probe(self.list_store.ping),
            "risk_scoring_api": _probe(self.risk_source.ping),
        }

        healthy = [c for c in checks.values() if c.status == "healthy"]
        if len(healthy) == len(checks):
            status = "healthy"
        elif healthy:
            status = "degraded"
        else:
            status = "unhealthy"

        return HealthReport(
            status=status,
            timestamp=datetime.utcnow(),
            checks=checks,
            total_response_time_ms=round((time.monotonic() - start) * 1000, 1),
        )
