"""
Risk List Sync API — FastAPI endpoints.

Exposes the on-demand entry points next to the scheduled trigger:
- Risk score and remote list inspection
- Manual reconciliation cycle
- Consistency report and explicit drift recheck
- Deprecated full resync per tier
- List provisioning
- Health probe and execution metrics

All entry points share one ListReconciler instance, injected here.
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from risklist_sync.clients.base import ListStore, RiskSource
from risklist_sync.clients.factory import build_clients
from risklist_sync.config import ConfigurationError, Settings
from risklist_sync.models.reconciler import ReconcilerConfig
from risklist_sync.models.risk import RiskTier
from risklist_sync.observability.health import HealthProbe
from risklist_sync.observability.log_setup import configure_logging
from risklist_sync.observability.metrics import MetricsRecorder
from risklist_sync.pagination.fetcher import PaginatedFetcher, PaginationError
from risklist_sync.reconciler.consistency import ConsistencyChecker
from risklist_sync.reconciler.engine import TIER_ORDER, ListReconciler
from risklist_sync.reconciler.loop import ReconcilerLoop
from risklist_sync.reconciler.provisioning import provision_lists
from risklist_sync.snapshot.store import SnapshotStore

logger = logging.getLogger(__name__)

VERSION = "2.0.0"


# --- Application Factory ---

def create_app(
    settings: Optional[Settings] = None,
    risk_source: Optional[RiskSource] = None,
    list_store: Optional[ListStore] = None,
    snapshot_store: Optional[SnapshotStore] = None,
    reconciler_config: Optional[ReconcilerConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
    start_scheduler: bool = False,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL)
    config = reconciler_config or ReconcilerConfig()

    config_error: Optional[str] = None
    reconciler = checker = loop = metrics = health = None
    fetcher = PaginatedFetcher(config, sleep=sleep)

    try:
        settings.require_valid()
        if risk_source is None or list_store is None:
            built_source, built_store = build_clients(settings, config)
            risk_source = risk_source or built_source
            list_store = list_store or built_store
        ss = snapshot_store or SnapshotStore(settings.SNAPSHOT_DB_PATH)
        list_ids = {tier: settings.list_id_for(tier) for tier in TIER_ORDER}

        reconciler = ListReconciler(
            risk_source=risk_source,
            list_store=list_store,
            snapshot_store=ss,
            list_ids=list_ids,
            config=config,
            fetcher=fetcher,
            sleep=sleep,
        )
        checker = ConsistencyChecker(list_store, ss, list_ids, config=config, fetcher=fetcher)
        metrics = MetricsRecorder(ss, log_ttl_seconds=config.execution_log_ttl_seconds)
        loop = ReconcilerLoop(reconciler, metrics, config)
        health = HealthProbe(risk_source, list_store)
    except ConfigurationError as e:
        config_error = str(e)
        logger.error("Configuration validation failed: %s", config_error)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop_event = asyncio.Event()
        task = None
        if start_scheduler and loop is not None:
            task = asyncio.create_task(loop.run_async(stop_event))
        yield
        stop_event.set()
        if task is not None:
            await task

    app = FastAPI(
        title="Risk List Sync API",
        description="Reconciles per-tier access lists with user risk scores",
        version=VERSION,
        lifespan=lifespan,
    )

    # Store components on app state for access in endpoints
    app.state.settings = settings
    app.state.config_error = config_error
    app.state.reconciler = reconciler
    app.state.consistency_checker = checker
    app.state.reconciler_loop = loop
    app.state.metrics = metrics

    def _require_ready() -> None:
        if config_error is not None:
            raise HTTPException(500, {"error": "Configuration error", "message": config_error})

    @app.get("/")
    def root():
        return {
            "service": "risklist-sync",
            "version": VERSION,
            "status": "misconfigured" if config_error else "operational",
        }

    # === RISK SCORES & LISTS ===

    @app.get("/api/user-risk-scores")
    def get_user_risk_scores():
        """Current risk classifications grouped by tier."""
        _require_ready()
        try:
            fetched = fetcher.fetch_risk_records(risk_source)
        except PaginationError as e:
            raise HTTPException(500, {"error": "Failed to fetch user risk scores", "details": e.errors})

        grouped = {tier.value: [] for tier in TIER_ORDER}
        for record in fetched.records:
            grouped[record.tier.value].append(record.model_dump(mode="json"))

        summary = {"total": len(fetched.records)}
        summary.update({tier: len(users) for tier, users in grouped.items()})
        return {
            "success": True,
            "users": grouped,
            "summary": summary,
            "pagination": fetched.pagination.model_dump(),
        }

    @app.get("/api/gateway-lists")
    def get_gateway_lists():
        """All three remote lists, read concurrently."""
        _require_ready()
        with ThreadPoolExecutor(max_workers=len(TIER_ORDER)) as pool:
            futures = {
                tier: pool.submit(fetcher.fetch_list_items, list_store, reconciler.list_ids[tier])
                for tier in TIER_ORDER
            }
            fetched = {tier: future.result() for tier, future in futures.items()}

        summary: Dict[str, int] = {tier.value: len(r.items) for tier, r in fetched.items()}
        summary["total"] = sum(summary.values())
        return {
            "success": all(r.complete for r in fetched.values()),
            "lists": {tier.value: r.model_dump(mode="json") for tier, r in fetched.items()},
            "summary": summary,
        }

    # === RECONCILIATION ===

    @app.post("/api/update-risk-lists")
    def update_risk_lists():
        """Manual reconciliation cycle. Partial successes are reported, not raised."""
        _require_ready()
        result = loop.reconcile_once(operation="manual_update")
        return result.model_dump(mode="json")

    @app.get("/api/reconcile-lists")
    def reconcile_lists():
        """Read-only consistency report."""
        _require_ready()
        return checker.check().model_dump(mode="json")

    @app.post("/api/reconcile-lists/recheck")
    def recheck_lists():
        """Consistency report that also clears drift on consistent tiers."""
        _require_ready()
        return checker.recheck().model_dump(mode="json")

    @app.post("/api/full-resync/{tier}")
    def full_resync(tier: RiskTier):
        """Deprecated full-replace resync of one tier from its snapshot."""
        _require_ready()
        return reconciler.full_resync(tier).model_dump(mode="json")

    @app.post("/api/create-new-lists")
    def create_new_lists():
        _require_ready()
        results = provision_lists(list_store)
        return {
            "success": all(r["success"] for r in results),
            "message": "New lists created",
            "lists": results,
            "instructions": "Set HIGH_RISK_LIST_ID, MEDIUM_RISK_LIST_ID and LOW_RISK_LIST_ID to the new list ids",
        }

    @app.get("/reconciler/status")
    def reconciler_status():
        _require_ready()
        states = reconciler.expected_states()
        return {
            "status": loop.status,
            "cycle_count": loop.cycle_count,
            "next_run": loop.next_run_after().isoformat(),
            "config": config.model_dump(),
            "tiers": {
                tier.value: (
                    {
                        "list_id": state.list_id,
                        "sync_state": state.sync_state.value,
                        "drift_detected": state.drift_detected,
                        "user_count": state.user_count,
                        "last_updated": state.last_updated.isoformat(),
                    }
                    if state else None
                )
                for tier, state in states.items()
            },
        }

    # === OBSERVABILITY ===

    @app.get("/api/health")
    def get_health():
        _require_ready()
        report = health.check()
        return JSONResponse(
            report.model_dump(mode="json"),
            status_code=200 if report.status == "healthy" else 503,
        )

    @app.get("/api/metrics")
    def get_metrics():
        _require_ready()
        return {
            "timestamp": datetime.utcnow().isoformat(),
            "version": VERSION,
            "features": {
                "retry_mechanism": True,
                "input_validation": True,
                "health_checks": True,
                "metrics": True,
            },
            "execution_stats": metrics.get_stats().model_dump(mode="json"),
            "recent_log_entries": metrics.recent_log_count(),
        }

    return app


# Default application instance
app = create_app(start_scheduler=True)
