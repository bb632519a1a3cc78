"""Builds the Cloudflare clients from settings."""

from typing import Optional, Tuple

import httpx

from risklist_sync.clients.gateway_lists import GatewayListClient
from risklist_sync.clients.risk_scoring import RiskScoringClient
from risklist_sync.config import Settings
from risklist_sync.models.reconciler import ReconcilerConfig
from risklist_sync.transport.retrying import RetryingTransport


def build_transport(
    settings: Settings,
    config: Optional[ReconcilerConfig] = None,
    http_transport: Optional[httpx.BaseTransport] = None,
) -> RetryingTransport:
    config = config or ReconcilerConfig()
    client = httpx.Client(
        base_url=settings.API_BASE_URL,
        headers={
            "Authorization": f"Bearer {settings.CLOUDFLARE_API_TOKEN}",
            "Content-Type": "application/json",
        },
        timeout=settings.REQUEST_TIMEOUT_SECONDS,
        transport=http_transport,
    )
    return RetryingTransport(client, max_attempts=config.max_attempts)


def build_clients(
    settings: Settings,
    config: Optional[ReconcilerConfig] = None,
    http_transport: Optional[httpx.BaseTransport] = None,
) -> Tuple[RiskScoringClient, GatewayListClient]:
    """Both clients share one transport (and one connection pool)."""
    settings.require_valid()
    transport = build_transport(settings, config, http_transport)
    return (
        RiskScoringClient(transport, settings.CLOUDFLARE_ACCOUNT_ID),
        GatewayListClient(transport, settings.CLOUDFLARE_ACCOUNT_ID),
    )
