"""Zero Trust risk scoring client."""

import logging
from typing import List

from pydantic import ValidationError

from risklist_sync.clients.base import CloudflareClient, page_numbers
from risklist_sync.models.risk import RiskPage, RiskRecord, RiskTier

logger = logging.getLogger(__name__)

_TIER_VALUES = {t.value for t in RiskTier}


class RiskScoringClient(CloudflareClient):
    """Reads per-user risk summaries."""

    def fetch_risk_page(self, page: int, page_size: int) -> RiskPage:
        data = self._request(
            "GET",
            "/zt_risk_scoring/summary",
            params={"page": page, "per_page": page_size},
            headers={"Cache-Control": "no-cache"},
        )
        users = (data.get("result") or {}).get("users") or []
        current_page, total_pages = page_numbers(data)
        return RiskPage(
            records=self._parse_users(users),
            current_page=current_page,
            total_pages=total_pages,
        )

    def ping(self) -> int:
        response = self.transport.request(
            "GET",
            f"{self.account_path}/zt_risk_scoring/summary",
            params={"per_page": 1},
            max_attempts=1,
        )
        return response.status_code

    def _parse_users(self, users: List[dict]) -> List[RiskRecord]:
        records = []
        for user in users:
            level = user.get("max_risk_level")
            email = user.get("email")
            if not email or level not in _TIER_VALUES:
                logger.debug("Skipping unclassified user %s (level=%s)", email, level)
                continue
            try:
                records.append(RiskRecord(
                    identifier=email,
                    tier=RiskTier(level),
                    event_count=user.get("event_count") or 0,
                    last_event=user.get("last_event"),
                ))
            except ValidationError as e:
                logger.warning("Skipping malformed risk record for %s: %s", email, e)
        return records
