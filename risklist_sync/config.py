"""
Settings — credentials and list identifiers for the external collaborators.

Read from the environment (or a .env file). Validation is explicit: a
configuration error is fatal for the cycle and is never retried.
"""

import re
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from risklist_sync.models.risk import RiskTier

_ACCOUNT_ID_RE = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)
_API_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{40,}$")
_LIST_ID_RE = re.compile(r"^[a-f0-9-]{36}$", re.IGNORECASE)


class ConfigurationError(Exception):
    """Raised when credentials or list identifiers are missing or malformed."""


class Settings(BaseSettings):
    """Service settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    CLOUDFLARE_ACCOUNT_ID: Optional[str] = None
    CLOUDFLARE_API_TOKEN: Optional[str] = None
    HIGH_RISK_LIST_ID: Optional[str] = None
    MEDIUM_RISK_LIST_ID: Optional[str] = None
    LOW_RISK_LIST_ID: Optional[str] = None

    API_BASE_URL: str = "https://api.cloudflare.com/client/v4"
    SNAPSHOT_DB_PATH: str = "risklist_sync.db"
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    LOG_LEVEL: str = "INFO"

    @property
    def list_ids(self) -> Dict[RiskTier, Optional[str]]:
        return {
            RiskTier.HIGH: self.HIGH_RISK_LIST_ID,
            RiskTier.MEDIUM: self.MEDIUM_RISK_LIST_ID,
            RiskTier.LOW: self.LOW_RISK_LIST_ID,
        }

    def list_id_for(self, tier: RiskTier) -> str:
        list_id = self.list_ids[tier]
        if not list_id:
            raise ConfigurationError(f"No list configured for {tier.value} risk tier")
        return list_id

    def require_valid(self) -> None:
        """Validate credentials and list identifiers. Raises ConfigurationError."""
        required = ["CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_TOKEN"]
        missing = [key for key in required if not getattr(self, key)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        if not _ACCOUNT_ID_RE.match(self.CLOUDFLARE_ACCOUNT_ID):
            raise ConfigurationError("Invalid CLOUDFLARE_ACCOUNT_ID format")
        if not _API_TOKEN_RE.match(self.CLOUDFLARE_API_TOKEN):
            raise ConfigurationError("Invalid CLOUDFLARE_API_TOKEN format")

        missing_lists: List[str] = [
            f"{tier.name}_RISK_LIST_ID"
            for tier, list_id in self.list_ids.items()
            if not list_id
        ]
        if missing_lists:
            raise ConfigurationError(
                f"Missing list IDs: {', '.join(missing_lists)}. "
                "Set them in the environment or create new lists via /api/create-new-lists"
            )

        for tier, list_id in self.list_ids.items():
            if not _LIST_ID_RE.match(list_id):
                raise ConfigurationError(f"Invalid {tier.value} risk list ID format")
