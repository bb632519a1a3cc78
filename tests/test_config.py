"""Tests for settings validation."""

import pytest

from risklist_sync.config import ConfigurationError, Settings
from risklist_sync.models.risk import RiskTier

VALID = dict(
    CLOUDFLARE_ACCOUNT_ID="0123456789abcdef0123456789abcdef",
    CLOUDFLARE_API_TOKEN="A" * 40,
    HIGH_RISK_LIST_ID="11111111-1111-1111-1111-111111111111",
    MEDIUM_RISK_LIST_ID="22222222-2222-2222-2222-222222222222",
    LOW_RISK_LIST_ID="33333333-3333-3333-3333-333333333333",
)


def _settings(**overrides) -> Settings:
    values = dict(VALID)
    values.update(overrides)
    return Settings(**values)


class TestSettings:
    def test_valid_settings_pass(self):
        settings = _settings()
        settings.require_valid()
        assert settings.list_id_for(RiskTier.MEDIUM) == VALID["MEDIUM_RISK_LIST_ID"]

    def test_missing_credentials_listed(self):
        with pytest.raises(ConfigurationError, match="CLOUDFLARE_ACCOUNT_ID, CLOUDFLARE_API_TOKEN"):
            _settings(CLOUDFLARE_ACCOUNT_ID="", CLOUDFLARE_API_TOKEN="").require_valid()

    def test_malformed_account_id(self):
        with pytest.raises(ConfigurationError, match="CLOUDFLARE_ACCOUNT_ID format"):
            _settings(CLOUDFLARE_ACCOUNT_ID="not-hex").require_valid()

    def test_malformed_token(self):
        with pytest.raises(ConfigurationError, match="CLOUDFLARE_API_TOKEN format"):
            _settings(CLOUDFLARE_API_TOKEN="abc def").require_valid()

    def test_missing_list_ids_listed(self):
        with pytest.raises(ConfigurationError, match="HIGH_RISK_LIST_ID, LOW_RISK_LIST_ID"):
            _settings(HIGH_RISK_LIST_ID="", LOW_RISK_LIST_ID="").require_valid()

    def test_malformed_list_id(self):
        with pytest.raises(ConfigurationError, match="medium risk list ID"):
            _settings(MEDIUM_RISK_LIST_ID="xyz").require_valid()

    def test_list_id_for_missing_tier(self):
        with pytest.raises(ConfigurationError):
            _settings(LOW_RISK_LIST_ID="").list_id_for(RiskTier.LOW)
