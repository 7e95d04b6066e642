"""Tests for KeychainSettingsSource integration in config.py."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from config import Settings
from services.credential_manager import CREDENTIAL_KEYS

# Environment variables that would interfere with Settings defaults if
# set in the test runner's shell.  We clear them for isolation.
_ENV_VARS_TO_CLEAR = {
    "DATABASE_URL",
    "ENVIRONMENT",
    "DEBUG",
    "LOG_LEVEL",
    "PLAID_ENVIRONMENT",
    "PLAID_COUNTRY_CODES",
    "PROVIDER_PAGE_SIZE",
    "PROVIDER_READY_MAX_ATTEMPTS",
    "OVERVIEW_MAX_WORKERS",
    *CREDENTIAL_KEYS,
}


def _clean_env():
    """Return a dict suitable for ``os.environ`` patching that removes
    any variables the Settings class reads."""
    return {k: v for k, v in os.environ.items() if k not in _ENV_VARS_TO_CLEAR}


class TestKeychainSettingsSource:
    """Test the KeychainSettingsSource pydantic-settings source."""

    def test_keychain_value_overrides_default(self):
        """A credential in keychain should override the empty-string default."""
        with (
            patch.dict(os.environ, _clean_env(), clear=True),
            patch("config.get_credential") as mock_get,
        ):
            mock_get.side_effect = lambda key: (
                "keychain-value" if key == "PLAID_CLIENT_ID" else None
            )
            s = Settings(_env_file=None)
            assert s.PLAID_CLIENT_ID == "keychain-value"
            assert s.PLAID_SECRET == ""

    def test_init_value_overrides_keychain(self):
        """An explicit init value should override keychain."""
        with (
            patch.dict(os.environ, _clean_env(), clear=True),
            patch("config.get_credential") as mock_get,
        ):
            mock_get.return_value = "keychain-value"
            s = Settings(_env_file=None, PLAID_SECRET="init-value")
            assert s.PLAID_SECRET == "init-value"

    def test_keychain_overrides_environment(self):
        env = {**_clean_env(), "PLAID_SECRET": "env-value"}
        with (
            patch.dict(os.environ, env, clear=True),
            patch("config.get_credential", return_value="keychain-value"),
        ):
            s = Settings(_env_file=None)
            assert s.PLAID_SECRET == "keychain-value"

    def test_non_credential_fields_skip_keychain(self):
        """Fields not in CREDENTIAL_KEYS should not hit keychain."""
        with (
            patch.dict(os.environ, _clean_env(), clear=True),
            patch("config.get_credential") as mock_get,
        ):
            mock_get.return_value = "should-not-be-used"
            s = Settings(_env_file=None)
            assert s.DATABASE_URL == "sqlite:///./networth.db"
            called_keys = {call.args[0] for call in mock_get.call_args_list}
            assert called_keys <= CREDENTIAL_KEYS

    def test_env_fallback_when_keychain_empty(self):
        """When keychain returns None, the env/default chain still works."""
        env = {**_clean_env(), "PLAID_CLIENT_ID": "env-client"}
        with (
            patch.dict(os.environ, env, clear=True),
            patch("config.get_credential", return_value=None),
        ):
            s = Settings(_env_file=None)
            assert s.PLAID_CLIENT_ID == "env-client"
            assert s.PLAID_SECRET == ""


class TestSettingsDefaults:
    def test_provider_defaults(self):
        with (
            patch.dict(os.environ, _clean_env(), clear=True),
            patch("config.get_credential", return_value=None),
        ):
            s = Settings(_env_file=None)
        assert s.PLAID_ENVIRONMENT == "sandbox"
        assert s.PROVIDER_PAGE_SIZE == 500
        assert s.PROVIDER_READY_DELAY_SECONDS == 0.1
        assert s.PROVIDER_READY_MAX_ATTEMPTS == 300
        assert s.TRANSACTION_HISTORY_YEARS == 2
        assert s.OVERVIEW_MAX_WORKERS == 1
        assert s.plaid_country_codes == ["US"]

    def test_country_codes_parsed(self):
        with patch("config.get_credential", return_value=None):
            s = Settings(_env_file=None, PLAID_COUNTRY_CODES="us, ca,")
        assert s.plaid_country_codes == ["US", "CA"]

    def test_plaid_environment_normalized(self):
        with patch("config.get_credential", return_value=None):
            s = Settings(_env_file=None, PLAID_ENVIRONMENT="Production")
        assert s.PLAID_ENVIRONMENT == "production"

    def test_unknown_plaid_environment_rejected(self):
        with patch("config.get_credential", return_value=None):
            with pytest.raises(ValidationError, match="PLAID_ENVIRONMENT"):
                Settings(_env_file=None, PLAID_ENVIRONMENT="development")

    def test_page_size_must_be_positive(self):
        with patch("config.get_credential", return_value=None):
            with pytest.raises(ValidationError):
                Settings(_env_file=None, PROVIDER_PAGE_SIZE=0)

    def test_zero_max_attempts_means_unbounded(self):
        with patch("config.get_credential", return_value=None):
            s = Settings(_env_file=None, PROVIDER_READY_MAX_ATTEMPTS=0)
        assert s.PROVIDER_READY_MAX_ATTEMPTS == 0

    def test_negative_max_attempts_rejected(self):
        with patch("config.get_credential", return_value=None):
            with pytest.raises(ValidationError):
                Settings(_env_file=None, PROVIDER_READY_MAX_ATTEMPTS=-1)
