"""Unit tests for config.py — AppConfig and load_config()."""

import os
from unittest.mock import patch

import pytest

from cloud_mirror.config import AppConfig, load_config

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Minimal set of required environment variables for load_config()
_REQUIRED_ENV = {
    "CM_ACCOUNT_EMAIL": "user@example.com",
    "CM_ACCESS_TOKEN": "access-token",
    "CM_METADATA_URL": "https://cdws.example.com/drive/v1/",
    "CM_CONTENT_URL": "https://content.example.com/cdproxy/",
}


# ---------------------------------------------------------------------------
# AppConfig tests
# ---------------------------------------------------------------------------


class TestAppConfig:
    def test_domain_constants_have_defaults(self) -> None:
        config = AppConfig(
            account_email="u",
            access_token="t",
            metadata_url="m",
            content_url="c",
        )
        assert config.cache_dir == ".cloud-mirror"
        assert config.sync_max_nodes == 5000
        assert config.request_timeout_seconds == 60.0
        assert config.refresh_token is None

    def test_is_frozen(self) -> None:
        config = AppConfig(account_email="u", access_token="t", metadata_url="m", content_url="c")
        with pytest.raises(AttributeError):
            config.access_token = "other"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# load_config tests
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_reads_required_values(self) -> None:
        with patch.dict(os.environ, _REQUIRED_ENV, clear=True):
            config = load_config()
        assert config.account_email == "user@example.com"
        assert config.access_token == "access-token"
        assert config.metadata_url == "https://cdws.example.com/drive/v1/"
        assert config.content_url == "https://content.example.com/cdproxy/"

    def test_uses_defaults_when_optional_unset(self) -> None:
        with patch.dict(os.environ, _REQUIRED_ENV, clear=True):
            config = load_config()
        assert config.cache_dir == ".cloud-mirror"
        assert config.sync_max_nodes == 5000
        assert config.refresh_token is None

    def test_reads_optional_overrides(self) -> None:
        env = {
            **_REQUIRED_ENV,
            "CM_REFRESH_TOKEN": "refresh",
            "CM_CACHE_DIR": "/var/cache/mirror",
            "CM_SYNC_MAX_NODES": "250",
            "CM_REQUEST_TIMEOUT_SECONDS": "12.5",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config()
        assert config.refresh_token == "refresh"
        assert config.cache_dir == "/var/cache/mirror"
        assert config.sync_max_nodes == 250
        assert config.request_timeout_seconds == 12.5

    @pytest.mark.parametrize("missing", sorted(_REQUIRED_ENV))
    def test_raises_key_error_when_required_missing(self, missing: str) -> None:
        env = {k: v for k, v in _REQUIRED_ENV.items() if k != missing}
        with patch.dict(os.environ, env, clear=True), pytest.raises(KeyError):
            load_config()
