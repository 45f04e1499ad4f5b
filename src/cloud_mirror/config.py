"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Domain constants
    have sensible defaults but can be overridden via environment variables.
    """

    # Required, supplied by the external Account Provider
    account_email: str
    access_token: str
    metadata_url: str
    content_url: str

    # Domain constants with defaults, overridable via env
    refresh_token: str | None = None
    cache_dir: str = ".cloud-mirror"
    sync_max_nodes: int = 5000
    request_timeout_seconds: float = 60.0


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        CM_ACCOUNT_EMAIL: Email identifying the cloud-drive account; also names the cache file.
        CM_ACCESS_TOKEN: Bearer token for the metadata endpoint.
        CM_METADATA_URL: Base URL of the account's metadata endpoint.
        CM_CONTENT_URL: Base URL of the account's content endpoint.

    Optional environment variables (with defaults):
        CM_REFRESH_TOKEN: Refresh token, stored alongside the account config (default: unset).
        CM_CACHE_DIR: Directory holding the per-account SQLite cache (default: .cloud-mirror).
        CM_SYNC_MAX_NODES: Max node records per changelog response (default: 5000).
        CM_REQUEST_TIMEOUT_SECONDS: Socket timeout per request (default: 60).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        account_email=os.environ["CM_ACCOUNT_EMAIL"],
        access_token=os.environ["CM_ACCESS_TOKEN"],
        metadata_url=os.environ["CM_METADATA_URL"],
        content_url=os.environ["CM_CONTENT_URL"],
        refresh_token=os.environ.get("CM_REFRESH_TOKEN") or None,
        cache_dir=os.environ.get("CM_CACHE_DIR", ".cloud-mirror"),
        sync_max_nodes=int(os.environ.get("CM_SYNC_MAX_NODES", "5000")),
        request_timeout_seconds=float(os.environ.get("CM_REQUEST_TIMEOUT_SECONDS", "60")),
    )
