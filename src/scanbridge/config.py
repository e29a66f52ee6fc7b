"""Runtime configuration from environment variables.

Configuration (env vars):
    SCANBRIDGE_HOME             - root for binary, logs and staging (default ~/.scanbridge)
    SCANBRIDGE_TIMEOUT          - seconds per analyzer run (default 300)
    SCANBRIDGE_POLL_INTERVAL    - seconds between cancellation checks (default 0.1)
    SCANBRIDGE_LOG_LEVEL        - log level, also forwarded to the analyzer (default INFO)
    SCANBRIDGE_KEEP_LOGS        - number of run logs to retain (default 100)
    SCANBRIDGE_EXCLUDE_PATTERN  - global exclude glob for scan roots
    SCANBRIDGE_PROXY_HOST       - explicit proxy host (overrides HTTP(S)_PROXY)
    SCANBRIDGE_PROXY_PORT       - explicit proxy port
    SCANBRIDGE_PROXY_AUTH       - "Basic <base64>" or "Bearer <token>"
    SCANBRIDGE_RELEASES_URL     - base URL the analyzer is downloaded from
    SCANBRIDGE_RELEASES_REPO    - remote repository for air-gapped download
                                  (falls back to JF_RELEASES_REPO)

Default credentials provider:
    SCANBRIDGE_PLATFORM_URL, SCANBRIDGE_ACCESS_TOKEN,
    SCANBRIDGE_USER, SCANBRIDGE_PASSWORD
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from scanbridge import defaults
from scanbridge.ports import ConnectionDetails


@dataclass(frozen=True)
class ProxyConfig:
    host: str
    port: int = 0

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}" if self.port else self.host


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _default_home() -> Path:
    return Path(os.environ.get("SCANBRIDGE_HOME", "") or Path.home() / defaults.HOME_DIR_NAME)


def _default_proxy() -> ProxyConfig | None:
    host = os.environ.get("SCANBRIDGE_PROXY_HOST", "")
    if not host:
        return None
    return ProxyConfig(host=host, port=_env_int("SCANBRIDGE_PROXY_PORT", 0))


@dataclass
class Settings:
    """Tunables for a scanning session; ``Settings.from_env()`` reads them."""
    home: Path = field(default_factory=_default_home)
    timeout: float = defaults.SCAN_TIMEOUT_SECONDS
    poll_interval: float = defaults.CANCEL_POLL_INTERVAL_SECONDS
    log_level: str = "INFO"
    keep_logs: int = defaults.KEEP_LOGS_COUNT
    exclude_pattern: str = defaults.DEFAULT_EXCLUDE_PATTERN
    proxy: ProxyConfig | None = None
    proxy_auth: str = ""
    releases_url: str = defaults.DEFAULT_RELEASES_URL
    releases_repo: str = ""

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            home=_default_home(),
            timeout=_env_float("SCANBRIDGE_TIMEOUT", defaults.SCAN_TIMEOUT_SECONDS),
            poll_interval=_env_float("SCANBRIDGE_POLL_INTERVAL", defaults.CANCEL_POLL_INTERVAL_SECONDS),
            log_level=os.environ.get("SCANBRIDGE_LOG_LEVEL", "INFO").upper(),
            keep_logs=_env_int("SCANBRIDGE_KEEP_LOGS", defaults.KEEP_LOGS_COUNT),
            exclude_pattern=os.environ.get("SCANBRIDGE_EXCLUDE_PATTERN", defaults.DEFAULT_EXCLUDE_PATTERN),
            proxy=_default_proxy(),
            proxy_auth=os.environ.get("SCANBRIDGE_PROXY_AUTH", ""),
            releases_url=os.environ.get("SCANBRIDGE_RELEASES_URL", defaults.DEFAULT_RELEASES_URL).rstrip("/"),
            releases_repo=(
                os.environ.get("SCANBRIDGE_RELEASES_REPO", "")
                or os.environ.get(defaults.ENV_RELEASES_REPO, "")
            ),
        )

    @property
    def issues_dir(self) -> Path:
        return self.home / defaults.ISSUES_DIR_NAME

    @property
    def logs_dir(self) -> Path:
        return self.home / defaults.LOGS_DIR_NAME


class EnvCredentials:
    """CredentialsPort backed by SCANBRIDGE_* environment variables."""

    def connection_details(self) -> ConnectionDetails | None:
        url = os.environ.get("SCANBRIDGE_PLATFORM_URL", "").rstrip("/")
        if not url:
            return None
        return ConnectionDetails(
            url=url,
            access_token=os.environ.get("SCANBRIDGE_ACCESS_TOKEN", ""),
            username=os.environ.get("SCANBRIDGE_USER", ""),
            password=os.environ.get("SCANBRIDGE_PASSWORD", ""),
        )


class StaticCredentials:
    """CredentialsPort returning fixed details (host integrations, tests)."""

    def __init__(self, details: ConnectionDetails | None) -> None:
        self._details = details

    def connection_details(self) -> ConnectionDetails | None:
        return self._details
