"""Environment for analyzer runs.

``build_env`` is a pure function: it never reads ``os.environ`` itself, the
caller passes the base environment in.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Mapping

from scanbridge import defaults
from scanbridge.config import ProxyConfig
from scanbridge.ports import ConnectionDetails

log = logging.getLogger("scanbridge.environment")

_BASIC_PREFIX = "Basic "
_BEARER_PREFIX = "Bearer "
_SECRET_KEYS = (defaults.ENV_TOKEN, defaults.ENV_PASSWORD)


def analyzer_log_level(level: str) -> str:
    return defaults.ANALYZER_LOG_LEVELS.get(level.upper(), "INFO")


def build_env(
    connection: ConnectionDetails | None,
    *,
    base_env: Mapping[str, str],
    log_level: str = "INFO",
    log_dir: str | None = None,
    proxy: ProxyConfig | None = None,
    proxy_auth: str = "",
) -> dict[str, str] | None:
    """Return the analyzer process environment, or None without credentials.

    The result is *base_env* overlaid with the platform URL, a token or a
    user/password pair (never both), the analyzer log level, the optional
    execution log directory and the proxy URLs.
    """
    if connection is None or not connection.has_credentials:
        return None

    binary_vars: dict[str, str] = {
        defaults.ENV_LOG_LEVEL: analyzer_log_level(log_level),
        defaults.ENV_PLATFORM_URL: connection.url,
    }
    if connection.access_token:
        binary_vars[defaults.ENV_TOKEN] = connection.access_token
    else:
        binary_vars[defaults.ENV_USER] = connection.username
        binary_vars[defaults.ENV_PASSWORD] = connection.password

    http_proxy, https_proxy = proxy_urls(base_env, proxy)
    if http_proxy:
        binary_vars[defaults.ENV_HTTP_PROXY] = add_proxy_auth(http_proxy, proxy_auth)
    if https_proxy:
        binary_vars[defaults.ENV_HTTPS_PROXY] = add_proxy_auth(https_proxy, proxy_auth)
    if log_dir:
        binary_vars[defaults.ENV_LOG_DIR] = log_dir

    env = {k: v for k, v in base_env.items() if k not in (defaults.ENV_TOKEN, defaults.ENV_USER, defaults.ENV_PASSWORD)}
    env.update(binary_vars)
    return env


def proxy_urls(base_env: Mapping[str, str], proxy: ProxyConfig | None) -> tuple[str, str]:
    """Explicit proxy configuration wins over ambient HTTP(S)_PROXY."""
    if proxy is not None and proxy.host:
        return f"http://{proxy.address}", f"https://{proxy.address}"
    return (
        base_env.get(defaults.ENV_HTTP_PROXY, ""),
        base_env.get(defaults.ENV_HTTPS_PROXY, ""),
    )


def add_proxy_auth(url: str, proxy_auth: str) -> str:
    """Embed proxy authorization into *url*.

    ``Basic <base64(user:password)>`` is decoded and prefixed as
    ``user:password@url``; ``Bearer <token>`` is appended as an
    ``access_token`` query parameter. Anything else leaves *url* unchanged.
    """
    if proxy_auth.startswith(_BASIC_PREFIX):
        try:
            decoded = base64.b64decode(proxy_auth[len(_BASIC_PREFIX):], validate=True).decode("latin-1")
        except (binascii.Error, ValueError):
            log.warning("Ignoring malformed Basic proxy authorization")
            return url
        return f"{decoded}@{url}"
    if proxy_auth.startswith(_BEARER_PREFIX):
        return f"{url}?access_token={proxy_auth[len(_BEARER_PREFIX):]}"
    return url


def masked(env: Mapping[str, str] | None) -> dict[str, str]:
    """Copy of the analyzer-specific variables with secrets hidden, for logs."""
    if env is None:
        return {}
    keys = (
        defaults.ENV_PLATFORM_URL, defaults.ENV_TOKEN, defaults.ENV_USER,
        defaults.ENV_PASSWORD, defaults.ENV_LOG_LEVEL, defaults.ENV_LOG_DIR,
        defaults.ENV_HTTP_PROXY, defaults.ENV_HTTPS_PROXY,
    )
    return {
        k: ("***" if k in _SECRET_KEYS else env[k])
        for k in keys
        if k in env
    }
