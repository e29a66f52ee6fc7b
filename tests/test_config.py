"""Tests for environment-driven settings and credentials."""

import os
from pathlib import Path
from unittest.mock import patch

from scanbridge import defaults
from scanbridge.config import EnvCredentials, ProxyConfig, Settings


def _clean_env(**values):
    env = {k: v for k, v in os.environ.items() if not k.startswith("SCANBRIDGE_") and k != "JF_RELEASES_REPO"}
    env.update(values)
    return patch.dict(os.environ, env, clear=True)


class TestSettings:
    def test_defaults(self, tmp_path):
        with _clean_env(SCANBRIDGE_HOME=str(tmp_path)):
            s = Settings.from_env()
        assert s.home == tmp_path
        assert s.timeout == defaults.SCAN_TIMEOUT_SECONDS
        assert s.keep_logs == defaults.KEEP_LOGS_COUNT
        assert s.releases_url == defaults.DEFAULT_RELEASES_URL
        assert s.releases_repo == ""
        assert s.proxy is None
        assert s.issues_dir == tmp_path / "issues"
        assert s.logs_dir == tmp_path / "logs"

    def test_home_defaults_to_user_directory(self):
        with _clean_env():
            s = Settings.from_env()
        assert s.home == Path.home() / defaults.HOME_DIR_NAME

    def test_overrides(self):
        with _clean_env(
            SCANBRIDGE_TIMEOUT="12.5",
            SCANBRIDGE_KEEP_LOGS="3",
            SCANBRIDGE_LOG_LEVEL="debug",
            SCANBRIDGE_RELEASES_URL="https://mirror.example/artifactory/",
        ):
            s = Settings.from_env()
        assert s.timeout == 12.5
        assert s.keep_logs == 3
        assert s.log_level == "DEBUG"
        assert s.releases_url == "https://mirror.example/artifactory"

    def test_invalid_numbers_fall_back(self):
        with _clean_env(SCANBRIDGE_TIMEOUT="soon", SCANBRIDGE_KEEP_LOGS="many"):
            s = Settings.from_env()
        assert s.timeout == defaults.SCAN_TIMEOUT_SECONDS
        assert s.keep_logs == defaults.KEEP_LOGS_COUNT

    def test_releases_repo_falls_back_to_jf_variable(self):
        with _clean_env(JF_RELEASES_REPO="releases-remote"):
            assert Settings.from_env().releases_repo == "releases-remote"
        with _clean_env(JF_RELEASES_REPO="releases-remote", SCANBRIDGE_RELEASES_REPO="own-remote"):
            assert Settings.from_env().releases_repo == "own-remote"

    def test_proxy(self):
        with _clean_env(SCANBRIDGE_PROXY_HOST="proxy.local", SCANBRIDGE_PROXY_PORT="8080"):
            s = Settings.from_env()
        assert s.proxy == ProxyConfig("proxy.local", 8080)
        assert s.proxy.address == "proxy.local:8080"

    def test_proxy_address_without_port(self):
        assert ProxyConfig("proxy.local").address == "proxy.local"


class TestEnvCredentials:
    def test_none_without_url(self):
        with _clean_env(SCANBRIDGE_ACCESS_TOKEN="tok"):
            assert EnvCredentials().connection_details() is None

    def test_token(self):
        with _clean_env(SCANBRIDGE_PLATFORM_URL="https://platform.example/", SCANBRIDGE_ACCESS_TOKEN="tok"):
            details = EnvCredentials().connection_details()
        assert details.url == "https://platform.example"
        assert details.access_token == "tok"
        assert details.has_credentials

    def test_user_password(self):
        with _clean_env(
            SCANBRIDGE_PLATFORM_URL="https://platform.example",
            SCANBRIDGE_USER="admin",
            SCANBRIDGE_PASSWORD="secret",
        ):
            details = EnvCredentials().connection_details()
        assert details.username == "admin"
        assert details.password == "secret"
        assert details.access_token == ""
