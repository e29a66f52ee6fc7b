"""Analyzer environment construction."""

import base64

import pytest

from scanbridge.config import ProxyConfig
from scanbridge.environment import add_proxy_auth, analyzer_log_level, build_env, masked, proxy_urls
from scanbridge.ports import ConnectionDetails

TOKEN = ConnectionDetails(url="https://platform.example", access_token="tok")
BASIC = ConnectionDetails(url="https://platform.example", username="alice", password="s3cret")


class TestBuildEnv:
    def test_no_credentials_returns_none(self):
        assert build_env(None, base_env={"PATH": "/bin"}) is None
        assert build_env(ConnectionDetails(url="https://x"), base_env={}) is None
        assert build_env(ConnectionDetails(url="", access_token="t"), base_env={}) is None

    def test_token_only(self):
        env = build_env(TOKEN, base_env={"PATH": "/bin"})
        assert env["PATH"] == "/bin"
        assert env["JF_PLATFORM_URL"] == "https://platform.example"
        assert env["JF_TOKEN"] == "tok"
        assert "JF_USER" not in env
        assert "JF_PASS" not in env

    def test_user_password_only(self):
        env = build_env(BASIC, base_env={})
        assert env["JF_USER"] == "alice"
        assert env["JF_PASS"] == "s3cret"
        assert "JF_TOKEN" not in env

    def test_token_wins_over_user_password(self):
        both = ConnectionDetails(url="https://p", access_token="tok", username="u", password="p")
        env = build_env(both, base_env={})
        assert env["JF_TOKEN"] == "tok"
        assert "JF_USER" not in env

    def test_ambient_credentials_are_not_leaked(self):
        env = build_env(TOKEN, base_env={"JF_USER": "ambient", "JF_PASS": "ambient"})
        assert "JF_USER" not in env
        assert "JF_PASS" not in env

    def test_log_level_and_directory(self):
        env = build_env(TOKEN, base_env={}, log_level="warning", log_dir="/tmp/run")
        assert env["JFROG_CLI_LOG_LEVEL"] == "WARN"
        assert env["AM_LOG_DIRECTORY"] == "/tmp/run"

    def test_no_log_directory_by_default(self):
        assert "AM_LOG_DIRECTORY" not in build_env(TOKEN, base_env={})

    def test_does_not_mutate_base_env(self):
        base = {"PATH": "/bin"}
        build_env(TOKEN, base_env=base, log_dir="/tmp")
        assert base == {"PATH": "/bin"}

    def test_explicit_proxy_overrides_ambient(self):
        env = build_env(
            TOKEN,
            base_env={"HTTP_PROXY": "http://ambient:1", "HTTPS_PROXY": "https://ambient:1"},
            proxy=ProxyConfig(host="proxy.local", port=8080),
        )
        assert env["HTTP_PROXY"] == "http://proxy.local:8080"
        assert env["HTTPS_PROXY"] == "https://proxy.local:8080"

    def test_ambient_proxy_with_bearer_auth(self):
        env = build_env(
            TOKEN,
            base_env={"HTTPS_PROXY": "https://ambient:3128"},
            proxy_auth="Bearer abc",
        )
        assert env["HTTPS_PROXY"] == "https://ambient:3128?access_token=abc"
        assert "HTTP_PROXY" not in env


class TestProxy:
    def test_proxy_without_port(self):
        assert proxy_urls({}, ProxyConfig(host="p")) == ("http://p", "https://p")

    def test_no_proxy(self):
        assert proxy_urls({}, None) == ("", "")

    def test_basic_auth_is_decoded_and_prefixed(self):
        auth = "Basic " + base64.b64encode(b"user:pass").decode()
        assert add_proxy_auth("http://proxy:80", auth) == "user:pass@http://proxy:80"

    def test_bearer_auth_appended(self):
        assert add_proxy_auth("http://proxy", "Bearer t0k") == "http://proxy?access_token=t0k"

    def test_unknown_auth_ignored(self):
        assert add_proxy_auth("http://proxy", "Digest x") == "http://proxy"
        assert add_proxy_auth("http://proxy", "") == "http://proxy"

    def test_malformed_basic_auth_ignored(self):
        assert add_proxy_auth("http://proxy", "Basic !!!not-base64") == "http://proxy"


class TestHelpers:
    @pytest.mark.parametrize("level,expected", [
        ("DEBUG", "DEBUG"), ("info", "INFO"), ("WARNING", "WARN"),
        ("ERROR", "ERROR"), ("CRITICAL", "ERROR"), ("bogus", "INFO"),
    ])
    def test_log_level_translation(self, level, expected):
        assert analyzer_log_level(level) == expected

    def test_masked_hides_secrets(self):
        env = build_env(BASIC, base_env={"HOME": "/root"})
        shown = masked(env)
        assert shown["JF_PASS"] == "***"
        assert shown["JF_USER"] == "alice"
        assert "HOME" not in shown
        assert masked(None) == {}
