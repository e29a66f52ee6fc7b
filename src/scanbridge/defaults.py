"""Single source of truth for shared constants and configuration defaults.

Values that form the contract with the analyzer binary (exit codes,
environment variable names, download layout) live here together with the
tunables that ``scanbridge.config.Settings`` falls back to.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Analyzer binary
# ---------------------------------------------------------------------------

ANALYZER_VERSION = "1.3.2.2019257"
ANALYZER_BINARY_NAME = "analyzerManager"
ANALYZER_DOWNLOAD_PATH = "xsc-gen-exe-analyzer-manager-local/v1"
DEFAULT_RELEASES_URL = "https://releases.jfrog.io/artifactory"
CHECKSUM_HEADER = "X-Checksum-Sha256"

# ---------------------------------------------------------------------------
# Exit codes reported by the analyzer
# ---------------------------------------------------------------------------

EXIT_SUCCESS = 0
EXIT_NOT_ENTITLED = 31
EXIT_NOT_SUPPORTED = 13
EXIT_OS_NOT_SUPPORTED = 55

# ---------------------------------------------------------------------------
# Environment variables consumed by the analyzer
# ---------------------------------------------------------------------------

ENV_PLATFORM_URL = "JF_PLATFORM_URL"
ENV_TOKEN = "JF_TOKEN"
ENV_USER = "JF_USER"
ENV_PASSWORD = "JF_PASS"
ENV_LOG_DIR = "AM_LOG_DIRECTORY"
ENV_LOG_LEVEL = "JFROG_CLI_LOG_LEVEL"
ENV_HTTP_PROXY = "HTTP_PROXY"
ENV_HTTPS_PROXY = "HTTPS_PROXY"
ENV_RELEASES_REPO = "JF_RELEASES_REPO"

# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

SCAN_TIMEOUT_SECONDS = 300.0
CANCEL_POLL_INTERVAL_SECONDS = 0.1
DOWNLOAD_TIMEOUT_SECONDS = 120.0
DOWNLOAD_GUARD_SECONDS = 60 * 60
OUTPUT_LOG_LIMIT = 4000

# ---------------------------------------------------------------------------
# Files and directories
# ---------------------------------------------------------------------------

HOME_DIR_NAME = ".scanbridge"
ISSUES_DIR_NAME = "issues"
LOGS_DIR_NAME = "logs"
STAGING_DIR_NAME = "download"
REQUEST_FILE_NAME = "request"
RESPONSE_FILE_NAME = "response"
KEEP_LOGS_COUNT = 100
APPS_CONFIG_PATH = (".jfrog", "jfrog-apps-config.yml")
APPS_CONFIG_VERSION = "1.0"
DEFAULT_EXCLUDE_PATTERN = "**/*{test,venv,node_modules,target}*"

# ---------------------------------------------------------------------------
# Log levels (python level name -> analyzer level name)
# ---------------------------------------------------------------------------

ANALYZER_LOG_LEVELS: dict[str, str] = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARN",
    "WARN": "WARN",
    "ERROR": "ERROR",
    "CRITICAL": "ERROR",
}
