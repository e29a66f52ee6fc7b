"""Analyzer manager: the single entry point for running the analyzer binary.

Binds the binary Resource, Settings, credentials and the ProcessExecutor,
and bounds every invocation with the timeout/cancellation watchdog.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Mapping

import httpx

from scanbridge import defaults
from scanbridge.config import EnvCredentials, Settings
from scanbridge.environment import build_env, masked
from scanbridge.errors import ResourceUpdateError
from scanbridge.executor import ExecutionResult, ProcessExecutor
from scanbridge.ports import CredentialsPort
from scanbridge.resilience import CancelCheck, Task, run_with_timeout
from scanbridge.resource import Resource, analyzer_resource

log = logging.getLogger("scanbridge.analyzer")


def _truncate(text: str, limit: int = defaults.OUTPUT_LOG_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text) - limit} more characters]"


class AnalyzerManager:
    def __init__(
        self,
        settings: Settings | None = None,
        credentials: CredentialsPort | None = None,
        *,
        resource: Resource | None = None,
        executor: ProcessExecutor | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.credentials = credentials or EnvCredentials()
        self.resource = resource or analyzer_resource(self.settings, self.credentials.connection_details())
        self.executor = executor or ProcessExecutor()
        self._environ = environ
        self._prepared = False
        self._prepare_lock = asyncio.Lock()

    @property
    def binary(self) -> str:
        return str(self.resource.local_path)

    def exists(self) -> bool:
        return self.resource.exists()

    async def check_for_updates(self) -> bool:
        """Update the binary when a newer one is published; never raises.

        Returns True only when a new binary was installed.
        """
        if not self.resource.remote_url:
            return False
        try:
            if not await self.resource.is_update_available():
                return False
            log.info("Updating %s", self.resource.name)
            updated = await self.resource.update()
        except (ResourceUpdateError, httpx.HTTPError, OSError) as exc:
            log.error("Updating %s failed: %s", self.resource.name, exc)
            return False
        if updated:
            log.info("Updating %s finished successfully", self.resource.name)
        return updated

    async def prepare(self) -> None:
        """Run the update check once per manager, before the first scan."""
        async with self._prepare_lock:
            if self._prepared:
                return
            self._prepared = True
            await self.check_for_updates()

    def environment(self, log_dir: str | None = None) -> dict[str, str] | None:
        base_env = self._environ if self._environ is not None else os.environ
        return build_env(
            self.credentials.connection_details(),
            base_env=base_env,
            log_level=self.settings.log_level,
            log_dir=log_dir,
            proxy=self.settings.proxy,
            proxy_auth=self.settings.proxy_auth,
        )

    async def run(
        self,
        args: list[str],
        check_cancelled: CancelCheck | None = None,
        log_dir: str | None = None,
        cwd: str | None = None,
    ) -> ExecutionResult:
        """Execute the binary with *args* under the watchdog.

        The exit code is returned as-is; classifying it is up to the caller.
        """
        env = self.environment(log_dir)
        if env is None:
            log.debug("No platform credentials configured, running %s unauthenticated", self.resource.name)
        else:
            log.debug("Analyzer environment: %s", masked(env))
        [result] = await run_with_timeout(
            self.settings.timeout,
            check_cancelled,
            Task(self.resource.name, self.executor.execute(self.binary, args, cwd=cwd, env=env)),
            interval=self.settings.poll_interval,
        )
        if result.stdout:
            log.debug("Done executing with log, log:\n%s", _truncate(result.stdout))
        if result.stderr:
            log.error("Done executing with log, log:\n%s", _truncate(result.stderr))
        return result
