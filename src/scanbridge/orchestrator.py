"""Scan orchestrator.

Decides which scan kinds run for each module of a project, runs them
concurrently, and aggregates per-kind results into a ``ScanSummary``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, Mapping, Sequence

from scanbridge.analyzer import AnalyzerManager
from scanbridge.apps_config import AppsConfig, AppsConfigError, Module, load_apps_config
from scanbridge.config import Settings
from scanbridge.errors import FATAL_ERRORS, UNSUPPORTED_ERRORS, ScanError
from scanbridge.models import KindResult, ScanKind, ScanStatus, ScanSummary, new_id
from scanbridge.resilience import CancelCheck
from scanbridge.runners import RUNNER_SPECS, RunnerSpec, ScanRunner

log = logging.getLogger("scanbridge.orchestrator")

DEFAULT_KINDS: tuple[ScanKind, ...] = (
    ScanKind.APPLICABILITY,
    ScanKind.SAST,
    ScanKind.IAC,
    ScanKind.SECRETS,
    ScanKind.EOS,
)


class ScanOrchestrator:
    """Runs the configured scan kinds against a project root.

    Parameters
    ----------
    analyzer:
        The manager that owns the analyzer binary.
    settings:
        Session settings; defaults to the analyzer's.
    runners:
        Runner specs by kind; defaults to ``RUNNER_SPECS``.
    """

    def __init__(
        self,
        analyzer: AnalyzerManager,
        settings: Settings | None = None,
        runners: Mapping[ScanKind, RunnerSpec] | None = None,
    ) -> None:
        self.analyzer = analyzer
        self.settings = settings or analyzer.settings
        self.runners = dict(runners) if runners is not None else dict(RUNNER_SPECS)

    def load_config(self, root: str) -> AppsConfig:
        try:
            return load_apps_config(root)
        except AppsConfigError as exc:
            log.error("%s, scanning %s with defaults", exc, root)
            return AppsConfig(modules=[Module(source_root=root)])

    async def scan(
        self,
        root: str,
        *,
        kinds: Iterable[ScanKind] | None = None,
        cves: Sequence[str] | None = None,
        check_cancelled: CancelCheck | None = None,
    ) -> ScanSummary:
        """Scan *root* with every enabled kind.

        ``NotEntitledError`` and ``ScanCancelledError`` cancel the remaining
        kinds and propagate. Any other failure only marks its own kind.
        """
        summary = ScanSummary(scan_id=new_id(), root=root)
        explicit = kinds is not None
        selected = [k for k in (kinds or DEFAULT_KINDS) if k in self.runners]
        log.info("Scan %s started for %s: %s", summary.scan_id, root, [k.label for k in selected],
                 extra={"scan_id": summary.scan_id})

        await self.analyzer.prepare()
        config = self.load_config(root)

        jobs: list[tuple[KindResult | None, ScanRunner | None, Module]] = []
        for module in config.modules:
            for kind in selected:
                if kind == ScanKind.APPLICABILITY and not cves:
                    if explicit:
                        jobs.append((self._skipped(kind, module, "no CVEs to scan"), None, module))
                    continue
                runner = ScanRunner(self.runners[kind], self.analyzer)
                if not runner.should_run(module):
                    reason = "analyzer not installed" if not self.analyzer.exists() else "excluded by apps config"
                    jobs.append((self._skipped(kind, module, reason), None, module))
                    continue
                jobs.append((None, runner, module))

        tasks = [
            asyncio.ensure_future(self._run_kind(runner, module, root, cves or (), check_cancelled))
            for _, runner, module in jobs
            if runner is not None
        ]
        try:
            outcomes = iter(await asyncio.gather(*tasks))
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for done, runner, _ in jobs:
            summary.results.append(done if runner is None else next(outcomes))

        log.info(
            "Scan %s finished: %d issue(s) across %d kind run(s)",
            summary.scan_id, summary.total_issues, len(summary.results),
            extra={"scan_id": summary.scan_id},
        )
        return summary

    async def _run_kind(
        self,
        runner: ScanRunner,
        module: Module,
        root: str,
        cves: Sequence[str],
        check_cancelled: CancelCheck | None,
    ) -> KindResult:
        started = time.monotonic()
        try:
            return await runner.scan(module, root, cves=cves, check_cancelled=check_cancelled)
        except FATAL_ERRORS:
            raise
        except UNSUPPORTED_ERRORS as exc:
            return KindResult(
                kind=runner.kind, status=ScanStatus.NOT_SUPPORTED, module=module.name,
                reason=str(exc), elapsed=time.monotonic() - started,
            )
        except (ScanError, OSError) as exc:
            return self._failed(runner, module, str(exc), started)
        except Exception as exc:
            log.exception("%s scan of module '%s' failed unexpectedly", runner.kind.label, module.name or root)
            return self._failed(runner, module, f"{type(exc).__name__}: {exc}", started)

    @staticmethod
    def _failed(runner: ScanRunner, module: Module, reason: str, started: float) -> KindResult:
        return KindResult(
            kind=runner.kind, status=ScanStatus.FAILED, module=module.name,
            reason=reason, elapsed=time.monotonic() - started,
        )

    @staticmethod
    def _skipped(kind: ScanKind, module: Module, reason: str) -> KindResult:
        log.debug("Skipping %s for module '%s': %s", kind.label, module.name or module.source_root, reason)
        return KindResult(kind=kind, status=ScanStatus.SKIPPED, module=module.name, reason=reason)
