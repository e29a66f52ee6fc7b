"""Generic scan runner.

A runner is one ``ScanRunner`` configured by a ``RunnerSpec``: the spec
says how to build the request, which analyzer command to run and how to
translate the response. Each invocation walks

    IDLE -> BUILDING_REQUEST -> EXECUTING -> PARSING_RESPONSE -> DONE

or ends in FAILED, and always removes its temporary directory.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence, Union

from scanbridge import defaults
from scanbridge.analyzer import AnalyzerManager
from scanbridge.apps_config import Module
from scanbridge.channel import cleanup, create_run_context, read_response, write_request
from scanbridge.errors import (
    NotEntitledError,
    NotSupportedError,
    OsNotSupportedError,
    ScanCancelledError,
    ScanError,
    ScanExecutionError,
)
from scanbridge.logs import copy_run_log
from scanbridge.models import (
    ApplicabilityResult,
    FileWithIssues,
    KindResult,
    RunContext,
    ScanKind,
    ScanRequest,
    ScanStatus,
)
from scanbridge.resilience import CancelCheck
from scanbridge.sarif import ScanResponse

log = logging.getLogger("scanbridge.runners")

Translated = Union[list[FileWithIssues], ApplicabilityResult]
RequestBuilder = Callable[[Module, str, Sequence[str], str], ScanRequest]
CommandBuilder = Callable[[RunContext], list[str]]
Translator = Callable[[ScanResponse | None], Translated]


class RunnerState(str, Enum):
    IDLE = "idle"
    BUILDING_REQUEST = "building_request"
    EXECUTING = "executing"
    PARSING_RESPONSE = "parsing_response"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RunnerSpec:
    """Per-kind behaviour plugged into the generic runner."""
    kind: ScanKind
    build_request: RequestBuilder
    command: CommandBuilder
    translate: Translator
    description: str = ""

    @property
    def label(self) -> str:
        return self.kind.label


_EXIT_ERRORS: dict[int, type[ScanError]] = {
    defaults.EXIT_NOT_ENTITLED: NotEntitledError,
    defaults.EXIT_NOT_SUPPORTED: NotSupportedError,
    defaults.EXIT_OS_NOT_SUPPORTED: OsNotSupportedError,
}


def classify_exit_code(exit_code: int, kind: ScanKind, stderr: str = "") -> None:
    """Raise the typed error for a non-zero analyzer exit code."""
    if exit_code == defaults.EXIT_SUCCESS:
        return
    error = _EXIT_ERRORS.get(exit_code)
    if error is not None:
        raise error(kind.label)
    detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
    raise ScanExecutionError(
        f"Analyzer '{kind.label}' exited with code {exit_code}" + (f": {detail}" if detail else ""),
        kind=kind.label,
        exit_code=exit_code,
    )


class ScanRunner:
    def __init__(self, spec: RunnerSpec, analyzer: AnalyzerManager) -> None:
        self.spec = spec
        self.analyzer = analyzer
        self.state = RunnerState.IDLE

    @property
    def kind(self) -> ScanKind:
        return self.spec.kind

    def should_run(self, module: Module | None = None) -> bool:
        if not self.analyzer.exists():
            log.debug("Analyzer binary %s not found, skipping %s", self.analyzer.binary, self.kind.label)
            return False
        if module is not None and module.should_skip(self.kind):
            log.debug("Module '%s' excludes %s, skipping", module.name or module.source_root, self.kind.label)
            return False
        return True

    async def scan(
        self,
        module: Module,
        project_root: str,
        *,
        cves: Sequence[str] = (),
        check_cancelled: CancelCheck | None = None,
    ) -> KindResult:
        """Build the module's request, run it and translate the response."""
        started = time.monotonic()
        self.state = RunnerState.BUILDING_REQUEST
        request = self.spec.build_request(module, project_root, cves, self.analyzer.settings.exclude_pattern)
        log.debug(
            "Scanning directories %s for %s issues. Skipping folders: %s",
            list(request.roots), self.spec.description or self.kind.label, list(request.skipped_folders),
        )
        response = await self.execute_request(request, check_cancelled)
        translated = self.spec.translate(response)
        elapsed = time.monotonic() - started
        result = KindResult(
            kind=self.kind,
            status=ScanStatus.COMPLETED,
            module=module.name,
            elapsed=elapsed,
        )
        if isinstance(translated, ApplicabilityResult):
            result.applicability = translated
        else:
            result.files = translated
        log.info(
            "Found %d %s issue(s) in %s (elapsed %.3f seconds)",
            result.issue_count, self.kind.label, ", ".join(request.roots) or project_root, elapsed,
        )
        return result

    async def execute_request(
        self,
        request: ScanRequest,
        check_cancelled: CancelCheck | None = None,
    ) -> ScanResponse | None:
        """Run one request through the analyzer; None when there is nothing to scan."""
        if not request.roots:
            log.debug("No roots to scan for %s", self.kind.label)
            self.state = RunnerState.DONE
            return None
        self.state = RunnerState.BUILDING_REQUEST
        context = create_run_context(request.roots)
        error: BaseException | None = None
        try:
            request = dataclasses.replace(request, output=str(context.response_path))
            request_text = write_request(context, request)
            self.state = RunnerState.EXECUTING
            result = await self.analyzer.run(
                self.spec.command(context),
                check_cancelled,
                log_dir=str(context.directory),
            )
            classify_exit_code(result.exit_code, self.kind, result.stderr)
            self.state = RunnerState.PARSING_RESPONSE
            response = read_response(context.response_path, request_text, self.kind)
            self.state = RunnerState.DONE
            return response
        except BaseException as exc:
            self.state = RunnerState.FAILED
            error = exc
            self._log_failure(exc, request)
            raise
        finally:
            self._collect_log(context, error)
            cleanup(context)

    def _log_failure(self, exc: BaseException, request: ScanRequest) -> None:
        roots = list(request.roots)
        if isinstance(exc, (ScanCancelledError, asyncio.CancelledError)):
            log.info("%s scan of %s was cancelled", self.kind.label, roots)
        elif isinstance(exc, (NotSupportedError, OsNotSupportedError)):
            log.debug("%s scan of %s is not supported: %s", self.kind.label, roots, exc)
        elif isinstance(exc, ScanError):
            log.error(
                "%s scan of %s failed: %s", self.kind.label, roots, exc,
                extra={
                    "scan_kind": self.kind.label,
                    "roots": roots,
                    "exit_code": getattr(exc, "exit_code", None),
                },
            )
        else:
            log.exception("%s scan of %s failed unexpectedly", self.kind.label, roots)

    def _collect_log(self, context: RunContext, error: BaseException | None) -> None:
        settings = self.analyzer.settings
        try:
            target = copy_run_log(
                context.directory, settings.logs_dir, context.unique_roots(),
                self.kind.label, settings.keep_logs,
            )
        except OSError as exc:
            log.warning("Could not copy %s run log: %s", self.kind.label, exc)
            return
        if target is None or isinstance(error, NotSupportedError):
            return
        outcome = "ended with an error" if error is not None else "completed"
        log.info("%s scan %s, scan log was generated at %s", self.kind.label, outcome, target)


def make_request(
    kind: ScanKind,
    roots: Sequence[str],
    skipped_folders: Sequence[str] = (),
    **options: Any,
) -> ScanRequest:
    return ScanRequest(
        kind=kind,
        roots=tuple(roots),
        skipped_folders=tuple(skipped_folders),
        options={k: v for k, v in options.items() if v is not None},
    )
