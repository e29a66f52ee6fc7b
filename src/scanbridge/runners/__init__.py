"""Scan runners, one generic ``ScanRunner`` per kind selected from ``RUNNER_SPECS``."""

from __future__ import annotations

from scanbridge.analyzer import AnalyzerManager
from scanbridge.models import ScanKind
from scanbridge.runners import applicability, eos, iac, sast, secrets
from scanbridge.runners.base import RunnerSpec, RunnerState, ScanRunner, classify_exit_code

RUNNER_SPECS: dict[ScanKind, RunnerSpec] = {
    spec.kind: spec
    for spec in (applicability.SPEC, sast.SPEC, iac.SPEC, secrets.SPEC, eos.SPEC)
}


def create_runner(kind: ScanKind, analyzer: AnalyzerManager) -> ScanRunner:
    return ScanRunner(RUNNER_SPECS[kind], analyzer)


__all__ = [
    "RUNNER_SPECS",
    "RunnerSpec",
    "RunnerState",
    "ScanRunner",
    "classify_exit_code",
    "create_runner",
]
