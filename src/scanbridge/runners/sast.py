"""Static application security testing."""

from __future__ import annotations

from typing import Sequence

from scanbridge import defaults
from scanbridge.apps_config import Module
from scanbridge.models import FileWithIssues, RunContext, ScanKind, ScanRequest
from scanbridge.runners.base import RunnerSpec, make_request
from scanbridge.runners.translate import group_by_file
from scanbridge.sarif import ScanResponse


def build_request(
    module: Module,
    project_root: str,
    cves: Sequence[str] = (),
    exclude_pattern: str = defaults.DEFAULT_EXCLUDE_PATTERN,
) -> ScanRequest:
    kind = ScanKind.SAST
    scanner = module.scanners.sast
    return make_request(
        kind,
        module.source_roots(kind, project_root),
        language=scanner.language if scanner is not None else None,
        exclude_patterns=tuple(module.scan_exclude_patterns(kind, exclude_pattern)),
        excluded_rules=tuple(scanner.excluded_rules) if scanner is not None and scanner.excluded_rules else None,
    )


def command(context: RunContext) -> list[str]:
    return ["zd", str(context.request_path), str(context.response_path)]


def translate(response: ScanResponse | None) -> list[FileWithIssues]:
    return group_by_file(response, code_flows=True)


SPEC = RunnerSpec(
    kind=ScanKind.SAST,
    build_request=build_request,
    command=command,
    translate=translate,
    description="static analysis",
)
