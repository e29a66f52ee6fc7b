"""Infrastructure-as-code misconfiguration scanning."""

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
    kind = ScanKind.IAC
    return make_request(
        kind,
        module.source_roots(kind, project_root),
        module.scan_exclude_patterns(kind, exclude_pattern),
    )


def command(context: RunContext) -> list[str]:
    return ["iac", str(context.request_path)]


def translate(response: ScanResponse | None) -> list[FileWithIssues]:
    return group_by_file(response)


SPEC = RunnerSpec(
    kind=ScanKind.IAC,
    build_request=build_request,
    command=command,
    translate=translate,
    description="infrastructure as code",
)
