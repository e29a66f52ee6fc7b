"""Contextual analysis: which of the given CVEs are reachable in the code."""

from __future__ import annotations

from typing import Sequence

from scanbridge import defaults
from scanbridge.apps_config import Module
from scanbridge.models import (
    ApplicabilityResult,
    CveApplicableDetails,
    FileEvidence,
    RunContext,
    ScanKind,
    ScanRequest,
)
from scanbridge.runners.base import RunnerSpec, make_request
from scanbridge.runners.translate import parse_location_path, to_region
from scanbridge.sarif import ScanResponse

NOT_APPLICABLE_KIND = "pass"


def cve_from_rule_id(rule_id: str) -> str:
    start = rule_id.find("CVE")
    return rule_id[start:] if start >= 0 else rule_id


def build_request(
    module: Module,
    project_root: str,
    cves: Sequence[str] = (),
    exclude_pattern: str = defaults.DEFAULT_EXCLUDE_PATTERN,
) -> ScanRequest:
    kind = ScanKind.APPLICABILITY
    return make_request(
        kind,
        module.source_roots(kind, project_root),
        module.scan_exclude_patterns(kind, exclude_pattern),
        cve_whitelist=tuple(dict.fromkeys(cves)),
        grep_disable=False,
    )


def command(context: RunContext) -> list[str]:
    return ["ca", str(context.request_path)]


def to_applicability_result(response: ScanResponse | None) -> ApplicabilityResult:
    """Collect scanned CVEs and the evidence for the applicable ones.

    Every rule of the run counts as scanned. A result of kind ``pass`` means
    the CVE was checked and is not applicable; any other result makes it
    applicable, with the result message as the fix reason.
    """
    result = ApplicabilityResult()
    if response is None or not response.runs:
        return result
    scanned: dict[str, None] = {}
    for run in response.runs:
        for rule in run.tool.driver.rules:
            scanned[cve_from_rule_id(rule.id)] = None
        for issue in run.results:
            cve = cve_from_rule_id(issue.ruleId)
            scanned[cve] = None
            if issue.kind == NOT_APPLICABLE_KIND:
                continue
            details = result.applicable_cves.get(cve)
            if details is None or details.fix_reason != issue.message.text:
                details = CveApplicableDetails(fix_reason=issue.message.text)
                result.applicable_cves[cve] = details
            for location in issue.locations:
                path = parse_location_path(location.physicalLocation.artifactLocation.uri)
                evidence = next((e for e in details.file_evidences if e.full_path == path), None)
                if evidence is None:
                    evidence = FileEvidence(full_path=path)
                    details.file_evidences.append(evidence)
                evidence.locations.append(to_region(location.physicalLocation.region))
    result.scanned_cves = list(scanned)
    return result


SPEC = RunnerSpec(
    kind=ScanKind.APPLICABILITY,
    build_request=build_request,
    command=command,
    translate=to_applicability_result,
    description="CVE contextual analysis",
)
