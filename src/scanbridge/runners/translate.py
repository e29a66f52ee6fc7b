"""Translate analyzer responses into per-file issue lists."""

from __future__ import annotations

import sys
from urllib.parse import unquote

from scanbridge.models import (
    FileLocation,
    FileRegion,
    FileWithIssues,
    IssueLocation,
    SecurityIssue,
    level_to_severity,
)
from scanbridge.sarif import AnalyzeIssue, CodeFlow, PhysicalLocation, Region, ScanResponse

_FILE_PREFIX = "file://"


def parse_location_path(uri: str) -> str:
    """Strip the ``file://`` scheme from a result URI and decode it."""
    if sys.platform == "win32" and uri.startswith(_FILE_PREFIX + "/"):
        uri = uri[len(_FILE_PREFIX) + 1:].replace("/", "\\")
    elif uri.startswith(_FILE_PREFIX):
        uri = uri[len(_FILE_PREFIX):]
    return unquote(uri)


def to_region(region: Region) -> FileRegion:
    return FileRegion(
        start_line=region.startLine,
        start_column=region.startColumn,
        end_line=region.endLine,
        end_column=region.endColumn,
        snippet=region.snippet.text if region.snippet is not None else None,
    )


def to_file_location(location: PhysicalLocation) -> FileLocation:
    return FileLocation(
        file_path=parse_location_path(location.artifactLocation.uri),
        region=to_region(location.region),
    )


def group_by_file(response: ScanResponse | None, *, code_flows: bool = False) -> list[FileWithIssues]:
    """Group results by file, then by rule id.

    Suppressed results are dropped. The first result of a rule in a file
    decides severity, rule name and description; further results of the same
    rule only add locations. With *code_flows*, a thread flow is attached to
    a location when its last step points at the same file and region.
    """
    files: dict[str, FileWithIssues] = {}
    if response is None:
        return []
    for run in response.runs:
        descriptions = run.rule_descriptions()
        for result in run.results:
            if result.suppressed:
                continue
            _add_result(files, result, descriptions.get(result.ruleId), code_flows)
    return list(files.values())


def _add_result(
    files: dict[str, FileWithIssues],
    result: AnalyzeIssue,
    description: str | None,
    code_flows: bool,
) -> None:
    for location in result.locations:
        path = parse_location_path(location.physicalLocation.artifactLocation.uri)
        file_issues = files.get(path)
        if file_issues is None:
            file_issues = files[path] = FileWithIssues(full_path=path)
        issue = file_issues.issue(result.ruleId)
        if issue is None:
            issue = SecurityIssue(
                rule_id=result.ruleId,
                severity=level_to_severity(result.level),
                rule_name=result.message.text,
                full_description=description,
            )
            file_issues.issues.append(issue)
        issue_location = IssueLocation(region=to_region(location.physicalLocation.region))
        issue.locations.append(issue_location)
        if code_flows and result.codeFlows:
            issue_location.thread_flows.extend(_matching_flows(path, issue_location.region, result.codeFlows))


def _matching_flows(path: str, region: FileRegion, flows: list[CodeFlow]) -> list[list[FileLocation]]:
    matched: list[list[FileLocation]] = []
    for flow in flows:
        for thread in flow.threadFlows:
            if not thread.locations:
                continue
            last = to_file_location(thread.locations[-1].location.physicalLocation)
            if last.file_path == path and last.region.same_region(region):
                matched.append([to_file_location(step.location.physicalLocation) for step in thread.locations])
    return matched
