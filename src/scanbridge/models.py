"""Core data types for scanbridge."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return uuid.uuid4().hex[:12]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ScanKind(str, Enum):
    """Scan kinds, valued by the ``type`` the analyzer expects in a request."""
    APPLICABILITY = "analyze-applicability"
    SAST = "sast"
    IAC = "iac-scan-modules"
    SECRETS = "secrets-scan"
    EOS = "analyze-codebase"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS = {
    ScanKind.APPLICABILITY: "applicability",
    ScanKind.SAST: "sast",
    ScanKind.IAC: "iac",
    ScanKind.SECRETS: "secrets",
    ScanKind.EOS: "eos",
}


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"
    UNKNOWN = "unknown"


_LEVEL_SEVERITY = {
    "error": Severity.HIGH,
    "warning": Severity.MEDIUM,
    "note": Severity.LOW,
    "none": Severity.UNKNOWN,
}


def level_to_severity(level: str | None) -> Severity:
    """Map a SARIF result level to a Severity (absent level means warning)."""
    if level is None:
        return Severity.MEDIUM
    return _LEVEL_SEVERITY.get(level.lower(), Severity.UNKNOWN)


class ScanStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    NOT_SUPPORTED = "not_supported"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScanRequest:
    kind: ScanKind
    roots: tuple[str, ...]
    skipped_folders: tuple[str, ...] = ()
    output: str = ""
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "roots", tuple(self.roots))
        object.__setattr__(self, "skipped_folders", tuple(dict.fromkeys(self.skipped_folders)))
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))


@dataclass
class RunContext:
    """Per-invocation working area; the directory is removed when the run ends."""
    directory: Path
    request_path: Path
    response_path: Path
    roots: list[str] = field(default_factory=list)

    def unique_roots(self) -> list[str]:
        return list(dict.fromkeys(self.roots))


# ---------------------------------------------------------------------------
# Translated issues
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FileRegion:
    start_line: int = 0
    start_column: int = 0
    end_line: int = 0
    end_column: int = 0
    snippet: str | None = None

    def same_region(self, other: FileRegion) -> bool:
        return (
            self.start_line == other.start_line
            and self.end_line == other.end_line
            and self.start_column == other.start_column
            and self.end_column == other.end_column
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "start_line": self.start_line,
            "start_column": self.start_column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }
        if self.snippet is not None:
            d["snippet"] = self.snippet
        return d


@dataclass(frozen=True)
class FileLocation:
    file_path: str
    region: FileRegion

    def to_dict(self) -> dict[str, Any]:
        return {"file_path": self.file_path, "region": self.region.to_dict()}


@dataclass
class IssueLocation:
    region: FileRegion
    thread_flows: list[list[FileLocation]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": self.region.to_dict(),
            "thread_flows": [[loc.to_dict() for loc in flow] for flow in self.thread_flows],
        }


@dataclass
class SecurityIssue:
    rule_id: str
    severity: Severity
    rule_name: str
    full_description: str | None = None
    locations: list[IssueLocation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "rule_name": self.rule_name,
            "full_description": self.full_description,
            "locations": [loc.to_dict() for loc in self.locations],
        }


@dataclass
class FileWithIssues:
    full_path: str
    issues: list[SecurityIssue] = field(default_factory=list)

    def issue(self, rule_id: str) -> SecurityIssue | None:
        for issue in self.issues:
            if issue.rule_id == rule_id:
                return issue
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"full_path": self.full_path, "issues": [i.to_dict() for i in self.issues]}


# ---------------------------------------------------------------------------
# Applicability
# ---------------------------------------------------------------------------

@dataclass
class FileEvidence:
    full_path: str
    locations: list[FileRegion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"full_path": self.full_path, "locations": [r.to_dict() for r in self.locations]}


@dataclass
class CveApplicableDetails:
    fix_reason: str
    file_evidences: list[FileEvidence] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fix_reason": self.fix_reason,
            "file_evidences": [e.to_dict() for e in self.file_evidences],
        }


@dataclass
class ApplicabilityResult:
    scanned_cves: list[str] = field(default_factory=list)
    applicable_cves: dict[str, CveApplicableDetails] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scanned_cves": list(self.scanned_cves),
            "applicable_cves": {cve: d.to_dict() for cve, d in self.applicable_cves.items()},
        }


# ---------------------------------------------------------------------------
# Session results
# ---------------------------------------------------------------------------

@dataclass
class KindResult:
    kind: ScanKind
    status: ScanStatus
    files: list[FileWithIssues] = field(default_factory=list)
    applicability: ApplicabilityResult | None = None
    module: str = ""
    reason: str = ""
    elapsed: float = 0.0

    @property
    def issue_count(self) -> int:
        if self.applicability is not None:
            return len(self.applicability.applicable_cves)
        return sum(len(f.issues) for f in self.files)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.label,
            "status": self.status.value,
            "module": self.module,
            "issues": self.issue_count,
            "elapsed": round(self.elapsed, 3),
        }
        if self.reason:
            d["reason"] = self.reason
        if self.applicability is not None:
            d["applicability"] = self.applicability.to_dict()
        else:
            d["files"] = [f.to_dict() for f in self.files]
        return d


@dataclass
class ScanSummary:
    scan_id: str
    root: str
    results: list[KindResult] = field(default_factory=list)
    timestamp: str = field(default_factory=now_iso)

    @property
    def total_issues(self) -> int:
        return sum(r.issue_count for r in self.results if r.status == ScanStatus.COMPLETED)

    def by_kind(self, kind: ScanKind) -> list[KindResult]:
        return [r for r in self.results if r.kind == kind]

    def to_dict(self) -> dict[str, Any]:
        return {
            "scan_id": self.scan_id,
            "root": self.root,
            "total_issues": self.total_issues,
            "results": [r.to_dict() for r in self.results],
            "timestamp": self.timestamp,
        }
