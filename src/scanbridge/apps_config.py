"""Project-level scanner configuration (``.jfrog/jfrog-apps-config.yml``).

Example::

    version: "1.0"
    modules:
      - name: FrogLeapApp
        source_root: src
        exclude_patterns: [docs/]
        exclude_scanners: [secrets]
        scanners:
          sast:
            language: java
            working_dirs: [dir1, dir2]
            exclude_patterns: [dir1/test/**]
            excluded_rules: [xss-injection]
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from scanbridge import defaults
from scanbridge.models import ScanKind

log = logging.getLogger("scanbridge.apps_config")


class AppsConfigError(Exception):
    """The apps config file exists but cannot be parsed."""


class ScannerConfig(BaseModel):
    working_dirs: list[str] = Field(default_factory=list)
    exclude_patterns: list[str] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class SastScannerConfig(ScannerConfig):
    language: str | None = None
    excluded_rules: list[str] = Field(default_factory=list)


class ScannersConfig(BaseModel):
    iac: ScannerConfig | None = None
    sast: SastScannerConfig | None = None
    secrets: ScannerConfig | None = None

    model_config = {"extra": "allow"}


class Module(BaseModel):
    name: str = ""
    source_root: str = ""
    exclude_patterns: list[str] = Field(default_factory=list)
    exclude_scanners: list[str] = Field(default_factory=list)
    scanners: ScannersConfig = Field(default_factory=ScannersConfig)

    model_config = {"extra": "allow"}

    def scanner(self, kind: ScanKind) -> ScannerConfig | None:
        if kind == ScanKind.SAST:
            return self.scanners.sast
        if kind == ScanKind.IAC:
            return self.scanners.iac
        if kind == ScanKind.SECRETS:
            return self.scanners.secrets
        return None

    def should_skip(self, kind: ScanKind) -> bool:
        return kind.label in self.exclude_scanners

    def source_roots(self, kind: ScanKind, project_root: str | Path = "") -> list[str]:
        """Absolute scan roots: ``source_root`` joined with each working dir."""
        root = self.source_root or str(project_root)
        if not os.path.isabs(root):
            root = os.path.join(str(project_root), root)
        root = os.path.normpath(root)
        scanner = self.scanner(kind)
        if scanner is None or not scanner.working_dirs:
            return [root]
        return [os.path.join(root, d) for d in scanner.working_dirs]

    def scan_exclude_patterns(self, kind: ScanKind, default_pattern: str = defaults.DEFAULT_EXCLUDE_PATTERN) -> list[str]:
        patterns = list(self.exclude_patterns)
        scanner = self.scanner(kind)
        if scanner is not None:
            patterns.extend(scanner.exclude_patterns)
        if not patterns:
            return to_analyzer_patterns(default_pattern)
        return patterns


class AppsConfig(BaseModel):
    version: str = defaults.APPS_CONFIG_VERSION
    modules: list[Module] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: object) -> object:
        # ``version: 1.0`` loads as a float
        return str(value) if isinstance(value, (int, float)) else value


def to_analyzer_patterns(pattern: str | None) -> list[str]:
    """Convert a glob to analyzer exclude patterns.

    ``<prefix>{a,b}<suffix>`` expands to one pattern per alternative and
    ``/**`` is appended so the pattern matches files under a folder.
    """
    if not pattern:
        return []
    start, end = pattern.find("{"), pattern.find("}")
    if 0 <= start < end:
        prefix, suffix = pattern[:start], pattern[end + 1:]
        expanded = [prefix + option + suffix for option in pattern[start + 1:end].split(",")]
    else:
        expanded = [pattern]
    return [p if p.endswith("/**") else p + "/**" for p in expanded]


def load_apps_config(project_root: str | Path) -> AppsConfig:
    """Load the apps config of *project_root*, or a single default module."""
    path = Path(project_root).joinpath(*defaults.APPS_CONFIG_PATH)
    if not path.is_file():
        return AppsConfig(modules=[Module(source_root=str(project_root))])
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        config = AppsConfig.model_validate(data)
    except (yaml.YAMLError, ValidationError) as exc:
        raise AppsConfigError(f"Invalid apps config {path}: {exc}") from exc
    if not config.modules:
        config.modules = [Module(source_root=str(project_root))]
    log.debug("Loaded apps config %s with %d module(s)", path, len(config.modules))
    return config
