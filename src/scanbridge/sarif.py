"""Pydantic models for the analyzer response document (SARIF subset).

Field names follow the wire format so ``ScanResponse.model_validate`` can
consume the JSON file as-is; unknown keys are ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ResultContent(BaseModel):
    text: str = ""

    model_config = {"extra": "ignore"}


class Region(BaseModel):
    startLine: int = 0
    startColumn: int = 0
    endLine: int = 0
    endColumn: int = 0
    snippet: ResultContent | None = None

    model_config = {"extra": "ignore"}


class ArtifactLocation(BaseModel):
    uri: str

    model_config = {"extra": "ignore"}


class PhysicalLocation(BaseModel):
    artifactLocation: ArtifactLocation
    region: Region = Field(default_factory=Region)

    model_config = {"extra": "ignore"}


class AnalyzeLocation(BaseModel):
    physicalLocation: PhysicalLocation

    model_config = {"extra": "ignore"}


class ThreadFlowLocation(BaseModel):
    location: AnalyzeLocation

    model_config = {"extra": "ignore"}


class ThreadFlow(BaseModel):
    locations: list[ThreadFlowLocation] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class CodeFlow(BaseModel):
    threadFlows: list[ThreadFlow] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class Suppression(BaseModel):
    kind: str = ""

    model_config = {"extra": "ignore"}


class AnalyzeIssue(BaseModel):
    ruleId: str
    level: str | None = None
    kind: str | None = None
    message: ResultContent = Field(default_factory=ResultContent)
    locations: list[AnalyzeLocation] = Field(default_factory=list)
    codeFlows: list[CodeFlow] | None = None
    suppressions: list[Suppression] | None = None

    model_config = {"extra": "ignore"}

    @property
    def suppressed(self) -> bool:
        return bool(self.suppressions)


class Rule(BaseModel):
    id: str
    fullDescription: ResultContent | None = None
    shortDescription: ResultContent | None = None

    model_config = {"extra": "ignore"}


class Driver(BaseModel):
    name: str = ""
    rules: list[Rule] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class Tool(BaseModel):
    driver: Driver = Field(default_factory=Driver)

    model_config = {"extra": "ignore"}


class Run(BaseModel):
    tool: Tool = Field(default_factory=Tool)
    results: list[AnalyzeIssue] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("results", mode="before")
    @classmethod
    def _null_results(cls, value: object) -> object:
        return [] if value is None else value

    def rule_descriptions(self) -> dict[str, str]:
        """Map rule id -> full description text for rules that carry one."""
        return {
            rule.id: rule.fullDescription.text
            for rule in self.tool.driver.rules
            if rule.fullDescription is not None
        }


class ScanResponse(BaseModel):
    runs: list[Run] = Field(default_factory=list)

    model_config = {"extra": "ignore"}
