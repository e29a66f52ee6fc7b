"""Request/response files exchanged with the analyzer.

A run writes ``request`` (YAML, top-level ``scans`` list) into a private
temporary directory, the analyzer writes ``response`` (JSON) next to it.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from scanbridge import defaults
from scanbridge.errors import MalformedOutputError, MissingOutputError
from scanbridge.models import RunContext, ScanKind, ScanRequest
from scanbridge.sarif import ScanResponse

log = logging.getLogger("scanbridge.channel")

# Python field name -> request file key, where they differ.
WIRE_KEYS: dict[str, str] = {
    "skipped_folders": "skipped-folders",
    "cve_whitelist": "cve-whitelist",
    "grep_disable": "grep-disable",
    "excluded_rules": "excluded-rules",
}
_FIELD_KEYS = {wire: name for name, wire in WIRE_KEYS.items()}


def create_run_context(roots: Iterable[str]) -> RunContext:
    """Create a fresh temporary directory holding the request and response paths."""
    directory = Path(tempfile.mkdtemp(prefix="scanbridge-"))
    return RunContext(
        directory=directory,
        request_path=directory / defaults.REQUEST_FILE_NAME,
        response_path=directory / defaults.RESPONSE_FILE_NAME,
        roots=list(roots),
    )


def _wire(name: str) -> str:
    return WIRE_KEYS.get(name, name)


def request_to_dict(request: ScanRequest) -> dict[str, Any]:
    d: dict[str, Any] = {
        "type": request.kind.value,
        "output": request.output,
        "roots": list(request.roots),
    }
    if request.skipped_folders:
        d[_wire("skipped_folders")] = list(request.skipped_folders)
    for key, value in request.options.items():
        if value is None:
            continue
        d[_wire(key)] = list(value) if isinstance(value, (tuple, list)) else value
    return d


def request_from_dict(data: dict[str, Any]) -> ScanRequest:
    try:
        kind = ScanKind(data["type"])
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Invalid scan request type: {data.get('type')!r}") from exc
    options: dict[str, Any] = {}
    for key, value in data.items():
        if key in ("type", "output", "roots", _wire("skipped_folders")):
            continue
        options[_FIELD_KEYS.get(key, key)] = tuple(value) if isinstance(value, list) else value
    return ScanRequest(
        kind=kind,
        roots=tuple(data.get("roots") or ()),
        skipped_folders=tuple(data.get(_wire("skipped_folders")) or ()),
        output=data.get("output", ""),
        options=options,
    )


def request_to_yaml(*requests: ScanRequest) -> str:
    """Serialize requests to the analyzer's YAML request format."""
    return yaml.safe_dump(
        {"scans": [request_to_dict(r) for r in requests]},
        sort_keys=False,
        default_flow_style=False,
    )


def requests_from_yaml(text: str) -> list[ScanRequest]:
    data = yaml.safe_load(text) or {}
    return [request_from_dict(item) for item in data.get("scans") or []]


def write_request(context: RunContext, *requests: ScanRequest) -> str:
    """Write the request file for *context*; returns the serialized text."""
    text = request_to_yaml(*requests)
    context.request_path.write_text(text, encoding="utf-8")
    log.debug("Input YAML:\n%s", text)
    return text


def read_response(path: Path, request_text: str, kind: ScanKind | None = None) -> ScanResponse:
    """Load the response document written by the analyzer."""
    label = kind.label if kind is not None else None
    if not path.is_file():
        raise MissingOutputError(label, request_text)
    try:
        raw = json.loads(path.read_bytes().decode("utf-8"))
        return ScanResponse.model_validate(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
        raise MalformedOutputError(
            f"Could not parse '{label}' response {path}: {exc}", kind=label, exit_code=0,
        ) from exc


def cleanup(context: RunContext) -> None:
    shutil.rmtree(context.directory, ignore_errors=True)
