"""CLI for scanbridge.

Commands:
  scanbridge scan --path DIR [--kind KIND ...] [--cve CVE ...]
  scanbridge update
  scanbridge check-update
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from scanbridge.analyzer import AnalyzerManager
from scanbridge.config import Settings
from scanbridge.errors import FATAL_ERRORS, ResourceUpdateError
from scanbridge.models import ScanKind, ScanStatus
from scanbridge.observability import setup_logging
from scanbridge.orchestrator import ScanOrchestrator

_KINDS_BY_LABEL = {kind.label: kind for kind in ScanKind}


def _out(data: Any) -> int:
    print(json.dumps(data, indent=2, default=str))
    if isinstance(data, dict) and "error" in data:
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scanbridge",
        description="Run advanced security scanners against a local project",
    )
    parser.add_argument("--log-level", default=None, help="Override SCANBRIDGE_LOG_LEVEL")
    parser.add_argument("--plain-logs", action="store_true", help="Human-readable logs instead of JSON")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("scan", help="Scan a project directory")
    p.add_argument("--path", required=True, help="Project root to scan")
    p.add_argument("--kind", action="append", choices=sorted(_KINDS_BY_LABEL),
                   help="Scan kind to run (repeatable, default: all)")
    p.add_argument("--cve", action="append", default=[],
                   help="CVE to check for applicability (repeatable)")
    p.add_argument("--timeout", type=float, help="Seconds per analyzer run")

    sub.add_parser("update", help="Download the analyzer if a newer build is published")
    sub.add_parser("check-update", help="Report whether the analyzer is outdated")
    return parser


def cmd_scan(args: argparse.Namespace, settings: Settings) -> int:
    if args.timeout:
        settings.timeout = args.timeout
    kinds = [_KINDS_BY_LABEL[k] for k in args.kind] if args.kind else None
    orchestrator = ScanOrchestrator(AnalyzerManager(settings), settings)
    try:
        summary = asyncio.run(orchestrator.scan(args.path, kinds=kinds, cves=args.cve))
    except FATAL_ERRORS as exc:
        return _out({"error": str(exc), "path": args.path})
    data = summary.to_dict()
    rc = _out(data)
    if any(r.status == ScanStatus.FAILED for r in summary.results):
        return 1
    return rc


def cmd_update(args: argparse.Namespace, settings: Settings) -> int:
    analyzer = AnalyzerManager(settings)

    async def _update() -> bool:
        if not await analyzer.resource.is_update_available():
            return False
        return await analyzer.resource.update()

    try:
        updated = asyncio.run(_update())
    except ResourceUpdateError as exc:
        return _out({"error": str(exc)})
    return _out({"updated": updated, "path": analyzer.binary})


def cmd_check_update(args: argparse.Namespace, settings: Settings) -> int:
    analyzer = AnalyzerManager(settings)
    available = asyncio.run(analyzer.resource.is_update_available())
    return _out({
        "update_available": available,
        "installed": analyzer.exists(),
        "path": analyzer.binary,
        "remote": analyzer.resource.remote_url,
    })


_DISPATCH = {
    "scan": cmd_scan,
    "update": cmd_update,
    "check-update": cmd_check_update,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])
    if not args.command:
        parser.print_help()
        return 1

    settings = Settings.from_env()
    if args.log_level:
        settings.log_level = args.log_level.upper()
    setup_logging(settings.log_level, json_output=not args.plain_logs)

    return _DISPATCH[args.command](args, settings)


if __name__ == "__main__":
    sys.exit(main())
