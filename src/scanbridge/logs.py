"""Durable copies of analyzer run logs and their retention."""

from __future__ import annotations

import logging
import os
import shutil
import threading
import time
from pathlib import Path
from typing import Iterable

from scanbridge import defaults

log = logging.getLogger("scanbridge.logs")

_RETENTION_LOCK = threading.Lock()


def log_file_name(roots: Iterable[str], kind_label: str, timestamp_ms: int | None = None) -> str:
    """``<root basenames joined by _>-<kind>-<ms>.log``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    names = "_".join(Path(r).name or r for r in roots)
    return f"{names}-{kind_label}-{timestamp_ms}.log"


def find_run_log(directory: Path) -> Path | None:
    """First file in *directory* whose name contains "log" (case-insensitive)."""
    try:
        entries = sorted(directory.iterdir())
    except FileNotFoundError:
        return None
    for entry in entries:
        if entry.is_file() and "log" in entry.name.lower():
            return entry
    return None


def copy_run_log(
    directory: Path,
    logs_dir: Path,
    roots: Iterable[str],
    kind_label: str,
    keep: int = defaults.KEEP_LOGS_COUNT,
) -> Path | None:
    """Copy the run's log into *logs_dir* and enforce the retention cap.

    Returns the destination, or None when the run produced no log file.
    """
    source = find_run_log(directory)
    if source is None:
        return None
    logs_dir.mkdir(parents=True, exist_ok=True)
    target = logs_dir / log_file_name(roots, kind_label)
    shutil.copyfile(source, target)
    clean_old_logs(logs_dir, keep)
    return target


def clean_old_logs(logs_dir: Path, keep: int = defaults.KEEP_LOGS_COUNT) -> int:
    """Delete the oldest files so that at most *keep* remain; returns the count removed.

    Serialized by a process-wide lock; files removed concurrently by another
    process are ignored.
    """
    with _RETENTION_LOCK:
        aged: list[tuple[float, Path]] = []
        for entry in logs_dir.iterdir():
            try:
                aged.append((entry.stat().st_mtime, entry))
            except FileNotFoundError:
                continue
        excess = len(aged) - max(keep, 0)
        if excess <= 0:
            return 0
        aged.sort(key=lambda item: item[0])
        removed = 0
        for _, path in aged[:excess]:
            try:
                os.remove(path)
                removed += 1
            except FileNotFoundError:
                continue
        log.debug("Removed %d old log file(s) from %s", removed, logs_dir)
        return removed
