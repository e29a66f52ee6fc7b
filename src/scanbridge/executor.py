"""Subprocess execution for the analyzer binary.

The executor only launches and reaps the process; interpreting the exit
code is left to the scan runner.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

log = logging.getLogger("scanbridge.executor")


@dataclass
class ExecutionResult:
    stdout: str
    stderr: str
    exit_code: int


class ProcessExecutor:
    """Run a binary with arguments and capture its output.

    Cancelling the awaiting task kills the child process and waits for it
    before the cancellation propagates, so no orphan analyzer keeps running.
    """

    async def execute(
        self,
        binary: str | Path,
        args: list[str],
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ExecutionResult:
        log.debug("Executing %s %s", binary, " ".join(args))
        proc = await asyncio.create_subprocess_exec(
            str(binary), *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            _kill(proc)
            await proc.wait()
            log.debug("Killed %s (pid %s) after cancellation", binary, proc.pid)
            raise
        return ExecutionResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else -1,
        )


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
