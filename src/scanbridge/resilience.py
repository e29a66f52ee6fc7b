"""Resilience primitives: timeout/cancellation watchdog, retry with backoff.

Designed for wrapping analyzer runs and the network calls of the resource
manager. Everything here is asyncio based.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from scanbridge import defaults
from scanbridge.errors import ScanCancelledError, ScanTimeoutError

log = logging.getLogger("scanbridge.resilience")

T = TypeVar("T")

CancelCheck = Callable[[], None]


# ---------------------------------------------------------------------------
# Watchdog
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """An awaitable with a human-readable title for timeout reports."""
    title: str
    task: Awaitable[Any]


def never_cancelled() -> None:
    return None


async def run_with_timeout(
    timeout: float,
    check_cancelled: CancelCheck | None,
    *tasks: Awaitable[Any] | Task,
    interval: float = defaults.CANCEL_POLL_INTERVAL_SECONDS,
) -> list[Any]:
    """Race every task against cancellation checks and a hard timeout.

    Each task gets its own watchdog loop. Results are returned in task
    order. The first failure (task error, ``ScanCancelledError`` or
    ``ScanTimeoutError``) cancels the remaining watchdogs and propagates.
    """
    check = check_cancelled or never_cancelled
    watchers = [
        asyncio.ensure_future(_watch(t, timeout, check, interval, index))
        for index, t in enumerate(tasks)
    ]
    try:
        return list(await asyncio.gather(*watchers))
    except BaseException:
        for w in watchers:
            w.cancel()
        await asyncio.gather(*watchers, return_exceptions=True)
        raise


async def _watch(
    item: Awaitable[Any] | Task,
    timeout: float,
    check_cancelled: CancelCheck,
    interval: float,
    index: int,
) -> Any:
    if isinstance(item, Task):
        title, awaitable = item.title, item.task
    else:
        title, awaitable = f"#{index}", item
    task = asyncio.ensure_future(awaitable)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    step = max(min(interval, timeout), 0.001)
    try:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise ScanTimeoutError(title, timeout)
            done, _ = await asyncio.wait({task}, timeout=min(step, remaining))
            if task in done:
                return task.result()
            _check(check_cancelled)
    finally:
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


def _check(check_cancelled: CancelCheck) -> None:
    try:
        check_cancelled()
    except ScanCancelledError:
        raise
    except Exception as exc:
        raise ScanCancelledError() from exc


# ---------------------------------------------------------------------------
# Retry with exponential backoff
# ---------------------------------------------------------------------------

def retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> Callable:
    """Decorator for coroutine functions: retry with bounded exponential backoff.

    Parameters
    ----------
    max_attempts:
        Total number of attempts (including the first).
    base_delay:
        Initial delay in seconds between retries.
    max_delay:
        Maximum delay cap.
    backoff_factor:
        Multiplier applied to delay after each failure.
    exceptions:
        Tuple of exception classes that trigger a retry.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = base_delay
            last_exc: BaseException | None = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exc = e
                    if attempt == max_attempts:
                        break
                    log.warning(
                        "Retry %d/%d for %s: %s (delay %.1fs)",
                        attempt, max_attempts, func.__name__, e, delay,
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)
            raise last_exc  # type: ignore[misc]

        return wrapper
    return decorator
