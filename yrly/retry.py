"""Retrying an operation a bounded number of times with growing delays."""

from __future__ import annotations

import random
import time
from typing import Any, Callable, TypeVar

T = TypeVar("T")

DEFAULT_ATTEMPTS = 5
DEFAULT_DELAY = 0.4
_MAX_JITTER = 0.1


class Unrecoverable(Exception):
    """Wraps an error that must not be retried."""

    def __init__(self, error: BaseException) -> None:
        super().__init__(str(error))
        self.error = error


def _delay_for(n: int, delay: float) -> float:
    if delay <= 0:
        return 0.0
    return delay * (1 << n) + random.uniform(0, _MAX_JITTER)


def retry(
    func: Callable[[], T],
    attempts: int = DEFAULT_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
    on_retry: Callable[[int, Exception], Any] | None = None,
) -> T:
    """Call ``func`` until it returns, at most ``attempts`` times.

    ``on_retry(n, error)`` is called after every failed attempt ``n`` (counted
    from 0), the last one included. The last error is raised when all attempts
    fail. An ``Unrecoverable`` error stops at once and its wrapped error is raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for n in range(attempts):
        try:
            return func()
        except Unrecoverable as exc:
            raise exc.error from exc
        except Exception as exc:
            if on_retry is not None:
                on_retry(n, exc)
            if n == attempts - 1:
                raise
            time.sleep(_delay_for(n, delay))
    raise AssertionError("unreachable")