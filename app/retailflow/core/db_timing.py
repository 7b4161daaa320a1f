from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar


class _DbTimer:
    __slots__ = ("elapsed_ms",)

    def __init__(self) -> None:
        self.elapsed_ms = 0.0


# Route handlers run in copied contexts (thread pool, middleware task), so the
# variable holds a mutable accumulator rather than the running total itself.
_db_timer: ContextVar[_DbTimer | None] = ContextVar("retailflow_db_timer", default=None)


@contextmanager
def track_db_time() -> Iterator[None]:
    """Accumulate query time for the current request while the block runs."""
    token = _db_timer.set(_DbTimer())
    try:
        yield
    finally:
        _db_timer.reset(token)


def record_query_time(delta_ms: float) -> None:
    timer = _db_timer.get()
    if timer is None:
        return
    timer.elapsed_ms += delta_ms


def current_db_time_ms() -> float | None:
    timer = _db_timer.get()
    return None if timer is None else timer.elapsed_ms
