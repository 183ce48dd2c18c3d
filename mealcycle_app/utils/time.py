"""
Clock abstractions and epoch-millisecond helpers.

Core logic never calls the wall clock directly: the session injects a Clock
so the state machine, queue and scheduler all agree on "now" and tests can
drive time deterministically.
"""

import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND


class Clock(ABC):
    """Source of the current time in epoch milliseconds."""

    @abstractmethod
    def now_ms(self) -> int:
        """Return the current time as epoch milliseconds."""
        pass


class SystemClock(Clock):
    """Wall-clock time."""

    def now_ms(self) -> int:
        return int(time.time() * MS_PER_SECOND)


class ManualClock(Clock):
    """Clock that only moves when told to, for simulations and tests."""

    def __init__(self, start_ms: int = 0):
        self._now = start_ms
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            return self._now

    def set(self, now_ms: int) -> None:
        with self._lock:
            self._now = now_ms

    def advance(self, minutes: float = 0, seconds: float = 0, ms: int = 0) -> int:
        """Move the clock forward and return the new time."""
        delta = int(minutes * MS_PER_MINUTE + seconds * MS_PER_SECOND) + ms
        with self._lock:
            self._now += delta
            return self._now


def minutes_to_ms(minutes: float) -> int:
    """Convert minutes to whole milliseconds."""
    return int(round(minutes * MS_PER_MINUTE))


def elapsed_ms(start_ms: int, now_ms: int) -> int:
    """Milliseconds since start_ms."""
    return now_ms - start_ms


def elapsed_minutes(start_ms: int, now_ms: int) -> float:
    """
    Elapsed time in fractional minutes.

    Args:
        start_ms: Start timestamp (epoch ms)
        now_ms: Current timestamp (epoch ms)

    Returns:
        Minutes elapsed; negative if now_ms precedes start_ms
    """
    return (now_ms - start_ms) / MS_PER_MINUTE


def format_epoch_ms(epoch_ms: int) -> str:
    """Format an epoch-millisecond timestamp as an ISO8601 UTC string."""
    return datetime.fromtimestamp(epoch_ms / MS_PER_SECOND, tz=timezone.utc).isoformat()


def format_elapsed(elapsed: int) -> str:
    """Format elapsed milliseconds as mm:ss, the way the cycle timer shows it."""
    total_seconds = max(elapsed, 0) // MS_PER_SECOND
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"
