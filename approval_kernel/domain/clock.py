"""
Clock -- injectable time source for approval steps.

Responsibility:
    Every ``created_at``, ``approved_at`` and ``reviewed_at`` written by the
    kernel comes from a Clock handed to the service, never from
    ``datetime.now()`` inline.  Tests drive a DeterministicClock so approval
    latency figures are exact.

Architecture position:
    Kernel > Domain.  SystemClock is the only place that reads wall time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

SECONDS_PER_HOUR = 3600

_EPOCH = datetime(2025, 6, 2, 9, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Manually driven clock.

    ``now()`` is stable between calls; only ``advance()`` and ``tick()``
    move it forward.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or _EPOCH

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current

    def tick(self) -> datetime:
        """Move one second forward; used to give rows distinct timestamps."""
        return self.advance(1)


def elapsed_hours(start: datetime, end: datetime) -> float:
    """Hours between two timestamps, as a float."""
    return (end - start).total_seconds() / SECONDS_PER_HOUR
