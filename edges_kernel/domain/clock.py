"""
Injectable time source for stamping ``processed_at`` on processing records.

The writer and the import service take a Clock in their constructor; tests
pass a DeterministicClock so stored timestamps are predictable.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

IMPORT_EPOCH = datetime(2025, 5, 7, 9, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, always timezone-aware."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Naive datetimes passed in are taken as UTC.
    """

    def __init__(self, start: datetime = IMPORT_EPOCH):
        self._current = self._aware(start)

    @staticmethod
    def _aware(moment: datetime) -> datetime:
        return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, **delta: float) -> datetime:
        """Move forward by ``timedelta(**delta)`` and return the new time."""
        self._current += timedelta(**delta)
        return self._current

    def set_time(self, moment: datetime) -> None:
        self._current = self._aware(moment)
