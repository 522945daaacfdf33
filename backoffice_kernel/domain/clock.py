"""
Injectable time source.

Services take a ``Clock`` in their constructor and never read the system
time themselves.  ``today()`` is the "as of" date for balance windows,
handset intervals and stock movement dates; ``now()`` stamps approvals.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """
    Wall-clock time.

    ``tz`` decides which calendar day ``today()`` falls on; offices that
    close their books in local time should pass their own zone.
    """

    def __init__(self, tz: tzinfo = timezone.utc):
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """Frozen time for tests; moves only when told to."""

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, delta: timedelta) -> None:
        self._current += delta

    def advance_days(self, days: int) -> None:
        self.advance(timedelta(days=days))
