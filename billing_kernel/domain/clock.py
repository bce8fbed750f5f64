"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that engine and service code never call
    ``datetime.now()`` or ``date.today()`` directly.  The billing calculator
    is anchored to a reference date; services obtain that date from a Clock.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Invariants enforced:
    ``today()`` is the calendar date in the clock's business timezone, not
    in UTC.  An academy at UTC-3 quoting at 22:30 local time is still on
    the local day.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone, timedelta, tzinfo


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Services that need the current date receive a Clock via constructor
        injection.  Engine code must NEVER import ``date.today()``.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` returns the calendar date of ``now()`` in ``tz``.
    """

    def __init__(self, tz: tzinfo | None = None):
        self._tz = tz or timezone.utc

    @property
    def tz(self) -> tzinfo:
        """Business timezone billing dates are read in."""
        return self._tz

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def today(self) -> date:
        """Get the current calendar date in the business timezone."""
        return self.now().astimezone(self._tz).date()


class SystemClock(Clock):
    """Production clock that returns actual system time."""

    def now(self) -> datetime:
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()``
    is called.
    """

    def __init__(self, fixed_time: datetime | None = None, tz: tzinfo | None = None):
        super().__init__(tz)
        self._fixed_time = fixed_time or datetime(2025, 1, 1, 12, 0, 0, tzinfo=self._tz)
        self._advance = timedelta()

    @classmethod
    def on(cls, day: date, tz: tzinfo | None = None) -> "DeterministicClock":
        """Clock fixed at local noon on the given calendar date."""
        zone = tz or timezone.utc
        return cls(datetime(day.year, day.month, day.day, 12, tzinfo=zone), zone)

    def now(self) -> datetime:
        return self._fixed_time + self._advance

    def advance(self, days: int = 0, seconds: int = 0) -> None:
        """Advance the clock by whole days and/or seconds."""
        self._advance += timedelta(days=days, seconds=seconds)
