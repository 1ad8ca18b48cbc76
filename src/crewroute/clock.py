"""Injectable time sources."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time as naive local datetimes."""

    def now(self) -> datetime:
        return datetime.now()


@dataclass(slots=True)
class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    current: datetime

    def now(self) -> datetime:
        return self.current

    def advance(self, minutes: float = 0.0) -> datetime:
        self.current = self.current + timedelta(minutes=minutes)
        return self.current


system_clock = SystemClock()


def resolve_now(now: Optional[datetime] = None, clock: Optional[Clock] = None) -> datetime:
    """Return ``now`` when given, otherwise ask the clock (system clock by default)."""

    if now is not None:
        return now
    return (clock or system_clock).now()
