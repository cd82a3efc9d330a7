"""Business-hours arithmetic for SLA deadlines.

Time only accrues inside a daily open window ``[open_hour, close_hour)``
evaluated on the local wall clock. The window applies every day of the week.

    hours = BusinessHours(open_hour=10, close_hour=17)
    hours.add_business_duration(created_at, timedelta(hours=3))
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo


@dataclass(frozen=True)
class BusinessHours:
    open_hour: int = 10
    close_hour: int = 17
    tz: tzinfo | None = None  # None = host local clock

    def __post_init__(self) -> None:
        if not 0 <= self.open_hour < self.close_hour <= 24:
            raise ValueError(f"Invalid business window {self.open_hour}-{self.close_hour}")

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _local(self, t: datetime) -> datetime:
        if self.tz is not None:
            return t.astimezone(self.tz)
        if t.tzinfo is not None:
            return t.astimezone()
        return t

    def _at_hour(self, t: datetime, hour: int) -> datetime:
        if hour == 24:
            return t.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
        return t.replace(hour=hour, minute=0, second=0, microsecond=0)

    def _close_of(self, t: datetime) -> datetime:
        return self._at_hour(t, self.close_hour)

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------
    def is_open(self, t: datetime) -> bool:
        return self.open_hour <= self._local(t).hour < self.close_hour

    def next_open(self, t: datetime) -> datetime:
        """Return ``t`` if the window is open, else the start of the next window."""
        local = self._local(t)
        if self.open_hour <= local.hour < self.close_hour:
            return local
        if local.hour < self.open_hour:
            return self._at_hour(local, self.open_hour)
        return self._at_hour(local + timedelta(days=1), self.open_hour)

    def add_business_duration(self, start: datetime, duration: timedelta) -> datetime:
        """Deadline reached after ``duration`` of open-window time from ``start``."""
        current = self.next_open(start)
        remaining = duration

        while True:
            close = self._close_of(current)
            until_close = close - current
            if remaining <= until_close:
                return current + remaining
            remaining -= until_close
            current = self.next_open(close)

    def remaining_business_time(self, deadline: datetime, now: datetime) -> timedelta:
        """Open-window time left between ``now`` and ``deadline``.

        Negative (``deadline - now``) once the deadline has passed.
        """
        if deadline <= now:
            return deadline - now

        remaining = timedelta(0)
        current = self._local(now)

        while current < deadline:
            if not self.is_open(current):
                opening = self.next_open(current)
                if opening >= deadline:
                    break
                current = opening
                continue

            close = self._close_of(current)
            boundary = min(close, deadline)
            remaining += boundary - current
            current = boundary

            if current < deadline and current >= close:
                current = self.next_open(current)

        return remaining


def format_countdown(remaining: timedelta) -> str:
    """Render a countdown as ``HH:MM:SS``; non-positive values render as ``Overdue``."""
    if remaining <= timedelta(0):
        return "Overdue"
    seconds = int(remaining.total_seconds())
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
