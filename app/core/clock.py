from datetime import datetime, timedelta
from typing import Callable

# Booking dates and slot labels are naive local values, so "now" is naive
# local time as well.
Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now()


class FixedClock:
    """A clock frozen at a given instant; `advance` moves it forward."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)
