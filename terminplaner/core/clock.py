from datetime import datetime, timedelta


class Clock:
    """Source of the current local wall-clock time"""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """Clock frozen at a given instant, used by tests and scripts"""

    def __init__(self, at: datetime):
        self.at = at

    def now(self) -> datetime:
        return self.at

    def advance(self, **kwargs) -> None:
        self.at = self.at + timedelta(**kwargs)


system_clock = Clock()


def get_clock() -> Clock:
    """Dependency for the clock; overridden in tests"""
    return system_clock
