"""Frozen time and fixed calendar dates shared by the test suite."""

from datetime import date, datetime, timedelta, timezone

# 2030-01-01 is a Tuesday; 09:00 wall clock in Europe/Stockholm
FIXED_NOW = datetime(2030, 1, 1, 8, 0, tzinfo=timezone.utc)
TUESDAY = date(2030, 1, 1)
WEDNESDAY = date(2030, 1, 2)
THURSDAY = date(2030, 1, 3)

ADMIN_TOKEN = "test-admin-token"
REAPER_SECRET = "test-reaper-secret"


class FrozenClock:
    """Callable clock whose time only moves when a test advances it."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current
