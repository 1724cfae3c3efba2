"""Shared test fixtures."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

UTC = ZoneInfo("UTC")


class FixedClock:
    """Clock pinned to a settable instant."""

    def __init__(self, current: datetime):
        self.current = current
        self.tz = current.tzinfo

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def today():
    # A Wednesday
    return date(2025, 1, 15)


@pytest.fixture
def clock(today):
    return FixedClock(datetime.combine(today, datetime.min.time(), tzinfo=UTC).replace(hour=10))


@pytest.fixture
def berlin_clock():
    # Europe/Berlin moves to summer time on 2025-03-30
    return FixedClock(datetime(2025, 3, 1, 7, 0, tzinfo=ZoneInfo("Europe/Berlin")))
