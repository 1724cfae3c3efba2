"""System clock adapter."""

from datetime import date, datetime
from zoneinfo import ZoneInfo


class SystemClock:
    """
    Wall clock in a configured IANA zone.

    Implements Clock protocol.
    """

    def __init__(self, timezone: str | ZoneInfo = "UTC"):
        self.tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()
