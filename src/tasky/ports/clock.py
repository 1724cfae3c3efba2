"""Clock interface."""

from datetime import date, datetime, tzinfo
from typing import Protocol


class Clock(Protocol):
    """Source of the current time in the user's local zone."""

    # The user's zone; reminder wall-clock times are kept in it
    tz: tzinfo

    def now(self) -> datetime:
        """Current timezone-aware datetime."""
        ...

    def today(self) -> date:
        """Current local calendar day."""
        ...
