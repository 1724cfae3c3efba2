"""Adapters - I/O implementations of ports."""

from .json_store import JsonTaskStore
from .reminder_scheduler import SchedulerReminderService
from .system_clock import SystemClock

__all__ = [
    "JsonTaskStore",
    "SchedulerReminderService",
    "SystemClock",
]
