"""Ports - interfaces/protocols for external dependencies."""

from .task_store import TaskStore
from .reminder_service import ReminderService
from .clock import Clock

__all__ = [
    "TaskStore",
    "ReminderService",
    "Clock",
]
