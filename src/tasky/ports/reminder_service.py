"""Reminder notification interface."""

from typing import Protocol

from tasky.core.tasks import TaskItem


class ReminderService(Protocol):
    """Interface for scheduling platform reminders. Fire-and-forget."""

    def schedule_reminder(self, task: TaskItem) -> None:
        """Schedule (or replace) the reminder for a task at task.reminder_at."""
        ...

    def cancel_reminder(self, task_id: str) -> None:
        """Cancel any pending reminder for a task."""
        ...
