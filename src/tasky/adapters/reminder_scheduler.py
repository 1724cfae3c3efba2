"""APScheduler reminder adapter - one date job per task reminder."""

import logging
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from tasky.core.tasks import TaskItem
from tasky.ports.clock import Clock

logger = logging.getLogger(__name__)


def log_reminder(task_id: str, title: str) -> None:
    logger.info(f"Reminder: {title} ({task_id})")


class SchedulerReminderService:
    """
    Reminder delivery backed by an APScheduler scheduler.

    Implements ReminderService protocol. The job id is the task id, so
    scheduling again replaces the previous reminder. Reminders in the past
    are never scheduled.
    """

    def __init__(
        self,
        scheduler: BaseScheduler,
        clock: Clock,
        notify: Callable[[str, str], None] = log_reminder,
        misfire_grace: int = 300,
        title_lookup: Callable[[str], str | None] | None = None,
    ):
        self.scheduler = scheduler
        self.clock = clock
        self.notify = notify
        self.misfire_grace = misfire_grace
        self.title_lookup = title_lookup

    def schedule_reminder(self, task: TaskItem) -> None:
        """Schedule the task's reminder, replacing any earlier one."""
        self.cancel_reminder(task.id)
        when = task.reminder_at
        if when is None or task.is_done:
            return
        if when <= self.clock.now():
            logger.debug(f"Not scheduling past reminder for {task.id} at {when.isoformat()}")
            return

        self.scheduler.add_job(
            self._fire,
            DateTrigger(run_date=when),
            args=[task.id, task.title],
            id=task.id,
            name=f"reminder:{task.title}",
            replace_existing=True,
            misfire_grace_time=self.misfire_grace,
        )
        logger.debug(f"Scheduled reminder for '{task.title}' at {when.isoformat()}")

    def cancel_reminder(self, task_id: str) -> None:
        """Cancel the pending reminder for a task, if there is one."""
        try:
            self.scheduler.remove_job(task_id)
            logger.debug(f"Cancelled reminder for {task_id}")
        except JobLookupError:
            pass

    def _fire(self, task_id: str, title: str) -> None:
        # The task may have been renamed since the job was scheduled
        if self.title_lookup is not None:
            title = self.title_lookup(task_id) or title
        self.notify(task_id, title)
