"""Tests for the APScheduler reminder adapter."""

from datetime import date, datetime, timedelta
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from tasky.adapters.reminder_scheduler import SchedulerReminderService
from tasky.core.tasks import TaskItem

UTC = ZoneInfo("UTC")


@pytest.fixture
def scheduler():
    return MagicMock()


@pytest.fixture
def service(scheduler, clock):
    return SchedulerReminderService(scheduler, clock, notify=MagicMock(), misfire_grace=60)


def task_with_reminder(when: datetime | None, **kwargs) -> TaskItem:
    return TaskItem(id="t1", title="Dentist", due_date=date(2025, 1, 15), reminder_at=when, **kwargs)


class TestSchedulerReminderService:
    def test_schedules_future_reminder(self, service, scheduler, clock):
        when = clock.now() + timedelta(hours=2)

        service.schedule_reminder(task_with_reminder(when))

        scheduler.add_job.assert_called_once()
        kwargs = scheduler.add_job.call_args.kwargs
        assert kwargs["id"] == "t1"
        assert kwargs["replace_existing"] is True
        assert kwargs["misfire_grace_time"] == 60
        assert kwargs["args"] == ["t1", "Dentist"]
        assert scheduler.add_job.call_args.args[1].run_date == when

    def test_skips_past_reminder(self, service, scheduler, clock):
        service.schedule_reminder(task_with_reminder(clock.now() - timedelta(minutes=1)))
        scheduler.add_job.assert_not_called()

    def test_skips_done_task(self, service, scheduler, clock):
        service.schedule_reminder(task_with_reminder(clock.now() + timedelta(hours=1), is_done=True))
        scheduler.add_job.assert_not_called()

    def test_no_reminder_cancels_existing(self, service, scheduler):
        service.schedule_reminder(task_with_reminder(None))
        scheduler.remove_job.assert_called_once_with("t1")
        scheduler.add_job.assert_not_called()

    def test_cancel_unknown_is_quiet(self, service, scheduler):
        scheduler.remove_job.side_effect = JobLookupError("t1")
        service.cancel_reminder("t1")

    def test_fire_calls_notify(self, service):
        service._fire("t1", "Dentist")
        service.notify.assert_called_once_with("t1", "Dentist")


class TestWithRealScheduler:
    def test_reschedule_replaces_job(self, clock):
        scheduler = BackgroundScheduler(timezone=UTC)
        service = SchedulerReminderService(scheduler, clock)
        first = clock.now() + timedelta(hours=1)
        second = clock.now() + timedelta(hours=3)

        service.schedule_reminder(task_with_reminder(first))
        service.schedule_reminder(task_with_reminder(second))

        jobs = scheduler.get_jobs()
        assert len(jobs) == 1
        assert jobs[0].id == "t1"
        assert jobs[0].trigger.run_date == second

    def test_cancel_removes_job(self, clock):
        scheduler = BackgroundScheduler(timezone=UTC)
        service = SchedulerReminderService(scheduler, clock)
        service.schedule_reminder(task_with_reminder(clock.now() + timedelta(hours=1)))

        service.cancel_reminder("t1")

        assert scheduler.get_job("t1") is None


class TestTitleLookup:
    def test_fire_uses_current_title(self, scheduler, clock):
        notify = MagicMock()
        service = SchedulerReminderService(scheduler, clock, notify=notify, title_lookup=lambda task_id: "Dentist (moved)")

        service._fire("t1", "Dentist")

        notify.assert_called_once_with("t1", "Dentist (moved)")

    def test_fire_falls_back_to_scheduled_title(self, scheduler, clock):
        notify = MagicMock()
        service = SchedulerReminderService(scheduler, clock, notify=notify, title_lookup=lambda task_id: None)

        service._fire("t1", "Dentist")

        notify.assert_called_once_with("t1", "Dentist")
