"""Tests for core task logic."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from tasky.core.recurrence import RecurrenceBasis, RecurrenceRule, RecurrenceScope, RecurrenceUnit
from tasky.core.tasks import (
    DateScope,
    ProjectItem,
    TaskDifficulty,
    TaskItem,
    align_reminder_time,
    completed_on,
    filter_for_scope,
    filter_overdue,
    sort_by_due,
    upcoming_saturday,
)

BERLIN = ZoneInfo("Europe/Berlin")


@pytest.fixture
def sample_tasks(today):
    """Tasks spread around the fixture day (a Wednesday)."""
    return [
        TaskItem(id="1", title="Overdue", due_date=today - timedelta(days=2)),
        TaskItem(id="2", title="Today", due_date=today),
        TaskItem(id="3", title="Tomorrow", due_date=today + timedelta(days=1)),
        TaskItem(id="4", title="Saturday", due_date=date(2025, 1, 18)),
        TaskItem(id="5", title="Sunday", due_date=date(2025, 1, 19)),
        TaskItem(id="6", title="Next week", due_date=date(2025, 1, 22)),
        TaskItem(id="7", title="Done today", due_date=today, is_done=True),
    ]


class TestAlignReminderTime:
    def test_moves_day_keeps_time(self):
        source = datetime(2025, 1, 10, 8, 30, tzinfo=BERLIN)
        assert align_reminder_time(date(2025, 1, 15), source) == datetime(2025, 1, 15, 8, 30, tzinfo=BERLIN)

    def test_accepts_datetime_day(self):
        source = datetime(2025, 1, 10, 21, 5, tzinfo=BERLIN)
        day = datetime(2025, 2, 1, 13, 0, tzinfo=BERLIN)
        assert align_reminder_time(day, source) == datetime(2025, 2, 1, 21, 5, tzinfo=BERLIN)

    def test_drops_seconds(self):
        source = datetime(2025, 1, 10, 8, 30, 45)
        assert align_reminder_time(date(2025, 1, 11), source).second == 0

    def test_round_trip_keeps_hour_and_minute(self):
        source = datetime(2025, 1, 10, 7, 45, tzinfo=BERLIN)
        for offset in range(0, 400, 37):
            day1 = date(2025, 1, 1) + timedelta(days=offset)
            day2 = day1 + timedelta(days=offset % 11 + 1)
            result = align_reminder_time(day2, align_reminder_time(day1, source))
            assert (result.hour, result.minute) == (7, 45)
            assert result.date() == day2

    def test_wall_clock_kept_across_dst(self):
        # Berlin switches to summer time on 2025-03-30
        source = datetime(2025, 3, 28, 9, 0, tzinfo=BERLIN)
        moved = align_reminder_time(date(2025, 3, 31), source)
        assert moved.hour == 9
        assert moved.utcoffset() == timedelta(hours=2)

    def test_fixed_offset_source_read_in_user_zone(self):
        # A reminder loaded from JSON carries only its winter offset
        source = datetime.fromisoformat("2025-03-01T08:00:00+01:00")
        moved = align_reminder_time(date(2025, 4, 1), source, BERLIN)
        assert moved == datetime(2025, 4, 1, 8, 0, tzinfo=BERLIN)
        assert moved.utcoffset() == timedelta(hours=2)

    def test_without_zone_keeps_source_offset(self):
        source = datetime.fromisoformat("2025-03-01T08:00:00+01:00")
        assert align_reminder_time(date(2025, 4, 1), source).utcoffset() == timedelta(hours=1)


class TestTaskItem:
    def test_is_overdue(self, today):
        task = TaskItem(title="Test", due_date=today - timedelta(days=1))
        assert task.is_overdue(today) is True

    def test_due_today_not_overdue(self, today):
        assert TaskItem(title="Test", due_date=today).is_overdue(today) is False

    def test_done_never_overdue(self, today):
        task = TaskItem(title="Test", due_date=today - timedelta(days=3), is_done=True)
        assert task.is_overdue(today) is False

    def test_ids_are_unique(self, today):
        assert TaskItem(title="a", due_date=today).id != TaskItem(title="b", due_date=today).id

    def test_copy_is_independent(self, today):
        task = TaskItem(title="Test", due_date=today, project=ProjectItem("Home", "🏠"))
        clone = task.copy()
        clone.title = "Changed"
        clone.project.name = "Changed"
        assert task.title == "Test"
        assert task.project.name == "Home"

    def test_dict_round_trip_keeps_everything(self, today):
        task = TaskItem(
            title="Pay rent",
            due_date=today,
            project=ProjectItem("Home", "🏠"),
            tag="bills",
            difficulty=TaskDifficulty.HARD,
            reminder_at=datetime(2025, 1, 15, 9, 0, tzinfo=BERLIN),
            recurrence=RecurrenceRule(
                unit=RecurrenceUnit.MONTHS,
                interval=1,
                basis=RecurrenceBasis.SCHEDULED,
                scope=RecurrenceScope.WEEKDAYS_ONLY,
                anchor=today,
                count_limit=12,
                occurrences_done=3,
            ),
            note_markdown="# Landlord\nIBAN in notes",
        )
        restored = TaskItem.from_dict(task.to_dict())
        assert restored == task
        assert restored.reminder_at.utcoffset() == timedelta(hours=1)

    def test_from_dict_defaults(self):
        task = TaskItem.from_dict({"id": "x", "title": "Bare", "dueDate": "2025-01-15"})
        assert task.is_done is False
        assert task.recurrence is None
        assert task.project is None
        assert task.difficulty == TaskDifficulty.EASY


class TestFilterForScope:
    def titles(self, tasks):
        return [t.title for t in tasks]

    def test_anytime_hides_done(self, sample_tasks, today):
        result = filter_for_scope(sample_tasks, DateScope.ANYTIME, today)
        assert "Done today" not in self.titles(result)
        assert len(result) == 6

    def test_today_includes_overdue(self, sample_tasks, today):
        result = filter_for_scope(sample_tasks, DateScope.TODAY, today)
        assert self.titles(result) == ["Overdue", "Today"]

    def test_tomorrow(self, sample_tasks, today):
        assert self.titles(filter_for_scope(sample_tasks, DateScope.TOMORROW, today)) == ["Tomorrow"]

    def test_weekend(self, sample_tasks, today):
        result = filter_for_scope(sample_tasks, DateScope.WEEKEND, today)
        assert self.titles(result) == ["Saturday", "Sunday"]

    def test_custom_day(self, sample_tasks, today):
        result = filter_for_scope(sample_tasks, DateScope.CUSTOM, today, custom_day=date(2025, 1, 22))
        assert self.titles(result) == ["Next week"]

    def test_custom_requires_day(self, sample_tasks, today):
        with pytest.raises(ValueError):
            filter_for_scope(sample_tasks, DateScope.CUSTOM, today)


class TestHelpers:
    def test_upcoming_saturday_from_weekday(self, today):
        assert upcoming_saturday(today) == date(2025, 1, 18)

    def test_upcoming_saturday_on_saturday(self):
        assert upcoming_saturday(date(2025, 1, 18)) == date(2025, 1, 18)

    def test_upcoming_saturday_from_sunday(self):
        assert upcoming_saturday(date(2025, 1, 19)) == date(2025, 1, 25)

    def test_filter_overdue(self, sample_tasks, today):
        assert [t.id for t in filter_overdue(sample_tasks, today)] == ["1"]

    def test_completed_on_most_recent_first(self, today):
        early = TaskItem(title="Early", due_date=today, is_done=True, completed_at=datetime(2025, 1, 15, 8, 0))
        late = TaskItem(title="Late", due_date=today, is_done=True, completed_at=datetime(2025, 1, 15, 18, 0))
        other_day = TaskItem(title="Other", due_date=today, is_done=True, completed_at=datetime(2025, 1, 14, 18, 0))
        assert [t.title for t in completed_on([early, other_day, late], today)] == ["Late", "Early"]

    def test_sort_by_due_then_reminder(self, today):
        no_reminder = TaskItem(title="A no reminder", due_date=today)
        evening = TaskItem(title="B evening", due_date=today, reminder_at=datetime(2025, 1, 15, 19, 0))
        morning = TaskItem(title="C morning", due_date=today, reminder_at=datetime(2025, 1, 15, 7, 0))
        earlier = TaskItem(title="D yesterday", due_date=today - timedelta(days=1))
        result = sort_by_due([no_reminder, evening, morning, earlier])
        assert [t.title for t in result] == ["D yesterday", "C morning", "B evening", "A no reminder"]
