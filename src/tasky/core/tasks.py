"""Pure task domain logic - no I/O dependencies."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum

from .recurrence import RecurrenceRule, next_saturday


class TaskDifficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TaskResistance(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskEstimatedTime(Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class DateScope(Enum):
    """Which slice of the task list to show."""

    ANYTIME = "anytime"
    TODAY = "today"
    TOMORROW = "tomorrow"
    WEEKEND = "weekend"
    CUSTOM = "custom"


def new_id() -> str:
    return uuid.uuid4().hex


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class ProjectItem:
    """A project that groups tasks."""

    name: str
    emoji: str
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "emoji": self.emoji}

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectItem":
        return cls(id=data["id"], name=data["name"], emoji=data.get("emoji", ""))


@dataclass
class TaskItem:
    """A task with a calendar-day due date and optional reminder and repeat rule."""

    title: str
    due_date: date
    id: str = field(default_factory=new_id)
    is_done: bool = False
    completed_at: datetime | None = None
    project: ProjectItem | None = None
    # Single tag scoped to the task's project
    tag: str | None = None
    difficulty: TaskDifficulty = TaskDifficulty.EASY
    resistance: TaskResistance = TaskResistance.LOW
    estimated_time: TaskEstimatedTime = TaskEstimatedTime.SHORT
    recurrence: RecurrenceRule | None = None
    reminder_at: datetime | None = None
    note_markdown: str | None = None
    note_updated_at: datetime | None = None

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def is_overdue(self, as_of: date) -> bool:
        """Incomplete and due strictly before `as_of`."""
        return not self.is_done and self.due_date < as_of

    def copy(self) -> "TaskItem":
        project = replace(self.project) if self.project else None
        return replace(self, project=project)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "isDone": self.is_done,
            "completedAt": _format_datetime(self.completed_at),
            "project": self.project.to_dict() if self.project else None,
            "tag": self.tag,
            "difficulty": self.difficulty.value,
            "resistance": self.resistance.value,
            "estimatedTime": self.estimated_time.value,
            "dueDate": self.due_date.isoformat(),
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
            "reminderAt": _format_datetime(self.reminder_at),
            "noteMarkdown": self.note_markdown,
            "noteUpdatedAt": _format_datetime(self.note_updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TaskItem":
        project = data.get("project")
        recurrence = data.get("recurrence")
        return cls(
            id=data["id"],
            title=data["title"],
            is_done=data.get("isDone", False),
            completed_at=_parse_datetime(data.get("completedAt")),
            project=ProjectItem.from_dict(project) if project else None,
            tag=data.get("tag"),
            difficulty=TaskDifficulty(data.get("difficulty", "easy")),
            resistance=TaskResistance(data.get("resistance", "low")),
            estimated_time=TaskEstimatedTime(data.get("estimatedTime", "short")),
            due_date=date.fromisoformat(data["dueDate"]),
            recurrence=RecurrenceRule.from_dict(recurrence) if recurrence else None,
            reminder_at=_parse_datetime(data.get("reminderAt")),
            note_markdown=data.get("noteMarkdown"),
            note_updated_at=_parse_datetime(data.get("noteUpdatedAt")),
        )


def start_of_day(value: date | datetime) -> date:
    """Normalize a timestamp to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def align_reminder_time(day: date | datetime, source: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Keep a reminder's wall-clock time while moving it to another day.

    Hour and minute come from `source`, the calendar day from `day`. With
    `tz` (the user's zone) the wall clock is read in that zone and the
    result is placed there; stored reminders only carry a fixed UTC offset,
    which goes stale across a DST change. Without `tz` the zone of `source`
    is kept.
    """
    if tz is not None and source.tzinfo is not None:
        source = source.astimezone(tz)
    return datetime.combine(
        start_of_day(day),
        time(source.hour, source.minute),
        tzinfo=tz if tz is not None else source.tzinfo,
    )


def upcoming_saturday(as_of: date) -> date:
    """`as_of` itself when it is a Saturday, otherwise the next Saturday."""
    if as_of.weekday() == 5:
        return as_of
    return next_saturday(as_of)


def filter_by_day(tasks: list[TaskItem], day: date) -> list[TaskItem]:
    """Incomplete tasks due on `day`."""
    return [t for t in tasks if not t.is_done and t.due_date == day]


def filter_for_scope(
    tasks: list[TaskItem],
    scope: DateScope,
    as_of: date,
    custom_day: date | None = None,
) -> list[TaskItem]:
    """
    Incomplete tasks visible under a date scope.

    TODAY also shows anything overdue; WEEKEND covers the upcoming
    Saturday and Sunday.
    """
    active = [t for t in tasks if not t.is_done]
    match scope:
        case DateScope.ANYTIME:
            return active
        case DateScope.TODAY:
            return [t for t in active if t.due_date <= as_of]
        case DateScope.TOMORROW:
            return filter_by_day(active, as_of + timedelta(days=1))
        case DateScope.WEEKEND:
            saturday = upcoming_saturday(as_of)
            sunday = saturday + timedelta(days=1)
            return [t for t in active if t.due_date in (saturday, sunday)]
        case DateScope.CUSTOM:
            if custom_day is None:
                raise ValueError("custom scope requires a day")
            return filter_by_day(active, custom_day)
    return active


def filter_overdue(tasks: list[TaskItem], as_of: date) -> list[TaskItem]:
    """Filter to overdue incomplete tasks only."""
    return [t for t in tasks if t.is_overdue(as_of)]


def completed_on(tasks: list[TaskItem], day: date) -> list[TaskItem]:
    """Tasks completed on `day`, most recent first."""
    done = [t for t in tasks if t.is_done and t.completed_at and t.completed_at.date() == day]
    return sorted(done, key=lambda t: t.completed_at, reverse=True)


def sort_by_due(tasks: list[TaskItem]) -> list[TaskItem]:
    """Sort by due date, then reminder time (tasks without one last), then title."""

    def sort_key(t: TaskItem) -> tuple:
        reminder = (t.reminder_at.hour, t.reminder_at.minute) if t.reminder_at else (24, 0)
        return (t.due_date, reminder, t.title.lower())

    return sorted(tasks, key=sort_key)
