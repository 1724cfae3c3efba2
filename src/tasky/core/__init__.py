"""Functional core - pure business logic with no I/O."""

from .recurrence import (
    InvalidRuleError,
    RecurrenceBasis,
    RecurrenceRule,
    RecurrenceScope,
    RecurrenceUnit,
    apply_scope,
    describe_rule,
    next_occurrence,
    next_occurrence_at,
)
from .tasks import (
    DateScope,
    ProjectItem,
    TaskDifficulty,
    TaskEstimatedTime,
    TaskItem,
    TaskResistance,
    align_reminder_time,
    filter_for_scope,
    filter_overdue,
)

__all__ = [
    # Recurrence
    "InvalidRuleError",
    "RecurrenceBasis",
    "RecurrenceRule",
    "RecurrenceScope",
    "RecurrenceUnit",
    "apply_scope",
    "describe_rule",
    "next_occurrence",
    "next_occurrence_at",
    # Tasks
    "DateScope",
    "ProjectItem",
    "TaskDifficulty",
    "TaskEstimatedTime",
    "TaskItem",
    "TaskResistance",
    "align_reminder_time",
    "filter_for_scope",
    "filter_overdue",
]
