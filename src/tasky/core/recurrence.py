"""Pure recurrence logic - computes the next occurrence of a repeating task."""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

SATURDAY = 5
ROLLOVER_STEP_CAP = 512


class InvalidRuleError(ValueError):
    """Raised when a recurrence rule is constructed with invalid values."""

    pass


class RecurrenceUnit(Enum):
    """Granularity of the repeat interval."""

    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


class RecurrenceBasis(Enum):
    """Where next-occurrence math starts from."""

    SCHEDULED = "scheduled"  # The prior due date; cadence marches on
    COMPLETION = "completion"  # The day the task was actually completed


class RecurrenceScope(Enum):
    """Which calendar days are eligible targets."""

    ALL_DAYS = "allDays"
    WEEKDAYS_ONLY = "weekdaysOnly"
    WEEKENDS_ONLY = "weekendsOnly"


SUB_DAY_UNITS = (RecurrenceUnit.MINUTES, RecurrenceUnit.HOURS)


@dataclass(frozen=True)
class RecurrenceRule:
    """A repeat rule attached to a task."""

    unit: RecurrenceUnit
    interval: int
    basis: RecurrenceBasis
    scope: RecurrenceScope
    anchor: date
    count_limit: int | None = None
    occurrences_done: int = 0

    def __post_init__(self):
        if self.interval < 1:
            raise InvalidRuleError(f"interval must be >= 1, got {self.interval}")
        if self.count_limit is not None and self.count_limit < 1:
            raise InvalidRuleError(f"count_limit must be >= 1, got {self.count_limit}")
        if self.occurrences_done < 0:
            raise InvalidRuleError(f"occurrences_done must be >= 0, got {self.occurrences_done}")

    @property
    def is_sub_day(self) -> bool:
        return self.unit in SUB_DAY_UNITS

    def is_exhausted(self, done_count: int) -> bool:
        """True once `done_count` completions reach the count limit."""
        return self.count_limit is not None and done_count >= self.count_limit

    def with_occurrences_done(self, done_count: int) -> "RecurrenceRule":
        return replace(self, occurrences_done=done_count)

    def to_dict(self) -> dict:
        return {
            "unit": self.unit.value,
            "interval": self.interval,
            "basis": self.basis.value,
            "scope": self.scope.value,
            "countLimit": self.count_limit,
            "occurrencesDone": self.occurrences_done,
            "anchor": self.anchor.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecurrenceRule":
        return cls(
            unit=RecurrenceUnit(data["unit"]),
            interval=int(data["interval"]),
            basis=RecurrenceBasis(data.get("basis", RecurrenceBasis.SCHEDULED.value)),
            scope=RecurrenceScope(data.get("scope", RecurrenceScope.ALL_DAYS.value)),
            anchor=date.fromisoformat(data["anchor"]),
            count_limit=data.get("countLimit"),
            occurrences_done=data.get("occurrencesDone", 0),
        )


def _as_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def is_weekend(day: date) -> bool:
    return day.weekday() >= SATURDAY


def next_saturday(day: date) -> date:
    """The first Saturday strictly after `day`."""
    diff = (SATURDAY - day.weekday()) % 7
    return day + timedelta(days=diff or 7)


def weekend_saturday(day: date) -> date:
    """The Saturday of the weekend `day` belongs to (Sunday snaps back)."""
    return day - timedelta(days=day.weekday() - SATURDAY)


def apply_scope(day: date, scope: RecurrenceScope) -> date:
    """Move `day` onto the nearest day the scope allows."""
    if scope == RecurrenceScope.WEEKDAYS_ONLY:
        while is_weekend(day):
            day += timedelta(days=1)
        return day
    if scope == RecurrenceScope.WEEKENDS_ONLY:
        return weekend_saturday(day) if is_weekend(day) else next_saturday(day)
    return day


def _add_weekdays(count: int, day: date) -> date:
    added = 0
    while added < count:
        day += timedelta(days=1)
        if not is_weekend(day):
            added += 1
    return day


def _add_weekend_days(count: int, day: date) -> date:
    start = day
    if not is_weekend(day):
        day = next_saturday(day)
    added = 0
    while added < count:
        day += timedelta(days=1)
        if is_weekend(day):
            added += 1
    result = weekend_saturday(day)
    # Saturday + 1 weekend day lands on the same weekend
    if result <= start:
        result = next_saturday(start)
    return result


def _add_elapsed(base: datetime, delta: timedelta) -> datetime:
    """Add real elapsed time, so a DST shift does not stretch the interval."""
    if base.tzinfo is None:
        return base + delta
    return (base.astimezone(timezone.utc) + delta).astimezone(base.tzinfo)


def _sub_day_delta(rule: RecurrenceRule) -> timedelta:
    if rule.unit == RecurrenceUnit.MINUTES:
        return timedelta(minutes=rule.interval)
    return timedelta(hours=rule.interval)


def next_occurrence_at(base: datetime, rule: RecurrenceRule) -> datetime:
    """
    Exact next instant for minute/hour rules.

    Day-or-longer rules return midnight of `next_occurrence` in base's zone.
    """
    if rule.is_sub_day:
        try:
            return _add_elapsed(base, _sub_day_delta(rule))
        except OverflowError:
            logger.warning(f"Recurrence overflow from {base.isoformat()}; keeping base")
            return base
    day = next_occurrence(base, rule)
    return datetime.combine(day, datetime.min.time(), tzinfo=base.tzinfo)


def next_occurrence(base: date | datetime, rule: RecurrenceRule) -> date:
    """
    Compute the calendar day of the next occurrence after `base`.

    Pure function - no I/O. Falls back to base's day when the arithmetic
    would leave the supported date range.
    """
    if rule.is_sub_day:
        if not isinstance(base, datetime):
            base = datetime.combine(base, datetime.min.time())
        return next_occurrence_at(base, rule).date()

    day = _as_day(base)
    try:
        match rule.unit:
            case RecurrenceUnit.DAYS:
                if rule.scope == RecurrenceScope.WEEKDAYS_ONLY:
                    return _add_weekdays(rule.interval, day)
                if rule.scope == RecurrenceScope.WEEKENDS_ONLY:
                    return _add_weekend_days(rule.interval, day)
                return day + timedelta(days=rule.interval)
            case RecurrenceUnit.WEEKS:
                candidate = day + timedelta(weeks=rule.interval)
            case RecurrenceUnit.MONTHS:
                # relativedelta clamps to the target month's last day
                candidate = day + relativedelta(months=rule.interval)
            case RecurrenceUnit.YEARS:
                candidate = day + relativedelta(years=rule.interval)
        return apply_scope(candidate, rule.scope)
    except (OverflowError, ValueError):
        logger.warning(f"Recurrence overflow from {day.isoformat()} ({rule.unit.value}); keeping base")
        return day


def _scope_on_or_after(day: date, scope: RecurrenceScope) -> date:
    adjusted = apply_scope(day, scope)
    if adjusted < day:
        # A Sunday snaps back to its Saturday; move on to the next weekend instead
        return next_saturday(day)
    return adjusted


def roll_forward(
    day: date,
    rule: RecurrenceRule,
    today: date,
    max_steps: int = ROLLOVER_STEP_CAP,
) -> date:
    """
    Step an overdue scheduled day forward by the rule until it is >= today.

    The landed day is moved onto a day the scope allows. If `max_steps` is
    exhausted the result is clamped to today (scope-adjusted) so the result
    is never in the past.
    """
    current = day
    for _ in range(max_steps):
        if current >= today:
            break
        nxt = next_occurrence(current, rule)
        if nxt <= current:
            break
        current = nxt

    if current < today:
        logger.warning(
            f"Rollover from {day.isoformat()} stopped at {current.isoformat()} "
            f"({rule.interval} {rule.unit.value}); clamping to {today.isoformat()}"
        )
        current = today
    return _scope_on_or_after(current, rule.scope)


def preview_next(rule: RecurrenceRule, now: datetime) -> date:
    """Next date as shown while editing a rule (before any completion)."""
    if rule.basis == RecurrenceBasis.SCHEDULED:
        return next_occurrence(rule.anchor, rule)
    return next_occurrence(now, rule)


def preview_occurrences(
    base: date | datetime, rule: RecurrenceRule, count: int = 5
) -> list[date | datetime]:
    """
    The next `count` occurrences, stepping from `base`.

    Minute/hour rules yield exact datetimes, longer rules yield days.
    Stops early when the rule's count limit would be reached.
    """
    if rule.is_sub_day:
        current = base if isinstance(base, datetime) else datetime.combine(base, datetime.min.time())
        step = next_occurrence_at
    else:
        current = _as_day(base)
        step = next_occurrence

    occurrences = []
    done = rule.occurrences_done
    while len(occurrences) < count and not rule.is_exhausted(done + 1):
        nxt = step(current, rule)
        if nxt == current:
            break
        occurrences.append(nxt)
        current = nxt
        done += 1
    return occurrences


_SCOPE_LABELS = {
    RecurrenceScope.ALL_DAYS: "",
    RecurrenceScope.WEEKDAYS_ONLY: "weekdays only",
    RecurrenceScope.WEEKENDS_ONLY: "weekends only",
}


def describe_rule(rule: RecurrenceRule) -> str:
    """Short human-readable summary, e.g. 'Every 2 weeks, weekdays only'."""
    unit = rule.unit.value
    if rule.interval == 1:
        text = f"Every {unit[:-1]}"
    else:
        text = f"Every {rule.interval} {unit}"
    parts = [text]
    if _SCOPE_LABELS[rule.scope]:
        parts.append(_SCOPE_LABELS[rule.scope])
    if rule.basis == RecurrenceBasis.COMPLETION:
        parts.append("after completion")
    summary = ", ".join(parts)
    if rule.count_limit is not None:
        summary += f" ({rule.occurrences_done}/{rule.count_limit} done)"
    return summary
