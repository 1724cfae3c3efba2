"""Task lifecycle layer between the CLI and the core.

TaskLifecycleController owns the task and project collections. It applies
completion, rollover and rescheduling, asks the recurrence engine for date
math, and tells the store and reminder service about the result.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

from .core.recurrence import (
    RecurrenceBasis,
    RecurrenceRule,
    next_occurrence,
    next_occurrence_at,
    roll_forward,
)
from .core.tasks import (
    ProjectItem,
    TaskDifficulty,
    TaskEstimatedTime,
    TaskItem,
    TaskResistance,
    align_reminder_time,
    start_of_day,
)
from .ports import Clock, ReminderService, TaskStore

logger = logging.getLogger(__name__)


class TaskNotFoundError(KeyError):
    """Raised when a task or project id is not in the collection."""

    pass


@dataclass
class Proposal:
    """A generated next occurrence waiting for the user to confirm it."""

    source_task_id: str
    task: TaskItem


class TaskLifecycleController:
    """
    Owns tasks and projects; every mutation persists before returning.

    Readers get copies, never the live records. Proposals from completed
    recurring tasks are queued per originating task until confirmed or
    discarded. `reminders` may be None when no delivery service runs.
    """

    def __init__(
        self,
        store: TaskStore,
        clock: Clock,
        reminders: ReminderService | None = None,
        on_proposal: Callable[[Proposal], None] | None = None,
    ):
        self.store = store
        self.clock = clock
        self.reminders = reminders
        self.on_proposal = on_proposal
        self._tasks: list[TaskItem] = []
        self._projects: list[ProjectItem] = []
        self._pending: dict[str, TaskItem] = {}
        # Ids this controller handed to the reminder service
        self._scheduled: set[str] = set()
        self._lock = threading.RLock()

    # ============== Snapshots ==============

    @property
    def tasks(self) -> tuple[TaskItem, ...]:
        with self._lock:
            return tuple(t.copy() for t in self._tasks)

    @property
    def projects(self) -> tuple[ProjectItem, ...]:
        with self._lock:
            return tuple(ProjectItem(p.name, p.emoji, id=p.id) for p in self._projects)

    @property
    def pending_proposals(self) -> list[Proposal]:
        with self._lock:
            return [Proposal(source, task.copy()) for source, task in self._pending.items()]

    def get_task(self, task_id: str) -> TaskItem:
        with self._lock:
            return self._find(task_id).copy()

    def find_task(self, id_prefix: str) -> TaskItem:
        """Look up a task by a unique id prefix (as shown in listings)."""
        with self._lock:
            matches = [t for t in self._tasks if t.id.startswith(id_prefix)]
        if len(matches) != 1:
            raise TaskNotFoundError(id_prefix)
        return matches[0].copy()

    # ============== Collaborators ==============

    def load(self) -> None:
        """Replace in-memory state with what the store holds."""
        with self._lock:
            self._tasks = self.store.load_tasks()
            self._projects = self.store.load_projects()
            known = {t.id for t in self._tasks}
            self._pending = {k: v for k, v in self._pending.items() if k in known}
        logger.debug(f"Loaded {len(self._tasks)} tasks and {len(self._projects)} projects")

    def _save_tasks(self) -> None:
        # In-memory state stays authoritative; the next successful save wins
        try:
            self.store.save_tasks(list(self._tasks))
        except OSError as e:
            logger.error(f"Failed to save tasks: {e}")

    def _save_projects(self) -> None:
        try:
            self.store.save_projects(list(self._projects))
        except OSError as e:
            logger.error(f"Failed to save projects: {e}")

    def _schedule(self, task: TaskItem) -> None:
        if self.reminders is None:
            return
        try:
            if task.reminder_at is None or task.is_done:
                self.reminders.cancel_reminder(task.id)
                self._scheduled.discard(task.id)
            else:
                self.reminders.schedule_reminder(task.copy())
                self._scheduled.add(task.id)
        except Exception as e:
            logger.error(f"Failed to schedule reminder for {task.id}: {e}")

    def _cancel(self, task_id: str) -> None:
        if self.reminders is None:
            return
        try:
            self.reminders.cancel_reminder(task_id)
            self._scheduled.discard(task_id)
        except Exception as e:
            logger.error(f"Failed to cancel reminder for {task_id}: {e}")

    def _find(self, task_id: str) -> TaskItem:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)

    def sync_reminders(self) -> int:
        """
        Bring the reminder service in line with the collection.

        Active tasks with a reminder are rescheduled. Reminders this
        controller scheduled for tasks that are now done or gone (changed by
        another process before the last `load()`) are cancelled. Returns how
        many active tasks have a reminder.
        """
        with self._lock:
            active = [t for t in self._tasks if not t.is_done and t.reminder_at]
            stale = self._scheduled - {t.id for t in active}
            for task_id in stale:
                self._cancel(task_id)
            for task in active:
                self._schedule(task)
            if stale:
                logger.info(f"Cancelled {len(stale)} stale reminders")
            return len(active)

    # ============== CRUD ==============

    def add_task(
        self,
        title: str,
        due_date: date | datetime | None = None,
        *,
        project: ProjectItem | None = None,
        tag: str | None = None,
        difficulty: TaskDifficulty = TaskDifficulty.EASY,
        resistance: TaskResistance = TaskResistance.LOW,
        estimated_time: TaskEstimatedTime = TaskEstimatedTime.SHORT,
        reminder_at: datetime | None = None,
        recurrence: RecurrenceRule | None = None,
        note_markdown: str | None = None,
    ) -> TaskItem:
        """Create a task due on `due_date` (default today)."""
        title = title.strip()
        if not title:
            raise ValueError("Task title cannot be empty")
        tag = tag.strip() if tag else None

        task = TaskItem(
            title=title,
            due_date=start_of_day(due_date or self.clock.today()),
            project=project,
            tag=tag if project else None,
            difficulty=difficulty,
            resistance=resistance,
            estimated_time=estimated_time,
            reminder_at=reminder_at,
            recurrence=recurrence,
            note_markdown=note_markdown,
            note_updated_at=self.clock.now() if note_markdown else None,
        )
        with self._lock:
            self._tasks.append(task)
            self._schedule(task)
            self._save_tasks()
        logger.info(f"Added task '{task.title}' due {task.due_date.isoformat()}")
        return task.copy()

    def update_task(self, updated: TaskItem) -> TaskItem:
        """Replace a stored task with an edited copy."""
        with self._lock:
            current = self._find(updated.id)
            index = self._tasks.index(current)
            stored = updated.copy()
            stored.due_date = start_of_day(stored.due_date)
            if stored.note_markdown != current.note_markdown:
                stored.note_updated_at = self.clock.now()
            self._tasks[index] = stored
            self._schedule(stored)
            self._save_tasks()
            return stored.copy()

    def delete_task(self, task_id: str) -> None:
        with self._lock:
            task = self._find(task_id)
            self._tasks.remove(task)
            self._pending.pop(task_id, None)
            self._cancel(task_id)
            self._save_tasks()
        logger.info(f"Deleted task '{task.title}'")

    def set_due_date(self, task_id: str, day: date | datetime) -> TaskItem:
        """Move a task to another day, keeping its reminder's time of day."""
        with self._lock:
            task = self._find(task_id)
            task.due_date = start_of_day(day)
            if task.reminder_at:
                task.reminder_at = align_reminder_time(task.due_date, task.reminder_at, self.clock.tz)
            self._schedule(task)
            self._save_tasks()
            return task.copy()

    def add_project(self, name: str, emoji: str) -> ProjectItem:
        name = name.strip()
        if not name:
            raise ValueError("Project name cannot be empty")
        project = ProjectItem(name=name, emoji=emoji)
        with self._lock:
            self._projects.append(project)
            self._save_projects()
        return ProjectItem(project.name, project.emoji, id=project.id)

    def delete_project(self, project_id: str) -> None:
        """Remove a project; its tasks stay but lose the project and tag."""
        with self._lock:
            project = next((p for p in self._projects if p.id == project_id), None)
            if project is None:
                raise TaskNotFoundError(project_id)
            self._projects.remove(project)
            detached = False
            for task in self._tasks:
                if task.project and task.project.id == project_id:
                    task.project = None
                    task.tag = None
                    detached = True
            self._save_projects()
            if detached:
                self._save_tasks()

    # ============== Completion ==============

    def toggle_done(self, task_id: str) -> Proposal | None:
        """
        Flip a task between done and not done.

        Completing a recurring task queues and emits one proposal for the
        next occurrence (unless the series has reached its count limit).
        Reverting retracts that proposal and brings an overdue task back
        to today.
        """
        with self._lock:
            task = self._find(task_id)
            proposal = None

            if not task.is_done:
                task.is_done = True
                task.completed_at = self.clock.now()
                self._cancel(task.id)
                if task.recurrence is not None:
                    proposal = self._propose_next(task, task.recurrence)
            else:
                task.is_done = False
                task.completed_at = None
                if self._pending.pop(task.id, None) is not None:
                    logger.info(f"Retracted next occurrence of '{task.title}'")
                today = self.clock.today()
                if task.due_date < today:
                    task.due_date = today
                    if task.reminder_at:
                        task.reminder_at = align_reminder_time(today, task.reminder_at, self.clock.tz)
                self._schedule(task)

            self._save_tasks()

        if proposal is not None and self.on_proposal is not None:
            self.on_proposal(proposal)
        return proposal

    def _propose_next(self, task: TaskItem, rule: RecurrenceRule) -> Proposal | None:
        done_count = rule.occurrences_done + 1
        if rule.is_exhausted(done_count):
            logger.info(f"Series '{task.title}' finished after {done_count} occurrences")
            return None

        next_due, next_reminder = self.compute_next_after_completion(task, rule)
        proposed = TaskItem(
            title=task.title,
            due_date=next_due,
            project=task.project,
            tag=task.tag,
            difficulty=task.difficulty,
            resistance=task.resistance,
            estimated_time=task.estimated_time,
            recurrence=rule.with_occurrences_done(done_count),
            reminder_at=next_reminder,
        )
        self._pending[task.id] = proposed
        logger.info(f"Proposed next '{task.title}' on {next_due.isoformat()}")
        return Proposal(task.id, proposed.copy())

    def compute_next_after_completion(
        self, task: TaskItem, rule: RecurrenceRule
    ) -> tuple[date, datetime | None]:
        """
        Due day and reminder for the occurrence after `task` is completed.

        Minute/hour rules always count from the completion instant. Longer
        rules count from the completion day or the scheduled due date,
        depending on the rule's basis.
        """
        completed_at = task.completed_at or self.clock.now()

        if rule.is_sub_day:
            nxt = next_occurrence_at(completed_at, rule)
            return nxt.date(), (nxt if task.reminder_at else None)

        if rule.basis == RecurrenceBasis.COMPLETION:
            base = completed_at.date()
        else:
            base = task.due_date
        next_day = next_occurrence(base, rule)
        reminder = align_reminder_time(next_day, task.reminder_at, self.clock.tz) if task.reminder_at else None
        return next_day, reminder

    def confirm_next_occurrence(self, proposed: Proposal | TaskItem) -> TaskItem:
        """Store a proposed occurrence (possibly edited) as a real task."""
        task = proposed.task if isinstance(proposed, Proposal) else proposed
        with self._lock:
            source = next((s for s, p in self._pending.items() if p.id == task.id), None)
            if source is None:
                logger.warning(f"Confirming occurrence {task.id} with no pending proposal")
            else:
                del self._pending[source]
            if any(t.id == task.id for t in self._tasks):
                raise ValueError(f"Task {task.id} is already stored")

            stored = task.copy()
            stored.due_date = start_of_day(stored.due_date)
            self._tasks.append(stored)
            self._schedule(stored)
            self._save_tasks()
        logger.info(f"Confirmed '{stored.title}' on {stored.due_date.isoformat()}")
        return stored.copy()

    def discard_proposal(self, source_task_id: str) -> bool:
        """Drop the pending proposal from a task. Returns False if there was none."""
        with self._lock:
            return self._pending.pop(source_task_id, None) is not None

    # ============== Rollover ==============

    def rollover_incomplete_past_due_tasks_to_today(self) -> list[str]:
        """
        Bring every incomplete overdue task up to today or later.

        Scheduled-basis repeats step forward along their cadence; everything
        else lands on today. Safe to call repeatedly: a second call in the
        same day changes nothing. Returns the ids of moved tasks.
        """
        with self._lock:
            today = self.clock.today()
            moved = []
            for task in self._tasks:
                if not task.is_overdue(today):
                    continue
                task.due_date = self._rollover_target(task, today)
                if task.reminder_at:
                    task.reminder_at = align_reminder_time(task.due_date, task.reminder_at, self.clock.tz)
                    self._schedule(task)
                moved.append(task.id)

            if moved:
                self._save_tasks()
                logger.info(f"Rolled over {len(moved)} overdue tasks")
            return moved

    def _rollover_target(self, task: TaskItem, today: date) -> date:
        rule = task.recurrence
        if rule is None or rule.basis == RecurrenceBasis.COMPLETION or rule.is_sub_day:
            return today
        return roll_forward(task.due_date, rule, today)
