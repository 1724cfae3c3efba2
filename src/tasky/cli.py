"""Tasky CLI - personal task manager with repeating tasks."""

import json
import logging
import sys
from datetime import date, datetime, time, timedelta

import click

from .adapters.json_store import JsonTaskStore
from .adapters.reminder_scheduler import SchedulerReminderService
from .adapters.system_clock import SystemClock
from .config import Config, load_config, parse_hhmm
from .core.recurrence import (
    InvalidRuleError,
    RecurrenceBasis,
    RecurrenceRule,
    RecurrenceScope,
    RecurrenceUnit,
    describe_rule,
    preview_occurrences,
)
from .core.tasks import (
    DateScope,
    TaskItem,
    completed_on,
    filter_for_scope,
    filter_overdue,
    sort_by_due,
    upcoming_saturday,
)
from .lifecycle import TaskLifecycleController, TaskNotFoundError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _controller(config: Config, clock: SystemClock, reminders=None) -> TaskLifecycleController:
    controller = TaskLifecycleController(
        store=JsonTaskStore(config.data_path),
        clock=clock,
        reminders=reminders,
    )
    controller.load()
    return controller


def _parse_day(value: str, today: date) -> date:
    """Parse 'today', 'tomorrow', 'weekend' or an ISO date."""
    match value.strip().lower():
        case "today":
            return today
        case "tomorrow":
            return today + timedelta(days=1)
        case "weekend":
            return upcoming_saturday(today)
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise click.BadParameter(f"Expected YYYY-MM-DD, today, tomorrow or weekend: {value}")


def _build_rule(every: int, unit: str, basis: str, scope: str, count: int | None, anchor: date) -> RecurrenceRule:
    try:
        return RecurrenceRule(
            unit=RecurrenceUnit(unit),
            interval=every,
            basis=RecurrenceBasis(basis),
            scope=RecurrenceScope(scope),
            anchor=anchor,
            count_limit=count,
        )
    except InvalidRuleError as e:
        raise click.BadParameter(str(e))


def _lookup(controller: TaskLifecycleController, id_prefix: str) -> TaskItem:
    try:
        return controller.find_task(id_prefix)
    except TaskNotFoundError:
        click.echo(f"Error: no single task matches '{id_prefix}'", err=True)
        sys.exit(1)


def format_task_line(task: TaskItem) -> str:
    """One-line listing: short id, due date, title and decorations."""
    mark = "x" if task.is_done else " "
    line = f"[{mark}] {task.id[:8]}  {task.due_date.isoformat()}  {task.title}"
    if task.project:
        line += f"  {task.project.emoji} {task.project.name}".rstrip()
    if task.tag:
        line += f"  #{task.tag}"
    if task.reminder_at:
        line += f"  @{task.reminder_at.strftime('%H:%M')}"
    if task.recurrence:
        line += f"  ({describe_rule(task.recurrence)})"
    return line


def _task_json(task: TaskItem) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "due_date": task.due_date.isoformat(),
        "done": task.is_done,
        "project": task.project.name if task.project else None,
        "tag": task.tag,
        "reminder_at": task.reminder_at.isoformat() if task.reminder_at else None,
        "repeat": describe_rule(task.recurrence) if task.recurrence else None,
    }


unit_choice = click.Choice([u.value for u in RecurrenceUnit])
basis_choice = click.Choice([b.value for b in RecurrenceBasis])
scope_choice = click.Choice([s.value for s in RecurrenceScope])


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Tasky - personal task manager."""
    if debug:
        logging.basicConfig(format=LOG_FORMAT, level=logging.DEBUG)


@main.command()
@click.argument("title")
@click.option("--due", help="Due day: YYYY-MM-DD, today, tomorrow or weekend")
@click.option("--project", "project_name", help="Project name")
@click.option("--tag", help="Tag within the project")
@click.option("--remind", help="Reminder time (HH:MM) on the due day")
@click.option("--every", type=int, help="Repeat every N units")
@click.option("--unit", type=unit_choice, default="days", show_default=True)
@click.option("--basis", type=basis_choice, default="scheduled", show_default=True)
@click.option("--scope", type=scope_choice, default="allDays", show_default=True)
@click.option("--count", type=int, help="Stop repeating after N occurrences")
def add(title, due, project_name, tag, remind, every, unit, basis, scope, count):
    """Add a task."""
    config = load_config()
    clock = SystemClock(config.timezone)
    controller = _controller(config, clock)
    today = clock.today()

    due_day = _parse_day(due, today) if due else today

    project = None
    if project_name:
        project = next((p for p in controller.projects if p.name.lower() == project_name.lower()), None)
        if project is None:
            click.echo(f"Error: unknown project '{project_name}'", err=True)
            sys.exit(1)

    reminder_at = None
    if remind:
        try:
            hour, minute = parse_hhmm(remind)
        except ValueError:
            raise click.BadParameter(f"Expected HH:MM: {remind}", param_hint="--remind")
        reminder_at = datetime.combine(due_day, time(hour, minute), tzinfo=clock.tz)

    rule = _build_rule(every, unit, basis, scope, count, due_day) if every is not None else None

    try:
        task = controller.add_task(
            title,
            due_day,
            project=project,
            tag=tag,
            reminder_at=reminder_at,
            recurrence=rule,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(format_task_line(task))


@main.command("list")
@click.option(
    "--scope",
    "scope_name",
    default="anytime",
    show_default=True,
    help="anytime, today, tomorrow, weekend, overdue, done or YYYY-MM-DD",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_tasks(scope_name: str, as_json: bool):
    """List tasks."""
    config = load_config()
    clock = SystemClock(config.timezone)
    controller = _controller(config, clock)
    today = clock.today()
    tasks = list(controller.tasks)

    match scope_name.lower():
        case "overdue":
            shown = filter_overdue(tasks, today)
        case "done":
            shown = completed_on(tasks, today)
        case "anytime" | "today" | "tomorrow" | "weekend":
            shown = filter_for_scope(tasks, DateScope(scope_name.lower()), today)
        case _:
            day = _parse_day(scope_name, today)
            shown = filter_for_scope(tasks, DateScope.CUSTOM, today, custom_day=day)

    if scope_name.lower() != "done":
        shown = sort_by_due(shown)

    if as_json:
        click.echo(json.dumps([_task_json(t) for t in shown], indent=2))
        return

    if not shown:
        click.echo("No tasks.")
        return

    for task in shown:
        click.echo(format_task_line(task))


@main.command()
@click.argument("task_id")
@click.option("--yes", "-y", is_flag=True, help="Add the next occurrence without asking")
def done(task_id: str, yes: bool):
    """Complete a task. Repeating tasks offer their next occurrence."""
    config = load_config()
    clock = SystemClock(config.timezone)
    controller = _controller(config, clock)
    task = _lookup(controller, task_id)

    if task.is_done:
        click.echo(f"'{task.title}' is already done.")
        return

    proposal = controller.toggle_done(task.id)
    click.echo(f"Completed '{task.title}'.")

    if proposal is None:
        if task.recurrence is not None:
            click.echo("Series finished.")
        return

    nxt = proposal.task
    when = nxt.due_date.isoformat()
    if nxt.reminder_at:
        when += f" at {nxt.reminder_at.strftime('%H:%M')}"
    click.echo(f"Next occurrence: {when}")

    if yes or click.confirm("Add it?", default=True):
        controller.confirm_next_occurrence(proposal)
        click.echo(format_task_line(nxt))
    else:
        controller.discard_proposal(proposal.source_task_id)
        click.echo("Skipped.")


@main.command()
@click.argument("task_id")
def undone(task_id: str):
    """Mark a completed task as not done."""
    config = load_config()
    clock = SystemClock(config.timezone)
    controller = _controller(config, clock)
    task = _lookup(controller, task_id)

    if not task.is_done:
        click.echo(f"'{task.title}' is not done.")
        return

    controller.toggle_done(task.id)
    click.echo(format_task_line(controller.get_task(task.id)))


@main.command()
@click.argument("task_id")
@click.argument("day")
def move(task_id: str, day: str):
    """Move a task to another day, keeping its reminder time."""
    config = load_config()
    clock = SystemClock(config.timezone)
    controller = _controller(config, clock)
    task = _lookup(controller, task_id)

    updated = controller.set_due_date(task.id, _parse_day(day, clock.today()))
    click.echo(format_task_line(updated))


@main.command()
@click.argument("task_id")
def delete(task_id: str):
    """Delete a task."""
    config = load_config()
    clock = SystemClock(config.timezone)
    controller = _controller(config, clock)
    task = _lookup(controller, task_id)

    controller.delete_task(task.id)
    click.echo(f"Deleted '{task.title}'.")


@main.command()
def rollover():
    """Move overdue tasks up to today."""
    config = load_config()
    clock = SystemClock(config.timezone)
    controller = _controller(config, clock)

    moved = controller.rollover_incomplete_past_due_tasks_to_today()
    if not moved:
        click.echo("Nothing overdue.")
        return
    click.echo(f"Rolled over {len(moved)} task(s).")
    for task_id in moved:
        click.echo(format_task_line(controller.get_task(task_id)))


@main.command()
@click.option("--every", type=int, default=1, show_default=True)
@click.option("--unit", type=unit_choice, default="days", show_default=True)
@click.option("--scope", type=scope_choice, default="allDays", show_default=True)
@click.option("--count", type=int, help="Series length")
@click.option("--from", "from_day", help="Start day (default today)")
@click.option("-n", "num", type=int, default=5, show_default=True, help="How many dates")
def preview(every, unit, scope, count, from_day, num):
    """Preview the dates a repeat rule produces."""
    config = load_config()
    clock = SystemClock(config.timezone)
    start = _parse_day(from_day, clock.today()) if from_day else clock.today()

    rule = _build_rule(every, unit, RecurrenceBasis.SCHEDULED.value, scope, count, start)
    click.echo(describe_rule(rule))
    for occurrence in preview_occurrences(start, rule, num):
        if isinstance(occurrence, datetime):
            click.echo(f"  {occurrence.strftime('%Y-%m-%d %H:%M')}")
        else:
            click.echo(f"  {occurrence.strftime('%a %Y-%m-%d')}")


@main.group(invoke_without_command=True)
@click.pass_context
def projects(ctx):
    """List projects."""
    if ctx.invoked_subcommand is not None:
        return
    config = load_config()
    controller = _controller(config, SystemClock(config.timezone))
    if not controller.projects:
        click.echo("No projects.")
        return
    for project in controller.projects:
        click.echo(f"{project.emoji} {project.name}".strip())


@projects.command("add")
@click.argument("name")
@click.argument("emoji", default="")
def project_add(name: str, emoji: str):
    """Add a project."""
    config = load_config()
    controller = _controller(config, SystemClock(config.timezone))
    try:
        project = controller.add_project(name, emoji)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Added project {project.emoji} {project.name}".rstrip())


@main.command()
def run():
    """Run in the foreground: deliver reminders and roll over daily."""
    from apscheduler.schedulers.blocking import BlockingScheduler
    from apscheduler.triggers.cron import CronTrigger
    from apscheduler.triggers.interval import IntervalTrigger

    logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)

    config = load_config()
    clock = SystemClock(config.timezone)
    scheduler = BlockingScheduler(timezone=clock.tz)

    def notify(task_id: str, title: str) -> None:
        click.echo(f"\a[{clock.now().strftime('%H:%M')}] Reminder: {title}")

    def current_title(task_id: str) -> str | None:
        try:
            return controller.get_task(task_id).title
        except TaskNotFoundError:
            return None

    reminders = SchedulerReminderService(
        scheduler,
        clock,
        notify=notify,
        misfire_grace=config.reminder_misfire_grace,
        title_lookup=current_title,
    )
    controller = _controller(config, clock, reminders)

    def daily_rollover() -> None:
        controller.load()
        controller.rollover_incomplete_past_due_tasks_to_today()
        controller.sync_reminders()

    def refresh() -> None:
        # Pick up edits made by other tasky commands
        controller.load()
        controller.sync_reminders()

    daily_rollover()

    try:
        hour, minute = parse_hhmm(config.rollover_time)
    except ValueError:
        logger.warning(f"Invalid rollover time format: {config.rollover_time}; using 00:01")
        hour, minute = 0, 1
    scheduler.add_job(daily_rollover, CronTrigger(hour=hour, minute=minute), id="daily_rollover")
    scheduler.add_job(refresh, IntervalTrigger(minutes=1), id="refresh")
    logger.info(f"Scheduled daily rollover at {hour:02d}:{minute:02d}")

    click.echo("Tasky running. Press Ctrl+C to stop")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Stopping")


if __name__ == "__main__":
    main()
