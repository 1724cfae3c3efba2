"""Task persistence interface."""

from typing import Protocol

from tasky.core.tasks import ProjectItem, TaskItem


class TaskStore(Protocol):
    """Interface for loading and saving tasks and projects in a durable store."""

    def load_tasks(self) -> list[TaskItem]:
        """Load all stored tasks. Returns an empty list if nothing is stored."""
        ...

    def save_tasks(self, tasks: list[TaskItem]) -> None:
        """Replace the stored tasks with `tasks`."""
        ...

    def load_projects(self) -> list[ProjectItem]:
        """Load all stored projects."""
        ...

    def save_projects(self, projects: list[ProjectItem]) -> None:
        """Replace the stored projects with `projects`."""
        ...
