"""File-based JSON task storage adapter."""

import json
import logging
from pathlib import Path

from tasky.core.tasks import ProjectItem, TaskItem

logger = logging.getLogger(__name__)


class JsonTaskStore:
    """
    JSON file storage.

    Implements TaskStore protocol. Tasks and projects each live in their own
    file under `data_dir`; writes go through a temp file and a rename.
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def tasks_path(self) -> Path:
        return self.data_dir / "tasks.json"

    @property
    def projects_path(self) -> Path:
        return self.data_dir / "projects.json"

    def _read(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable {path.name}: {e}")
            return []
        if not isinstance(data, list):
            logger.warning(f"Ignoring {path.name}: expected a list")
            return []
        return data

    def _write(self, path: Path, records: list[dict]) -> None:
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(records, indent=2))
        tmp.replace(path)

    def load_tasks(self) -> list[TaskItem]:
        """Load all stored tasks, skipping malformed records."""
        tasks = []
        for record in self._read(self.tasks_path):
            try:
                tasks.append(TaskItem.from_dict(record))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed task record: {e}")
        return tasks

    def save_tasks(self, tasks: list[TaskItem]) -> None:
        """Replace the stored tasks."""
        self._write(self.tasks_path, [t.to_dict() for t in tasks])

    def load_projects(self) -> list[ProjectItem]:
        """Load all stored projects, skipping malformed records."""
        projects = []
        for record in self._read(self.projects_path):
            try:
                projects.append(ProjectItem.from_dict(record))
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed project record: {e}")
        return projects

    def save_projects(self, projects: list[ProjectItem]) -> None:
        """Replace the stored projects."""
        self._write(self.projects_path, [p.to_dict() for p in projects])
