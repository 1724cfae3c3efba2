"""Configuration management for Tasky."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TASKY_HOME = Path(os.environ.get("TASKY_HOME", Path.home() / "tasky"))
CONFIG_FILE = TASKY_HOME / "config" / "tasky.conf"
DATA_DIR = TASKY_HOME / "data"


@dataclass
class Config:
    """Tasky configuration."""

    timezone: str = "UTC"
    data_dir: str = ""
    # Daily maintenance sweep that moves overdue tasks to today
    rollover_time: str = "00:01"
    # Seconds a reminder may fire late (e.g. after sleep) before it is dropped
    reminder_misfire_grace: int = 300

    @property
    def data_path(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR


def parse_hhmm(value: str) -> tuple[int, int]:
    """Parse 'HH:MM' into (hour, minute). Raises ValueError on bad input."""
    hour_str, _, minute_str = value.strip().partition(":")
    hour, minute = int(hour_str), int(minute_str or 0)
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Time out of range: {value}")
    return hour, minute


def _strip_value(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from tasky.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _strip_value(value.strip())

        match key:
            case "timezone":
                config.timezone = value
            case "data_dir":
                config.data_dir = value
            case "rollover_time":
                config.rollover_time = value
            case "reminder_misfire_grace":
                try:
                    config.reminder_misfire_grace = int(value)
                except ValueError:
                    logger.warning(f"Invalid REMINDER_MISFIRE_GRACE: {value}")
            case _:
                logger.debug(f"Ignoring unknown config key: {key}")

    return config
