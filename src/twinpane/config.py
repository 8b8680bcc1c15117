"""Persistent settings and logging setup.

Settings live in a JSON object at ``~/.config/twinpane.json``. All access is
defensive: a missing, unreadable or malformed file yields the defaults.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "twinpane.json"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclasses.dataclass(frozen=True)
class Settings:
    """Tunables for transports and the transfer orchestrator."""

    chunk_size: int = 32 * 1024
    speed_smoothing: float = 0.3
    max_workers: int = 4
    connect_timeout: float = 30.0
    show_hidden: bool = False
    local_start_path: str = "~"
    remote_start_path: str = "~"

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 < self.speed_smoothing <= 1:
            raise ValueError("speed_smoothing must be in (0, 1]")
        if self.max_workers < 2:
            # one worker for the transfer, at least one for listings
            raise ValueError("max_workers must be at least 2")


def load_config() -> Dict[str, object]:
    """Load the persisted JSON config object, ``{}`` on any problem."""
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: Dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON; write errors are ignored."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.warning(f"Cannot write {CONFIG_PATH}: {exc}")


def load_settings() -> Settings:
    """Build :class:`Settings` from the config file.

    Unknown keys and values of the wrong type are skipped; if the surviving
    values are rejected by validation the defaults are used.
    """
    data = load_config()
    values = {}
    for field in dataclasses.fields(Settings):
        value = data.get(field.name)
        if value is None:
            continue
        expected = type(field.default)
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if type(value) is expected:
            values[field.name] = value
    try:
        return Settings(**values)
    except ValueError as exc:
        logger.warning(f"Ignoring invalid settings: {exc}")
        return Settings()


def save_settings(settings: Settings) -> None:
    config = load_config()
    config.update(dataclasses.asdict(settings))
    save_config(config)


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Setup logging configuration for twinpane.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path of an additional log file
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
