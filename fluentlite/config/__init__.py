"""
Configuration for fluentlite.

`ToolConfig` carries the connection and logging settings of a `SQLiteTool`.
Settings can be built in code or loaded from the `[database]` table of a TOML
file via `load_config()`.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000


class Logger(Protocol):
    """
    Logging port used by the facade.

    A `logging.Logger` satisfies it; so does any object with these four methods.
    """

    def debug(self, msg: str, *args: Any) -> None: ...

    def info(self, msg: str, *args: Any) -> None: ...

    def warning(self, msg: str, *args: Any) -> None: ...

    def error(self, msg: str, *args: Any) -> None: ...


@dataclass
class ToolConfig:
    """Connection and logging settings for a `SQLiteTool`."""

    logging: bool = False
    logger: Logger | None = None
    # Busy timeout in milliseconds; 0 leaves the engine default.
    timeout: int = DEFAULT_TIMEOUT_MS
    verbose: bool = False
    readonly: bool = False
    file_must_exist: bool = False

    @property
    def open_mode(self) -> str:
        """SQLite URI open mode derived from the flags."""
        if self.readonly:
            return "ro"
        if self.file_must_exist:
            return "rw"
        return "rwc"


# Keys that may appear in a TOML file (the logger cannot).
_FILE_KEYS = frozenset(f.name for f in fields(ToolConfig)) - {"logger"}


def _parse_database_section(data: dict[str, Any]) -> dict[str, Any]:
    """Validate and coerce the `[database]` table."""
    parsed: dict[str, Any] = {}
    for key, value in data.items():
        if key not in _FILE_KEYS:
            logger.warning("Ignoring unknown database config key: %s", key)
            continue
        if key == "timeout":
            parsed[key] = int(value)
        else:
            parsed[key] = bool(value)
    return parsed


def load_config(config_path: Path | str) -> ToolConfig:
    """
    Load a `ToolConfig` from a TOML file.

    Args:
        config_path: Path to a TOML file with an optional `[database]` table.

    Returns:
        A ToolConfig; keys missing from the file keep their defaults.
    """
    config_path = Path(config_path)
    logger.debug("Loading database config from %s", config_path)

    with config_path.open("rb") as f:
        data = tomllib.load(f)

    return ToolConfig(**_parse_database_section(data.get("database", {})))
