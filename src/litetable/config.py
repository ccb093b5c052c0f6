"""Configuration management for litetable.

Handles:
- litetable.yaml parsing
- Environment variable overrides
- Config file discovery (walks up from the working directory)
- Logging setup for the command line
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import yaml


CONFIG_YAML = "litetable.yaml"
DEFAULT_DB_NAME = "litetable.db"
DEFAULT_STREAM_PREFETCH = 1024
DEFAULT_WRITE_BATCH_SIZE = 256

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class LitetableConfig:
    """Connection and runtime settings."""
    database: str = DEFAULT_DB_NAME
    journal_mode: str = ""
    busy_timeout: int = 5000
    foreign_keys: bool = False
    stream_prefetch: int = DEFAULT_STREAM_PREFETCH
    write_batch_size: int = DEFAULT_WRITE_BATCH_SIZE
    log_level: str = "WARNING"

    @classmethod
    def load(cls, config_path: str | None = None) -> LitetableConfig:
        """Load a config file (if present) and apply environment overrides."""
        cfg = cls()
        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            cfg.database = data.get("database", DEFAULT_DB_NAME)
            cfg.journal_mode = data.get("journal-mode", "")
            cfg.busy_timeout = int(data.get("busy-timeout", 5000))
            cfg.foreign_keys = _as_bool(data.get("foreign-keys", False))
            cfg.stream_prefetch = int(data.get("stream-prefetch", DEFAULT_STREAM_PREFETCH))
            cfg.write_batch_size = int(data.get("write-batch-size", DEFAULT_WRITE_BATCH_SIZE))
            cfg.log_level = str(data.get("log-level", "WARNING")).upper()

            # Relative database paths are relative to the config file
            if cfg.database != ":memory:" and not os.path.isabs(cfg.database):
                cfg.database = os.path.join(
                    os.path.dirname(os.path.abspath(config_path)), cfg.database
                )

        # Environment variable overrides
        if os.environ.get("LITETABLE_DB"):
            cfg.database = os.environ["LITETABLE_DB"]
        if os.environ.get("LITETABLE_LOG_LEVEL"):
            cfg.log_level = os.environ["LITETABLE_LOG_LEVEL"].upper()
        if os.environ.get("LITETABLE_FOREIGN_KEYS"):
            cfg.foreign_keys = _as_bool(os.environ["LITETABLE_FOREIGN_KEYS"])

        return cfg

    def save(self, config_path: str) -> None:
        """Save non-default settings to a config file."""
        data: dict[str, Any] = {"database": self.database}
        if self.journal_mode:
            data["journal-mode"] = self.journal_mode
        if self.busy_timeout != 5000:
            data["busy-timeout"] = self.busy_timeout
        if self.foreign_keys:
            data["foreign-keys"] = self.foreign_keys
        if self.stream_prefetch != DEFAULT_STREAM_PREFETCH:
            data["stream-prefetch"] = self.stream_prefetch
        if self.write_batch_size != DEFAULT_WRITE_BATCH_SIZE:
            data["write-batch-size"] = self.write_batch_size
        if self.log_level != "WARNING":
            data["log-level"] = self.log_level

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


def find_config_file(start: str | None = None) -> str | None:
    """Walk up from start directory to find litetable.yaml.

    Returns absolute path to the file, or None if not found.
    """
    if start is None:
        start = os.getcwd()
    current = os.path.abspath(start)
    while True:
        candidate = os.path.join(current, CONFIG_YAML)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def configure_logging(level: str | int) -> None:
    """Install a stderr handler on the litetable logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    root = logging.getLogger("litetable")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
