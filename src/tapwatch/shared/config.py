# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Configuration management for the telemetry server and CLI.

Values come from defaults, then ``<config dir>/config.yaml``, then
environment variables.
"""

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".tapwatch"
CONFIG_FILE_NAME = "config.yaml"


@dataclass
class Config:
    """Server configuration container."""

    # Paths
    data_root: Optional[Path] = None

    # Retention settings
    max_age_days: float = 31
    chart_max_lines: int = 10000

    # Archive settings
    archive_enabled: bool = True
    archive_interval_seconds: int = 86400
    archive_time_budget_seconds: float = 600.0

    # Auth settings
    users_file: Optional[Path] = None

    # Redis settings
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_socket_timeout: float = 5.0
    redis_socket_connect_timeout: float = 5.0

    # Stream settings
    stream_enabled: bool = True
    stream_name: str = "tapwatch:updates"
    stream_consumer_group: str = "ingest"
    stream_dlq: str = "tapwatch:dlq"
    stream_block_ms: int = 1000
    stream_count: int = 10

    # Stats settings
    stats_interval_seconds: int = 3600

    # Logging settings
    log_level: str = "INFO"

    # Config directory
    config_dir: Optional[Path] = None

    def __post_init__(self):
        """Resolve paths, then layer file and environment values on top of defaults."""
        if self.config_dir is None:
            self.config_dir = DEFAULT_CONFIG_DIR
        self.config_dir = Path(self.config_dir).expanduser()

        if self.config_path.exists():
            self.load_from_file()

        self.load_from_env()

        if self.data_root is None:
            self.data_root = self.config_dir / "data"
        self.data_root = Path(self.data_root).expanduser()
        if self.users_file is not None:
            self.users_file = Path(self.users_file).expanduser()

    @property
    def config_path(self) -> Path:
        """Path of the YAML configuration file."""
        return self.config_dir / CONFIG_FILE_NAME

    @property
    def retention(self) -> timedelta:
        """Maximum age of samples kept in the live registry."""
        return timedelta(days=self.max_age_days)

    def load_from_file(self):
        """Load configuration from YAML file."""
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not load config file {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a mapping")

        paths = data.get("paths") or {}
        if paths.get("data_root"):
            self.data_root = Path(paths["data_root"])

        retention = data.get("retention") or {}
        self.max_age_days = retention.get("max_age_days", self.max_age_days)

        chart = data.get("chart") or {}
        self.chart_max_lines = chart.get("max_lines", self.chart_max_lines)

        archive = data.get("archive") or {}
        self.archive_enabled = archive.get("enabled", self.archive_enabled)
        self.archive_interval_seconds = archive.get("interval_seconds", self.archive_interval_seconds)
        self.archive_time_budget_seconds = archive.get("time_budget_seconds", self.archive_time_budget_seconds)

        auth = data.get("auth") or {}
        if auth.get("users_file"):
            self.users_file = Path(auth["users_file"])

        redis_config = data.get("redis") or {}
        self.redis_host = redis_config.get("host", self.redis_host)
        self.redis_port = redis_config.get("port", self.redis_port)
        self.redis_db = redis_config.get("db", self.redis_db)
        self.redis_socket_timeout = redis_config.get("socket_timeout", self.redis_socket_timeout)
        self.redis_socket_connect_timeout = redis_config.get(
            "socket_connect_timeout", self.redis_socket_connect_timeout
        )

        stream = data.get("stream") or {}
        self.stream_enabled = stream.get("enabled", self.stream_enabled)
        self.stream_name = stream.get("name", self.stream_name)
        self.stream_consumer_group = stream.get("consumer_group", self.stream_consumer_group)
        self.stream_dlq = stream.get("dlq", self.stream_dlq)
        self.stream_block_ms = stream.get("block_ms", self.stream_block_ms)
        self.stream_count = stream.get("count", self.stream_count)

        stats = data.get("stats") or {}
        self.stats_interval_seconds = stats.get("interval_seconds", self.stats_interval_seconds)

        logging_config = data.get("logging") or {}
        self.log_level = logging_config.get("level", self.log_level)

    def load_from_env(self):
        """Load configuration from environment variables."""
        if env_root := os.environ.get("TAPWATCH_DATA_ROOT"):
            self.data_root = Path(env_root)

        if env_days := os.environ.get("TAPWATCH_RETENTION_DAYS"):
            try:
                self.max_age_days = float(env_days)
            except ValueError as e:
                raise ConfigError(
                    f"Invalid TAPWATCH_RETENTION_DAYS value: expected a number, got '{env_days}'"
                ) from e

        if env_users := os.environ.get("TAPWATCH_USERS_FILE"):
            self.users_file = Path(env_users)

        if env_redis := os.environ.get("TAPWATCH_REDIS_HOST"):
            self.redis_host = env_redis

        if env_level := os.environ.get("TAPWATCH_LOG_LEVEL"):
            self.log_level = env_level

    def save_to_file(self):
        """Save current configuration to YAML file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to the nested layout used by config.yaml."""
        return {
            "paths": {"data_root": str(self.data_root)},
            "retention": {"max_age_days": self.max_age_days},
            "chart": {"max_lines": self.chart_max_lines},
            "archive": {
                "enabled": self.archive_enabled,
                "interval_seconds": self.archive_interval_seconds,
                "time_budget_seconds": self.archive_time_budget_seconds,
            },
            "auth": {"users_file": str(self.users_file) if self.users_file else None},
            "redis": {
                "host": self.redis_host,
                "port": self.redis_port,
                "db": self.redis_db,
                "socket_timeout": self.redis_socket_timeout,
                "socket_connect_timeout": self.redis_socket_connect_timeout,
            },
            "stream": {
                "enabled": self.stream_enabled,
                "name": self.stream_name,
                "consumer_group": self.stream_consumer_group,
                "dlq": self.stream_dlq,
                "block_ms": self.stream_block_ms,
                "count": self.stream_count,
            },
            "stats": {"interval_seconds": self.stats_interval_seconds},
            "logging": {"level": self.log_level},
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key, e.g. ``archive.enabled``."""
        value: Any = self.to_dict()
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return default if value is None else value

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigError: Listing every invalid setting
        """
        errors: List[str] = []

        if not isinstance(self.max_age_days, (int, float)) or self.max_age_days <= 0:
            errors.append("retention.max_age_days must be a positive number")

        if not isinstance(self.chart_max_lines, int) or self.chart_max_lines < 1:
            errors.append("chart.max_lines must be a positive integer")

        if not isinstance(self.archive_interval_seconds, int) or self.archive_interval_seconds < 1:
            errors.append("archive.interval_seconds must be a positive integer")

        if self.archive_time_budget_seconds <= 0:
            errors.append("archive.time_budget_seconds must be positive")

        if self.redis_socket_timeout <= 0 or self.redis_socket_connect_timeout <= 0:
            errors.append("redis socket timeouts must be positive")

        if self.stream_block_ms < 0:
            errors.append("stream.block_ms must be non-negative")

        if self.stats_interval_seconds < 1:
            errors.append("stats.interval_seconds must be positive")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"logging.level '{self.log_level}' is not a logging level")

        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ConfigError("; ".join(errors))
