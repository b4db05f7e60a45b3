"""
Configuration management for crawlkit.
"""

import os
import json
import logging
import threading
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jsonschema import validate, ValidationError

from crawlkit.utils.errors import ConfigurationError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class WorkerPoolConfig:
    """Worker pool settings."""
    concurrency: int = 20
    # None means "same as concurrency"; 0 means unbounded
    queue_size: Optional[int] = None
    poll_interval: float = 0.1
    shutdown_timeout: float = 10.0


@dataclass
class BatchQueueConfig:
    """Batching queue settings."""
    batch_size: int = 100
    interval_seconds: float = 5.0
    poll_interval: float = 0.1


@dataclass
class HTTPConfig:
    """Transport and markup parser settings."""
    request_timeout: float = 30.0
    retry_attempts: int = 0
    backoff_factor: float = 0.5
    user_agent: str = DEFAULT_USER_AGENT
    parser_features: str = "html.parser"


@dataclass
class SystemConfig:
    """Main system configuration."""
    worker_pool: WorkerPoolConfig = field(default_factory=WorkerPoolConfig)
    batch_queue: BatchQueueConfig = field(default_factory=BatchQueueConfig)
    http: HTTPConfig = field(default_factory=HTTPConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = None


# Configuration schema for validation
CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "worker_pool": {
            "type": "object",
            "properties": {
                "concurrency": {"type": "integer", "minimum": 1, "maximum": 1000},
                "queue_size": {"type": ["integer", "null"], "minimum": 0},
                "poll_interval": {"type": "number", "exclusiveMinimum": 0, "maximum": 60.0},
                "shutdown_timeout": {"type": "number", "minimum": 0}
            },
            "additionalProperties": False
        },
        "batch_queue": {
            "type": "object",
            "properties": {
                "batch_size": {"type": "integer", "minimum": 1},
                "interval_seconds": {"type": "number", "exclusiveMinimum": 0},
                "poll_interval": {"type": "number", "exclusiveMinimum": 0, "maximum": 60.0}
            },
            "additionalProperties": False
        },
        "http": {
            "type": "object",
            "properties": {
                "request_timeout": {"type": "number", "exclusiveMinimum": 0, "maximum": 600},
                "retry_attempts": {"type": "integer", "minimum": 0, "maximum": 10},
                "backoff_factor": {"type": "number", "minimum": 0, "maximum": 60.0},
                "user_agent": {"type": "string", "minLength": 1},
                "parser_features": {"type": "string", "minLength": 1}
            },
            "additionalProperties": False
        },
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        },
        "log_file": {"type": ["string", "null"]}
    },
    "additionalProperties": False
}

# Environment variable -> (section, key, converter)
ENV_OVERRIDES = {
    "CRAWLKIT_CONCURRENCY": ("worker_pool", "concurrency", int),
    "CRAWLKIT_QUEUE_SIZE": ("worker_pool", "queue_size", int),
    "CRAWLKIT_BATCH_SIZE": ("batch_queue", "batch_size", int),
    "CRAWLKIT_BATCH_INTERVAL": ("batch_queue", "interval_seconds", float),
    "CRAWLKIT_REQUEST_TIMEOUT": ("http", "request_timeout", float),
    "CRAWLKIT_RETRY_ATTEMPTS": ("http", "retry_attempts", int),
    "CRAWLKIT_USER_AGENT": ("http", "user_agent", str),
    "CRAWLKIT_LOG_LEVEL": (None, "log_level", str),
    "CRAWLKIT_LOG_FILE": (None, "log_file", str),
}


class ConfigManager:
    """Configuration manager with schema validation and environment overrides."""

    def __init__(self, config_path: Union[str, Path, None] = "crawlkit.json"):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[SystemConfig] = None
        self._lock = threading.RLock()

    def validate_config(self, config_data: Dict[str, Any]) -> None:
        """Validate configuration data against schema."""
        try:
            validate(instance=config_data, schema=CONFIG_SCHEMA)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e.message}",
                {"path": list(e.absolute_path)}
            )

    def load_config(self) -> SystemConfig:
        """Load configuration from file (if present) and environment variables."""
        with self._lock:
            if self.config_path is not None and self.config_path.exists():
                data = self._read_file()
            else:
                data = {}

            self._apply_env_overrides(data)
            self.validate_config(data)

            self._config = self._dict_to_config(data)
            logging.getLogger(__name__).info(
                f"Configuration loaded from {self.config_path if data else 'defaults'}"
            )
            return self._config

    def _read_file(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in {self.config_path}: {e}",
                {"path": str(self.config_path)}
            )
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a JSON object",
                {"path": str(self.config_path)}
            )
        return data

    def _apply_env_overrides(self, data: Dict[str, Any]) -> None:
        """Override configuration values with CRAWLKIT_* environment variables."""
        for env_name, (section, key, convert) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw is None or raw == "":
                continue
            try:
                value = convert(raw)
            except ValueError:
                raise ConfigurationError(
                    f"Invalid value for {env_name}: {raw!r}",
                    {"variable": env_name}
                )
            if section is None:
                data[key] = value
            else:
                data.setdefault(section, {})[key] = value

    def _dict_to_config(self, data: Dict[str, Any]) -> SystemConfig:
        """Convert dictionary to SystemConfig object."""
        config = SystemConfig()

        if "worker_pool" in data:
            config.worker_pool = WorkerPoolConfig(**data["worker_pool"])

        if "batch_queue" in data:
            config.batch_queue = BatchQueueConfig(**data["batch_queue"])

        if "http" in data:
            config.http = HTTPConfig(**data["http"])

        config.log_level = data.get("log_level", config.log_level)
        config.log_file = data.get("log_file", config.log_file)

        return config

    def export_config(self) -> Dict[str, Any]:
        """Export current configuration as dictionary."""
        with self._lock:
            if not self._config:
                return {}
            return asdict(self._config)

    def save_config(self, config_path: Union[str, Path, None] = None) -> None:
        """Save current configuration to file."""
        with self._lock:
            if not self._config:
                raise ConfigurationError("No configuration loaded to save")

            save_path = Path(config_path) if config_path else self.config_path
            if save_path is None:
                raise ConfigurationError("No configuration path to save to")

            config_dict = self.export_config()
            self.validate_config(config_dict)

            with open(save_path, 'w', encoding='utf-8') as f:
                json.dump(config_dict, f, indent=2, ensure_ascii=False)

            logging.getLogger(__name__).info(f"Configuration saved to {save_path}")


def load_config(config_path: Union[str, Path, None] = None) -> SystemConfig:
    """Load configuration from ``config_path`` (or defaults) plus the environment."""
    return ConfigManager(config_path).load_config()
