"""Configuration management for the save-point history engine."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_MIN_COMMITTED,
    DEFAULT_SAVE_DATA_KEY,
    DEFAULT_SAVE_DIRECTORY,
    DEFAULT_SQLITE_DATABASE,
    NEW_GAME_SAVE_POINT_KEY,
    SAVE_FILE_SUFFIX,
)


class StoreBackend(str, Enum):
    """Storage medium for persisted save history."""

    FILE = "file"  # One JSON file per save slot
    SQLITE = "sqlite"  # One row per save slot
    DISKCACHE = "diskcache"  # Embedded key-value cache
    MEMORY = "memory"  # Process-local, lost on exit


@dataclass
class StoreConfig:
    """Persistence configuration."""

    backend: StoreBackend = StoreBackend.FILE
    directory: Path = field(default_factory=lambda: Path(DEFAULT_SAVE_DIRECTORY))
    database: str = DEFAULT_SQLITE_DATABASE  # File name inside directory (sqlite only)
    file_suffix: str = SAVE_FILE_SUFFIX  # file backend only

    def __post_init__(self) -> None:
        if not isinstance(self.backend, StoreBackend):
            try:
                self.backend = StoreBackend(self.backend)
            except ValueError as e:
                valid = ", ".join(b.value for b in StoreBackend)
                raise ValueError(
                    f"Unknown store backend '{self.backend}' (expected one of: {valid})"
                ) from e
        self.directory = Path(self.directory)


@dataclass
class HistoryConfig:
    """
    History policy configuration.

    Controls rewind limits, well-known keys and restart behavior.
    """

    min_committed: int = DEFAULT_MIN_COMMITTED  # Save points a rewind must leave committed
    save_data_key: str = DEFAULT_SAVE_DATA_KEY  # Default save slot
    new_game_key: str = NEW_GAME_SAVE_POINT_KEY  # Key of the initial save point
    restart_deletes_save: bool = False  # Delete stored save data on restart (testing aid)
    warn_duplicate_keys: bool = True  # Record diagnostics for repeated keys

    def __post_init__(self) -> None:
        if self.min_committed < 0:
            raise ValueError(f"min_committed must be >= 0, got {self.min_committed}")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"  # "console" or "json"
    file: Path | None = None


@dataclass
class MetricsConfig:
    """Metrics configuration."""

    enabled: bool = False
    backend: str = "logger"


@dataclass
class EngineConfig:
    """
    Complete configuration for the save-point history engine.

    This combines all configuration sections.
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "EngineConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            EngineConfig instance
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        store = StoreConfig(**(data.get("store") or {}))
        history = HistoryConfig(**(data.get("history") or {}))

        logging_data = dict(data.get("logging") or {})
        # Convert file path string to Path if present
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])
        logging = LoggingConfig(**logging_data)

        metrics = MetricsConfig(**(data.get("metrics") or {}))

        return cls(store=store, history=history, logging=logging, metrics=metrics)

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data = {
            "store": {
                k: v.value if isinstance(v, Enum) else str(v) if isinstance(v, Path) else v
                for k, v in self.store.__dict__.items()
            },
            "history": dict(self.history.__dict__),
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
            "metrics": dict(self.metrics.__dict__),
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            SAVEPOINTS_BACKEND: Store backend (file, sqlite, diskcache, memory)
            SAVEPOINTS_DIR: Save directory (default: .saves)
            SAVEPOINTS_SAVE_KEY: Default save slot (default: save_data)
            SAVEPOINTS_MIN_COMMITTED: Save points a rewind must leave (default: 1)
            SAVEPOINTS_RESTART_DELETES_SAVE: Delete save data on restart (default: false)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)

        Returns:
            EngineConfig instance

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        store = StoreConfig(
            backend=os.environ.get("SAVEPOINTS_BACKEND", StoreBackend.FILE.value),
            directory=Path(os.environ.get("SAVEPOINTS_DIR", DEFAULT_SAVE_DIRECTORY)),
        )

        min_committed_str = os.environ.get("SAVEPOINTS_MIN_COMMITTED", str(DEFAULT_MIN_COMMITTED))
        try:
            min_committed = int(min_committed_str)
        except ValueError as e:
            raise ValueError(
                f"SAVEPOINTS_MIN_COMMITTED must be an integer, got {min_committed_str!r}"
            ) from e

        restart_deletes_str = os.environ.get("SAVEPOINTS_RESTART_DELETES_SAVE", "false").lower()

        history = HistoryConfig(
            min_committed=min_committed,
            save_data_key=os.environ.get("SAVEPOINTS_SAVE_KEY", DEFAULT_SAVE_DATA_KEY),
            restart_deletes_save=restart_deletes_str in ("true", "1", "yes", "on"),
        )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(
            store=store,
            history=history,
            logging=logging_config,
            metrics=MetricsConfig(),
        )


def load_config(config_file: Path | None = None) -> EngineConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        EngineConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return EngineConfig.from_file(config_file)
    return EngineConfig.from_env()
