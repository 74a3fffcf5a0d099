"""Unit tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from savepoints.config import (
    EngineConfig,
    HistoryConfig,
    LoggingConfig,
    MetricsConfig,
    StoreBackend,
    StoreConfig,
    load_config,
)


class TestStoreConfig:
    """Test StoreConfig dataclass."""

    def test_default_values(self):
        config = StoreConfig()

        assert config.backend == StoreBackend.FILE
        assert config.directory == Path(".saves")
        assert config.database == "saves.db"
        assert config.file_suffix == ".json"

    def test_backend_from_string(self):
        config = StoreConfig(backend="sqlite", directory="data/saves")

        assert config.backend == StoreBackend.SQLITE
        assert config.directory == Path("data/saves")

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown store backend 'redis'"):
            StoreConfig(backend="redis")


class TestHistoryConfig:
    """Test HistoryConfig dataclass."""

    def test_default_values(self):
        config = HistoryConfig()

        assert config.min_committed == 1
        assert config.save_data_key == "save_data"
        assert config.new_game_key == "new_game"
        assert config.restart_deletes_save is False
        assert config.warn_duplicate_keys is True

    def test_negative_min_committed(self):
        with pytest.raises(ValueError, match="min_committed"):
            HistoryConfig(min_committed=-1)


class TestEngineConfig:
    """Test EngineConfig file and environment loading."""

    def test_defaults(self):
        config = EngineConfig()

        assert isinstance(config.store, StoreConfig)
        assert isinstance(config.history, HistoryConfig)
        assert isinstance(config.logging, LoggingConfig)
        assert isinstance(config.metrics, MetricsConfig)

    def test_from_file(self, tmp_path):
        config_file = tmp_path / "savepoints.yaml"
        config_file.write_text(
            yaml.dump(
                {
                    "store": {"backend": "diskcache", "directory": "cache"},
                    "history": {"min_committed": 0, "save_data_key": "slot1"},
                    "logging": {"level": "DEBUG", "file": "logs/savepoints.log"},
                    "metrics": {"enabled": True},
                }
            )
        )

        config = EngineConfig.from_file(config_file)

        assert config.store.backend == StoreBackend.DISKCACHE
        assert config.store.directory == Path("cache")
        assert config.history.min_committed == 0
        assert config.history.save_data_key == "slot1"
        assert config.logging.level == "DEBUG"
        assert config.logging.file == Path("logs/savepoints.log")
        assert config.metrics.enabled is True

    def test_from_empty_file(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        config = EngineConfig.from_file(config_file)

        assert config.store.backend == StoreBackend.FILE

    def test_from_file_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("store: [unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            EngineConfig.from_file(config_file)

    def test_from_file_not_a_mapping(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="expected dictionary"):
            EngineConfig.from_file(config_file)

    def test_to_file_roundtrip(self, tmp_path):
        config = EngineConfig(
            store=StoreConfig(backend=StoreBackend.SQLITE, directory=Path("db")),
            history=HistoryConfig(restart_deletes_save=True),
            logging=LoggingConfig(level="WARNING", file=Path("out.log")),
        )
        config_file = tmp_path / "nested" / "config.yaml"

        config.to_file(config_file)
        loaded = EngineConfig.from_file(config_file)

        assert loaded == config

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SAVEPOINTS_BACKEND", "memory")
        monkeypatch.setenv("SAVEPOINTS_DIR", "/tmp/saves")
        monkeypatch.setenv("SAVEPOINTS_SAVE_KEY", "slot2")
        monkeypatch.setenv("SAVEPOINTS_MIN_COMMITTED", "0")
        monkeypatch.setenv("SAVEPOINTS_RESTART_DELETES_SAVE", "yes")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LOG_FORMAT", "json")

        config = EngineConfig.from_env()

        assert config.store.backend == StoreBackend.MEMORY
        assert config.store.directory == Path("/tmp/saves")
        assert config.history.save_data_key == "slot2"
        assert config.history.min_committed == 0
        assert config.history.restart_deletes_save is True
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "json"

    def test_from_env_defaults(self, monkeypatch):
        for name in (
            "SAVEPOINTS_BACKEND",
            "SAVEPOINTS_DIR",
            "SAVEPOINTS_SAVE_KEY",
            "SAVEPOINTS_MIN_COMMITTED",
            "SAVEPOINTS_RESTART_DELETES_SAVE",
            "LOG_LEVEL",
            "LOG_FORMAT",
        ):
            monkeypatch.delenv(name, raising=False)

        config = EngineConfig.from_env()

        assert config.store.backend == StoreBackend.FILE
        assert config.history.min_committed == 1
        assert config.history.restart_deletes_save is False

    def test_from_env_bad_integer(self, monkeypatch):
        monkeypatch.setenv("SAVEPOINTS_MIN_COMMITTED", "one")

        with pytest.raises(ValueError, match="SAVEPOINTS_MIN_COMMITTED"):
            EngineConfig.from_env()


class TestLoadConfig:
    """Test load_config entry point."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_file_takes_precedence(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SAVEPOINTS_BACKEND", "memory")
        config_file = tmp_path / "c.yaml"
        config_file.write_text("store:\n  backend: sqlite\n")

        assert load_config(config_file).store.backend == StoreBackend.SQLITE

    def test_env_when_no_file(self, monkeypatch):
        monkeypatch.setenv("SAVEPOINTS_BACKEND", "memory")
        assert load_config().store.backend == StoreBackend.MEMORY
