"""Unit tests for save stores."""

import json
import sqlite3
from unittest.mock import patch

import pytest

from savepoints.config import StoreBackend, StoreConfig
from savepoints.constants import SNAPSHOT_FORMAT_VERSION
from savepoints.models.save_point import HistorySnapshot, SavePoint
from savepoints.persistence import (
    DiskCacheSaveStore,
    FileSaveStore,
    MemorySaveStore,
    SQLiteSaveStore,
    create_store,
    parse_snapshot,
    validate_save_data_key,
)
from savepoints.utils.exceptions import (
    CorruptSaveDataError,
    InvalidSaveDataKeyError,
    SaveDataNotFoundError,
)


def make_snapshot(save_data_key: str = "slot1", *keys: str) -> HistorySnapshot:
    keys = keys or ("new_game", "chapter1")
    points = [SavePoint(key=k, payload=f"state-{k}", sequence=i) for i, k in enumerate(keys)]
    return HistorySnapshot.from_save_points(save_data_key, points)


class TestStoreContract:
    """Behavior shared by every backend."""

    def test_write_then_read(self, any_store):
        snapshot = make_snapshot("slot1")
        any_store.write("slot1", snapshot)

        assert any_store.read("slot1") == snapshot

    def test_exists(self, any_store):
        assert not any_store.exists("slot1")
        any_store.write("slot1", make_snapshot("slot1"))
        assert any_store.exists("slot1")

    def test_read_missing_raises_not_found(self, any_store):
        with pytest.raises(SaveDataNotFoundError) as exc_info:
            any_store.read("missing")
        assert exc_info.value.save_data_key == "missing"

    def test_write_replaces(self, any_store):
        any_store.write("slot1", make_snapshot("slot1", "a"))
        any_store.write("slot1", make_snapshot("slot1", "a", "b", "c"))

        assert len(any_store.read("slot1").save_points) == 3

    def test_delete(self, any_store):
        any_store.write("slot1", make_snapshot("slot1"))
        any_store.delete("slot1")

        assert not any_store.exists("slot1")
        with pytest.raises(SaveDataNotFoundError):
            any_store.read("slot1")

    def test_delete_missing_is_noop(self, any_store):
        any_store.delete("never_written")
        any_store.delete("never_written")

    def test_slots_are_independent(self, any_store):
        any_store.write("slot1", make_snapshot("slot1", "a"))
        any_store.write("slot2", make_snapshot("slot2", "x", "y"))

        any_store.delete("slot1")

        assert not any_store.exists("slot1")
        assert [r.key for r in any_store.read("slot2").save_points] == ["x", "y"]

    def test_list_ids(self, any_store):
        any_store.write("b_slot", make_snapshot("b_slot"))
        any_store.write("a_slot", make_snapshot("a_slot"))

        assert any_store.list_ids() == ["a_slot", "b_slot"]

    @pytest.mark.parametrize("bad_key", ["", "../escape", "a/b", "with space", ".hidden"])
    def test_invalid_key_rejected(self, any_store, bad_key):
        with pytest.raises(InvalidSaveDataKeyError):
            any_store.write(bad_key, make_snapshot())
        with pytest.raises(InvalidSaveDataKeyError):
            any_store.read(bad_key)

    def test_context_manager(self, tmp_path):
        with SQLiteSaveStore(tmp_path / "ctx.db") as store:
            store.write("slot1", make_snapshot("slot1"))
            assert store.exists("slot1")


class TestParseSnapshot:
    """Test validation of stored content."""

    def test_invalid_json(self):
        with pytest.raises(CorruptSaveDataError, match="invalid JSON"):
            parse_snapshot("k", '{"truncated": ')

    def test_non_object(self):
        with pytest.raises(CorruptSaveDataError, match="expected an object"):
            parse_snapshot("k", "[1, 2, 3]")

    def test_empty_save_points(self):
        text = json.dumps(
            {"version": SNAPSHOT_FORMAT_VERSION, "save_data_key": "k", "save_points": []}
        )
        with pytest.raises(CorruptSaveDataError, match="save_points"):
            parse_snapshot("k", text)

    def test_unsupported_version(self):
        data = json.loads(make_snapshot("k").to_json())
        data["version"] = 99
        with pytest.raises(CorruptSaveDataError, match="version"):
            parse_snapshot("k", json.dumps(data))

    def test_corrupt_error_keeps_original(self):
        with pytest.raises(CorruptSaveDataError) as exc_info:
            parse_snapshot("k", "not json")
        assert isinstance(exc_info.value.original_error, json.JSONDecodeError)

    def test_key_mismatch_is_accepted(self):
        snapshot = parse_snapshot("copy", make_snapshot("original").to_json())
        assert snapshot.save_data_key == "original"

    def test_validate_save_data_key(self):
        assert validate_save_data_key("slot-1.bak") == "slot-1.bak"
        with pytest.raises(InvalidSaveDataKeyError):
            validate_save_data_key("x" * 200)


class TestFileSaveStore:
    """File backend specifics."""

    def test_path_layout(self, file_store):
        file_store.write("slot1", make_snapshot("slot1"))
        assert (file_store.directory / "slot1.json").is_file()

    def test_corrupt_file(self, file_store):
        file_store.path_for("slot1").write_text("{ garbage", encoding="utf-8")

        assert not file_store.exists("slot1")
        with pytest.raises(CorruptSaveDataError):
            file_store.read("slot1")

    def test_failed_write_keeps_previous_and_cleans_up(self, file_store):
        original = make_snapshot("slot1", "a")
        file_store.write("slot1", original)

        with patch("savepoints.persistence.file_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                file_store.write("slot1", make_snapshot("slot1", "a", "b"))

        assert file_store.read("slot1") == original
        assert [p.name for p in file_store.directory.iterdir()] == ["slot1.json"]

    def test_list_ids_ignores_temp_files(self, file_store):
        file_store.write("slot1", make_snapshot("slot1"))
        (file_store.directory / ".slot1.json.abc.tmp").write_text("partial")
        (file_store.directory / "notes.txt").write_text("ignored")

        assert file_store.list_ids() == ["slot1"]

    def test_custom_suffix(self, tmp_path):
        store = FileSaveStore(tmp_path, suffix=".sav")
        store.write("slot1", make_snapshot("slot1"))
        assert (tmp_path / "slot1.sav").exists()
        assert store.list_ids() == ["slot1"]


class TestSQLiteSaveStore:
    """SQLite backend specifics."""

    def test_schema_created(self, sqlite_store):
        conn = sqlite3.connect(str(sqlite_store.db_path))
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='save_data'"
        )
        assert cursor.fetchone() is not None
        conn.close()

    def test_corrupt_row(self, sqlite_store):
        with sqlite_store.conn:
            sqlite_store.conn.execute(
                "INSERT INTO save_data (save_data_key, updated_at, snapshot) VALUES (?, ?, ?)",
                ("slot1", "2024-01-01T00:00:00", "not json"),
            )

        with pytest.raises(CorruptSaveDataError):
            sqlite_store.read("slot1")

    def test_slot_summaries(self, sqlite_store):
        sqlite_store.write("slot1", make_snapshot("slot1"))

        summaries = sqlite_store.get_slot_summaries()

        assert len(summaries) == 1
        assert summaries[0]["save_data_key"] == "slot1"
        assert summaries[0]["updated_at"]


class TestDiskCacheSaveStore:
    """diskcache backend specifics."""

    def test_survives_reopen(self, tmp_path):
        store = DiskCacheSaveStore(tmp_path / "cache")
        store.write("slot1", make_snapshot("slot1"))
        store.close()

        reopened = DiskCacheSaveStore(tmp_path / "cache")
        try:
            assert reopened.exists("slot1")
        finally:
            reopened.close()

    def test_ignores_foreign_keys(self, cache_store):
        cache_store.cache.set("other", "value")
        cache_store.write("slot1", make_snapshot("slot1"))

        assert cache_store.list_ids() == ["slot1"]


class TestCreateStore:
    """Test store construction from configuration."""

    def test_file(self, tmp_path):
        store = create_store(StoreConfig(backend="file", directory=tmp_path))
        assert isinstance(store, FileSaveStore)

    def test_sqlite(self, tmp_path):
        store = create_store(StoreConfig(backend=StoreBackend.SQLITE, directory=tmp_path))
        try:
            assert isinstance(store, SQLiteSaveStore)
            assert store.db_path == tmp_path / "saves.db"
        finally:
            store.close()

    def test_diskcache(self, tmp_path):
        store = create_store(StoreConfig(backend="diskcache", directory=tmp_path / "c"))
        try:
            assert isinstance(store, DiskCacheSaveStore)
        finally:
            store.close()

    def test_memory(self):
        assert isinstance(create_store(StoreConfig(backend="memory")), MemorySaveStore)
