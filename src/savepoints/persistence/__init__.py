"""Persistence layer for saved history snapshots."""

from .cache_store import DiskCacheSaveStore
from .factory import create_store
from .file_store import FileSaveStore
from .sqlite_store import SQLiteSaveStore
from .store import MemorySaveStore, SaveStore, parse_snapshot, validate_save_data_key

__all__ = [
    "SaveStore",
    "MemorySaveStore",
    "FileSaveStore",
    "SQLiteSaveStore",
    "DiskCacheSaveStore",
    "create_store",
    "parse_snapshot",
    "validate_save_data_key",
]
