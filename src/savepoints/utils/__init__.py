"""Utility functions and exceptions."""

from .exceptions import (
    CorruptSaveDataError,
    DuplicateKeyError,
    EmptyHistoryError,
    HistoryError,
    InvalidSaveDataKeyError,
    NoHistoryError,
    NoRewoundHistoryError,
    RestoreError,
    SaveDataError,
    SaveDataNotFoundError,
    SavePointError,
)
from .locking import KeyedLock

__all__ = [
    "SavePointError",
    "HistoryError",
    "EmptyHistoryError",
    "NoHistoryError",
    "NoRewoundHistoryError",
    "SaveDataError",
    "SaveDataNotFoundError",
    "CorruptSaveDataError",
    "InvalidSaveDataKeyError",
    "RestoreError",
    "DuplicateKeyError",
    "KeyedLock",
]
