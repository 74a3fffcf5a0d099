"""Storage abstraction for persisted save history.

A store maps a save data key to a serialized ``HistorySnapshot``. Backends only
move text in and out of their medium; parsing and validation are shared here
so every backend reports missing and corrupt records the same way.
"""

import json
import re
from abc import ABC, abstractmethod
from types import TracebackType

import structlog
from pydantic import ValidationError

from ..constants import SAVE_DATA_KEY_PATTERN
from ..models.save_point import HistorySnapshot
from ..utils.exceptions import (
    CorruptSaveDataError,
    InvalidSaveDataKeyError,
    SaveDataError,
    SaveDataNotFoundError,
)

logger = structlog.get_logger(__name__)

_KEY_RE = re.compile(SAVE_DATA_KEY_PATTERN)


def validate_save_data_key(save_data_key: str) -> str:
    """
    Check that a save data key can be used as a file name or cache key.

    Args:
        save_data_key: Identifier to check

    Returns:
        The key, unchanged

    Raises:
        InvalidSaveDataKeyError: If the key is empty, too long or contains
            path separators or other unsupported characters
    """
    if not isinstance(save_data_key, str) or not _KEY_RE.match(save_data_key):
        raise InvalidSaveDataKeyError(str(save_data_key))
    return save_data_key


def parse_snapshot(save_data_key: str, text: str | bytes) -> HistorySnapshot:
    """
    Parse and validate a stored snapshot.

    Args:
        save_data_key: Identifier the text was read from
        text: Raw stored content

    Returns:
        Validated HistorySnapshot

    Raises:
        CorruptSaveDataError: If the content is not valid JSON, is not an
            object, or fails schema/version validation
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptSaveDataError(save_data_key, "invalid JSON", e) from e

    if not isinstance(data, dict):
        raise CorruptSaveDataError(
            save_data_key, f"expected an object, got {type(data).__name__}"
        )

    try:
        snapshot = HistorySnapshot.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "snapshot"
        raise CorruptSaveDataError(save_data_key, f"{location}: {first['msg']}", e) from e

    if snapshot.save_data_key != save_data_key:
        # Records are addressed by storage key; a mismatch means the record was
        # copied or renamed by hand. It is still usable.
        logger.warning(
            "Save data key mismatch",
            save_data_key=save_data_key,
            stored_key=snapshot.save_data_key,
        )

    return snapshot


class SaveStore(ABC):
    """
    Durable mapping from save data key to history snapshot.

    Subclasses implement the raw medium operations; ``exists``, ``read`` and
    ``write`` add key validation and snapshot parsing on top.
    """

    backend_name = "abstract"

    @abstractmethod
    def _read_text(self, save_data_key: str) -> str | None:
        """Return the stored text for a key, or None if absent."""

    @abstractmethod
    def _write_text(self, save_data_key: str, text: str) -> None:
        """Atomically replace the stored text for a key."""

    @abstractmethod
    def _delete(self, save_data_key: str) -> bool:
        """Remove the record; return True if something was removed."""

    @abstractmethod
    def list_ids(self) -> list[str]:
        """Return every stored save data key, sorted."""

    def exists(self, save_data_key: str) -> bool:
        """
        Check whether a well-formed record exists.

        Args:
            save_data_key: Identifier to check

        Returns:
            True if a record is present and passes validation
        """
        try:
            self.read(save_data_key)
        except SaveDataError:
            return False
        return True

    def read(self, save_data_key: str) -> HistorySnapshot:
        """
        Read and validate a stored snapshot.

        Args:
            save_data_key: Identifier to read

        Returns:
            Validated snapshot

        Raises:
            SaveDataNotFoundError: If no record exists
            CorruptSaveDataError: If the record fails validation
        """
        validate_save_data_key(save_data_key)
        text = self._read_text(save_data_key)
        if text is None:
            raise SaveDataNotFoundError(save_data_key)
        return parse_snapshot(save_data_key, text)

    def write(self, save_data_key: str, snapshot: HistorySnapshot) -> None:
        """
        Atomically store a snapshot, replacing any previous record.

        Args:
            save_data_key: Identifier to write
            snapshot: Snapshot to store
        """
        validate_save_data_key(save_data_key)
        self._write_text(save_data_key, snapshot.to_json())
        logger.debug(
            "Save data written",
            backend=self.backend_name,
            save_data_key=save_data_key,
            save_points=len(snapshot.save_points),
        )

    def delete(self, save_data_key: str) -> None:
        """
        Remove a stored record. Missing records are ignored.

        Args:
            save_data_key: Identifier to delete
        """
        validate_save_data_key(save_data_key)
        removed = self._delete(save_data_key)
        logger.debug(
            "Save data deleted",
            backend=self.backend_name,
            save_data_key=save_data_key,
            removed=removed,
        )

    def close(self) -> None:
        """Release any resources held by the backend."""

    def __enter__(self) -> "SaveStore":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit."""
        self.close()


class MemorySaveStore(SaveStore):
    """Process-local store, used for tests and throwaway sessions."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    def _read_text(self, save_data_key: str) -> str | None:
        return self._records.get(save_data_key)

    def _write_text(self, save_data_key: str, text: str) -> None:
        self._records[save_data_key] = text

    def _delete(self, save_data_key: str) -> bool:
        return self._records.pop(save_data_key, None) is not None

    def list_ids(self) -> list[str]:
        return sorted(self._records)
