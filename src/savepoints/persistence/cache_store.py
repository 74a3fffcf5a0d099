"""diskcache-backed store for persisted save history.

Snapshots are kept in an embedded key-value cache directory. The cache uses
``diskcache.JSONDisk`` so stored values are plain JSON and never unpickled.
"""

from pathlib import Path

import diskcache
import structlog

from .store import SaveStore

logger = structlog.get_logger(__name__)

# Namespace prefix so the cache can share a directory with other data
_KEY_PREFIX = "save_data:"


class DiskCacheSaveStore(SaveStore):
    """Stores snapshots in a diskcache.Cache (thread and process safe)."""

    backend_name = "diskcache"

    def __init__(self, directory: str | Path) -> None:
        """
        Initialize DiskCacheSaveStore.

        Args:
            directory: Cache directory (created if missing)
        """
        self.directory = Path(directory)
        self.cache: diskcache.Cache = diskcache.Cache(
            str(self.directory),
            disk=diskcache.JSONDisk,  # Security: prevents arbitrary code execution
        )

        logger.info("DiskCacheSaveStore initialized", directory=str(self.directory))

    def _read_text(self, save_data_key: str) -> str | None:
        value = self.cache.get(_KEY_PREFIX + save_data_key)
        if value is None:
            return None
        # JSONDisk decodes the stored JSON string back to a str
        return value if isinstance(value, str) else str(value)

    def _write_text(self, save_data_key: str, text: str) -> None:
        self.cache.set(_KEY_PREFIX + save_data_key, text)

    def _delete(self, save_data_key: str) -> bool:
        return bool(self.cache.delete(_KEY_PREFIX + save_data_key))

    def list_ids(self) -> list[str]:
        return sorted(
            key[len(_KEY_PREFIX) :]
            for key in self.cache.iterkeys()
            if isinstance(key, str) and key.startswith(_KEY_PREFIX)
        )

    def close(self) -> None:
        """Close the cache."""
        self.cache.close()
        logger.info("DiskCacheSaveStore closed")
