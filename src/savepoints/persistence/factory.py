"""Store construction from configuration."""

from ..config import StoreBackend, StoreConfig
from .cache_store import DiskCacheSaveStore
from .file_store import FileSaveStore
from .sqlite_store import SQLiteSaveStore
from .store import MemorySaveStore, SaveStore


def create_store(config: StoreConfig) -> SaveStore:
    """
    Build the store selected by ``config.backend``.

    Args:
        config: Store configuration

    Returns:
        A ready-to-use SaveStore
    """
    if config.backend == StoreBackend.FILE:
        return FileSaveStore(config.directory, suffix=config.file_suffix)
    if config.backend == StoreBackend.SQLITE:
        return SQLiteSaveStore(config.directory / config.database)
    if config.backend == StoreBackend.DISKCACHE:
        return DiskCacheSaveStore(config.directory)
    return MemorySaveStore()
