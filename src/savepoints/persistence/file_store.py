"""JSON file store.

Each save data key is stored as ``<directory>/<key>.json``. Writes go to a
temporary file in the same directory which is flushed, fsynced and then
renamed over the target, so a reader sees either the old record or the new
one and never a partial write.
"""

import os
import tempfile
from pathlib import Path

import structlog

from ..constants import SAVE_FILE_SUFFIX
from .store import SaveStore

logger = structlog.get_logger(__name__)


class FileSaveStore(SaveStore):
    """Stores one JSON document per save data key."""

    backend_name = "file"

    def __init__(self, directory: str | Path, suffix: str = SAVE_FILE_SUFFIX) -> None:
        """
        Initialize FileSaveStore.

        Args:
            directory: Directory holding the save files (created if missing)
            suffix: File extension for save files
        """
        self.directory = Path(directory)
        self.suffix = suffix
        self.directory.mkdir(parents=True, exist_ok=True)

        logger.info("FileSaveStore initialized", directory=str(self.directory))

    def path_for(self, save_data_key: str) -> Path:
        """Return the file path used for a save data key."""
        return self.directory / f"{save_data_key}{self.suffix}"

    def _read_text(self, save_data_key: str) -> str | None:
        try:
            return self.path_for(save_data_key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write_text(self, save_data_key: str, text: str) -> None:
        path = self.path_for(save_data_key)

        fd, tmp_path = tempfile.mkstemp(
            dir=self.directory,
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _delete(self, save_data_key: str) -> bool:
        try:
            self.path_for(save_data_key).unlink()
        except FileNotFoundError:
            return False
        return True

    def list_ids(self) -> list[str]:
        return sorted(
            path.name[: -len(self.suffix)]
            for path in self.directory.glob(f"*{self.suffix}")
            if path.is_file() and not path.name.startswith(".")
        )
