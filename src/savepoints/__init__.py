"""Save-point history engine - rewindable, persistent session history."""

from .cli import app
from .config import EngineConfig
from .core import SaveEvent, SaveHistoryEngine

__version__ = "0.1.0"
__all__ = ["app", "EngineConfig", "SaveHistoryEngine", "SaveEvent"]
