"""Core history engine components."""

from .engine import SaveEvent, SaveEventInfo, SaveHistoryEngine
from .history_log import HistoryLog
from .restorer import CallbackRestorer, NullRestorer, Restorer

__all__ = [
    "SaveHistoryEngine",
    "SaveEvent",
    "SaveEventInfo",
    "HistoryLog",
    "Restorer",
    "CallbackRestorer",
    "NullRestorer",
]
