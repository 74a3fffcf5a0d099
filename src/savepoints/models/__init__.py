"""Data models for save points and persisted history snapshots."""

from .save_point import HistorySnapshot, SavePoint, SavePointRecord

__all__ = ["SavePoint", "SavePointRecord", "HistorySnapshot"]
