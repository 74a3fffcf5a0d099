"""Save point and persisted snapshot models.

``SavePoint`` is the immutable in-memory record used by the history log.
``HistorySnapshot`` is the Pydantic v2 schema for the persisted form; every
record read back from a store is validated against it before it can replace
the in-memory history.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)

from ..constants import SNAPSHOT_FORMAT_VERSION


def utc_timestamp() -> str:
    """Return the current UTC time in ISO-8601 format."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class SavePoint:
    """
    One recorded moment in the session history.

    Attributes:
        key: Identifier supplied by the caller (uniqueness recommended, not enforced)
        payload: Opaque serialized state; never interpreted by the engine
        sequence: Position in the committed history at creation time
        description: Optional human-readable label
        created_at: ISO-8601 UTC creation timestamp
    """

    key: str
    payload: str
    sequence: int
    description: str = ""
    created_at: str = field(default_factory=utc_timestamp)

    def __post_init__(self) -> None:
        for name in ("key", "payload", "description", "created_at"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise TypeError(f"SavePoint.{name} must be str, got {type(value).__name__}")
        if isinstance(self.sequence, bool) or not isinstance(self.sequence, int):
            raise TypeError(f"SavePoint.sequence must be int, got {type(self.sequence).__name__}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "key": self.key,
            "payload": self.payload,
            "sequence": self.sequence,
            "description": self.description,
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls, record: "SavePointRecord") -> "SavePoint":
        """Create from a validated snapshot record."""
        return cls(
            key=record.key,
            payload=record.payload,
            sequence=record.sequence,
            description=record.description,
            created_at=record.created_at,
        )


class SavePointRecord(BaseModel):
    """Persisted form of a single save point."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: StrictStr
    payload: StrictStr
    sequence: StrictInt = Field(ge=0)
    description: StrictStr = ""
    created_at: StrictStr = ""


class HistorySnapshot(BaseModel):
    """
    Persisted form of the committed history.

    Only the committed segment is stored; rewound save points are never
    persisted. The snapshot must contain at least one save point and the
    sequences must match their positions.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: StrictInt
    save_data_key: StrictStr
    saved_at: StrictStr = Field(default_factory=utc_timestamp)
    save_points: list[SavePointRecord] = Field(min_length=1)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        """Reject snapshots written by an unsupported format version."""
        if v != SNAPSHOT_FORMAT_VERSION:
            raise ValueError(
                f"unsupported snapshot version {v} (expected {SNAPSHOT_FORMAT_VERSION})"
            )
        return v

    @model_validator(mode="after")
    def validate_sequences(self) -> "HistorySnapshot":
        """Ensure save points are stored in order with no gaps."""
        for index, record in enumerate(self.save_points):
            if record.sequence != index:
                raise ValueError(
                    f"save point {record.key!r} has sequence {record.sequence}, "
                    f"expected {index}"
                )
        return self

    @classmethod
    def from_save_points(
        cls, save_data_key: str, save_points: tuple[SavePoint, ...] | list[SavePoint]
    ) -> "HistorySnapshot":
        """
        Build a snapshot of the given committed save points.

        Args:
            save_data_key: Identifier the snapshot will be stored under
            save_points: Committed save points, oldest first

        Returns:
            HistorySnapshot ready for serialization
        """
        return cls(
            version=SNAPSHOT_FORMAT_VERSION,
            save_data_key=save_data_key,
            save_points=[SavePointRecord(**point.to_dict()) for point in save_points],
        )

    def to_save_points(self) -> list[SavePoint]:
        """Convert stored records back into save points."""
        return [SavePoint.from_record(record) for record in self.save_points]

    def to_json(self) -> str:
        """Serialize to the on-disk JSON text."""
        return json.dumps(self.model_dump(mode="json"), indent=2)
