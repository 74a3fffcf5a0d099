"""Ordered save point history with a rewind cursor.

The log is split into two segments:

- committed: save points currently live, oldest first
- rewound: save points that were rewound past, in the order they will be
  restored by fast-forward (the first element is restored next)

Adding a save point while the rewound segment is non-empty starts a new
branch and discards the rewound segment, the same way typing after an undo
discards the redo stack.
"""

from collections import Counter, deque

import structlog

from ..constants import DEFAULT_MIN_COMMITTED
from ..models.save_point import SavePoint
from ..utils.exceptions import NoHistoryError, NoRewoundHistoryError

logger = structlog.get_logger(__name__)


class HistoryLog:
    """
    In-memory save point history.

    Features:
    - O(1) committed / rewound counts
    - Rewind keeps at least ``min_committed`` save points committed
    - Every failing operation raises before mutating anything
    """

    def __init__(self, min_committed: int = DEFAULT_MIN_COMMITTED) -> None:
        """
        Initialize HistoryLog.

        Args:
            min_committed: Number of save points a rewind must leave committed
        """
        if min_committed < 0:
            raise ValueError(f"min_committed must be >= 0, got {min_committed}")

        self.min_committed = min_committed
        self._committed: list[SavePoint] = []
        self._rewound: deque[SavePoint] = deque()
        self._key_counts: Counter[str] = Counter()

    @property
    def num_committed(self) -> int:
        """Number of committed save points."""
        return len(self._committed)

    @property
    def num_rewound(self) -> int:
        """Number of rewound save points available for fast-forward."""
        return len(self._rewound)

    @property
    def latest(self) -> SavePoint | None:
        """Most recent committed save point, or None if the log is empty."""
        return self._committed[-1] if self._committed else None

    @property
    def can_rewind(self) -> bool:
        """True if a rewind would leave at least ``min_committed`` save points."""
        return self.num_committed > 0 and self.num_committed - 1 >= self.min_committed

    @property
    def can_fast_forward(self) -> bool:
        """True if there is a rewound save point to restore."""
        return bool(self._rewound)

    def committed_points(self) -> tuple[SavePoint, ...]:
        """Return the committed segment, oldest first."""
        return tuple(self._committed)

    def rewound_points(self) -> tuple[SavePoint, ...]:
        """Return the rewound segment, next-to-restore first."""
        return tuple(self._rewound)

    def add(self, key: str, payload: str, description: str = "") -> SavePoint:
        """
        Append a new save point.

        Any rewound save points are discarded; they become unreachable. The
        save point is built before anything changes, so invalid arguments
        leave the log untouched.

        Args:
            key: Save point key
            payload: Opaque serialized state
            description: Optional human-readable label

        Returns:
            The new save point

        Raises:
            TypeError: If key, payload or description is not a string
        """
        save_point = SavePoint(
            key=key,
            payload=payload,
            sequence=len(self._committed),
            description=description,
        )

        if self._rewound:
            logger.debug("Discarding rewound branch", discarded=len(self._rewound))
            self._rewound.clear()

        self._committed.append(save_point)
        self._key_counts[key] += 1
        return save_point

    def rewind(self) -> SavePoint | None:
        """
        Move the latest committed save point to the front of the rewound segment.

        Returns:
            The new latest committed save point, or None if the rewind emptied
            the committed segment (only possible with min_committed=0)

        Raises:
            NoHistoryError: If the move would leave fewer than ``min_committed``
                save points, or nothing is committed at all
        """
        if not self.can_rewind:
            raise NoHistoryError(self.num_committed, max(self.min_committed, 1))

        save_point = self._committed.pop()
        self._key_counts[save_point.key] -= 1
        self._rewound.appendleft(save_point)
        return self.latest

    def fast_forward(self) -> SavePoint:
        """
        Move the next rewound save point back onto the committed segment.

        Returns:
            The restored save point (now the latest committed one)

        Raises:
            NoRewoundHistoryError: If nothing has been rewound
        """
        if not self._rewound:
            raise NoRewoundHistoryError()

        save_point = self._rewound.popleft()
        self._committed.append(save_point)
        self._key_counts[save_point.key] += 1
        return save_point

    def peek_rewind(self) -> SavePoint | None:
        """
        Return the save point a rewind would make current, without moving.

        Raises:
            NoHistoryError: If a rewind is not allowed
        """
        if not self.can_rewind:
            raise NoHistoryError(self.num_committed, max(self.min_committed, 1))
        return self._committed[-2] if self.num_committed > 1 else None

    def peek_fast_forward(self) -> SavePoint:
        """
        Return the save point a fast-forward would restore, without moving.

        Raises:
            NoRewoundHistoryError: If nothing has been rewound
        """
        if not self._rewound:
            raise NoRewoundHistoryError()
        return self._rewound[0]

    def replace(self, save_points: list[SavePoint]) -> None:
        """
        Replace the whole log with a committed segment.

        The rewound segment is emptied.

        Args:
            save_points: New committed save points, oldest first
        """
        self._committed = list(save_points)
        self._rewound.clear()
        self._key_counts = Counter(point.key for point in self._committed)

    def clear(self) -> None:
        """Empty both segments."""
        self._committed.clear()
        self._rewound.clear()
        self._key_counts.clear()

    def key_count(self, key: str) -> int:
        """Number of committed save points using ``key``."""
        return self._key_counts[key]

    def sequences_for(self, key: str) -> list[int]:
        """Sequences of the committed save points using ``key``."""
        return [point.sequence for point in self._committed if point.key == key]

    def duplicate_keys(self) -> dict[str, list[int]]:
        """
        Find committed save point keys used more than once.

        Returns:
            Mapping of duplicated key -> sequences that use it
        """
        return {
            key: self.sequences_for(key)
            for key, count in self._key_counts.items()
            if count > 1
        }

    def debug_info(self) -> str:
        """
        Describe both segments for diagnostics.

        Returns:
            Multi-line summary, one line per save point
        """
        lines = [f"Committed save points: {self.num_committed}"]
        for point in self._committed:
            lines.append(f"  [{point.sequence}] {point.key} {point.description}".rstrip())
        lines.append(f"Rewound save points: {self.num_rewound}")
        for point in self._rewound:
            lines.append(f"  [{point.sequence}] {point.key} {point.description}".rstrip())
        return "\n".join(lines)
