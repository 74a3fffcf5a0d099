"""Custom exceptions for the save-point history engine.

Exception Hierarchy:
-------------------
SavePointError (base)
├── HistoryError
│   ├── EmptyHistoryError        # Save attempted with nothing committed
│   │   └── NoHistoryError       # Rewind would leave too few committed save points
│   └── NoRewoundHistoryError    # Fast-forward with nothing rewound
├── SaveDataError (base for persistence errors)
│   ├── SaveDataNotFoundError    # No record stored under the identifier
│   ├── CorruptSaveDataError     # Record present but fails schema/version validation
│   └── InvalidSaveDataKeyError  # Identifier cannot be used by the storage medium
├── RestoreError                 # Restorer raised while applying a payload
└── DuplicateKeyError            # Advisory only, recorded but never raised by the engine

Usage Guidelines:
----------------
1. History errors are precondition failures. Callers are expected to gate on
   ``num_save_points`` / ``num_rewound_save_points`` first; the engine still
   validates and raises before any mutation happens.

2. SaveDataNotFoundError and CorruptSaveDataError are distinguishable so the
   caller can decide whether to fall back to a fresh history.

3. Let OSError and sqlite3 errors from the storage medium bubble up unchanged.
"""


class SavePointError(Exception):
    """Base exception for all save-point engine errors."""

    pass


class HistoryError(SavePointError):
    """Raised when a history operation's precondition is violated."""

    pass


class EmptyHistoryError(HistoryError):
    """Raised when an operation needs at least one committed save point."""

    def __init__(self, message: str = "No save points have been recorded") -> None:
        super().__init__(message)


class NoHistoryError(EmptyHistoryError):
    """Raised when a rewind would drop below the retained minimum."""

    def __init__(self, num_committed: int, min_committed: int) -> None:
        """
        Initialize NoHistoryError.

        Args:
            num_committed: Number of committed save points at the time of the call.
            min_committed: Number of save points that must remain committed.
        """
        super().__init__(
            f"Cannot rewind: {num_committed} save point(s) committed, "
            f"at least {min_committed} must remain"
        )
        self.num_committed = num_committed
        self.min_committed = min_committed


class NoRewoundHistoryError(HistoryError):
    """Raised when fast-forwarding with no rewound save points."""

    def __init__(self, message: str = "No rewound save points to fast forward to") -> None:
        super().__init__(message)


class SaveDataError(SavePointError):
    """Base exception for persistence errors."""

    def __init__(self, message: str, save_data_key: str) -> None:
        """
        Initialize SaveDataError.

        Args:
            message: Error message.
            save_data_key: Identifier of the record involved.
        """
        super().__init__(message)
        self.save_data_key = save_data_key


class SaveDataNotFoundError(SaveDataError):
    """Raised when no save data exists for an identifier."""

    def __init__(self, save_data_key: str) -> None:
        super().__init__(f"Save data not found: {save_data_key}", save_data_key)


class CorruptSaveDataError(SaveDataError):
    """
    Raised when stored save data cannot be used.

    Covers truncated writes, invalid JSON, unsupported format versions and
    records that fail schema validation.
    """

    def __init__(
        self,
        save_data_key: str,
        reason: str,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize CorruptSaveDataError.

        Args:
            save_data_key: Identifier of the corrupt record.
            reason: Short description of what failed.
            original_error: Optional underlying exception.
        """
        super().__init__(f"Save data '{save_data_key}' is corrupt: {reason}", save_data_key)
        self.reason = reason
        self.original_error = original_error


class InvalidSaveDataKeyError(SaveDataError):
    """Raised when an identifier cannot be mapped onto the storage medium."""

    def __init__(self, save_data_key: str) -> None:
        super().__init__(f"Invalid save data key: {save_data_key!r}", save_data_key)


class RestoreError(SavePointError):
    """Raised when the restorer fails to apply a save point payload."""

    def __init__(self, save_point_key: str, original_error: Exception) -> None:
        """
        Initialize RestoreError.

        Args:
            save_point_key: Key of the save point being applied.
            original_error: Exception raised by the restorer.
        """
        super().__init__(f"Failed to restore save point '{save_point_key}': {original_error}")
        self.save_point_key = save_point_key
        self.original_error = original_error


class DuplicateKeyError(SavePointError):
    """
    Diagnostic for a save point key recorded more than once.

    The engine never raises this; it is collected in ``engine.diagnostics`` and
    logged so callers can surface it.
    """

    def __init__(self, key: str, sequences: list[int]) -> None:
        """
        Initialize DuplicateKeyError.

        Args:
            key: The duplicated save point key.
            sequences: Sequence numbers of every committed save point using the key.
        """
        super().__init__(f"Save point key '{key}' is defined multiple times")
        self.key = key
        self.sequences = sequences
