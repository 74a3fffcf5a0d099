"""Named constants for the save-point history engine."""

# -----------------------------------------------------------------------------
# Well-known keys
# -----------------------------------------------------------------------------

# Default identifier for the single save slot used by most games
DEFAULT_SAVE_DATA_KEY: str = "save_data"

# Key of the initial save point recorded when a new game starts
NEW_GAME_SAVE_POINT_KEY: str = "new_game"


# -----------------------------------------------------------------------------
# Snapshot format
# -----------------------------------------------------------------------------

# Version tag written into every persisted snapshot. Records carrying any
# other version are rejected as corrupt.
SNAPSHOT_FORMAT_VERSION: int = 1

# File extension used by the file store
SAVE_FILE_SUFFIX: str = ".json"

# Save data keys must map onto a single file name / cache key
SAVE_DATA_KEY_PATTERN: str = r"^[A-Za-z0-9_-][A-Za-z0-9_.-]{0,127}$"


# -----------------------------------------------------------------------------
# History policy
# -----------------------------------------------------------------------------

# Number of save points that must stay committed after a rewind. The initial
# "new game" save point is normally the one that remains.
DEFAULT_MIN_COMMITTED: int = 1


# -----------------------------------------------------------------------------
# Storage defaults
# -----------------------------------------------------------------------------

DEFAULT_SAVE_DIRECTORY: str = ".saves"
DEFAULT_SQLITE_DATABASE: str = "saves.db"
