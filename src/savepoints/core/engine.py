"""Save-point history engine - main orchestrator.

Coordinates the in-memory history log, the persistence store and the
restorer. The engine is constructed explicitly and passed to whatever needs
it; there is no process-wide instance.

History operations (add, rewind, fast-forward, clear) are synchronous and run
to completion on the caller's thread. Store operations (save, load, delete,
existence checks) are awaitable. Save, load and delete return an already
scheduled ``asyncio.Task`` that counts as in flight from the moment it is
returned. Blocking I/O runs in a worker thread via ``asyncio.to_thread`` and
operations on the same save data key are serialized by a KeyedLock.

Typical driver loop:

    engine = SaveHistoryEngine(FileSaveStore(".saves"), restorer=game)
    engine.start_new_game()
    engine.add_save_point("chapter1", game.serialize())
    await engine.save("slot1")

    # Affordances are derived from queries, never stored in the engine
    rewind_enabled = engine.num_save_points > 1
    forward_enabled = engine.num_rewound_save_points > 0
"""

import asyncio
import time
from collections import defaultdict
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import structlog

from ..config import EngineConfig, HistoryConfig
from ..models.save_point import HistorySnapshot, SavePoint
from ..observability.logger import LogContext
from ..observability.metrics import MetricsCollector
from ..persistence.factory import create_store
from ..persistence.store import SaveStore
from ..utils.exceptions import DuplicateKeyError, EmptyHistoryError, RestoreError
from ..utils.locking import KeyedLock
from .history_log import HistoryLog
from .restorer import NullRestorer, Restorer

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SaveEvent(str, Enum):
    """Events published by the engine."""

    SAVE_POINT_ADDED = "save_point_added"  # add_save_point / start_new_game
    SAVE_POINT_LOADED = "save_point_loaded"  # a save point was applied via rewind/fast-forward/load
    SAVED = "saved"  # committed history written to the store
    HISTORY_CLEARED = "history_cleared"
    SAVE_DELETED = "save_deleted"


@dataclass(frozen=True)
class SaveEventInfo:
    """
    Details passed to event listeners.

    Attributes:
        event: Which event fired
        save_point: Save point involved, if any
        save_data_key: Save slot involved, if any
    """

    event: SaveEvent
    save_point: SavePoint | None = None
    save_data_key: str | None = None


SaveEventListener = Callable[[SaveEventInfo], None]


class SaveHistoryEngine:
    """
    Records save points, navigates them and persists the committed history.

    Features:
    - Rewind / fast-forward through recorded save points
    - Adding after a rewind discards the rewound branch
    - Save / load / delete against any number of save slots
    - Per-slot serialization of store I/O
    - Atomic operations: failures leave history untouched
    - Duplicate key diagnostics
    """

    def __init__(
        self,
        store: SaveStore,
        restorer: Restorer | None = None,
        config: HistoryConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            store: Persistence store for saved history
            restorer: Hook that re-materializes state from a payload
            config: History policy (defaults to HistoryConfig())
            metrics: Optional metrics collector
        """
        self.store = store
        self.restorer = restorer or NullRestorer()
        self.config = config or HistoryConfig()
        self.metrics = metrics

        self._log = HistoryLog(min_committed=self.config.min_committed)
        self._locks = KeyedLock()
        self._listeners: dict[SaveEvent, list[SaveEventListener]] = defaultdict(list)
        self.diagnostics: list[DuplicateKeyError] = []

    @classmethod
    def from_config(
        cls, config: EngineConfig, restorer: Restorer | None = None
    ) -> "SaveHistoryEngine":
        """
        Build an engine and its store from a complete configuration.

        Args:
            config: Engine configuration
            restorer: Hook that re-materializes state from a payload

        Returns:
            SaveHistoryEngine instance
        """
        metrics = MetricsCollector(config.metrics.backend) if config.metrics.enabled else None
        return cls(
            store=create_store(config.store),
            restorer=restorer,
            config=config.history,
            metrics=metrics,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def num_save_points(self) -> int:
        """Number of committed save points."""
        return self._log.num_committed

    @property
    def num_rewound_save_points(self) -> int:
        """Number of rewound save points available for fast-forward."""
        return self._log.num_rewound

    @property
    def latest_save_point(self) -> SavePoint | None:
        """Current save point, or None if the history is empty."""
        return self._log.latest

    @property
    def can_rewind(self) -> bool:
        """True if rewind() would succeed."""
        return self._log.can_rewind

    @property
    def can_fast_forward(self) -> bool:
        """True if fast_forward() would succeed."""
        return self._log.can_fast_forward

    def save_points(self) -> tuple[SavePoint, ...]:
        """Committed save points, oldest first."""
        return self._log.committed_points()

    def rewound_save_points(self) -> tuple[SavePoint, ...]:
        """Rewound save points, next-to-restore first."""
        return self._log.rewound_points()

    def debug_info(self) -> str:
        """Human-readable description of the current history."""
        return self._log.debug_info()

    # ------------------------------------------------------------------
    # History operations
    # ------------------------------------------------------------------

    def add_save_point(self, key: str, payload: str = "", description: str = "") -> SavePoint:
        """
        Record a new save point.

        Discards any rewound save points. A repeated key never fails; it is
        recorded in ``diagnostics`` and logged.

        Args:
            key: Save point key
            payload: Opaque serialized state
            description: Optional human-readable label

        Returns:
            The new save point

        Raises:
            TypeError: If key, payload or description is not a string; the
                history is left unchanged
        """
        discarded = self._log.num_rewound
        save_point = self._log.add(key, payload, description)

        logger.debug(
            "Save point added",
            key=key,
            sequence=save_point.sequence,
            discarded_rewound=discarded,
        )

        if self.config.warn_duplicate_keys and self._log.key_count(key) > 1:
            sequences = self._log.sequences_for(key)
            diagnostic = DuplicateKeyError(key, sequences)
            self.diagnostics.append(diagnostic)
            logger.warning("Duplicate save point key", key=key, sequences=sequences)

        self._record("add_save_point", "ok")
        self._publish(SaveEventInfo(SaveEvent.SAVE_POINT_ADDED, save_point=save_point))
        return save_point

    def rewind(self) -> SavePoint | None:
        """
        Step back one save point and apply the one that becomes current.

        Returns:
            The new current save point (None only when min_committed is 0 and
            the history was emptied)

        Raises:
            NoHistoryError: If the rewind would leave too few save points
            RestoreError: If the restorer fails; history is unchanged
        """
        try:
            target = self._log.peek_rewind()
            if target is not None:
                self._apply(target)
        except Exception as e:
            self._record("rewind", type(e).__name__)
            raise

        self._log.rewind()

        logger.debug(
            "Rewound",
            key=target.key if target else None,
            committed=self._log.num_committed,
            rewound=self._log.num_rewound,
        )
        self._record("rewind", "ok")
        if target is not None:
            self._publish(SaveEventInfo(SaveEvent.SAVE_POINT_LOADED, save_point=target))
        return target

    def fast_forward(self) -> SavePoint:
        """
        Step forward one rewound save point and apply it.

        Returns:
            The restored save point

        Raises:
            NoRewoundHistoryError: If nothing has been rewound
            RestoreError: If the restorer fails; history is unchanged
        """
        try:
            target = self._log.peek_fast_forward()
            self._apply(target)
        except Exception as e:
            self._record("fast_forward", type(e).__name__)
            raise

        self._log.fast_forward()

        logger.debug(
            "Fast forwarded",
            key=target.key,
            committed=self._log.num_committed,
            rewound=self._log.num_rewound,
        )
        self._record("fast_forward", "ok")
        self._publish(SaveEventInfo(SaveEvent.SAVE_POINT_LOADED, save_point=target))
        return target

    def clear_history(self) -> None:
        """Remove every save point, committed and rewound."""
        self._log.clear()
        logger.debug("History cleared")
        self._record("clear_history", "ok")
        self._publish(SaveEventInfo(SaveEvent.HISTORY_CLEARED))

    def clear_diagnostics(self) -> None:
        """Forget recorded duplicate key diagnostics."""
        self.diagnostics.clear()

    def start_new_game(self, payload: str = "", description: str = "") -> SavePoint:
        """
        Record the initial save point and apply it.

        Args:
            payload: Payload for the initial save point
            description: Optional label

        Returns:
            The new-game save point

        Raises:
            RestoreError: If the restorer fails; the save point is not recorded
        """
        key = self.config.new_game_key
        self._apply(SavePoint(key=key, payload=payload, sequence=self._log.num_committed))
        save_point = self.add_save_point(key, payload, description)
        logger.info("New game started", key=key)
        return save_point

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    def save(self, save_data_key: str | None = None) -> "asyncio.Task[HistorySnapshot]":
        """
        Persist the committed history.

        The snapshot is taken when ``save`` is called, not when the returned
        task runs, so history changes made while the write is in flight do not
        leak into the stored record. The write counts as in flight from the
        moment ``save`` returns, so ``wait_idle()`` and ``restart()`` wait for
        it even if it has not been scheduled yet.

        Must be called from a running event loop.

        Args:
            save_data_key: Save slot (defaults to config.save_data_key)

        Returns:
            Task resolving to the written snapshot

        Raises:
            EmptyHistoryError: If nothing is committed (raised immediately)
        """
        key = self._resolve_key(save_data_key)

        if self._log.num_committed == 0:
            self._record("save", EmptyHistoryError.__name__)
            raise EmptyHistoryError("Cannot save: no save points have been recorded")

        snapshot = HistorySnapshot.from_save_points(key, self._log.committed_points())
        return self._dispatch(lambda: self._write_snapshot(key, snapshot))

    async def _write_snapshot(self, key: str, snapshot: HistorySnapshot) -> HistorySnapshot:
        with LogContext(save_data_key=key):
            try:
                async with self._locks.acquire(key, reserved=True):
                    await self._timed("write", self.store.write, key, snapshot)
            except Exception as e:
                self._record("save", type(e).__name__)
                logger.error("Save failed", error=str(e))
                raise

            logger.info("History saved", save_points=len(snapshot.save_points))
            self._record("save", "ok")
            self._publish(SaveEventInfo(SaveEvent.SAVED, save_data_key=key))
            return snapshot

    def load(self, save_data_key: str | None = None) -> "asyncio.Task[SavePoint]":
        """
        Replace the history with a stored one and apply its latest save point.

        The stored record is fully read and validated before anything in
        memory changes. The rewound segment is empty afterwards. Like
        ``save``, the load counts as in flight as soon as this returns.

        Args:
            save_data_key: Save slot (defaults to config.save_data_key)

        Returns:
            Task resolving to the save point that became current

        Raises:
            SaveDataNotFoundError: If nothing is stored under the key
            CorruptSaveDataError: If the stored record fails validation
            RestoreError: If the restorer fails; history is unchanged
        """
        key = self._resolve_key(save_data_key)
        return self._dispatch(lambda: self._read_snapshot(key))

    async def _read_snapshot(self, key: str) -> SavePoint:
        with LogContext(save_data_key=key):
            try:
                async with self._locks.acquire(key, reserved=True):
                    snapshot = await self._timed("read", self.store.read, key)

                save_points = snapshot.to_save_points()
                latest = save_points[-1]
                self._apply(latest)
            except Exception as e:
                self._record("load", type(e).__name__)
                logger.error("Load failed", error=str(e))
                raise

            self._log.replace(save_points)

            logger.info("History loaded", save_points=len(save_points), key=latest.key)
            self._record("load", "ok")
            self._publish(
                SaveEventInfo(SaveEvent.SAVE_POINT_LOADED, save_point=latest, save_data_key=key)
            )
            return latest

    def delete(self, save_data_key: str | None = None) -> "asyncio.Task[None]":
        """
        Delete stored save data. Deleting a missing record is not an error.

        Args:
            save_data_key: Save slot (defaults to config.save_data_key)

        Returns:
            Task that completes once the record is gone

        Raises:
            InvalidSaveDataKeyError: If the key cannot name a record
        """
        key = self._resolve_key(save_data_key)
        return self._dispatch(lambda: self._delete_snapshot(key))

    async def _delete_snapshot(self, key: str) -> None:
        with LogContext(save_data_key=key):
            async with self._locks.acquire(key, reserved=True):
                await self._timed("delete", self.store.delete, key)

            logger.info("Save data deleted")
            self._record("delete", "ok")
            self._publish(SaveEventInfo(SaveEvent.SAVE_DELETED, save_data_key=key))

    async def save_data_exists(self, save_data_key: str | None = None) -> bool:
        """
        Check for well-formed save data, waiting for in-flight writes to the slot.

        Args:
            save_data_key: Save slot (defaults to config.save_data_key)

        Returns:
            True if a valid record is stored
        """
        key = self._resolve_key(save_data_key)
        async with self._locks.acquire(key):
            return await asyncio.to_thread(self.store.exists, key)

    def save_data_exists_now(self, save_data_key: str | None = None) -> bool:
        """
        Synchronous existence check for per-frame polling.

        Does not wait for in-flight writes; the file store's atomic replace
        means the answer reflects either the old or the new record.

        Args:
            save_data_key: Save slot (defaults to config.save_data_key)

        Returns:
            True if a valid record is stored
        """
        return self.store.exists(self._resolve_key(save_data_key))

    async def wait_idle(self) -> None:
        """Wait until no save, load, delete or existence check is in flight."""
        await self._locks.wait_idle()

    async def restart(
        self,
        delete_save_data: bool | None = None,
        save_data_key: str | None = None,
        payload: str = "",
    ) -> SavePoint:
        """
        Start over from a fresh new-game save point.

        In-flight store operations finish first so the store and the history
        never disagree about what was saved. The new-game payload is applied
        before anything is cleared; if the restorer fails, history and store
        are left as they were.

        Args:
            delete_save_data: Also delete stored save data
                (defaults to config.restart_deletes_save)
            save_data_key: Save slot to delete (defaults to config.save_data_key)
            payload: Payload for the new-game save point

        Returns:
            The new-game save point

        Raises:
            RestoreError: If the restorer rejects the new-game payload
        """
        if delete_save_data is None:
            delete_save_data = self.config.restart_deletes_save

        await self.wait_idle()

        new_game = SavePoint(key=self.config.new_game_key, payload=payload, sequence=0)
        self._apply(new_game)

        self.clear_history()
        save_point = self.add_save_point(new_game.key, payload)
        if delete_save_data:
            await self.delete(save_data_key)

        logger.info("Restarted", key=save_point.key, deleted_save_data=delete_save_data)
        return save_point

    def close(self) -> None:
        """Close the underlying store."""
        self.store.close()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, event: SaveEvent, listener: SaveEventListener) -> None:
        """
        Register a listener for an event.

        Args:
            event: Event to listen for
            listener: Called with a SaveEventInfo after the event happened
        """
        self._listeners[event].append(listener)

    def unsubscribe(self, event: SaveEvent, listener: SaveEventListener) -> None:
        """Remove a previously registered listener (no-op if absent)."""
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_key(self, save_data_key: str | None) -> str:
        # An empty string is a caller error, not a request for the default slot
        return self.config.save_data_key if save_data_key is None else save_data_key

    def _dispatch(self, make_coro: Callable[[], Coroutine[Any, Any, T]]) -> "asyncio.Task[T]":
        """Schedule a store operation, counting it as in flight before it is returned."""
        loop = asyncio.get_running_loop()
        self._locks.reserve()
        try:
            task = loop.create_task(make_coro())
        except BaseException:
            self._locks.release()
            raise
        task.add_done_callback(lambda _: self._locks.release())
        return task

    def _apply(self, save_point: SavePoint) -> None:
        """Hand a payload to the restorer, wrapping failures in RestoreError."""
        try:
            self.restorer.apply(save_point.payload)
        except Exception as e:
            logger.error("Restorer failed", key=save_point.key, error=str(e))
            raise RestoreError(save_point.key, e) from e

    def _publish(self, info: SaveEventInfo) -> None:
        for listener in list(self._listeners[info.event]):
            try:
                listener(info)
            except Exception:
                # Listeners run after the change is committed
                logger.exception("Save event listener failed", save_event=info.event.value)

    def _record(self, operation: str, status: str) -> None:
        if self.metrics is None:
            return
        self.metrics.count_operation(operation, status)
        self.metrics.update_history_size(self._log.num_committed, self._log.num_rewound)

    async def _timed(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        start = time.perf_counter()
        try:
            return await asyncio.to_thread(func, *args)
        finally:
            if self.metrics is not None:
                self.metrics.record_store_latency(
                    operation, (time.perf_counter() - start) * 1000
                )
