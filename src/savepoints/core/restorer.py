"""Restoration hook invoked when the engine moves to a different save point.

The engine never interprets payloads. Whenever rewind, fast-forward or load
makes a different save point current, its payload is handed to the injected
``Restorer`` which re-materializes the session state.

Contract for implementations:
- ``apply`` must be idempotent for the same payload
- ``apply`` must not call back into the engine to mutate history
- raising from ``apply`` aborts the engine operation; history is left unchanged
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)


class Restorer(ABC):
    """Capability interface for applying a save point payload."""

    @abstractmethod
    def apply(self, payload: str) -> None:
        """
        Restore session state from an opaque payload.

        Args:
            payload: Payload recorded with the save point
        """


class CallbackRestorer(Restorer):
    """Adapts a plain function to the Restorer interface."""

    def __init__(self, callback: Callable[[str], None]) -> None:
        self.callback = callback

    def apply(self, payload: str) -> None:
        self.callback(payload)


class NullRestorer(Restorer):
    """Restorer that does nothing; used when no state needs re-materializing."""

    def apply(self, payload: str) -> None:
        logger.debug("No restorer configured, payload ignored", payload_size=len(payload))
