"""Puzzle event system for broadcasting session and cue state changes.

Provides event types, event data structures, and event emitter for decoupled
communication between the PuzzleEngine, the CueSynchronizer and the UI.

Usage:
    emitter = PuzzleEventEmitter()
    emitter.subscribe(PuzzleEventType.OUTCOME_SUCCESS, lambda evt: print(evt.data))
    emitter.emit(PuzzleEvent(PuzzleEventType.OUTCOME_SUCCESS, data={"pattern": "Ember"}))
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Any, Optional
import logging
import time


class PuzzleEventType(Enum):
    """Types of events emitted while a puzzle session runs."""

    # Session lifecycle
    SESSION_START = auto()     # New session initialized
    SESSION_RESET = auto()     # Current session about to be discarded

    # Player actions
    SEGMENT_SELECTED = auto()  # Segment moved from pool to selection
    HINT_USED = auto()         # Hint consumed, next segment highlighted
    ACTION_IGNORED = auto()    # Action was a no-op (data["reason"])

    # Outcome
    OUTCOME_SUCCESS = auto()   # Complete and correct
    OUTCOME_FAILURE = auto()   # Complete but wrong order

    # Cue playback (emitted by CueSynchronizer)
    CUE_SURFACE_SHOWN = auto()   # Video surface materialized
    CUE_SURFACE_HIDDEN = auto()  # Video surface torn down
    CUE_LOADED = auto()          # Backend accepted a load request
    CUE_LOOPED = auto()          # Loop guard seeked back to cue start
    CUE_ABANDONED = auto()       # Load gave up (not ready or failed)

    # Error events
    ERROR = auto()             # Non-fatal error (logged)


@dataclass
class PuzzleEvent:
    """Represents a puzzle event with optional payload data.

    Attributes:
        event_type: Type of event that occurred
        data: Optional dictionary with event-specific data
        timestamp: Optional timestamp (set by emitter)
    """
    event_type: PuzzleEventType
    data: Optional[dict[str, Any]] = None
    timestamp: Optional[float] = None

    def __str__(self) -> str:
        """Human-readable event representation."""
        if self.data:
            data_str = ", ".join(f"{k}={v}" for k, v in self.data.items())
            return f"PuzzleEvent({self.event_type.name}, {data_str})"
        return f"PuzzleEvent({self.event_type.name})"


class PuzzleEventEmitter:
    """Event bus for puzzle state changes.

    Subscribers are called synchronously, in subscription order, from within
    ``emit``. A failing subscriber is logged and does not stop delivery to the
    remaining subscribers.
    """

    def __init__(self):
        self._subscribers: dict[PuzzleEventType, list[Callable[[PuzzleEvent], None]]] = {}
        self.logger = logging.getLogger(__name__)

    def subscribe(
        self,
        event_type: PuzzleEventType,
        callback: Callable[[PuzzleEvent], None]
    ) -> None:
        """Subscribe to a specific event type."""
        callbacks = self._subscribers.setdefault(event_type, [])
        if callback not in callbacks:
            callbacks.append(callback)
            self.logger.debug(f"[events] Subscribed to {event_type.name} (total={len(callbacks)})")

    def unsubscribe(
        self,
        event_type: PuzzleEventType,
        callback: Callable[[PuzzleEvent], None]
    ) -> None:
        """Unsubscribe from a specific event type."""
        callbacks = self._subscribers.get(event_type)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)
            self.logger.debug(f"[events] Unsubscribed from {event_type.name} (total={len(callbacks)})")

    def emit(self, event: PuzzleEvent) -> None:
        """Emit an event to all subscribed callbacks."""
        if event.timestamp is None:
            event.timestamp = time.time()

        self.logger.debug(f"[events] Emitting: {event}")

        # Copy so callbacks may unsubscribe while being notified
        for callback in list(self._subscribers.get(event.event_type, [])):
            try:
                callback(event)
            except Exception as e:
                self.logger.error(f"[events] Callback error for {event.event_type.name}: {e}", exc_info=True)

    def clear_all(self) -> None:
        """Remove all event subscribers (useful for testing/cleanup)."""
        self._subscribers.clear()
        self.logger.debug("[events] Cleared all subscribers")
