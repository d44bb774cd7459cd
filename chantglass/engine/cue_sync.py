"""
Cue Synchronizer - Drives video playback from puzzle outcomes.

The CueSynchronizer listens to the puzzle event bus and turns outcome
transitions into backend requests:
- OUTCOME_SUCCESS → load the success cue at the pattern's start offset, then
  loop-guard: poll the position and seek back to the start once it reaches the
  end offset
- OUTCOME_FAILURE → load the failure cue from 0, no loop guard
- SESSION_RESET → cancel pending load and loop guard, release the backend

State machine:
    IDLE → LOADING → (PLAYING | LOOP_GUARDING) → IDLE

Everything runs on the asyncio loop (qasync in the desktop app). Loads wait
out a bounded RetryPolicy while the backend is not ready, then give up
silently. Nothing here writes back into puzzle state.
"""

from __future__ import annotations
import asyncio
import logging
import os
from enum import Enum, auto
from typing import Any, Optional

from ..puzzle.catalog import FAILURE_CUE, SUCCESS_CUE
from ..puzzle.errors import BackendLoadFailure, BackendNotReady
from ..puzzle.events import PuzzleEvent, PuzzleEventEmitter, PuzzleEventType
from ..puzzle.pattern import CueWindow
from .player_service import PlayerService
from .retry import FAILURE_RETRY, SUCCESS_RETRY, RetryPolicy


DEFAULT_LOOP_INTERVAL_S = 1.0
# Floor for the loop-guard interval; 0 would spin the Qt thread
MIN_LOOP_INTERVAL_S = 0.01
_LOOP_INTERVAL_ENV = "CHANTGLASS_LOOP_INTERVAL_MS"


def _resolve_loop_interval(value: Optional[float]) -> float:
    if value is not None:
        return max(MIN_LOOP_INTERVAL_S, float(value))
    raw = os.environ.get(_LOOP_INTERVAL_ENV, "").strip()
    if raw:
        try:
            return max(MIN_LOOP_INTERVAL_S, float(raw) / 1000.0)
        except ValueError:
            logging.getLogger(__name__).warning(
                f"[cue] Ignoring invalid {_LOOP_INTERVAL_ENV}={raw!r}"
            )
    return DEFAULT_LOOP_INTERVAL_S


class CueState(Enum):
    """Cue playback states."""
    IDLE = auto()           # Nothing requested
    LOADING = auto()        # Waiting out retry delays / backend readiness
    PLAYING = auto()        # Cue loaded, plays to the end (failure cue)
    LOOP_GUARDING = auto()  # Cue loaded, position polled for looping


class CueSynchronizer:
    """
    Follows puzzle outcomes and drives the video backend.

    Usage:
        player = PlayerService(factory)
        sync = CueSynchronizer(player, engine.event_emitter)
        # engine.evaluate() now triggers cue playback
        sync.shutdown()
    """

    def __init__(
        self,
        player: PlayerService,
        event_emitter: PuzzleEventEmitter,
        *,
        success_cue_id: str = SUCCESS_CUE,
        failure_cue_id: str = FAILURE_CUE,
        success_retry: RetryPolicy = SUCCESS_RETRY,
        failure_retry: RetryPolicy = FAILURE_RETRY,
        loop_interval_s: Optional[float] = None,
    ):
        """
        Initialize and subscribe to the event bus.

        Args:
            player: Owner of the single backend handle
            event_emitter: Puzzle event bus (also used to publish cue events)
            success_cue_id: Backend cue id for the success video
            failure_cue_id: Backend cue id for the failure video
            success_retry: Load schedule for the success cue
            failure_retry: Load schedule for the failure cue
            loop_interval_s: Loop-guard polling interval (default 1s, or
                CHANTGLASS_LOOP_INTERVAL_MS)
        """
        self.player = player
        self.event_emitter = event_emitter
        self.success_cue_id = success_cue_id
        self.failure_cue_id = failure_cue_id
        self.success_retry = success_retry
        self.failure_retry = failure_retry
        self.loop_interval_s = _resolve_loop_interval(loop_interval_s)
        self.logger = logging.getLogger(__name__)

        self._state = CueState.IDLE
        self._surface_visible = False
        self._generation = 0
        self._load_task: Optional[asyncio.Task] = None
        self._loop_task: Optional[asyncio.Task] = None

        self._subscriptions = [
            (PuzzleEventType.OUTCOME_SUCCESS, self._on_success),
            (PuzzleEventType.OUTCOME_FAILURE, self._on_failure),
            (PuzzleEventType.SESSION_RESET, self._on_reset),
        ]
        for event_type, callback in self._subscriptions:
            self.event_emitter.subscribe(event_type, callback)
        if self.player.error_listener is None:
            self.player.error_listener = self._on_backend_error

    # ===== Observable state =====

    @property
    def state(self) -> CueState:
        return self._state

    @property
    def surface_visible(self) -> bool:
        return self._surface_visible

    @property
    def backend_ready(self) -> bool:
        return self.player.is_ready

    @property
    def active_loop_guard(self) -> Optional[asyncio.Task]:
        task = self._loop_task
        if task is None or task.done():
            return None
        return task

    @property
    def pending_load(self) -> Optional[asyncio.Task]:
        task = self._load_task
        if task is None or task.done():
            return None
        return task

    # ===== Event handlers =====

    def _on_success(self, event: PuzzleEvent) -> None:
        cue = (event.data or {}).get("cue")
        if not isinstance(cue, CueWindow):
            self.logger.error(f"[cue] Success event without cue window: {event}")
            return
        self.play_success(cue)

    def _on_failure(self, event: PuzzleEvent) -> None:
        self.play_failure()

    def _on_reset(self, event: PuzzleEvent) -> None:
        self.teardown()

    def _on_backend_error(self, error: object) -> None:
        # Non-fatal: the cue may stop, the puzzle outcome stands.
        self._emit(PuzzleEventType.ERROR, {"source": "video_backend", "error": str(error)})

    # ===== Requests =====

    def play_success(self, cue: CueWindow) -> Optional[asyncio.Task]:
        """Load the success cue at ``cue.start_offset`` and loop-guard it."""
        self.logger.info(
            f"[cue] Success cue requested: {cue.start_offset:.2f}s → {cue.end_offset:.2f}s"
        )
        return self._request(self.success_cue_id, cue.start_offset, self.success_retry, cue)

    def play_failure(self) -> Optional[asyncio.Task]:
        """Load the failure cue from the beginning, without looping."""
        self.logger.info("[cue] Failure cue requested")
        return self._request(self.failure_cue_id, 0.0, self.failure_retry, None)

    def _request(
        self,
        cue_id: str,
        start_offset: float,
        policy: RetryPolicy,
        loop_window: Optional[CueWindow],
    ) -> Optional[asyncio.Task]:
        # Last call wins: drop whatever was in flight.
        self._cancel_tasks()
        self._generation += 1
        generation = self._generation

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning(f"[cue] No running event loop; cue '{cue_id}' skipped")
            self._state = CueState.IDLE
            return None

        self.set_surface_visible(True)
        self._state = CueState.LOADING
        self._load_task = loop.create_task(
            self._load_with_retry(generation, cue_id, start_offset, policy, loop_window)
        )
        return self._load_task

    async def _load_with_retry(
        self,
        generation: int,
        cue_id: str,
        start_offset: float,
        policy: RetryPolicy,
        loop_window: Optional[CueWindow],
    ) -> bool:
        for attempt, delay in enumerate(policy.delays(), start=1):
            if attempt == 1:
                if delay > 0:
                    await asyncio.sleep(delay)
            else:
                # Retries start as soon as the handle signals readiness
                await self.player.wait_ready(delay)
            if generation != self._generation:
                return False
            try:
                backend = self.player.require_ready()
                backend.load(cue_id, start_offset)
            except BackendNotReady:
                self.logger.info(
                    f"[cue] Backend not ready for '{cue_id}' "
                    f"(attempt {attempt}/{policy.max_attempts})"
                )
                continue
            except BackendLoadFailure as exc:
                self.logger.warning(f"[cue] Failed to load '{cue_id}': {exc}")
                self._abandon(cue_id, "load_failed", str(exc))
                return False
            except Exception as exc:
                self.logger.warning(f"[cue] Backend error loading '{cue_id}': {exc}", exc_info=True)
                self._abandon(cue_id, "load_failed", str(exc))
                return False

            self.logger.info(f"[cue] Playing '{cue_id}' from {start_offset:.2f}s")
            self._emit(PuzzleEventType.CUE_LOADED, {
                "cue_id": cue_id, "start": start_offset, "attempt": attempt,
            })
            if loop_window is None:
                self._state = CueState.PLAYING
            else:
                self._state = CueState.LOOP_GUARDING
                self._loop_task = asyncio.get_running_loop().create_task(
                    self._loop_guard(generation, loop_window)
                )
            return True

        self.logger.warning(
            f"[cue] Backend still not ready after {policy.max_attempts} attempts; "
            f"'{cue_id}' abandoned"
        )
        self._abandon(cue_id, "not_ready", "")
        return False

    async def _loop_guard(self, generation: int, window: CueWindow) -> None:
        while generation == self._generation:
            await asyncio.sleep(self.loop_interval_s)
            if generation != self._generation:
                return
            self.check_loop_boundary(window)

    def check_loop_boundary(self, window: CueWindow) -> bool:
        """One loop-guard tick.

        Reads the playback position and seeks back to ``window.start_offset``
        once it has reached ``window.end_offset``.

        Returns:
            True if a seek was issued
        """
        if not self.player.is_ready:
            return False
        backend = self.player.handle
        try:
            position = backend.get_current_position()
        except Exception as exc:
            self.logger.warning(f"[cue] Position query failed: {exc}")
            return False
        if position < window.end_offset:
            return False

        self.logger.info(
            f"[cue] Looping: position {position:.2f}s ≥ {window.end_offset:.2f}s, "
            f"seeking to {window.start_offset:.2f}s"
        )
        try:
            backend.seek(window.start_offset, True)
        except Exception as exc:
            self.logger.warning(f"[cue] Loop seek failed: {exc}")
            return False
        self._emit(PuzzleEventType.CUE_LOOPED, {
            "position": position, "start": window.start_offset,
        })
        return True

    # ===== Surface & teardown =====

    def set_surface_visible(self, visible: bool) -> None:
        """Show or hide the cue surface.

        Hiding cancels all pending work and releases the backend; showing
        again builds a fresh backend whose requests wait for its own
        readiness signal.
        """
        if visible == self._surface_visible:
            if visible:
                self.player.ensure_initialized()
            return

        self._surface_visible = visible
        if visible:
            self.player.ensure_initialized()
            self._emit(PuzzleEventType.CUE_SURFACE_SHOWN, {})
        else:
            self._generation += 1
            self._cancel_tasks()
            self._state = CueState.IDLE
            self.player.release()
            self._emit(PuzzleEventType.CUE_SURFACE_HIDDEN, {})

    def teardown(self) -> None:
        """Cancel retry and loop-guard work and release the backend.

        Runs synchronously, so no callback scheduled for the old session can
        touch the backend afterwards.
        """
        self._generation += 1
        self._cancel_tasks()
        self._state = CueState.IDLE
        if self._surface_visible:
            self.set_surface_visible(False)
        else:
            self.player.release()
        self.logger.debug("[cue] Torn down")

    def shutdown(self) -> None:
        """Tear down and unsubscribe from the event bus."""
        self.teardown()
        for event_type, callback in self._subscriptions:
            self.event_emitter.unsubscribe(event_type, callback)
        if self.player.error_listener == self._on_backend_error:
            self.player.error_listener = None

    def _cancel_tasks(self) -> None:
        for task in (self._load_task, self._loop_task):
            if task is not None and not task.done():
                task.cancel()
        self._load_task = None
        self._loop_task = None

    def _abandon(self, cue_id: str, reason: str, detail: str) -> None:
        self._state = CueState.IDLE
        self._emit(PuzzleEventType.CUE_ABANDONED, {
            "cue_id": cue_id, "reason": reason, "detail": detail,
        })

    def _emit(self, event_type: PuzzleEventType, data: dict[str, Any]) -> None:
        self.event_emitter.emit(PuzzleEvent(event_type, data=data))
