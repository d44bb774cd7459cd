"""Ownership and readiness tracking for the single video backend handle.

The PlayerService is the only place a backend handle is created or destroyed.
``ensure_initialized`` is idempotent: it returns the live handle, or builds a
new one through the factory when none exists (first show, or after
``release``). Readiness is tracked per handle; a ready signal from a handle
that has since been released is ignored.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..puzzle.errors import BackendNotReady
from .video_backend import BackendFactory, VideoBackend


class PlayerService:
    """Lifecycle manager for the cue surface's video backend.

    Usage:
        player = PlayerService(factory)
        player.ensure_initialized()       # surface shown
        await player.wait_ready(2.0)      # optional
        player.require_ready().load("success", 12.0)
        player.release()                  # surface hidden
    """

    def __init__(
        self,
        factory: BackendFactory,
        error_listener: Optional[Callable[[object], None]] = None,
    ):
        self._factory = factory
        self.error_listener = error_listener
        self._handle: Optional[VideoBackend] = None
        self._ready = False
        self._ready_future: Optional[asyncio.Future] = None
        self._generation = 0
        self.logger = logging.getLogger(__name__)

    @property
    def handle(self) -> Optional[VideoBackend]:
        return self._handle

    @property
    def is_ready(self) -> bool:
        return self._handle is not None and self._ready

    def ensure_initialized(self) -> VideoBackend:
        """Return the live handle, creating one if needed."""
        if self._handle is not None:
            return self._handle

        self._generation += 1
        generation = self._generation
        self._ready = False
        self.logger.info(f"[player] Creating video backend (generation={generation})")
        self._handle = self._factory(
            on_ready=lambda: self._on_ready(generation),
            on_error=lambda error: self._on_error(generation, error),
        )
        return self._handle

    def require_ready(self) -> VideoBackend:
        """Return the handle if it has signalled readiness.

        Raises:
            BackendNotReady: If no handle exists or it is not ready yet
        """
        if self._handle is None:
            raise BackendNotReady("no video backend has been created")
        if not self._ready:
            raise BackendNotReady("video backend has not signalled readiness")
        return self._handle

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait for the current handle's readiness signal.

        Returns:
            True if ready, False on timeout or if the handle was released
        """
        if self.is_ready:
            return True
        if self._handle is None:
            return False
        if self._ready_future is None or self._ready_future.done():
            self._ready_future = asyncio.get_running_loop().create_future()
        future = self._ready_future
        # asyncio.wait never cancels the future; cancelling the caller still propagates
        done, _ = await asyncio.wait({future}, timeout=timeout)
        if not done or future.cancelled():
            return False
        return self.is_ready

    def release(self) -> None:
        """Destroy the current handle; the next show creates a fresh one."""
        handle = self._handle
        self._handle = None
        self._ready = False
        self._generation += 1
        if self._ready_future is not None and not self._ready_future.done():
            self._ready_future.cancel()
        self._ready_future = None
        if handle is None:
            return
        try:
            handle.stop()
        except Exception as exc:
            self.logger.debug(f"[player] stop before destroy failed: {exc}")
        try:
            handle.destroy()
        except Exception as exc:
            self.logger.warning(f"[player] Backend destroy failed: {exc}")
        self.logger.info("[player] Video backend released")

    def _on_ready(self, generation: int) -> None:
        if generation != self._generation:
            self.logger.debug(f"[player] Ignoring stale ready signal (generation={generation})")
            return
        self._ready = True
        self.logger.info("[player] Video backend is ready")
        if self._ready_future is not None and not self._ready_future.done():
            self._ready_future.set_result(True)

    def _on_error(self, generation: int, error: object) -> None:
        if generation != self._generation:
            return
        self.logger.error(f"[player] Video backend error: {error}")
        if self.error_listener is not None:
            try:
                self.error_listener(error)
            except Exception as exc:
                self.logger.error(f"[player] Error listener failed: {exc}", exc_info=True)
