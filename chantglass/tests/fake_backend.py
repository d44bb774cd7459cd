"""Scriptable video backend for cue playback tests (no Qt, no OpenCV)."""

from __future__ import annotations

from typing import Optional

from ..puzzle.errors import BackendLoadFailure


class FakeVideoBackend:
    """Records every call; readiness and failures are driven by the test."""

    def __init__(self, on_ready, on_error, *, fail_loads: bool = False, position: float = 0.0):
        self._on_ready = on_ready
        self._on_error = on_error
        self.fail_loads = fail_loads
        self.position = position
        self.position_error: Optional[Exception] = None
        self.loads: list[tuple[str, float]] = []
        self.seeks: list[tuple[float, bool]] = []
        self.stop_calls = 0
        self.destroyed = False

    # Test controls
    def signal_ready(self):
        self._on_ready()

    def signal_error(self, error):
        self._on_error(error)

    # Backend capability
    def load(self, cue_id: str, start_offset: float) -> None:
        if self.fail_loads:
            raise BackendLoadFailure(f"cannot load {cue_id}")
        self.loads.append((cue_id, start_offset))
        self.position = start_offset

    def seek(self, offset: float, resume_playback: bool = True) -> None:
        self.seeks.append((offset, resume_playback))
        self.position = offset

    def stop(self) -> None:
        self.stop_calls += 1

    def get_current_position(self) -> float:
        if self.position_error is not None:
            raise self.position_error
        return self.position

    def destroy(self) -> None:
        self.destroyed = True


class FakeBackendFactory:
    """Factory handed to PlayerService; keeps every backend it built."""

    def __init__(self, *, auto_ready: bool = True, **backend_kwargs):
        self.auto_ready = auto_ready
        self.backend_kwargs = backend_kwargs
        self.created: list[FakeVideoBackend] = []

    def __call__(self, on_ready, on_error) -> FakeVideoBackend:
        backend = FakeVideoBackend(on_ready, on_error, **self.backend_kwargs)
        self.created.append(backend)
        if self.auto_ready:
            backend.signal_ready()
        return backend

    @property
    def latest(self) -> Optional[FakeVideoBackend]:
        return self.created[-1] if self.created else None
