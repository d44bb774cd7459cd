"""Video backend capability consumed by cue playback.

Any object with this shape can drive the cue surface: the OpenCV backend in
:mod:`chantglass.engine.video` for the desktop app, or a scripted fake in
tests. Backends are created through a factory so the PlayerService can
recreate a fresh handle whenever the surface is shown again.
"""

from __future__ import annotations

from typing import Callable, Protocol


ReadyCallback = Callable[[], None]
ErrorCallback = Callable[[object], None]


class VideoBackend(Protocol):
    """Playback handle for one video surface.

    ``load`` raises :class:`~chantglass.puzzle.errors.BackendLoadFailure` when
    the cue cannot be played. Errors that happen later are reported through
    the error callback handed to the factory.
    """

    def load(self, cue_id: str, start_offset: float) -> None: ...

    def seek(self, offset: float, resume_playback: bool = True) -> None: ...

    def stop(self) -> None: ...

    def get_current_position(self) -> float: ...

    def destroy(self) -> None: ...


class BackendFactory(Protocol):
    """Builds a backend and wires its readiness and error signals.

    ``on_ready`` must be called once, asynchronously, when the backend can
    accept ``load`` requests.
    """

    def __call__(self, on_ready: ReadyCallback, on_error: ErrorCallback) -> VideoBackend: ...


__all__ = ["VideoBackend", "BackendFactory", "ReadyCallback", "ErrorCallback"]
