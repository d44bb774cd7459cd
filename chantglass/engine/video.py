"""OpenCV video playback for cue surfaces.

VideoStream decodes one file and hands frames to Qt as pixmaps. Reaching the
end of the file pauses on the last frame; looping is the cue synchronizer's job.
OpenCVVideoBackend adapts a stream to the VideoBackend protocol.
"""

import asyncio
import functools
import logging
import math
import threading
import time
from pathlib import Path
from typing import Mapping, Optional

import cv2
from PyQt6.QtCore import QSize, Qt
from PyQt6.QtGui import QImage, QPixmap

from ..puzzle.errors import BackendLoadFailure
from .video_backend import ErrorCallback, ReadyCallback


class VideoStream:
    def __init__(self, path: Optional[str] = None):
        self.cap = None
        self.path = None
        self.fps = 30.0
        self.frame_interval = 1.0 / self.fps
        self.last_ts = 0.0
        self.paused = False
        self.ended = False
        self.lock = threading.Lock()
        self.frame_rgb = None
        if path:
            self.open(path)

    def open(self, path: str):
        self.close()
        self.cap = cv2.VideoCapture(path)
        if not self.cap or not self.cap.isOpened():
            logging.getLogger(__name__).error("video failed to open: %s", path)
            self.cap = None
            return
        self.path = path
        fps = self.cap.get(cv2.CAP_PROP_FPS)
        # Handle cases where fps may be a mock or non-numeric; fall back to 30.0
        try:
            fps_val = float(fps)
        except Exception:
            fps_val = 0.0
        self.fps = fps_val if fps_val and fps_val > 0 else 30.0
        self.frame_interval = 1.0 / self.fps
        self.last_ts = 0.0
        self.paused = False
        self.ended = False
        logging.getLogger(__name__).info("video opened %s @ %.2f fps", path, self.fps)

    def close(self):
        if self.cap: self.cap.release(); self.cap = None
        with self.lock: self.frame_rgb = None

    def seek(self, seconds: float):
        if not self.cap: return
        self.cap.set(cv2.CAP_PROP_POS_MSEC, max(0.0, float(seconds)) * 1000.0)
        self.last_ts = 0.0
        self.ended = False

    def position(self) -> float:
        """Playback position in seconds (0.0 when nothing is open)."""
        if not self.cap: return 0.0
        try:
            return float(self.cap.get(cv2.CAP_PROP_POS_MSEC)) / 1000.0
        except Exception:
            return 0.0

    def read_next_if_due(self):
        if not self.cap or self.paused: return
        now = time.time()
        if now - self.last_ts < self.frame_interval: return
        self.last_ts = now
        ret, frame = self.cap.read()
        if not ret:
            # End of file: hold the last frame until someone seeks
            self.paused = True
            self.ended = True
            return
        frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        with self.lock: self.frame_rgb = frame

    def get_qpixmap(self, target_size: QSize):
        with self.lock:
            fr = None if self.frame_rgb is None else self.frame_rgb.copy()
        if fr is None: return None
        h, w, ch = fr.shape
        qimg = QImage(fr.data, w, h, w * ch, QImage.Format.Format_RGB888)
        pix = QPixmap.fromImage(qimg)
        if pix.isNull(): return None
        if target_size.isValid():
            pix = pix.scaled(target_size, Qt.AspectRatioMode.KeepAspectRatio, Qt.TransformationMode.SmoothTransformation)
        return pix


class OpenCVVideoBackend:
    """Video backend playing local files through :class:`VideoStream`.

    Cue ids map to files via ``sources``. Frames only advance while the UI
    pumps :meth:`pump` (the puzzle window drives it from a QTimer).
    """

    def __init__(self, sources: Mapping[str, Path], on_ready: ReadyCallback, on_error: ErrorCallback):
        self.sources = {cue_id: Path(path) for cue_id, path in sources.items()}
        self.stream = VideoStream()
        self.cue_id: Optional[str] = None
        self._on_error = on_error
        self._destroyed = False
        self.logger = logging.getLogger(__name__)
        # Ready is always signalled from the loop, never from inside the constructor.
        try:
            asyncio.get_running_loop().call_soon(self._signal_ready, on_ready)
        except RuntimeError:
            self.logger.debug("no running loop; signalling ready immediately")
            on_ready()

    def _signal_ready(self, on_ready: ReadyCallback):
        if not self._destroyed:
            on_ready()

    def load(self, cue_id: str, start_offset: float) -> None:
        if self._destroyed:
            raise BackendLoadFailure("backend was destroyed")
        path = self.sources.get(cue_id)
        if path is None:
            self._on_error(f"unknown cue '{cue_id}'")
            raise BackendLoadFailure(f"no video source for cue '{cue_id}'")
        if not path.exists():
            self._on_error(f"missing video file {path}")
            raise BackendLoadFailure(f"video file not found: {path}")
        self.stream.open(str(path))
        if self.stream.cap is None:
            self._on_error(f"cannot decode {path}")
            raise BackendLoadFailure(f"OpenCV could not open {path}")
        self.cue_id = cue_id
        self.stream.seek(start_offset)

    def seek(self, offset: float, resume_playback: bool = True) -> None:
        self.stream.seek(offset)
        if resume_playback:
            self.stream.paused = False

    def stop(self) -> None:
        self.stream.paused = True

    def get_current_position(self) -> float:
        # A finished stream has passed every end offset, even one beyond the file
        if self.stream.ended:
            return math.inf
        return self.stream.position()

    def destroy(self) -> None:
        self._destroyed = True
        self.stream.close()
        self.cue_id = None

    def pump(self) -> None:
        """Advance one frame if due (call from the UI frame timer)."""
        if not self._destroyed:
            self.stream.read_next_if_due()

    def frame_pixmap(self, target_size: QSize):
        return self.stream.get_qpixmap(target_size)


def opencv_backend_factory(sources: Mapping[str, Path]):
    """Factory for :class:`~chantglass.engine.player_service.PlayerService`."""
    return functools.partial(OpenCVVideoBackend, dict(sources))
