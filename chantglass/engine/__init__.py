"""Engine module for ChantGlass: video backends and cue playback."""

from .video_backend import VideoBackend, BackendFactory
from .retry import RetryPolicy, SUCCESS_RETRY, FAILURE_RETRY
from .player_service import PlayerService
from .cue_sync import CueSynchronizer, CueState, DEFAULT_LOOP_INTERVAL_S

# OpenCV/Qt backend is optional for headless use (CLI session command, tests)
try:
    from .video import VideoStream, OpenCVVideoBackend, opencv_backend_factory
    OPENCV_BACKEND_AVAILABLE = True
except ImportError:
    OPENCV_BACKEND_AVAILABLE = False
    VideoStream = None
    OpenCVVideoBackend = None
    opencv_backend_factory = None

__all__ = [
    'VideoBackend', 'BackendFactory',
    'RetryPolicy', 'SUCCESS_RETRY', 'FAILURE_RETRY',
    'PlayerService',
    'CueSynchronizer', 'CueState', 'DEFAULT_LOOP_INTERVAL_S',
    'VideoStream', 'OpenCVVideoBackend', 'opencv_backend_factory',
    'OPENCV_BACKEND_AVAILABLE',
]
