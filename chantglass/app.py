import sys, threading, traceback, os
import asyncio
import logging, faulthandler
from pathlib import Path

import qasync
from PyQt6.QtWidgets import QApplication

from . import __app_name__, __version__
from .logging_utils import setup_logging
from .puzzle import PatternCatalog, PuzzleEngine, SUCCESS_CUE, FAILURE_CUE, load_default_catalog
from .engine import PlayerService, CueSynchronizer, opencv_backend_factory
from .ui.puzzle_window import PuzzleWindow

_DIAG_INSTALLED = False


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "0") in ("1", "true", "True", "yes")


def _install_diagnostics():
    global _DIAG_INSTALLED
    if _DIAG_INSTALLED:
        return
    _DIAG_INSTALLED = True
    log = logging.getLogger("diag")
    # Faulthandler for native crash backtraces (Qt/OpenCV)
    try:
        faulthandler.enable(all_threads=True)
    except (RuntimeError, ValueError) as exc:
        log.debug("DIAG faulthandler unavailable: %s", exc)
    def _excepthook(t, v, tb):
        log.error("UNCAUGHT %s: %s", t.__name__, v)
        for line in traceback.format_tb(tb):
            log.error(line.rstrip())
    sys.excepthook = _excepthook
    if hasattr(threading, 'excepthook'):
        def _thread_excepthook(args):
            log.error("THREAD EXC in %s: %s", getattr(args, 'thread', None), args.exc_value)
            for line in traceback.format_tb(args.exc_traceback):
                log.error(line.rstrip())
        threading.excepthook = _thread_excepthook  # type: ignore[attr-defined]


def load_catalog_from_env() -> PatternCatalog:
    """Catalog named by CHANTGLASS_CATALOG, else the bundled one."""
    path = os.environ.get("CHANTGLASS_CATALOG", "").strip()
    if path:
        return PatternCatalog.load(Path(path))
    return load_default_catalog()


def build_components(catalog: PatternCatalog, *, auto_evaluate: bool = False):
    """Wire engine, player service and cue synchronizer for one window."""
    sources = {}
    for cue_id in (SUCCESS_CUE, FAILURE_CUE):
        path = catalog.resolve_video(cue_id)
        if path is not None:
            sources[cue_id] = path
    engine = PuzzleEngine(catalog, auto_evaluate=auto_evaluate)
    player = PlayerService(opencv_backend_factory(sources))
    cue_sync = CueSynchronizer(player, engine.event_emitter)
    return engine, cue_sync


def run() -> int:
    # Ensure logging is configured when launching GUI directly
    log_mode_env = os.environ.get("CHANTGLASS_LOG_MODE")
    log_level = "DEBUG" if _env_flag("CHANTGLASS_DEBUG") else "WARNING"
    if not logging.getLogger().handlers:
        setup_logging(level=log_level, add_console=True, log_mode=log_mode_env)
    _install_diagnostics()
    log = logging.getLogger(__name__)

    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName(__app_name__)
    app.setApplicationVersion(__version__)

    # Setup qasync event loop so cue retries and loop guard run beside Qt
    loop = qasync.QEventLoop(app)
    asyncio.set_event_loop(loop)

    catalog = load_catalog_from_env()
    log.info("Loaded catalog '%s' with %d pattern(s)", catalog.name, len(catalog))
    engine, cue_sync = build_components(catalog, auto_evaluate=_env_flag("CHANTGLASS_AUTO_EVALUATE"))

    win = PuzzleWindow(engine, cue_sync)
    app.aboutToQuit.connect(cue_sync.shutdown)
    win.show()

    with loop:
        loop.run_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
