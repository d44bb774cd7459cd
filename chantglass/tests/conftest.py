"""pytest configuration file."""

import pytest, os, logging, sys

# Qt widgets must never need a display in tests
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from ..puzzle import CueWindow, Pattern, PatternCatalog, PuzzleEventEmitter, Segment

pytest_plugins = [
    "pytest_asyncio",
]

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (may take several seconds)"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "qt: marks tests that create Qt widgets"
    )

@pytest.fixture(autouse=True, scope="session")
def _silence_logs():
    os.environ.pop("CHANTGLASS_LOOP_INTERVAL_MS", None)
    logging.getLogger("chantglass.puzzle.events").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.ERROR)
    yield


def make_pattern(texts=("A", "B", "C"), start=10.0, end=20.0, name="abc") -> Pattern:
    """Pattern whose segments are numbered 1..N in the given order."""
    return Pattern(
        segments=tuple(Segment(i + 1, text) for i, text in enumerate(texts)),
        cue=CueWindow(start, end),
        name=name,
    )


@pytest.fixture
def abc_pattern():
    return make_pattern()


@pytest.fixture
def abc_catalog(abc_pattern):
    return PatternCatalog(
        name="Test",
        patterns=[abc_pattern],
        videos={"success": "success.mp4", "failure": "failure.mp4"},
    )


@pytest.fixture
def emitter():
    return PuzzleEventEmitter()


@pytest.fixture
def recorded(emitter):
    """List of every event emitted on ``emitter``."""
    from ..puzzle import PuzzleEventType
    events = []
    for event_type in PuzzleEventType:
        emitter.subscribe(event_type, events.append)
    return events


@pytest.fixture(scope="session")
def qapp():
    from PyQt6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication(sys.argv)
    yield app
