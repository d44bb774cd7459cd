"""
Puzzle Window - Desktop front-end for the chant ordering puzzle.

Provides UI for:
- The chosen segments, in click order
- The sealed (shuffled) pool, with the hinted segment highlighted
- Explosion (evaluate), Hint and Reset controls
- The cue surface: intro text until a cue plays, then the video frames
"""

import logging
from typing import Optional

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QListWidget, QGroupBox, QStackedWidget, QScrollArea,
)

from chantglass.engine.cue_sync import CueSynchronizer
from chantglass.puzzle import MAX_HINTS, Outcome, PuzzleEngine, PuzzleEventType


_POOL_STYLE = "text-align: left; padding: 8px; border: 1px solid #7f1d1d;"
_HIGHLIGHT_STYLE = (
    "text-align: left; padding: 8px; border: 2px solid #facc15;"
    " background-color: #7f1d1d; color: #fef08a;"
)


class PuzzleWindow(QWidget):
    """
    Main window for one puzzle engine.

    The window only reads engine state and calls engine actions; it never
    touches the video backend except to paint frames of the current handle.
    """

    def __init__(self, engine: PuzzleEngine, cue_sync: Optional[CueSynchronizer] = None, parent=None):
        super().__init__(parent)
        self.logger = logging.getLogger(__name__)
        self.engine = engine
        self.cue_sync = cue_sync
        self.pool_buttons: dict[int, QPushButton] = {}

        self.setWindowTitle("ChantGlass")
        self.resize(1100, 720)

        # Frame pump (~60 Hz) for the video surface
        self.frame_timer = QTimer(self)
        self.frame_timer.setInterval(16)
        self.frame_timer.timeout.connect(self._pump_frame)

        self._init_ui()

        for event_type in (
            PuzzleEventType.SESSION_START,
            PuzzleEventType.SEGMENT_SELECTED,
            PuzzleEventType.HINT_USED,
            PuzzleEventType.OUTCOME_SUCCESS,
            PuzzleEventType.OUTCOME_FAILURE,
            PuzzleEventType.CUE_SURFACE_SHOWN,
            PuzzleEventType.CUE_SURFACE_HIDDEN,
        ):
            self.engine.event_emitter.subscribe(event_type, self._on_event)

        self.refresh()

    def _init_ui(self):
        """Initialize the user interface."""
        layout = QHBoxLayout(self)
        layout.setSpacing(16)
        layout.setContentsMargins(12, 12, 12, 12)

        # === LEFT: selection + pool ===
        left = QVBoxLayout()

        selected_group = QGroupBox("Released verses")
        selected_layout = QVBoxLayout(selected_group)
        self.selected_list = QListWidget()
        self.selected_list.setSelectionMode(QListWidget.SelectionMode.NoSelection)
        selected_layout.addWidget(self.selected_list)
        left.addWidget(selected_group, 1)

        pool_group = QGroupBox("Sealed verses")
        pool_outer = QVBoxLayout(pool_group)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        self.pool_container = QWidget()
        self.pool_layout = QVBoxLayout(self.pool_container)
        self.pool_layout.setAlignment(Qt.AlignmentFlag.AlignTop)
        scroll.setWidget(self.pool_container)
        pool_outer.addWidget(scroll)
        left.addWidget(pool_group, 1)

        layout.addLayout(left, 1)

        # === RIGHT: cue surface + controls ===
        right = QVBoxLayout()

        self.surface = QStackedWidget()
        self.surface.setMinimumSize(480, 270)
        self.intro_label = QLabel(
            "Arrange the verses in their true order,\nthen unleash the explosion."
        )
        self.intro_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.video_label = QLabel()
        self.video_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.video_label.setStyleSheet("background-color: black;")
        self.surface.addWidget(self.intro_label)
        self.surface.addWidget(self.video_label)
        right.addWidget(self.surface, 1)

        self.outcome_label = QLabel("")
        self.outcome_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.outcome_label.setStyleSheet("font-size: 18px; font-weight: bold; color: #ef4444;")
        right.addWidget(self.outcome_label)

        status_row = QHBoxLayout()
        self.hint_label = QLabel("")
        self.hint_pending_label = QLabel("")
        status_row.addWidget(self.hint_label)
        status_row.addStretch(1)
        status_row.addWidget(self.hint_pending_label)
        right.addLayout(status_row)

        controls = QHBoxLayout()
        self.btn_evaluate = QPushButton("Explosion!")
        self.btn_evaluate.clicked.connect(self.engine.evaluate)
        self.btn_hint = QPushButton("Revelation")
        self.btn_hint.clicked.connect(self.engine.request_hint)
        self.btn_reset = QPushButton("Reincarnate")
        self.btn_reset.clicked.connect(self.engine.reset)
        controls.addWidget(self.btn_evaluate, 1)
        controls.addWidget(self.btn_hint)
        controls.addWidget(self.btn_reset)
        right.addLayout(controls)

        layout.addLayout(right, 1)

    # ===== Refresh =====

    def _on_event(self, event):
        self.refresh()

    def refresh(self):
        """Rebuild every widget from the engine's current state."""
        engine = self.engine

        self.selected_list.clear()
        for segment in engine.selected:
            self.selected_list.addItem(segment.text)

        self._rebuild_pool()

        self.hint_label.setText(f"Oracle drops: {engine.hints_remaining}/{MAX_HINTS}")
        self.hint_pending_label.setText(
            "A revelation has arrived..." if engine.highlighted is not None else ""
        )
        self.outcome_label.setText(
            "The chant failed! The mana ran wild!" if engine.outcome is Outcome.FAILURE else ""
        )

        self.btn_evaluate.setEnabled(engine.can_evaluate)
        self.btn_hint.setEnabled(engine.can_request_hint)

        visible = bool(self.cue_sync and self.cue_sync.surface_visible)
        self.surface.setCurrentWidget(self.video_label if visible else self.intro_label)
        if visible and not self.frame_timer.isActive():
            self.frame_timer.start()
        elif not visible and self.frame_timer.isActive():
            self.frame_timer.stop()
            self.video_label.clear()

    def _rebuild_pool(self):
        while self.pool_layout.count():
            item = self.pool_layout.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.deleteLater()
        self.pool_buttons.clear()

        playing = self.engine.outcome is Outcome.PLAYING
        for segment in self.engine.pool:
            button = QPushButton(segment.text)
            highlighted = segment.sequence_number == self.engine.highlighted
            button.setStyleSheet(_HIGHLIGHT_STYLE if highlighted else _POOL_STYLE)
            button.setEnabled(playing)
            button.clicked.connect(
                lambda _checked=False, number=segment.sequence_number: self.engine.select_segment(number)
            )
            self.pool_layout.addWidget(button)
            self.pool_buttons[segment.sequence_number] = button

    # ===== Video =====

    def _pump_frame(self):
        if self.cue_sync is None:
            return
        backend = self.cue_sync.player.handle
        if backend is None or not hasattr(backend, "pump"):
            return
        backend.pump()
        pixmap = backend.frame_pixmap(self.video_label.size())
        if pixmap is not None:
            self.video_label.setPixmap(pixmap)

    def closeEvent(self, event):
        self.frame_timer.stop()
        if self.cue_sync is not None:
            self.cue_sync.shutdown()
        super().closeEvent(event)
