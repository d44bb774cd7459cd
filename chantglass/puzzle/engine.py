"""
Puzzle Engine - State machine for one word-ordering session.

The PuzzleEngine owns the active session:
- Draws a pattern from the catalog and shuffles its segments into the pool
- Moves segments from the pool to the selection in click order
- Spends hints to highlight the canonically next segment
- Decides the outcome once every segment is selected (final per session)
- Emits events for every state change so cue playback and UI can follow

Architecture:
    UI action → PuzzleEngine method (synchronous, returns bool)
    → state mutation → PuzzleEvent emitted
    → CueSynchronizer reacts to OUTCOME_* / SESSION_RESET

Misuse (picking a segment that is not in the pool, asking for a hint that is
not available, evaluating early) is never an error for the caller: the method
returns False and an ACTION_IGNORED event is emitted.
"""

from __future__ import annotations
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .catalog import PatternCatalog
from .errors import (
    HintUnavailable,
    InvalidSelection,
    PrematureEvaluation,
    PuzzleActionIgnored,
)
from .events import PuzzleEvent, PuzzleEventEmitter, PuzzleEventType
from .pattern import Pattern, Segment


MAX_HINTS = 3


class Outcome(Enum):
    """Verdict of the current session."""
    PLAYING = "playing"  # Not decided yet
    SUCCESS = "success"  # Complete and in canonical order
    FAILURE = "failure"  # Complete but out of order


@dataclass
class PuzzleSession:
    """
    Mutable state of one puzzle attempt.

    Attributes:
        pattern: Pattern being solved (never mutated)
        pool: Segments not yet chosen, in shuffled presentation order
        selected: Segments chosen so far, in click order
        outcome: PLAYING until evaluated, then SUCCESS or FAILURE
        hints_remaining: Hint budget left, 0..MAX_HINTS
        highlighted: Sequence number currently revealed by a hint
        session_id: Monotonic id, distinguishes sessions across resets
    """
    pattern: Pattern
    pool: list[Segment]
    selected: list[Segment] = field(default_factory=list)
    outcome: Outcome = Outcome.PLAYING
    hints_remaining: int = MAX_HINTS
    highlighted: Optional[int] = None
    session_id: int = 0

    @property
    def is_complete(self) -> bool:
        return len(self.selected) == len(self.pattern.segments)

    @property
    def is_decided(self) -> bool:
        return self.outcome is not Outcome.PLAYING

    def pool_index(self, sequence_number: int) -> int:
        """Position of a segment in the pool, -1 if absent."""
        for index, segment in enumerate(self.pool):
            if segment.sequence_number == sequence_number:
                return index
        return -1

    def first_mismatch(self) -> Optional[int]:
        """Index of the first selected segment out of canonical order."""
        for index, (chosen, expected) in enumerate(zip(self.selected, self.pattern.segments)):
            if chosen.sequence_number != expected.sequence_number:
                return index
        return None

    def snapshot(self) -> dict[str, Any]:
        """JSON-compatible view of the session (used by CLI and logging)."""
        return {
            "session_id": self.session_id,
            "pattern": self.pattern.name,
            "pool": [segment.to_dict() for segment in self.pool],
            "selected": [segment.to_dict() for segment in self.selected],
            "outcome": self.outcome.value,
            "hints_remaining": self.hints_remaining,
            "highlighted": self.highlighted,
        }


def shuffle_segments(segments, rng: Optional[random.Random] = None) -> list[Segment]:
    """Return a uniformly random permutation of ``segments``.

    ``random.shuffle`` is an in-place Fisher-Yates shuffle, so every
    permutation is equally likely.
    """
    pool = list(segments)
    (rng or random).shuffle(pool)
    return pool


class PuzzleEngine:
    """
    Session engine for the chant ordering puzzle.

    Usage:
        engine = PuzzleEngine(catalog, event_emitter)
        engine.select_segment(3)
        engine.request_hint()
        if engine.can_evaluate:
            engine.evaluate()
        engine.reset()
    """

    def __init__(
        self,
        catalog: PatternCatalog,
        event_emitter: Optional[PuzzleEventEmitter] = None,
        rng: Optional[random.Random] = None,
        auto_evaluate: bool = False,
        start: bool = True,
    ):
        """
        Initialize the engine.

        Args:
            catalog: Patterns to draw sessions from
            event_emitter: Event bus shared with the cue synchronizer and UI
            rng: Random source (inject a seeded Random for reproducible sessions)
            auto_evaluate: Decide the outcome as soon as the pool empties
            start: Create the first session immediately
        """
        self.catalog = catalog
        self.event_emitter = event_emitter or PuzzleEventEmitter()
        self.auto_evaluate = auto_evaluate
        self.logger = logging.getLogger(__name__)

        self._rng = rng or random.Random()
        self._session: Optional[PuzzleSession] = None
        self._session_counter = 0

        if start:
            self.new_session()

    # ===== Read access =====

    @property
    def session(self) -> PuzzleSession:
        if self._session is None:
            raise RuntimeError("No active session; call new_session() first")
        return self._session

    @property
    def pattern(self) -> Pattern:
        return self.session.pattern

    @property
    def pool(self) -> tuple[Segment, ...]:
        return tuple(self.session.pool)

    @property
    def selected(self) -> tuple[Segment, ...]:
        return tuple(self.session.selected)

    @property
    def outcome(self) -> Outcome:
        return self.session.outcome

    @property
    def hints_remaining(self) -> int:
        return self.session.hints_remaining

    @property
    def highlighted(self) -> Optional[int]:
        return self.session.highlighted

    @property
    def can_evaluate(self) -> bool:
        session = self.session
        return not session.is_decided and session.is_complete

    @property
    def can_request_hint(self) -> bool:
        try:
            self._next_hint_target()
        except HintUnavailable:
            return False
        return True

    # ===== Lifecycle =====

    def new_session(self, catalog: Optional[PatternCatalog] = None) -> PuzzleSession:
        """Discard the current session (if any) and start a fresh one.

        SESSION_RESET is emitted before any new state is built, so listeners
        (the cue synchronizer) tear down playback while the old session is
        still the active one.

        Args:
            catalog: Optionally switch to a different catalog first
        """
        if catalog is not None:
            self.catalog = catalog

        previous = self._session
        if previous is not None:
            self.logger.info(
                f"[puzzle] Resetting session {previous.session_id} "
                f"(outcome={previous.outcome.value})"
            )
            self.event_emitter.emit(PuzzleEvent(
                PuzzleEventType.SESSION_RESET,
                data={"session_id": previous.session_id, "outcome": previous.outcome.value}
            ))

        pattern = self.catalog.pick(self._rng)
        self._session_counter += 1
        self._session = PuzzleSession(
            pattern=pattern,
            pool=shuffle_segments(pattern.segments, self._rng),
            session_id=self._session_counter,
        )

        self.logger.info(
            f"[puzzle] Session {self._session_counter} started: "
            f"pattern='{pattern.name}' segments={len(pattern)}"
        )
        self.event_emitter.emit(PuzzleEvent(
            PuzzleEventType.SESSION_START,
            data={"session_id": self._session_counter, "pattern": pattern.name, "segments": len(pattern)}
        ))
        return self._session

    def reset(self) -> PuzzleSession:
        """Throw away the current attempt and start a new session."""
        return self.new_session()

    # ===== Player actions =====

    def select_segment(self, sequence_number: int) -> bool:
        """Move a segment from the pool to the end of the selection.

        Picking a wrong-but-available segment is legal; the outcome is only
        decided once the pool is empty.

        Returns:
            True if the segment was moved, False if the pick was ignored
        """
        session = self.session
        try:
            if session.is_decided:
                raise InvalidSelection(f"session already {session.outcome.value}")
            index = session.pool_index(sequence_number)
            if index < 0:
                raise InvalidSelection(f"segment {sequence_number} is not in the pool")
        except InvalidSelection as exc:
            self._ignore("select_segment", exc)
            return False

        segment = session.pool.pop(index)
        session.selected.append(segment)
        session.highlighted = None

        self.logger.debug(
            f"[puzzle] Selected segment {sequence_number} "
            f"({len(session.selected)}/{len(session.pattern)})"
        )
        self.event_emitter.emit(PuzzleEvent(
            PuzzleEventType.SEGMENT_SELECTED,
            data={
                "session_id": session.session_id,
                "number": sequence_number,
                "position": len(session.selected) - 1,
                "remaining": len(session.pool),
            }
        ))

        if self.auto_evaluate and not session.pool:
            self.evaluate()
        return True

    def request_hint(self) -> bool:
        """Spend one hint to highlight the canonically next segment.

        Returns:
            True if a hint was spent, False if no hint is available
        """
        session = self.session
        try:
            target = self._next_hint_target()
        except HintUnavailable as exc:
            self._ignore("request_hint", exc)
            return False

        session.hints_remaining -= 1
        session.highlighted = target.sequence_number

        self.logger.debug(
            f"[puzzle] Hint highlights segment {target.sequence_number} "
            f"(hints left={session.hints_remaining})"
        )
        self.event_emitter.emit(PuzzleEvent(
            PuzzleEventType.HINT_USED,
            data={
                "session_id": session.session_id,
                "number": target.sequence_number,
                "pool_index": session.pool_index(target.sequence_number),
                "hints_remaining": session.hints_remaining,
            }
        ))
        return True

    def evaluate(self) -> bool:
        """Decide the outcome of a complete selection.

        The decision is final: a decided session only changes through reset().
        The outcome is stored before the OUTCOME_* event is emitted, so any cue
        load is strictly a consequence of the transition.

        Returns:
            True if an outcome was decided, False if evaluation was ignored
        """
        session = self.session
        try:
            if session.is_decided:
                raise PuzzleActionIgnored(f"session already {session.outcome.value}")
            if not session.is_complete:
                raise PrematureEvaluation(
                    f"{len(session.pool)} segment(s) still in the pool"
                )
        except PuzzleActionIgnored as exc:
            self._ignore("evaluate", exc)
            return False

        mismatch = session.first_mismatch()
        session.outcome = Outcome.SUCCESS if mismatch is None else Outcome.FAILURE
        session.highlighted = None

        data = {
            "session_id": session.session_id,
            "pattern": session.pattern.name,
            "cue": session.pattern.cue,
        }
        if mismatch is None:
            self.logger.info(f"[puzzle] Session {session.session_id} solved")
            self.event_emitter.emit(PuzzleEvent(PuzzleEventType.OUTCOME_SUCCESS, data=data))
        else:
            self.logger.info(
                f"[puzzle] Session {session.session_id} failed "
                f"(first mismatch at position {mismatch})"
            )
            data["mismatch_index"] = mismatch
            self.event_emitter.emit(PuzzleEvent(PuzzleEventType.OUTCOME_FAILURE, data=data))
        return True

    # ===== Internals =====

    def _next_hint_target(self) -> Segment:
        """Segment a hint would reveal, or raise HintUnavailable."""
        session = self.session
        if session.is_decided:
            raise HintUnavailable(f"session already {session.outcome.value}")
        if session.hints_remaining <= 0:
            raise HintUnavailable("no hints remaining")
        if session.highlighted is not None:
            raise HintUnavailable(f"segment {session.highlighted} is already highlighted")
        if session.is_complete:
            raise HintUnavailable("every segment is already selected")

        target = session.pattern.segment_at(len(session.selected))
        if session.pool_index(target.sequence_number) < 0:
            # Canonical next was already picked out of order; nothing to reveal.
            raise HintUnavailable(f"segment {target.sequence_number} was already selected")
        return target

    def _ignore(self, action: str, exc: PuzzleActionIgnored) -> None:
        self.logger.debug(f"[puzzle] {action} ignored: {exc}")
        self.event_emitter.emit(PuzzleEvent(
            PuzzleEventType.ACTION_IGNORED,
            data={"action": action, "reason": exc.reason, "detail": str(exc)}
        ))
