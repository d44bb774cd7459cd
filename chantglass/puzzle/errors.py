"""Error taxonomy for the puzzle engine and cue playback.

None of these are fatal. User-facing misuse (``InvalidSelection``,
``HintUnavailable``, ``PrematureEvaluation``) is raised by internal guards and
turned into a ``False`` return by the public engine API. Backend conditions are
handled inside the cue synchronizer.
"""

from __future__ import annotations


class ChantGlassError(Exception):
    """Base class for all ChantGlass errors."""


class PuzzleActionIgnored(ChantGlassError):
    """A user action that is a defined no-op in the current session state."""

    reason = "ignored"


class InvalidSelection(PuzzleActionIgnored):
    """Segment is not in the pool, or the session is already decided."""

    reason = "invalid_selection"


class HintUnavailable(PuzzleActionIgnored):
    """Hint budget exhausted, a hint is already pending, or session decided."""

    reason = "hint_unavailable"


class PrematureEvaluation(PuzzleActionIgnored):
    """Evaluation requested while segments remain in the pool."""

    reason = "premature_evaluation"


class BackendError(ChantGlassError):
    """Base class for video backend conditions."""


class BackendNotReady(BackendError):
    """The backend has not signalled readiness yet (transient)."""


class BackendLoadFailure(BackendError):
    """The backend could not load a cue; the cue simply does not play."""
