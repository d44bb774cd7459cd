"""
Puzzle System for ChantGlass.

This package implements the chant ordering puzzle: a phrase is split into
numbered segments, presented shuffled, and the player rebuilds the canonical
order with the help of a small hint budget.

Core Components:
- Segment / CueWindow / Pattern: immutable puzzle definitions
- PatternCatalog: JSON-backed collection of patterns and cue videos
- PuzzleEngine: session state machine (pool, selection, hints, outcome)
- PuzzleEventEmitter: event bus connecting the engine, cue playback and UI
"""

from .pattern import (
    Segment,
    CueWindow,
    Pattern,
)

from .catalog import (
    PatternCatalog,
    SUCCESS_CUE,
    FAILURE_CUE,
    DEFAULT_CATALOG_PATH,
    load_default_catalog,
)

from .events import (
    PuzzleEventType,
    PuzzleEvent,
    PuzzleEventEmitter,
)

from .errors import (
    ChantGlassError,
    PuzzleActionIgnored,
    InvalidSelection,
    HintUnavailable,
    PrematureEvaluation,
    BackendError,
    BackendNotReady,
    BackendLoadFailure,
)

from .engine import (
    MAX_HINTS,
    Outcome,
    PuzzleSession,
    PuzzleEngine,
    shuffle_segments,
)

__all__ = [
    # Definitions
    'Segment',
    'CueWindow',
    'Pattern',

    # Catalog
    'PatternCatalog',
    'SUCCESS_CUE',
    'FAILURE_CUE',
    'DEFAULT_CATALOG_PATH',
    'load_default_catalog',

    # Event system
    'PuzzleEventType',
    'PuzzleEvent',
    'PuzzleEventEmitter',

    # Errors
    'ChantGlassError',
    'PuzzleActionIgnored',
    'InvalidSelection',
    'HintUnavailable',
    'PrematureEvaluation',
    'BackendError',
    'BackendNotReady',
    'BackendLoadFailure',

    # Engine
    'MAX_HINTS',
    'Outcome',
    'PuzzleSession',
    'PuzzleEngine',
    'shuffle_segments',
]
