"""
Shared domain types for the Dexterity Dash exercise tracker.

Centralizes enums and state containers used across modules
to eliminate circular imports and ensure type consistency.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Exercise Types
# =============================================================================

class ExerciseType(Enum):
    """Supported rehabilitation exercises."""
    THUMB_TAP = "thumb_tap"
    FIST = "fist"

    @classmethod
    def from_string(cls, name: str) -> 'ExerciseType':
        """Convert an exercise name (or a known alias) to ExerciseType.

        Raises:
            ValueError: if the name is not a known exercise
        """
        key = (name or "").strip().lower().replace("-", "_")
        key = _EXERCISE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(
                f"Unknown exercise '{name}' "
                f"(expected one of: {', '.join(e.value for e in cls)})"
            ) from None

    @property
    def display_name(self) -> str:
        return _EXERCISE_DISPLAY[self]["title"]

    @property
    def instructions(self) -> str:
        return _EXERCISE_DISPLAY[self]["instructions"]

    @property
    def rep_noun(self) -> str:
        return _EXERCISE_DISPLAY[self]["noun"]


_EXERCISE_ALIASES = {
    "thumbtapping": "thumb_tap",
    "thumb_tapping": "thumb_tap",
    "tap": "thumb_tap",
    "fistmaking": "fist",
    "fist_making": "fist",
}

_EXERCISE_DISPLAY = {
    ExerciseType.THUMB_TAP: {
        "title": "Thumb Tapping",
        "instructions": "Touch your thumb to your index finger.",
        "noun": "taps",
    },
    ExerciseType.FIST: {
        "title": "Fist Making",
        "instructions": "Start with an open palm, then make a fist.",
        "noun": "fists",
    },
}


# =============================================================================
# Counting State
# =============================================================================

@dataclass(frozen=True)
class GestureState:
    """Per-session counting state.

    Immutable: every per-frame evaluation returns a new instance, so a
    session can be replayed deterministically from recorded frames.
    """
    count: int = 0
    complete: bool = False
    previously_open: bool = False       # fist latch: last seen hand was open
    last_rep_ms: Optional[float] = None  # None until the first accepted rep


@dataclass(frozen=True)
class CounterResult:
    """Detailed outcome of evaluating one frame."""
    state: GestureState
    metric: Optional[float] = None  # distance the predicate was computed on
    engaged: bool = False           # predicate true for this frame
    rep_counted: bool = False

    @property
    def skipped(self) -> bool:
        """Frame carried no usable landmarks (or detection is frozen)."""
        return self.metric is None
