"""
Repetition counting for the rehabilitation exercises.

Each counter is a pure per-frame update:
    (GestureState, landmarks, now_ms) -> GestureState

Two variants share the cooldown and goal handling and differ only in
the geometric predicate and the latch:
    - ThumbTapCounter: thumb tip close to index tip. No latch, so a held
      pinch re-triggers once per cooldown window.
    - FistCounter: mean fingertip-to-palm distance below threshold.
      Edge-triggered: the hand must be seen open before each fist counts.

Per-frame detection noise (no hand, partial or non-finite landmarks)
never raises; the frame is skipped and the state returned unchanged.
"""

import logging
from dataclasses import replace
from typing import Optional

from core.types import ExerciseType, GestureState, CounterResult
from modules.detection.landmark_extractor import (
    to_points, thumb_index_distance, fingertip_palm_distance,
    THUMB_TIP, INDEX_TIP, PALM_BASE, CLOSING_FINGER_TIPS,
)

logger = logging.getLogger(__name__)

DEFAULT_GOAL = 5
DEFAULT_COOLDOWN_MS = 1000
DEFAULT_TAP_THRESHOLD = 0.05
DEFAULT_FIST_THRESHOLD = 0.15


def _setting(config: dict, key: str, default, cast):
    """Read one numeric setting; a null value means the default.

    Raises:
        ValueError: if the value is not a number
    """
    value = config.get(key)
    if value is None:
        return cast(default)
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number, got {value!r}") from None


class GestureCounter:
    """Base counter: cooldown, goal clamp and frame validation.

    Subclasses implement ``_measure`` (the distance the predicate uses)
    and ``_step`` (the latch/predicate logic for one valid frame).
    """

    exercise = None
    required_indices = ()
    default_threshold = 0.0

    def __init__(self, config: dict = None):
        config = config or {}
        self._goal = _setting(config, "goal", DEFAULT_GOAL, int)
        self._cooldown_ms = _setting(config, "cooldown_ms", DEFAULT_COOLDOWN_MS, float)
        self._threshold = _setting(config, "threshold", self.default_threshold, float)

        if self._goal < 1:
            raise ValueError(f"goal must be >= 1, got {self._goal}")
        if self._cooldown_ms < 0:
            raise ValueError(f"cooldown_ms must be >= 0, got {self._cooldown_ms}")
        if self._threshold <= 0:
            raise ValueError(f"threshold must be > 0, got {self._threshold}")

        self._min_points = max(self.required_indices, default=0) + 1

    @property
    def goal(self) -> int:
        return self._goal

    @property
    def cooldown_ms(self) -> float:
        return self._cooldown_ms

    @property
    def threshold(self) -> float:
        return self._threshold

    def update(self, state: GestureState, landmarks, now_ms: float) -> GestureState:
        """Advance the counting state by one frame."""
        return self.evaluate(state, landmarks, now_ms).state

    def evaluate(self, state: GestureState, landmarks, now_ms: float) -> CounterResult:
        """Advance by one frame and report the measured distance too."""
        if state.complete:
            return CounterResult(state=state)

        points = to_points(landmarks, self._min_points)
        if points is None:
            return CounterResult(state=state)

        metric = self._measure(points)
        return self._step(state, metric, now_ms)

    def measure(self, landmarks) -> Optional[float]:
        """Predicate distance for a landmark set, None if unusable."""
        points = to_points(landmarks, self._min_points)
        if points is None:
            return None
        return self._measure(points)

    def _cooled_down(self, state: GestureState, now_ms: float) -> bool:
        if state.last_rep_ms is None:
            return True
        return now_ms - state.last_rep_ms >= self._cooldown_ms

    def _accept(self, state: GestureState, now_ms: float, **changes) -> GestureState:
        count = min(state.count + 1, self._goal)
        complete = count >= self._goal
        logger.debug("%s rep %d/%d accepted at %.0fms",
                     self.exercise.value, count, self._goal, now_ms)
        return replace(state, count=count, complete=complete,
                       last_rep_ms=now_ms, **changes)

    def _measure(self, points) -> float:
        raise NotImplementedError

    def _step(self, state: GestureState, metric: float, now_ms: float) -> CounterResult:
        raise NotImplementedError

    def __repr__(self):
        return (f"{type(self).__name__}(goal={self._goal}, "
                f"cooldown_ms={self._cooldown_ms:.0f}, threshold={self._threshold})")


class ThumbTapCounter(GestureCounter):
    """Counts thumb-to-index taps, rate limited by the cooldown only."""

    exercise = ExerciseType.THUMB_TAP
    required_indices = (THUMB_TIP, INDEX_TIP)
    default_threshold = DEFAULT_TAP_THRESHOLD

    def _measure(self, points) -> float:
        return thumb_index_distance(points)

    def _step(self, state, metric, now_ms):
        engaged = metric < self._threshold
        if engaged and self._cooled_down(state, now_ms):
            return CounterResult(state=self._accept(state, now_ms), metric=metric,
                                 engaged=True, rep_counted=True)
        return CounterResult(state=state, metric=metric, engaged=engaged)


class FistCounter(GestureCounter):
    """Counts open-palm to fist transitions."""

    exercise = ExerciseType.FIST
    required_indices = (PALM_BASE, *CLOSING_FINGER_TIPS)
    default_threshold = DEFAULT_FIST_THRESHOLD

    def _measure(self, points) -> float:
        return fingertip_palm_distance(points)

    def _step(self, state, metric, now_ms):
        closed = metric < self._threshold
        if not closed:
            if not state.previously_open:
                state = replace(state, previously_open=True)
            return CounterResult(state=state, metric=metric, engaged=False)

        # A closed frame blocked by the cooldown keeps the latch armed
        if state.previously_open and self._cooled_down(state, now_ms):
            new_state = self._accept(state, now_ms, previously_open=False)
            return CounterResult(state=new_state, metric=metric,
                                 engaged=True, rep_counted=True)
        return CounterResult(state=state, metric=metric, engaged=True)


_COUNTERS = {
    ExerciseType.THUMB_TAP: ThumbTapCounter,
    ExerciseType.FIST: FistCounter,
}


def create_counter(exercise, config: dict = None) -> GestureCounter:
    """Build the counter for an exercise.

    Args:
        exercise: ExerciseType or exercise name
        config: ``exercise`` config section. ``goal`` and ``cooldown_ms``
                apply to every variant; per-variant overrides live under
                the exercise name, e.g. ``{"fist": {"threshold": 0.12}}``.
    """
    if not isinstance(exercise, ExerciseType):
        exercise = ExerciseType.from_string(exercise)
    config = config or {}

    counter_cfg = {k: v for k, v in config.items() if not isinstance(v, dict)}
    counter_cfg.update(config.get(exercise.value, {}) or {})
    return _COUNTERS[exercise](counter_cfg)
