"""
One exercise session: the sole owner and writer of a GestureState.

The session wraps the pure counter with the bits of lifecycle the
counter deliberately knows nothing about: a clock, the instructions
pause, hand presence tracking, analytics and event publishing.

There is no reset. Starting over means building a new session.
"""

import time
import logging
from dataclasses import replace
from typing import Callable, Optional

from core.types import ExerciseType, GestureState, CounterResult
from core.events import EventBus, Events
from modules.recognition.rep_counter import GestureCounter, create_counter
from modules.intelligence.analytics import SessionAnalytics

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Default session clock in milliseconds."""
    return time.monotonic() * 1000


def _has_hand(landmarks) -> bool:
    try:
        return landmarks is not None and len(landmarks) > 0
    except TypeError:
        return False


class ExerciseSession:
    """Runs one exercise from zero reps to the goal."""

    def __init__(
        self,
        exercise,
        config: dict = None,
        counter: Optional[GestureCounter] = None,
        clock: Callable[[], float] = monotonic_ms,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Args:
            exercise: ExerciseType or exercise name
            config: ``exercise`` config section (goal, cooldown, thresholds)
            counter: prebuilt counter, overrides ``config``
            clock: monotonic millisecond clock used when process() gets no time
            event_bus: bus to publish on (defaults to the application bus)
        """
        if not isinstance(exercise, ExerciseType):
            exercise = ExerciseType.from_string(exercise)
        self._exercise = exercise
        self._counter = counter or create_counter(exercise, config)
        self._clock = clock
        self._bus = event_bus or EventBus()

        self._state = GestureState()
        self._paused = False
        self._hand_visible = False
        self._last_result: Optional[CounterResult] = None
        self._started_ms = clock()
        self._completed_ms: Optional[float] = None
        self._analytics = SessionAnalytics(clock=lambda: self._clock() / 1000)

        logger.info("Session started: %s (goal=%d, cooldown=%.0fms)",
                    exercise.value, self._counter.goal, self._counter.cooldown_ms)
        self._bus.emit(Events.SESSION_STARTED, exercise=exercise.value,
                       goal=self._counter.goal)

    # =========================================================================
    # Per-frame update
    # =========================================================================

    def process(self, landmarks, now_ms: Optional[float] = None) -> GestureState:
        """Feed one frame's landmarks (or None) into the session.

        Returns:
            The session's GestureState after this frame
        """
        if self._paused:
            return self._state

        if now_ms is None:
            now_ms = self._clock()

        self._track_presence(landmarks)

        previous = self._state
        result = self._counter.evaluate(previous, landmarks, now_ms)
        self._state = result.state
        self._last_result = result

        self._analytics.record_frame(_has_hand(landmarks), usable=not result.skipped)

        if result.rep_counted:
            self._analytics.record_rep(now_ms)
            logger.info("%s: rep %d/%d", self._exercise.display_name,
                        self._state.count, self.goal)
            self._bus.emit(Events.REP_COUNTED, exercise=self._exercise.value,
                           count=self._state.count, goal=self.goal)

        if self._state.complete and not previous.complete:
            self._completed_ms = now_ms
            logger.info("%s complete in %.1fs", self._exercise.display_name,
                        (now_ms - self._started_ms) / 1000)
            self._bus.emit(Events.SESSION_COMPLETE, exercise=self._exercise.value,
                           count=self._state.count, summary=self.summary())

        return self._state

    def _track_presence(self, landmarks):
        visible = _has_hand(landmarks)
        if visible != self._hand_visible:
            self._hand_visible = visible
            self._bus.emit(Events.HAND_DETECTED if visible else Events.HAND_LOST,
                           exercise=self._exercise.value)

    # =========================================================================
    # Instructions pause
    # =========================================================================

    def pause(self):
        """Stop counting while the instructions are shown."""
        if self._paused or self._state.complete:
            return
        self._paused = True
        self._hand_visible = False
        logger.info("Session paused at %d/%d", self._state.count, self.goal)
        self._bus.emit(Events.SESSION_PAUSED, exercise=self._exercise.value,
                       count=self._state.count)

    def resume(self):
        """Resume counting after the instructions.

        The open-hand latch is cleared so a fist needs a fresh open palm
        first; the cooldown carries over.
        """
        if not self._paused:
            return
        self._paused = False
        if self._state.previously_open:
            self._state = replace(self._state, previously_open=False)
        logger.info("Session resumed")
        self._bus.emit(Events.SESSION_RESUMED, exercise=self._exercise.value,
                       count=self._state.count)

    def abandon(self):
        """Announce the session is being dropped before completion."""
        if not self._state.complete:
            logger.info("Session abandoned at %d/%d", self._state.count, self.goal)
            self._bus.emit(Events.SESSION_ABANDONED, exercise=self._exercise.value,
                           count=self._state.count)

    # =========================================================================
    # Read-only view
    # =========================================================================

    @property
    def exercise(self) -> ExerciseType:
        return self._exercise

    @property
    def counter(self) -> GestureCounter:
        return self._counter

    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def count(self) -> int:
        return self._state.count

    @property
    def goal(self) -> int:
        return self._counter.goal

    @property
    def remaining(self) -> int:
        return self.goal - self._state.count

    @property
    def complete(self) -> bool:
        return self._state.complete

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def hand_visible(self) -> bool:
        return self._hand_visible

    @property
    def last_metric(self) -> Optional[float]:
        """Distance measured on the latest evaluated frame."""
        if self._last_result is None:
            return None
        return self._last_result.metric

    @property
    def progress(self) -> float:
        """Fraction of the goal reached, 0.0 to 1.0."""
        return self._state.count / self.goal

    @property
    def progress_percent(self) -> float:
        return self.progress * 100

    @property
    def analytics(self) -> SessionAnalytics:
        return self._analytics

    def summary(self) -> dict:
        """Session outcome plus analytics, for logging and the final screen."""
        end_ms = self._completed_ms if self._completed_ms is not None else self._clock()
        summary = {
            "exercise": self._exercise.value,
            "exercise_name": self._exercise.display_name,
            "reps": self._state.count,
            "goal": self.goal,
            "complete": self._state.complete,
            "elapsed_s": round((end_ms - self._started_ms) / 1000, 1),
        }
        summary.update(self._analytics.get_summary())
        return summary

    def __repr__(self):
        return (f"ExerciseSession({self._exercise.value}, "
                f"{self._state.count}/{self.goal}, complete={self._state.complete})")
