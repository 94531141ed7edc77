"""
Visual confirmation for counted repetitions.
Flashes a "+1" badge with the running total, then fades out.
"""

import time
import logging
import cv2
import numpy as np

logger = logging.getLogger(__name__)


class FeedbackManager:
    """Manages the per-rep feedback overlay.

    Subscribe ``on_rep`` to ``Events.REP_COUNTED``.
    """

    def __init__(self, config: dict = None, clock=time.monotonic):
        config = config or {}
        self._clock = clock
        self._active_feedback = None
        self._feedback_duration = config.get("feedback_duration_s", 0.8)
        self._fade_duration = config.get("feedback_fade_s", 0.3)
        self._color = tuple(config.get("feedback_color", [94, 197, 34]))

    def on_rep(self, count=0, goal=0, **_):
        self.trigger(count, goal)

    def trigger(self, count: int, goal: int):
        """Show feedback for rep number ``count``."""
        self._active_feedback = {
            "label": f"{count}/{goal}",
            "start_time": self._clock(),
        }

    def clear(self):
        self._active_feedback = None

    def _opacity(self) -> float:
        elapsed = self._clock() - self._active_feedback["start_time"]
        if elapsed > self._feedback_duration:
            return 0.0
        fade_start = self._feedback_duration - self._fade_duration
        if elapsed > fade_start:
            return 1.0 - (elapsed - fade_start) / self._fade_duration
        return 1.0

    def render(self, frame: np.ndarray) -> np.ndarray:
        """Render rep feedback overlay on frame."""
        if self._active_feedback is None:
            return frame

        opacity = self._opacity()
        if opacity <= 0:
            self._active_feedback = None
            return frame

        h, w = frame.shape[:2]
        box_w, box_h = 220, 90
        x1 = (w - box_w) // 2
        y1 = h // 2 - box_h - 20

        overlay = frame.copy()
        cv2.rectangle(overlay, (x1, y1), (x1 + box_w, y1 + box_h), (40, 40, 40), -1)
        cv2.rectangle(overlay, (x1, y1), (x1 + box_w, y1 + box_h), self._color, 3)
        cv2.addWeighted(overlay, opacity * 0.8, frame, 1 - opacity * 0.8, 0, frame)

        if opacity > 0.3:
            cv2.putText(frame, "+1", (x1 + 20, y1 + 62),
                        cv2.FONT_HERSHEY_SIMPLEX, 1.6, self._color, 4)
            cv2.putText(frame, self._active_feedback["label"], (x1 + 110, y1 + 58),
                        cv2.FONT_HERSHEY_SIMPLEX, 1.0, (255, 255, 255), 2)

        return frame

    @property
    def is_active(self) -> bool:
        if self._active_feedback is None:
            return False
        return self._opacity() > 0
