"""
Per-session exercise analytics.
Tracks hand visibility, rep timing and pacing for the session summary.
"""

import time
import logging

logger = logging.getLogger(__name__)


class SessionAnalytics:
    """Collects frame and repetition statistics for one exercise session."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._session_start = clock()
        self._rep_times_ms = []
        self._total_frames = 0
        self._detection_frames = 0
        self._skipped_frames = 0

    def record_frame(self, hand_detected: bool, usable: bool = True):
        """Record a processed frame.

        Args:
            hand_detected: detector returned a hand
            usable: the landmark set was complete enough to evaluate
        """
        self._total_frames += 1
        if hand_detected:
            self._detection_frames += 1
            if not usable:
                self._skipped_frames += 1

    def record_rep(self, now_ms: float):
        """Record an accepted repetition."""
        self._rep_times_ms.append(now_ms)

    @property
    def session_duration(self) -> float:
        return self._clock() - self._session_start

    @property
    def detection_rate(self) -> float:
        """Percentage of frames with hand detection."""
        if self._total_frames == 0:
            return 0.0
        return self._detection_frames / self._total_frames * 100

    @property
    def rep_intervals_ms(self) -> list:
        times = self._rep_times_ms
        return [b - a for a, b in zip(times, times[1:])]

    @property
    def mean_rep_interval_ms(self) -> float:
        intervals = self.rep_intervals_ms
        if not intervals:
            return 0.0
        return sum(intervals) / len(intervals)

    def get_summary(self) -> dict:
        """Generate the session analytics summary."""
        duration = self.session_duration
        reps = len(self._rep_times_ms)
        return {
            "session_duration_s": round(duration, 1),
            "total_frames": self._total_frames,
            "detection_frames": self._detection_frames,
            "skipped_frames": self._skipped_frames,
            "detection_rate_pct": round(self.detection_rate, 1),
            "reps": reps,
            "rep_times_ms": list(self._rep_times_ms),
            "mean_rep_interval_s": round(self.mean_rep_interval_ms / 1000, 2),
            "reps_per_minute": round(reps / max(duration / 60, 0.1), 1),
        }

    def print_summary(self):
        """Log formatted analytics summary."""
        summary = self.get_summary()
        logger.info("=" * 60)
        logger.info("SESSION ANALYTICS")
        logger.info("=" * 60)
        logger.info("Duration:        %.1fs", summary["session_duration_s"])
        logger.info("Total Frames:    %d", summary["total_frames"])
        logger.info("Detection Rate:  %.1f%%", summary["detection_rate_pct"])
        logger.info("Skipped Frames:  %d", summary["skipped_frames"])
        logger.info("-" * 40)
        logger.info("Reps:            %d", summary["reps"])
        logger.info("Mean interval:   %.2fs", summary["mean_rep_interval_s"])
        logger.info("Reps/min:        %.1f", summary["reps_per_minute"])
        logger.info("=" * 60)
