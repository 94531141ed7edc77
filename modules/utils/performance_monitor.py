"""
Frame-loop performance monitoring for the rep counter.

Every frame has a budget of 1000 / target_fps milliseconds. A frame whose
total time runs past it delays the next landmark sample, and with it the
timestamp the cooldown is measured against. The monitor keeps rolling
per-stage latencies and reports how much of the budget each stage uses,
with the counting stage called out on its own.
"""

import time
import logging
from collections import deque
from contextlib import contextmanager

logger = logging.getLogger(__name__)

DEFAULT_TARGET_FPS = 30


class PerformanceMonitor:
    """Tracks loop rate, stage latency and frame budget overruns."""

    STAGES = ("capture", "detection", "counting", "render", "total")

    def __init__(self, window_size=100, target_fps=DEFAULT_TARGET_FPS,
                 clock=time.perf_counter):
        if not target_fps or target_fps <= 0:
            raise ValueError(f"target_fps must be positive, got {target_fps!r}")
        self._window_size = window_size
        self._target_fps = float(target_fps)
        self._clock = clock

        self._frame_times = deque(maxlen=window_size)
        self._last_frame_time = None
        self._stage_times = {name: deque(maxlen=window_size) for name in self.STAGES}

        self._frame_count = 0
        self._dropped_frames = 0
        self._over_budget = 0
        self._timed_frames = 0
        self._worst_frame_ms = 0.0
        self._start_time = clock()

    @contextmanager
    def measure(self, stage_name: str):
        """Time one pipeline stage; recorded even if the stage raises."""
        start = self._clock()
        try:
            yield
        finally:
            elapsed_ms = (self._clock() - start) * 1000
            self._stage_times.setdefault(
                stage_name, deque(maxlen=self._window_size)).append(elapsed_ms)
            if stage_name == "total":
                self._timed_frames += 1
                self._worst_frame_ms = max(self._worst_frame_ms, elapsed_ms)
                if elapsed_ms > self.budget_ms:
                    self._over_budget += 1
                    logger.debug("Frame over budget: %.1f ms > %.1f ms",
                                 elapsed_ms, self.budget_ms)

    def tick(self):
        """Call once per frame to track the loop rate."""
        now = self._clock()
        if self._last_frame_time is not None:
            self._frame_times.append(now - self._last_frame_time)
        self._last_frame_time = now
        self._frame_count += 1

    def record_drop(self):
        """Record a frame the camera failed to deliver."""
        self._dropped_frames += 1

    @property
    def target_fps(self) -> float:
        return self._target_fps

    @property
    def budget_ms(self) -> float:
        """Time available to one frame at the target rate."""
        return 1000.0 / self._target_fps

    @property
    def fps(self) -> float:
        """Current frames per second (rolling average)."""
        if len(self._frame_times) < 2:
            return 0.0
        avg_interval = sum(self._frame_times) / len(self._frame_times)
        return 1.0 / avg_interval if avg_interval > 0 else 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def over_budget_frames(self) -> int:
        return self._over_budget

    @property
    def total_latency_ms(self) -> float:
        """Average total frame latency in ms."""
        return self.get_stage_latency("total")

    def get_stage_latency(self, stage_name: str) -> float:
        """Average latency of one stage in ms."""
        times = self._stage_times.get(stage_name)
        if not times:
            return 0.0
        return sum(times) / len(times)

    def get_all_latencies(self) -> dict:
        return {name: self.get_stage_latency(name) for name in self._stage_times}

    def budget_share(self, stage_name: str) -> float:
        """Percentage of the frame budget one stage takes on average."""
        return self.get_stage_latency(stage_name) / self.budget_ms * 100

    def get_report(self) -> dict:
        """Loop rate against target, budget use per stage and overruns."""
        latencies = self.get_all_latencies()
        return {
            "fps": round(self.fps, 1),
            "target_fps": self._target_fps,
            "budget_ms": round(self.budget_ms, 2),
            "total_frames": self._frame_count,
            "dropped_frames": self._dropped_frames,
            "drop_rate": round(
                self._dropped_frames / max(self._frame_count, 1) * 100, 2
            ),
            "over_budget_frames": self._over_budget,
            "over_budget_rate": round(
                self._over_budget / max(self._timed_frames, 1) * 100, 2
            ),
            "worst_frame_ms": round(self._worst_frame_ms, 2),
            "counting_ms": round(self.get_stage_latency("counting"), 3),
            "counting_budget_pct": round(self.budget_share("counting"), 2),
            "uptime_seconds": round(self._clock() - self._start_time, 1),
            "latencies_ms": {k: round(v, 2) for k, v in latencies.items()},
        }

    def print_report(self):
        """Log the frame budget report at shutdown."""
        report = self.get_report()
        logger.info("Rep loop: %.1f / %.0f fps over %d frames (%.1fs)",
                    report["fps"], report["target_fps"],
                    report["total_frames"], report["uptime_seconds"])
        logger.info("Frame budget %.1f ms: %d over (%.2f%%), worst %.1f ms",
                    report["budget_ms"], report["over_budget_frames"],
                    report["over_budget_rate"], report["worst_frame_ms"])
        logger.info("Counting stage: %.3f ms avg (%.2f%% of budget)",
                    report["counting_ms"], report["counting_budget_pct"])
        for stage, latency in report["latencies_ms"].items():
            logger.info("  %-10s %7.2f ms  %5.1f%%", stage, latency,
                        latency / self.budget_ms * 100)
        if report["dropped_frames"]:
            logger.warning("Camera dropped %d frames (%.2f%%)",
                           report["dropped_frames"], report["drop_rate"])

    def reset(self):
        """Reset all metrics."""
        self._frame_times.clear()
        self._last_frame_time = None
        for times in self._stage_times.values():
            times.clear()
        self._frame_count = 0
        self._dropped_frames = 0
        self._over_budget = 0
        self._timed_frames = 0
        self._worst_frame_ms = 0.0
        self._start_time = self._clock()
