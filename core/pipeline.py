"""
Frame pipeline for the exercise screen.

Architecture:
    CameraManager -> HandDetector -> LandmarkExtractor -> ExerciseSession

One call to tick() is one frame. The application's main loop owns the
scheduling; neither the pipeline nor the session keeps a timer or a
thread of its own.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from core.session import ExerciseSession

logger = logging.getLogger(__name__)


class PipelineResult:
    """Result of a single pipeline iteration."""

    __slots__ = (
        "frame", "frame_id", "timestamp_ms", "hand_detected", "landmarks",
        "count", "goal", "complete", "rep_counted", "metric", "latency_ms",
    )

    def __init__(self):
        self.frame = None
        self.frame_id = 0
        self.timestamp_ms = 0.0
        self.hand_detected = False
        self.landmarks = None
        self.count = 0
        self.goal = 0
        self.complete = False
        self.rep_counted = False
        self.metric = None
        self.latency_ms = 0.0


class Pipeline:
    """Drives capture, detection and counting one frame at a time."""

    def __init__(
        self,
        camera,
        detector,
        extractor,
        performance_monitor,
        config=None,
    ):
        self._camera = camera
        self._detector = detector
        self._extractor = extractor
        self._perf = performance_monitor

        config = config or {}
        self._draw_landmarks = config.get("show_landmarks", True)

        self._session: Optional[ExerciseSession] = None
        self._frame_count = 0
        self._detector_errors = 0

    # =========================================================================
    # Session wiring
    # =========================================================================

    def attach(self, session: Optional[ExerciseSession]):
        """Route counted frames to a session (None detaches)."""
        self._session = session
        if session is not None:
            logger.debug("Pipeline attached to %r", session)

    def detach(self):
        self._session = None

    @property
    def session(self) -> Optional[ExerciseSession]:
        return self._session

    # =========================================================================
    # Frame loop body
    # =========================================================================

    def tick(self) -> PipelineResult:
        """Execute one pipeline iteration.

        Returns:
            PipelineResult; ``frame`` is None when the camera had nothing.
        """
        result = PipelineResult()

        with self._perf.measure("total"):
            with self._perf.measure("capture"):
                frame_id, frame, timestamp_ms = self._camera.read()

            if frame is None:
                self._perf.record_drop()
                return result

            self._frame_count += 1
            result.frame_id = frame_id
            result.timestamp_ms = timestamp_ms

            with self._perf.measure("detection"):
                landmarks = self._detect(frame, timestamp_ms)

            result.hand_detected = landmarks is not None
            result.landmarks = landmarks

            session = self._session
            if session is not None:
                with self._perf.measure("counting"):
                    before = session.count
                    session.process(landmarks, timestamp_ms)
                result.count = session.count
                result.goal = session.goal
                result.complete = session.complete
                result.rep_counted = session.count > before
                result.metric = session.last_metric

            if self._draw_landmarks and landmarks is not None:
                self._detector.draw_landmarks(frame, landmarks)
            result.frame = frame

        self._perf.tick()
        result.latency_ms = self._perf.total_latency_ms
        return result

    def _detect(self, frame: np.ndarray, timestamp_ms: float):
        """Landmarks of the primary hand, or None.

        A detector failure costs one frame, never the session.
        """
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        try:
            detection = self._detector.detect(rgb, timestamp_ms)
            return self._extractor.primary_hand(detection)
        except Exception as e:
            self._detector_errors += 1
            logger.warning("Detection failed on frame %d: %s", self._frame_count, e)
            return None

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def detector_errors(self) -> int:
        return self._detector_errors
