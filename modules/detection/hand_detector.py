"""
Hand detection using the MediaPipe Tasks HandLandmarker.

Runs in VIDEO mode with a single hand, the setup the exercises need:
one hand in front of the camera, frames fed in capture order.
"""

import logging
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np
import mediapipe as mp
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision

from modules.detection.landmark_extractor import HAND_CONNECTIONS, FINGER_TIPS

logger = logging.getLogger(__name__)

HAND_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)
DEFAULT_MODEL_PATH = Path(__file__).parent.parent.parent / "models" / "hand_landmarker.task"


@dataclass
class HandDetectorConfig:
    """Configuration for hand detector."""
    model_path: str = ""
    max_num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    download_model: bool = True

    @classmethod
    def from_dict(cls, d: dict) -> "HandDetectorConfig":
        """Create config from dictionary."""
        return cls(
            model_path=d.get("model_path", "") or "",
            max_num_hands=d.get("max_num_hands", 1),
            min_detection_confidence=d.get("min_detection_confidence", 0.5),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.5),
            download_model=d.get("download_model", True),
        )


def download_model(url: str, save_path: Path) -> bool:
    """Download the hand landmarker model if not present."""
    if save_path.exists():
        return True

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model to %s...", save_path)
        urllib.request.urlretrieve(url, save_path)
        logger.info("Model download complete")
        return True
    except OSError as e:
        logger.error("Failed to download model: %s", e)
        return False


class HandDetector:
    """MediaPipe HandLandmarker wrapper.

    Example:
        >>> with HandDetector(HandDetectorConfig()) as detector:
        ...     result = detector.detect(rgb_image, timestamp_ms=0)
        ...     hands = result.hand_landmarks
    """

    def __init__(self, config: Optional[HandDetectorConfig] = None):
        self.config = config or HandDetectorConfig()
        self._landmarker: Optional[vision.HandLandmarker] = None
        self._last_timestamp_ms = -1

    def start(self) -> bool:
        """Initialize the hand landmarker.

        Returns:
            False if the model is missing and cannot be downloaded, or
            MediaPipe fails to build the landmarker.
        """
        model_path = Path(self.config.model_path or DEFAULT_MODEL_PATH)

        if not model_path.exists():
            if not self.config.download_model:
                logger.error("Hand landmarker model not found: %s", model_path)
                return False
            if not download_model(HAND_LANDMARKER_MODEL_URL, model_path):
                logger.error("Could not download hand landmarker model")
                return False

        options = vision.HandLandmarkerOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self.config.max_num_hands,
            min_hand_detection_confidence=self.config.min_detection_confidence,
            min_hand_presence_confidence=self.config.min_presence_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )

        try:
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            logger.error("Failed to initialize HandLandmarker: %s", e)
            return False

        logger.info("HandLandmarker initialized (model=%s, max_hands=%d, "
                    "detect_conf=%.2f, track_conf=%.2f)",
                    model_path.name, self.config.max_num_hands,
                    self.config.min_detection_confidence,
                    self.config.min_tracking_confidence)
        return True

    @property
    def is_running(self) -> bool:
        return self._landmarker is not None

    def detect(self, rgb_frame: np.ndarray, timestamp_ms: float):
        """Run hand detection on an RGB frame.

        Args:
            rgb_frame: Frame in RGB color space
            timestamp_ms: Capture time. VIDEO mode rejects non-increasing
                          timestamps, so repeats are nudged forward.

        Returns:
            HandLandmarkerResult, or None if the detector is not started
        """
        if self._landmarker is None:
            logger.warning("HandLandmarker not initialized. Call start() first.")
            return None

        ts = int(timestamp_ms)
        if ts <= self._last_timestamp_ms:
            ts = self._last_timestamp_ms + 1
        self._last_timestamp_ms = ts

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB,
                            data=np.ascontiguousarray(rgb_frame))
        return self._landmarker.detect_for_video(mp_image, ts)

    @staticmethod
    def draw_landmarks(
        frame: np.ndarray,
        landmarks: np.ndarray,
        landmark_color: Tuple[int, int, int] = (255, 255, 255),
        tip_color: Tuple[int, int, int] = (0, 200, 0),
        connection_color: Tuple[int, int, int] = (200, 200, 200),
        radius: int = 5,
    ) -> np.ndarray:
        """Draw one hand's landmarks and connections on a BGR frame."""
        if landmarks is None or len(landmarks) == 0:
            return frame

        h, w = frame.shape[:2]
        pixels = [(int(lm[0] * w), int(lm[1] * h)) for lm in landmarks]

        for start_idx, end_idx in HAND_CONNECTIONS:
            if start_idx < len(pixels) and end_idx < len(pixels):
                cv2.line(frame, pixels[start_idx], pixels[end_idx], connection_color, 2)

        for i, pos in enumerate(pixels):
            color = tip_color if i in FINGER_TIPS else landmark_color
            cv2.circle(frame, pos, radius, color, -1)

        return frame

    def close(self):
        """Release MediaPipe resources."""
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker closed")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.close()
