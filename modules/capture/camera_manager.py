"""
Camera capture for the exercise screen.
Synchronous reads: the frame loop pulls one frame per iteration.
"""

import time
import logging
import cv2
import numpy as np

logger = logging.getLogger(__name__)

_BACKENDS = {
    "auto": cv2.CAP_ANY,
    "v4l2": cv2.CAP_V4L2,
    "dshow": cv2.CAP_DSHOW,
    "msmf": cv2.CAP_MSMF,
    "avfoundation": cv2.CAP_AVFOUNDATION,
}


class CameraManager:
    """OpenCV VideoCapture wrapper with mirroring and warmup."""

    def __init__(self, config: dict):
        self._device_id = config.get("device_id", 0)
        self._width = config.get("width", 1280)
        self._height = config.get("height", 720)
        self._fps = config.get("fps", 30)
        self._backend = config.get("backend", "auto")
        self._flip_h = config.get("flip_horizontal", True)
        self._warmup_frames = config.get("warmup_frames", 5)

        self._cap = None
        self._frame_id = 0
        self._failed_reads = 0

    def open(self) -> bool:
        """Open the camera with the configured settings."""
        backend = _BACKENDS.get(self._backend, cv2.CAP_ANY)

        self._cap = cv2.VideoCapture(self._device_id, backend)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d with backend %s", self._device_id, self._backend)
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._cap.set(cv2.CAP_PROP_FPS, self._fps)

        # The driver may not honor the requested size
        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if actual_w > 0 and actual_h > 0:
            self._width, self._height = actual_w, actual_h
        logger.info("Camera %d opened: %dx%d @ %.0f FPS",
                    self._device_id, self._width, self._height,
                    self._cap.get(cv2.CAP_PROP_FPS))

        # Let auto-exposure settle
        for _ in range(self._warmup_frames):
            self._cap.read()

        return True

    def read(self):
        """Read the next frame.

        Returns:
            tuple: (frame_id, BGR numpy array, timestamp_ms) or
                   (None, None, None) if no frame is available
        """
        if self._cap is None:
            return None, None, None

        ret, frame = self._cap.read()
        timestamp_ms = time.monotonic() * 1000
        if not ret or frame is None:
            self._failed_reads += 1
            if self._failed_reads % 30 == 1:
                logger.warning("Camera read failed (%d consecutive)", self._failed_reads)
            return None, None, None

        self._failed_reads = 0
        if self._flip_h:
            frame = cv2.flip(frame, 1)
        self._frame_id += 1
        return self._frame_id, frame, timestamp_ms

    @property
    def resolution(self) -> tuple:
        return (self._width, self._height)

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def set_mirror(self, enabled: bool):
        self._flip_h = enabled

    def blank_frame(self) -> np.ndarray:
        """Black frame at camera resolution, for screens without video."""
        return np.zeros((self._height, self._width, 3), dtype=np.uint8)

    def stop(self):
        """Release the camera."""
        if self._cap:
            self._cap.release()
            self._cap = None
            logger.info("Camera stopped")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.stop()
