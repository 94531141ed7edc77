"""
21-point hand landmark extraction and the geometric features the
rep counters are built on.

Landmarks arrive in several shapes (MediaPipe NormalizedLandmark objects,
(x, y) tuples, numpy arrays); everything is normalized here to a float
array of shape (N, 2) so the counters only ever see one representation.
"""

import math
import logging
from collections.abc import Mapping
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_DIP = 7
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_DIP = 11
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_DIP = 15
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

NUM_LANDMARKS = 21

PALM_BASE = WRIST
FINGER_TIPS = [THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP]
# Fist closure ignores the thumb: it wraps sideways over the fingers
CLOSING_FINGER_TIPS = [INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP]

HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),          # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),          # Index
    (5, 9), (9, 10), (10, 11), (11, 12),     # Middle
    (9, 13), (13, 14), (14, 15), (15, 16),   # Ring
    (13, 17), (17, 18), (18, 19), (19, 20),  # Pinky
    (0, 17),                                 # Palm base
]


def to_points(landmarks, min_count: int = NUM_LANDMARKS) -> Optional[np.ndarray]:
    """Normalize a landmark set to an (N, 2) float array.

    Accepts sequences of (x, y[, z]) pairs, objects with ``x``/``y``
    attributes, ``{"x": .., "y": ..}`` mappings, or arrays of shape (N, 2|3).

    Returns:
        np.ndarray of shape (N, 2), or None when the set is empty, has
        fewer than ``min_count`` points, or holds non-finite/non-numeric
        coordinates.
    """
    if landmarks is None:
        return None
    try:
        if len(landmarks) < max(min_count, 1):
            return None
        if isinstance(landmarks, np.ndarray):
            points = np.asarray(landmarks, dtype=np.float64)
        else:
            points = np.array([_xy(lm) for lm in landmarks], dtype=np.float64)
    except (TypeError, ValueError, AttributeError, LookupError) as e:
        logger.debug("Malformed landmark set skipped: %s", e)
        return None

    if points.ndim != 2 or points.shape[1] < 2:
        logger.debug("Landmark array has unexpected shape %s", points.shape)
        return None
    points = points[:, :2]
    if not np.isfinite(points).all():
        logger.debug("Landmark set contains non-finite coordinates")
        return None
    return points


def _xy(lm) -> tuple:
    if isinstance(lm, Mapping):
        return (lm["x"], lm["y"])
    if hasattr(lm, "x") and hasattr(lm, "y"):
        return (lm.x, lm.y)
    return (lm[0], lm[1])


def distance(points: np.ndarray, idx1: int, idx2: int) -> float:
    """2D Euclidean distance between two landmarks."""
    dx = points[idx1, 0] - points[idx2, 0]
    dy = points[idx1, 1] - points[idx2, 1]
    return math.hypot(dx, dy)


def thumb_index_distance(points: np.ndarray) -> float:
    """Distance between the thumb tip and the index fingertip."""
    return distance(points, THUMB_TIP, INDEX_TIP)


def fingertip_palm_distance(points: np.ndarray,
                            tips: Sequence[int] = CLOSING_FINGER_TIPS) -> float:
    """Mean distance from the given fingertips to the palm base."""
    return sum(distance(points, tip, PALM_BASE) for tip in tips) / len(tips)


class LandmarkExtractor:
    """Converts detector output into landmark arrays and pixel geometry."""

    def __init__(self):
        self._frame_width = 640
        self._frame_height = 480

    def set_frame_size(self, width: int, height: int):
        """Set frame dimensions for pixel coordinate conversion."""
        self._frame_width = width
        self._frame_height = height

    def extract_landmarks(self, hand_landmarks) -> np.ndarray:
        """Convert one hand's MediaPipe landmarks to an array of (x, y, z).

        Returns:
            np.ndarray of shape (N, 3) with normalized coordinates
        """
        landmarks = np.zeros((len(hand_landmarks), 3), dtype=np.float64)
        for i, lm in enumerate(hand_landmarks):
            landmarks[i] = [lm.x, lm.y, getattr(lm, "z", 0.0)]
        return landmarks

    def primary_hand(self, detection_result) -> Optional[np.ndarray]:
        """Landmarks of the first detected hand, or None if no hand."""
        hands = getattr(detection_result, "hand_landmarks", None)
        if not hands:
            return None
        return self.extract_landmarks(hands[0])

    def to_pixel_coords(self, landmarks: np.ndarray) -> np.ndarray:
        """Convert normalized landmarks to pixel coordinates.

        Returns:
            np.ndarray of shape (N, 2) with pixel x, y
        """
        pixels = np.zeros((len(landmarks), 2), dtype=np.int32)
        pixels[:, 0] = (landmarks[:, 0] * self._frame_width).astype(np.int32)
        pixels[:, 1] = (landmarks[:, 1] * self._frame_height).astype(np.int32)
        return pixels

    def get_bounding_box(self, landmarks: np.ndarray, padding: int = 20) -> tuple:
        """Get hand bounding box (x, y, w, h) in pixels, clipped to the frame."""
        pixels = self.to_pixel_coords(landmarks)
        x_min = max(0, int(pixels[:, 0].min()) - padding)
        y_min = max(0, int(pixels[:, 1].min()) - padding)
        x_max = min(self._frame_width, int(pixels[:, 0].max()) + padding)
        y_max = min(self._frame_height, int(pixels[:, 1].max()) + padding)
        return (x_min, y_min, x_max - x_min, y_max - y_min)
