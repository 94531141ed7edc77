"""
Screen rendering for the exercise tracker: landing menu, instructions,
live exercise overlay with progress bar, and the completion screen.
"""

import time
import logging
import cv2
import numpy as np

from core.types import ExerciseType

logger = logging.getLogger(__name__)

_FONT = cv2.FONT_HERSHEY_SIMPLEX

_CONFETTI_COLORS = [
    (66, 135, 245), (52, 199, 89), (255, 204, 0), (255, 59, 48),
    (175, 82, 222), (0, 199, 190), (255, 149, 0),
]


class Confetti:
    """Particle burst launched from both sides of the screen."""

    def __init__(self, duration_s: float = 3.0, seed=None, clock=time.monotonic):
        self._duration = duration_s
        self._clock = clock
        self._rng = np.random.default_rng(seed)
        self._particles = np.zeros((0, 7), dtype=np.float32)  # x, y, vx, vy, color, size, age
        self._start = None
        self._last = None

    def start(self):
        self._start = self._clock()
        self._last = self._start
        self._particles = np.zeros((0, 7), dtype=np.float32)

    @property
    def active(self) -> bool:
        if self._start is None:
            return False
        return self._clock() - self._start < self._duration or len(self._particles) > 0

    @property
    def particle_count(self) -> int:
        return len(self._particles)

    def _spawn(self, w: int, h: int, n: int):
        if n <= 0:
            return
        left = self._rng.random(n) < 0.5
        x = np.where(left, self._rng.uniform(0.1, 0.3, n), self._rng.uniform(0.7, 0.9, n)) * w
        y = self._rng.uniform(-0.2, 0.3, n) * h
        vx = self._rng.uniform(-200, 200, n)
        vy = self._rng.uniform(-250, 50, n)
        color = self._rng.integers(0, len(_CONFETTI_COLORS), n)
        size = self._rng.integers(3, 8, n)
        age = np.zeros(n)
        new = np.stack([x, y, vx, vy, color, size, age], axis=1).astype(np.float32)
        self._particles = np.concatenate([self._particles, new])

    def update_and_draw(self, frame: np.ndarray) -> np.ndarray:
        """Advance the simulation to now and draw the particles."""
        if self._start is None:
            return frame
        h, w = frame.shape[:2]
        now = self._clock()
        dt = min(max(now - self._last, 0.0), 0.1)
        self._last = now

        time_left = self._duration - (now - self._start)
        if time_left > 0:
            # Spawn rate tapers off toward the end of the burst
            self._spawn(w, h, int(50 * time_left / self._duration * dt * 10) + 1)

        p = self._particles
        if len(p):
            p[:, 3] += 400 * dt           # gravity
            p[:, 0] += p[:, 2] * dt
            p[:, 1] += p[:, 3] * dt
            p[:, 6] += dt
            self._particles = p[(p[:, 1] < h + 10) & (p[:, 6] < 4.0)]

        for x, y, _, _, color, size, _ in self._particles:
            cv2.circle(frame, (int(x), int(y)), int(size),
                       _CONFETTI_COLORS[int(color)], -1)
        return frame


class Dashboard:
    """Renders each application screen onto a BGR frame."""

    def __init__(self, config: dict):
        self._show_fps = config.get("show_fps", False)
        self._show_metric = config.get("show_metric", False)

        colors = config.get("colors", {})
        self._color_text = tuple(colors.get("text", [255, 255, 255]))
        self._color_muted = tuple(colors.get("muted", [180, 180, 180]))
        self._color_progress = tuple(colors.get("progress", [94, 197, 34]))
        self._color_track = tuple(colors.get("track", [81, 65, 55]))
        self._color_accent = tuple(colors.get("accent", [246, 130, 59]))
        self._color_warn = tuple(colors.get("warning", [0, 150, 255]))

        self._panel_opacity = config.get("panel_opacity", 0.6)
        self._confetti = Confetti(config.get("confetti_duration_s", 3.0))

    # =========================================================================
    # Screens
    # =========================================================================

    def render_landing(self, frame: np.ndarray) -> np.ndarray:
        """Exercise selection menu."""
        h, w = frame.shape[:2]
        self._dim(frame, 0.75)
        self._centered(frame, "Dexterity Dash", h // 3, 2.0, self._color_text, 4)
        self._centered(frame, "Choose an exercise to begin your therapy session",
                       h // 3 + 60, 0.8, self._color_muted, 2)

        for i, exercise in enumerate(ExerciseType):
            y = h // 2 + 40 + i * 70
            self._button(frame, f"[{i + 1}] {exercise.display_name}", y)

        self._centered(frame, "[Q] Quit", h - 40, 0.6, self._color_muted, 1)
        return frame

    def render_intro(self, frame: np.ndarray, exercise: ExerciseType, goal: int,
                     count: int = None) -> np.ndarray:
        """Instructions before starting, or the paused overlay mid-session."""
        h, w = frame.shape[:2]
        self._dim(frame, 0.8)
        self._centered(frame, f"{exercise.display_name} Exercise Instructions",
                       h // 3, 1.2, self._color_text, 3)
        self._centered(frame, exercise.instructions, h // 2 - 20, 0.9,
                       self._color_text, 2)
        self._centered(frame, f"Repeat {goal} times.", h // 2 + 25, 0.9,
                       self._color_text, 2)

        if count is not None:
            self._centered(frame, f"Current progress: {count}/{goal} {exercise.rep_noun}",
                           h // 2 + 80, 0.8, self._color_muted, 2)

        self._button(frame, "[SPACE] I am ready", h - 110)
        return frame

    def render_exercise(self, frame: np.ndarray, state: dict) -> np.ndarray:
        """Live exercise overlay.

        Args:
            frame: BGR camera frame (landmarks already drawn)
            state: dict with:
                - exercise: ExerciseType
                - count: int
                - goal: int
                - hand_detected: bool
                - fps: float (optional)
                - metric: float or None (optional)
        """
        h, w = frame.shape[:2]
        exercise = state["exercise"]
        count = state.get("count", 0)
        goal = state.get("goal", 1)

        self._panel(frame, 0, 0, w, 60)
        cv2.putText(frame, f"Dexterity Dash: {exercise.display_name} Exercise",
                    (15, 40), _FONT, 0.9, self._color_text, 2)

        if self._show_fps:
            cv2.putText(frame, f"FPS: {state.get('fps', 0):.1f}",
                        (w - 140, 40), _FONT, 0.6, self._color_muted, 1)

        # Bottom panel: instruction, count, progress bar
        panel_h = 150
        self._panel(frame, 0, h - panel_h, w, panel_h)
        self.draw_progress_bar(frame, count, goal, h - panel_h + 20)

        cv2.putText(frame, f"{exercise.instructions} Repeat {goal} times.",
                    (20, h - panel_h + 85), _FONT, 0.7, self._color_text, 2)
        count_text = str(count)
        size = cv2.getTextSize(count_text, _FONT, 2.5, 6)[0]
        cv2.putText(frame, count_text, (w - size[0] - 30, h - 30),
                    _FONT, 2.5, self._color_progress, 6)

        cv2.putText(frame, "[I] Instructions   [H] Home   [Q] Quit",
                    (20, h - 25), _FONT, 0.5, self._color_muted, 1)

        if self._show_metric and state.get("metric") is not None:
            cv2.putText(frame, f"distance: {state['metric']:.3f}",
                        (15, 90), _FONT, 0.6, self._color_accent, 2)

        if not state.get("hand_detected", True):
            self._centered(frame, "Show your hand to the camera", h // 2,
                           0.9, self._color_warn, 2)

        return frame

    def start_celebration(self):
        """Launch the confetti for the completion screen."""
        self._confetti.start()

    def render_complete(self, frame: np.ndarray, exercise: ExerciseType,
                        summary: dict = None) -> np.ndarray:
        """Completion screen with confetti."""
        summary = summary or {}
        h, w = frame.shape[:2]
        self._dim(frame, 0.85)
        self._confetti.update_and_draw(frame)

        self._centered(frame, "Congratulations!", h // 3, 2.0, self._color_progress, 4)
        self._centered(frame,
                       f"You've successfully completed the {exercise.display_name} "
                       f"exercise in Dexterity Dash.",
                       h // 2, 0.75, self._color_text, 2)
        self._centered(frame, "Well done on your progress!", h // 2 + 40,
                       0.75, self._color_text, 2)

        if summary.get("elapsed_s") is not None:
            self._centered(frame,
                           f"{summary.get('reps', 0)} {exercise.rep_noun} in "
                           f"{summary['elapsed_s']:.1f}s",
                           h // 2 + 90, 0.7, self._color_muted, 1)

        self._button(frame, "[SPACE] Return home", h - 110)
        return frame

    # =========================================================================
    # Drawing helpers
    # =========================================================================

    def draw_progress_bar(self, frame, count: int, goal: int, y: int,
                          bar_h: int = 24, margin: int = 20) -> int:
        """Draw the rounded progress track and fill.

        Returns:
            Filled width in pixels
        """
        w = frame.shape[1]
        x1, x2 = margin, w - margin
        track_w = x2 - x1
        fill_w = int(track_w * min(max(count / max(goal, 1), 0.0), 1.0))

        self._rounded_bar(frame, x1, y, track_w, bar_h, self._color_track)
        if fill_w > 0:
            self._rounded_bar(frame, x1, y, fill_w, bar_h, self._color_progress)
        return fill_w

    def _rounded_bar(self, frame, x, y, bar_w, bar_h, color):
        r = bar_h // 2
        if bar_w <= bar_h:
            cv2.circle(frame, (x + r, y + r), r, color, -1)
            return
        cv2.rectangle(frame, (x + r, y), (x + bar_w - r, y + bar_h), color, -1)
        cv2.circle(frame, (x + r, y + r), r, color, -1)
        cv2.circle(frame, (x + bar_w - r, y + r), r, color, -1)

    def _panel(self, frame, x, y, w, h):
        overlay = frame.copy()
        cv2.rectangle(overlay, (x, y), (x + w, y + h), (20, 20, 20), -1)
        cv2.addWeighted(overlay, self._panel_opacity, frame, 1 - self._panel_opacity, 0, frame)

    def _dim(self, frame, amount: float):
        frame[:] = (frame.astype(np.float32) * (1 - amount)
                    + np.array((39, 24, 17), dtype=np.float32) * amount).astype(np.uint8)

    def _button(self, frame, text, y):
        w = frame.shape[1]
        size = cv2.getTextSize(text, _FONT, 0.9, 2)[0]
        x1 = (w - size[0]) // 2 - 25
        x2 = (w + size[0]) // 2 + 25
        cv2.rectangle(frame, (x1, y - size[1] - 20), (x2, y + 20), self._color_accent, -1)
        cv2.putText(frame, text, ((w - size[0]) // 2, y), _FONT, 0.9, self._color_text, 2)

    def _centered(self, frame, text, y, scale, color, thickness):
        w = frame.shape[1]
        size = cv2.getTextSize(text, _FONT, scale, thickness)[0]
        cv2.putText(frame, text, ((w - size[0]) // 2, y), _FONT, scale, color, thickness)
