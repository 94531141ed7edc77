#!/usr/bin/env python3
"""
Dexterity Dash - camera-based hand rehabilitation exercises.
Main application entry point and screen flow.

Screens:
    LANDING  -> choose an exercise ([1] thumb tapping, [2] fist making)
    INTRO    -> instructions, [SPACE] when ready
    EXERCISE -> live rep counting; [I] instructions (pauses), [H] home
    COMPLETE -> congratulations; [SPACE]/[H] home

Usage:
    python main.py                          # Start at the exercise menu
    python main.py --exercise fist          # Jump straight to an exercise
    python main.py --camera 1 --log-level DEBUG
"""

import sys
import os
import signal
import argparse
import logging
from enum import Enum

import cv2

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from modules.utils.config import Config
from modules.utils.logger import setup_logging, SessionLogger
from modules.utils.performance_monitor import PerformanceMonitor
from modules.capture.camera_manager import CameraManager
from modules.detection.hand_detector import HandDetector, HandDetectorConfig
from modules.detection.landmark_extractor import LandmarkExtractor
from modules.control.feedback_manager import FeedbackManager
from modules.visualization.dashboard import Dashboard

from core.types import ExerciseType
from core.events import EventBus, Events
from core.session import ExerciseSession
from core.pipeline import Pipeline

logger = logging.getLogger(__name__)

_KEY_ESC = 27
_KEY_SPACE = 32
_KEY_ENTER = 13


class Screen(Enum):
    LANDING = "landing"
    INTRO = "intro"
    EXERCISE = "exercise"
    COMPLETE = "complete"


class DexterityDash:
    """Main application: owns the camera, detector and the current session."""

    def __init__(self, config: Config, exercise: ExerciseType = None):
        self._config = config
        self._running = False

        self._bus = EventBus()

        self._camera = CameraManager(config.camera)
        self._detector = HandDetector(HandDetectorConfig.from_dict(config.detector))
        self._extractor = LandmarkExtractor()
        self._perf = PerformanceMonitor(target_fps=config.camera.get("fps") or 30)
        self._dashboard = Dashboard(config.visualization)
        self._feedback = FeedbackManager(config.visualization)
        self._session_logger = SessionLogger()

        self._pipeline = Pipeline(
            camera=self._camera,
            detector=self._detector,
            extractor=self._extractor,
            performance_monitor=self._perf,
            config=config.visualization,
        )

        self._screen = Screen.LANDING
        self._exercise = exercise
        self._session = None
        self._last_frame = None
        self._completion_summary = {}

        self._bus.subscribe(Events.REP_COUNTED, self._feedback.on_rep)
        self._bus.subscribe(Events.REP_COUNTED, self._session_logger.on_rep)
        self._bus.subscribe(Events.SESSION_COMPLETE, self._session_logger.on_complete)
        self._bus.subscribe(Events.SESSION_ABANDONED, self._session_logger.on_abandoned)
        self._bus.subscribe(Events.SESSION_COMPLETE, self._on_session_complete)

        if exercise is not None:
            self._screen = Screen.INTRO

    # =========================================================================
    # Screen transitions
    # =========================================================================

    @property
    def screen(self) -> Screen:
        return self._screen

    @property
    def session(self):
        return self._session

    def _set_screen(self, screen: Screen):
        if screen != self._screen:
            logger.debug("Screen: %s -> %s", self._screen.value, screen.value)
            self._screen = screen
            self._bus.emit(Events.SCREEN_CHANGED, screen=screen.value)

    def select_exercise(self, exercise: ExerciseType):
        self._exercise = exercise
        self._set_screen(Screen.INTRO)

    def start_exercise(self):
        """Begin a fresh session for the selected exercise."""
        self._completion_summary = {}
        self._session = ExerciseSession(
            self._exercise,
            config=self._config.exercise,
            event_bus=self._bus,
        )
        self._pipeline.attach(self._session)
        self._feedback.clear()
        self._set_screen(Screen.EXERCISE)

    def toggle_instructions(self):
        if self._session is None or self._session.complete:
            return
        if self._session.paused:
            self._session.resume()
        else:
            self._session.pause()

    def return_home(self):
        """Drop the current session; the next exercise starts from zero."""
        if self._session is not None:
            self._session.abandon()
        self._pipeline.detach()
        self._session = None
        self._exercise = None
        self._set_screen(Screen.LANDING)

    def _on_session_complete(self, summary=None, **_):
        self._completion_summary = summary or {}
        self._dashboard.start_celebration()
        self._set_screen(Screen.COMPLETE)

    # =========================================================================
    # Main loop
    # =========================================================================

    def start(self) -> bool:
        """Open the camera and detector, then run until quit."""
        if not self._camera.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            self._bus.emit(Events.CAMERA_ERROR, device_id=self._config.get("camera.device_id"))
            return False

        if not self._detector.start():
            logger.error("Hand detector unavailable; cannot run exercises.")
            self._camera.stop()
            return False

        w, h = self._camera.resolution
        self._extractor.set_frame_size(w, h)

        self._running = True
        logger.info("Starting main loop")
        try:
            self._run_main_loop()
        finally:
            self._shutdown()
        return True

    def _run_main_loop(self):
        window_name = self._config.get("visualization.window_name", "Dexterity Dash")

        while self._running:
            frame = self._render_frame()
            if frame is not None:
                cv2.imshow(window_name, frame)

            key = cv2.waitKey(1) & 0xFF
            if key != 0xFF:
                self.handle_key(key)

    def _render_frame(self):
        if self._screen == Screen.EXERCISE:
            result = self._pipeline.tick()
            if result.frame is None:
                return self._last_frame
            frame = result.frame
            with self._perf.measure("render"):
                if self._session.paused:
                    frame = self._dashboard.render_intro(
                        frame, self._exercise, self._session.goal, self._session.count)
                else:
                    frame = self._dashboard.render_exercise(frame, {
                        "exercise": self._exercise,
                        "count": result.count,
                        "goal": result.goal,
                        "hand_detected": result.hand_detected,
                        "fps": self._perf.fps,
                        "metric": result.metric,
                    })
                    frame = self._feedback.render(frame)
            self._last_frame = frame
            return frame

        frame = self._camera.blank_frame()
        if self._screen == Screen.LANDING:
            return self._dashboard.render_landing(frame)
        if self._screen == Screen.INTRO:
            return self._dashboard.render_intro(
                frame, self._exercise, self._config.get("exercise.goal", 5))
        return self._dashboard.render_complete(
            frame, self._exercise, self._completion_summary)

    def handle_key(self, key: int):
        """Keyboard handling for all screens."""
        if key in (ord("q"), _KEY_ESC):
            self._running = False
            return

        if self._screen == Screen.LANDING:
            options = list(ExerciseType)
            if ord("1") <= key < ord("1") + len(options):
                self.select_exercise(options[key - ord("1")])
        elif self._screen == Screen.INTRO:
            if key in (_KEY_SPACE, _KEY_ENTER):
                self.start_exercise()
            elif key == ord("h"):
                self.return_home()
        elif self._screen == Screen.EXERCISE:
            if key == ord("i"):
                self.toggle_instructions()
            elif key in (_KEY_SPACE, _KEY_ENTER) and self._session.paused:
                self._session.resume()
            elif key == ord("h"):
                self.return_home()
        elif self._screen == Screen.COMPLETE:
            if key in (_KEY_SPACE, _KEY_ENTER, ord("h")):
                self.return_home()

    def _shutdown(self):
        """Clean shutdown of all modules."""
        logger.info("Shutting down...")
        self._running = False
        if self._session is not None:
            self._session.abandon()
            self._session.analytics.print_summary()
        self._bus.emit(Events.SYSTEM_SHUTDOWN)
        self._camera.stop()
        self._detector.close()
        cv2.destroyAllWindows()

        self._perf.print_report()
        logger.info("Completed sessions: %d", self._session_logger.completed_sessions)
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Dexterity Dash - camera-based hand rehabilitation exercises"
    )
    parser.add_argument(
        "--exercise", choices=[e.value for e in ExerciseType], default=None,
        help="Skip the menu and start with this exercise"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="Camera device ID"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Logging level (DEBUG, INFO, WARNING)"
    )
    parser.add_argument(
        "--no-mirror", action="store_true",
        help="Do not mirror the camera image"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config)

    if args.camera is not None:
        config.set("camera.device_id", args.camera)
    if args.no_mirror:
        config.set("camera.flip_horizontal", False)
    if args.log_level:
        config.set("logging.level", args.log_level)

    log_cfg = config.logging
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  DEXTERITY DASH")
    logger.info("  Version: %s", config.get("system.version", "1.0.0"))
    logger.info("=" * 60)

    exercise = ExerciseType.from_string(args.exercise) if args.exercise else None
    app = DexterityDash(config, exercise=exercise)

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    return 0 if app.start() else 1


if __name__ == "__main__":
    sys.exit(main())
