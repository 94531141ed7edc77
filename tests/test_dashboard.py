"""
Tests for Screen Rendering and Rep Feedback
===========================================
"""

import numpy as np
import pytest

from core.types import ExerciseType
from modules.visualization.dashboard import Dashboard, Confetti
from modules.control.feedback_manager import FeedbackManager


def blank(w=640, h=480):
    return np.zeros((h, w, 3), dtype=np.uint8)


@pytest.fixture
def dashboard():
    return Dashboard({"confetti_duration_s": 1.0})


class TestProgressBar:

    @pytest.mark.parametrize("count, expected", [
        (0, 0), (1, 120), (2, 240), (3, 360), (4, 480), (5, 600),
    ])
    def test_fill_is_proportional(self, dashboard, count, expected):
        # 640 wide minus 2 * 20 margin leaves a 600 px track
        assert dashboard.draw_progress_bar(blank(), count, 5, y=100) == expected

    def test_fill_clamped_to_track(self, dashboard):
        assert dashboard.draw_progress_bar(blank(), 9, 5, y=100) == 600
        assert dashboard.draw_progress_bar(blank(), -1, 5, y=100) == 0

    def test_fill_is_drawn(self, dashboard):
        frame = blank()

        dashboard.draw_progress_bar(frame, 5, 5, y=100)

        assert frame[112, 320].any()


class TestScreens:

    def test_landing(self, dashboard):
        frame = dashboard.render_landing(blank())

        assert frame.shape == (480, 640, 3)
        assert frame.any()

    @pytest.mark.parametrize("exercise", list(ExerciseType))
    def test_intro_and_paused_overlay(self, dashboard, exercise):
        intro = dashboard.render_intro(blank(), exercise, 5)
        paused = dashboard.render_intro(blank(), exercise, 5, count=3)

        assert intro.shape == paused.shape == (480, 640, 3)
        assert not np.array_equal(intro, paused)

    def test_exercise_overlay(self, dashboard):
        frame = dashboard.render_exercise(blank(), {
            "exercise": ExerciseType.FIST,
            "count": 2,
            "goal": 5,
            "hand_detected": False,
        })

        assert frame.shape == (480, 640, 3)
        assert frame.any()

    def test_metric_only_shown_when_enabled(self):
        state = {"exercise": ExerciseType.THUMB_TAP, "count": 0, "goal": 5,
                 "hand_detected": True, "metric": 0.123}

        plain = Dashboard({}).render_exercise(blank(), dict(state))
        debug = Dashboard({"show_metric": True}).render_exercise(blank(), dict(state))

        assert not np.array_equal(plain, debug)

    def test_complete_with_summary(self, dashboard):
        dashboard.start_celebration()

        frame = dashboard.render_complete(
            blank(), ExerciseType.THUMB_TAP, {"reps": 5, "elapsed_s": 12.3})

        assert frame.shape == (480, 640, 3)

    def test_complete_without_summary(self, dashboard):
        frame = dashboard.render_complete(blank(), ExerciseType.FIST)

        assert frame.any()


class TestConfetti:

    def test_inactive_until_started(self, clock):
        confetti = Confetti(duration_s=1.0, clock=clock)

        assert not confetti.active
        frame = blank()
        assert not confetti.update_and_draw(frame).any()

    def test_burst_spawns_then_settles(self, clock):
        confetti = Confetti(duration_s=1.0, seed=7, clock=clock)
        confetti.start()

        clock.advance(0.1)
        confetti.update_and_draw(blank())
        assert confetti.active
        assert confetti.particle_count > 0

        for _ in range(100):
            clock.advance(0.1)
            confetti.update_and_draw(blank())

        assert confetti.particle_count == 0
        assert not confetti.active

    def test_restart_clears_particles(self, clock):
        confetti = Confetti(duration_s=1.0, seed=1, clock=clock)
        confetti.start()
        clock.advance(0.1)
        confetti.update_and_draw(blank())

        confetti.start()

        assert confetti.particle_count == 0


class TestFeedback:

    def test_inactive_by_default(self, clock):
        feedback = FeedbackManager(clock=clock)
        frame = blank()

        assert not feedback.is_active
        assert not feedback.render(frame).any()

    def test_rep_event_shows_badge(self, clock):
        feedback = FeedbackManager(clock=clock)

        feedback.on_rep(count=3, goal=5, exercise="fist")

        assert feedback.is_active
        assert feedback.render(blank()).any()

    def test_fades_out(self, clock):
        feedback = FeedbackManager({"feedback_duration_s": 0.8, "feedback_fade_s": 0.3},
                                   clock=clock)
        feedback.trigger(1, 5)

        clock.advance(0.6)
        assert feedback.is_active
        assert feedback._opacity() == pytest.approx(2 / 3)

        clock.advance(0.3)
        assert not feedback.is_active
        assert not feedback.render(blank()).any()

    def test_clear(self, clock):
        feedback = FeedbackManager(clock=clock)
        feedback.trigger(1, 5)

        feedback.clear()

        assert not feedback.is_active
