"""
Tests for the Exercise Session
==============================
"""

import pytest

from core.events import Events
from core.session import ExerciseSession
from core.types import ExerciseType, GestureState
from hand_factory import pinch_hand, fist_hand, OPEN, CLOSED, TAP, APART


@pytest.fixture
def tap_session(bus, clock):
    return ExerciseSession("thumb_tap", clock=clock, event_bus=bus)


@pytest.fixture
def fist_session(bus, clock):
    return ExerciseSession(ExerciseType.FIST, clock=clock, event_bus=bus)


def tap_reps(session, n, start_ms=0, spacing_ms=1000):
    for i in range(n):
        session.process(pinch_hand(TAP), start_ms + i * spacing_ms)


class TestCounting:

    def test_new_session_starts_at_zero(self, tap_session):
        assert tap_session.state == GestureState()
        assert tap_session.count == 0
        assert tap_session.goal == 5
        assert tap_session.remaining == 5
        assert not tap_session.complete

    def test_process_returns_current_state(self, tap_session):
        state = tap_session.process(pinch_hand(TAP), 0)

        assert state is tap_session.state
        assert state.count == 1

    def test_uses_clock_when_no_timestamp(self, tap_session, clock):
        tap_session.process(pinch_hand(TAP))
        clock.advance(500)
        tap_session.process(pinch_hand(TAP))
        assert tap_session.count == 1

        clock.advance(500)
        tap_session.process(pinch_hand(TAP))
        assert tap_session.count == 2

    def test_fist_session_counts_transitions(self, fist_session):
        fist_session.process(fist_hand(OPEN), 0)
        fist_session.process(fist_hand(CLOSED), 100)
        fist_session.process(fist_hand(CLOSED), 2000)

        assert fist_session.count == 1

    def test_progress(self, tap_session):
        tap_reps(tap_session, 2)

        assert tap_session.progress == pytest.approx(0.4)
        assert tap_session.progress_percent == pytest.approx(40.0)
        assert tap_session.remaining == 3

    def test_last_metric_tracks_latest_frame(self, tap_session):
        assert tap_session.last_metric is None

        tap_session.process(pinch_hand(APART), 0)
        assert tap_session.last_metric == pytest.approx(APART)

        tap_session.process(None, 100)
        assert tap_session.last_metric is None

    def test_config_section_applies(self, bus, clock):
        session = ExerciseSession("fist", config={"goal": 3, "cooldown_ms": 200},
                                  clock=clock, event_bus=bus)
        for t in range(0, 3000, 300):
            session.process(fist_hand(OPEN), t)
            session.process(fist_hand(CLOSED), t + 150)

        assert session.goal == 3
        assert session.count == 3
        assert session.complete

    def test_unknown_exercise_raises(self, bus):
        with pytest.raises(ValueError):
            ExerciseSession("squats", event_bus=bus)


class TestEvents:

    def test_start_event(self, bus, recorder, clock):
        events = recorder(Events.SESSION_STARTED)

        ExerciseSession("fist", clock=clock, event_bus=bus)

        assert events == [(Events.SESSION_STARTED, {"exercise": "fist", "goal": 5})]

    def test_rep_events_carry_count_and_goal(self, tap_session, recorder):
        events = recorder(Events.REP_COUNTED)

        tap_reps(tap_session, 2)

        assert [kw["count"] for _, kw in events] == [1, 2]
        assert all(kw["goal"] == 5 and kw["exercise"] == "thumb_tap" for _, kw in events)

    def test_complete_fires_exactly_once(self, tap_session, recorder):
        events = recorder(Events.SESSION_COMPLETE, Events.REP_COUNTED)

        tap_reps(tap_session, 10)

        names = [name for name, _ in events]
        assert names.count(Events.REP_COUNTED) == 5
        assert names.count(Events.SESSION_COMPLETE) == 1
        assert names[-1] == Events.SESSION_COMPLETE

        _, payload = events[-1]
        assert payload["count"] == 5
        assert payload["summary"]["complete"] is True
        assert payload["summary"]["reps"] == 5

    def test_presence_events_on_change_only(self, tap_session, recorder):
        events = recorder(Events.HAND_DETECTED, Events.HAND_LOST)

        tap_session.process(None, 0)
        tap_session.process(pinch_hand(APART), 100)
        tap_session.process(pinch_hand(APART), 200)
        tap_session.process(None, 300)
        tap_session.process([], 400)

        assert [name for name, _ in events] == [Events.HAND_DETECTED, Events.HAND_LOST]
        assert tap_session.hand_visible is False

    def test_handler_error_does_not_break_counting(self, tap_session, bus):
        def broken(**_):
            raise RuntimeError("listener failure")

        bus.subscribe(Events.REP_COUNTED, broken)

        tap_reps(tap_session, 2)

        assert tap_session.count == 2


class TestPause:

    def test_paused_session_ignores_frames(self, tap_session):
        tap_session.pause()

        tap_reps(tap_session, 3)

        assert tap_session.paused
        assert tap_session.count == 0

    def test_resume_counts_again(self, tap_session):
        tap_session.process(pinch_hand(TAP), 0)
        tap_session.pause()
        tap_session.process(pinch_hand(TAP), 1500)
        tap_session.resume()
        tap_session.process(pinch_hand(TAP), 2000)

        assert tap_session.count == 2

    def test_pause_and_resume_events(self, tap_session, recorder):
        events = recorder(Events.SESSION_PAUSED, Events.SESSION_RESUMED)

        tap_session.pause()
        tap_session.pause()
        tap_session.resume()
        tap_session.resume()

        assert [name for name, _ in events] == [Events.SESSION_PAUSED,
                                                Events.SESSION_RESUMED]

    def test_resume_needs_fresh_open_hand_for_fist(self, fist_session):
        fist_session.process(fist_hand(OPEN), 0)
        fist_session.pause()
        fist_session.resume()

        fist_session.process(fist_hand(CLOSED), 2000)
        assert fist_session.count == 0

        fist_session.process(fist_hand(OPEN), 2100)
        fist_session.process(fist_hand(CLOSED), 2200)
        assert fist_session.count == 1

    def test_cooldown_carries_over_resume(self, fist_session):
        fist_session.process(fist_hand(OPEN), 0)
        fist_session.process(fist_hand(CLOSED), 100)
        fist_session.pause()
        fist_session.resume()

        fist_session.process(fist_hand(OPEN), 300)
        fist_session.process(fist_hand(CLOSED), 500)

        assert fist_session.count == 1
        assert fist_session.state.last_rep_ms == 100

    def test_completed_session_cannot_pause(self, tap_session):
        tap_reps(tap_session, 5)

        tap_session.pause()

        assert not tap_session.paused

    def test_frames_while_paused_not_counted_in_analytics(self, tap_session):
        tap_session.pause()
        tap_session.process(pinch_hand(TAP), 0)

        assert tap_session.analytics.get_summary()["total_frames"] == 0


class TestCompletion:

    def test_complete_session_is_frozen(self, tap_session):
        tap_reps(tap_session, 5)
        done = tap_session.state

        tap_reps(tap_session, 5, start_ms=10000)

        assert tap_session.state is done
        assert tap_session.count == 5
        assert tap_session.remaining == 0

    def test_abandon_event_only_when_incomplete(self, bus, clock, recorder):
        events = recorder(Events.SESSION_ABANDONED)

        partial = ExerciseSession("thumb_tap", clock=clock, event_bus=bus)
        tap_reps(partial, 2)
        partial.abandon()

        finished = ExerciseSession("thumb_tap", clock=clock, event_bus=bus)
        tap_reps(finished, 5)
        finished.abandon()

        assert events == [(Events.SESSION_ABANDONED,
                           {"exercise": "thumb_tap", "count": 2})]

    def test_summary(self, tap_session, clock):
        tap_session.process(None, 0)
        tap_reps(tap_session, 5, start_ms=1000, spacing_ms=2000)
        clock.advance(9000)

        summary = tap_session.summary()

        assert summary["exercise"] == "thumb_tap"
        assert summary["exercise_name"] == "Thumb Tapping"
        assert summary["reps"] == 5
        assert summary["goal"] == 5
        assert summary["complete"] is True
        assert summary["elapsed_s"] == 9.0
        assert summary["total_frames"] == 6
        assert summary["detection_frames"] == 5
        assert summary["mean_rep_interval_s"] == 2.0

    def test_summary_for_running_session_uses_clock(self, tap_session, clock):
        clock.advance(4500)

        assert tap_session.summary()["elapsed_s"] == 4.5
        assert tap_session.summary()["complete"] is False

    def test_fresh_session_after_completion_starts_at_zero(self, bus, clock):
        first = ExerciseSession("thumb_tap", clock=clock, event_bus=bus)
        tap_reps(first, 5)

        second = ExerciseSession("thumb_tap", clock=clock, event_bus=bus)

        assert first.complete
        assert second.state == GestureState()
