import os
import random
import tempfile
import unittest

import numpy as np

from fret_recall.mock_audio_provider import MockAudioProvider
from fret_recall.mock_session_view import MockSessionView
from fret_recall.note_types import Melody, MelodyEvent, MelodyEventNote, RhythmTimingSnapshot
from fret_recall.practice_session import (
    CHORD_DETECTOR_REQUIRED_MESSAGE,
    IDLE_SESSION_BUTTONS,
    RHYTHM_CLICK_REQUIRED_MESSAGE,
    PracticeSession,
    judgeable_modes,
)
from fret_recall.session.error_guard import RUNTIME_ERROR_RESULT, RUNTIME_ERROR_STATUS
from fret_recall.session.planner import INVALID_PROGRESSION_MESSAGE, MISSING_MODE_MESSAGE
from fret_recall.stats import StatsStore
from fret_recall.strategies import PracticeContext, available_modes

SAMPLE_RATE = 44100

A2 = 110.0
C3 = 130.81
D3 = 146.83
E3 = 164.81
G3 = 196.0
E4 = 329.63


def tone(frequency, amplitude=0.3, length=4096):
    t = np.arange(length) / SAMPLE_RATE
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class PracticeSessionTestCase(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.stats_path = os.path.join(tmpdir.name, "stats.json")
        self.stats = StatsStore(self.stats_path)
        self.clock = FakeClock()
        self.provider = MockAudioProvider(SAMPLE_RATE)
        self.view = MockSessionView()

    def make_session(self, context=None, **kwargs):
        if context is None:
            # Only the open A string: every prompt is "A"
            context = PracticeContext(enabled_strings=["A"], min_fret=0, max_fret=0, rng=random.Random(7))
        return PracticeSession(
            self.provider,
            self.view,
            context=context,
            stats_store=self.stats,
            clock=self.clock,
            **kwargs,
        )

    def play(self, session, frequency, frames=3, amplitude=0.3):
        for _ in range(frames):
            self.provider.emit(tone(frequency, amplitude))
        session.process_events()


class TestSingleNoteSession(PracticeSessionTestCase):
    def test_start_shows_prompt_and_buttons(self):
        session = self.make_session()
        self.assertTrue(session.start("random"))
        self.assertTrue(session.is_listening)
        self.assertTrue(self.provider.is_running)
        self.assertEqual(self.view.prompts[-1], "Find: A on A string")
        self.assertEqual(
            self.view.buttons[0], {"start": True, "stop": False, "hint": False, "play_sound": True}
        )
        self.assertTrue(self.view.tuner_visible)

    def test_correct_note_then_next_prompt(self):
        session = self.make_session()
        session.start("random")
        self.clock.advance(1.5)
        self.play(session, A2)

        self.assertEqual(self.view.last_result, ("Correct! Time: 1.50s", "success"))
        self.assertTrue(session.cooldown)
        self.assertFalse(self.view.tuner_visible)
        self.assertEqual(self.stats.note_stat("A-A").correct, 1)
        self.assertEqual(session.context.note_stats["A-A"].attempts, 1)

        self.clock.advance(0.65)
        session.process_events()
        self.assertFalse(session.cooldown)
        self.assertEqual(len(self.view.prompts), 2)

    def test_two_frames_are_not_enough(self):
        session = self.make_session()
        session.start("random")
        self.play(session, A2, frames=2)
        self.assertEqual(self.view.results, [])

    def test_wrong_note_starts_cooldown(self):
        session = self.make_session()
        session.start("random")
        self.play(session, C3)

        self.assertEqual(self.view.last_result, ("Heard: C3 [wrong]", "error"))
        self.assertTrue(session.cooldown)
        stat = self.stats.note_stat("A-A")
        self.assertEqual((stat.attempts, stat.correct), (1, 0))

        # Ignored while cooling down
        self.play(session, A2)
        self.assertEqual(len(self.view.results), 1)

        self.clock.advance(1.5)
        session.process_events()
        self.assertFalse(session.cooldown)
        self.play(session, A2)
        self.assertEqual(self.view.last_result[1], "success")

    def test_silence_is_ignored(self):
        session = self.make_session()
        session.start("random")
        self.play(session, A2, frames=5, amplitude=0.0)
        self.assertEqual(self.view.results, [])
        self.assertEqual(session.state.stable_note_counter, 0)

    def test_silence_breaks_a_run(self):
        session = self.make_session()
        session.start("random")
        self.play(session, A2, frames=2)
        self.play(session, A2, frames=2, amplitude=0.0)
        self.play(session, A2, frames=1)
        self.assertEqual(self.view.results, [])
        self.assertEqual(session.state.stable_note_counter, 1)

    def test_stop_resets_everything(self):
        session = self.make_session()
        session.start("random")
        self.play(session, A2, frames=2)
        session.stop_listening()

        self.assertFalse(session.is_listening)
        self.assertFalse(self.provider.is_running)
        self.assertEqual(self.view.buttons[-1], IDLE_SESSION_BUTTONS)
        self.assertEqual(self.view.prompts[-1], "")
        self.assertEqual(session.state.last_pitches, [])
        self.assertIsNone(session.context.current_prompt)

    def test_free_play_reports_notes(self):
        session = self.make_session()
        session.start("free")
        self.assertEqual(self.view.prompts[-1], "Free Play: play any note")
        self.play(session, A2)
        self.assertEqual(self.view.statuses[-1], "Heard: A")
        self.assertEqual(self.view.results, [])

    def test_uses_stored_calibration(self):
        self.stats.save_calibrated_a4(442.0)
        session = self.make_session()
        self.assertEqual(session.calibrated_a4, 442.0)


class TestSessionPreflight(PracticeSessionTestCase):
    def test_invalid_progression_does_not_start(self):
        session = self.make_session()
        self.assertFalse(session.start("progressions", "Not A Progression"))
        self.assertEqual(self.view.errors, [INVALID_PROGRESSION_MESSAGE])
        self.assertEqual(self.provider.start_count, 0)

    def test_unknown_mode_stops_with_error(self):
        session = self.make_session()
        self.assertFalse(session.start("karaoke"))
        self.assertIn(MISSING_MODE_MESSAGE, self.view.errors)
        self.assertFalse(session.is_listening)
        self.assertFalse(self.view.tuner_visible)

    def test_strategy_failure_stops_session(self):
        context = PracticeContext(min_fret=5, max_fret=4)
        session = self.make_session(context)
        self.assertFalse(session.start("random"))
        self.assertEqual(len(self.view.errors), 1)
        self.assertFalse(self.provider.is_running)

    def test_chord_mode_without_detector_is_refused(self):
        session = self.make_session(PracticeContext(randomize_chords=False, selected_chord="C Major"))
        self.assertFalse(session.start("chords"))
        self.assertEqual(self.view.errors, [CHORD_DETECTOR_REQUIRED_MESSAGE])
        self.assertFalse(session.is_listening)
        self.assertEqual(self.provider.start_count, 0)

        # Loud frames after the refusal change nothing
        self.play(session, C3, frames=10)
        self.assertEqual(self.view.results, [])

    def test_rhythm_without_metronome_is_refused(self):
        session = self.make_session()
        self.assertFalse(session.start("rhythm"))
        self.assertEqual(self.view.errors, [RHYTHM_CLICK_REQUIRED_MESSAGE])
        self.assertEqual(self.provider.start_count, 0)

    def test_judgeable_modes(self):
        modes = judgeable_modes()
        for mode in ("chords", "progressions", "rhythm"):
            self.assertNotIn(mode, modes)
        self.assertIn("random", modes)
        self.assertIn("arpeggios", modes)
        self.assertEqual(judgeable_modes(has_chord_detector=True, has_rhythm_timing=True), available_modes())


class TestTimedSession(PracticeSessionTestCase):
    def test_countdown_and_high_score(self):
        session = self.make_session()
        session.start("timed", timed_duration=2)
        self.assertEqual(self.view.timer_values, [2])

        self.clock.advance(0.5)
        self.play(session, A2)
        self.assertEqual(self.view.last_result, ("+95", "success"))
        self.assertEqual(session.score, 95)

        self.clock.advance(0.5)
        session.process_events()
        self.assertEqual(self.view.timer_values, [2, 1])
        self.assertTrue(session.is_listening)

        self.clock.advance(1.0)
        session.process_events()
        self.assertEqual(self.view.timer_values, [2, 1, 0])
        self.assertFalse(session.is_listening)
        self.assertEqual(self.view.last_result, ("Time's Up! Final Score: 95", "neutral"))
        self.assertEqual(self.stats.high_score, 95)

    def test_lower_score_keeps_high_score(self):
        self.stats.save_high_score(500)
        session = self.make_session()
        session.start("timed", timed_duration=1)
        self.clock.advance(1.0)
        session.process_events()
        self.assertEqual(self.view.last_result, ("Time's Up! Final Score: 0", "neutral"))
        self.assertEqual(self.stats.high_score, 500)

    def test_stop_cancels_timer(self):
        session = self.make_session()
        session.start("timed", timed_duration=5)
        session.stop_listening()
        self.clock.advance(3.0)
        session.process_events()
        self.assertEqual(self.view.timer_values, [5])


class TestChordSessions(PracticeSessionTestCase):
    def test_progression_advances_on_stable_chord(self):
        heard = {"notes": ["G2", "B2", "D3", "G3"]}
        session = self.make_session(
            PracticeContext(rng=random.Random(1)), chord_detector=lambda samples, rate: heard["notes"]
        )
        self.assertTrue(session.start("progressions", "Simple Folk (I-IV-V)"))
        self.assertEqual(self.view.prompts[-1], "Progression (1/3): Play G Major")
        self.assertTrue(self.view.buttons[0]["hint"])

        self.play(session, G3)
        self.assertEqual(self.view.last_result[1], "success")

        self.clock.advance(0.65)
        session.process_events()
        self.assertEqual(self.view.prompts[-1], "Progression (2/3): Play C Major")

    def test_wrong_chord(self):
        session = self.make_session(
            PracticeContext(randomize_chords=False, selected_chord="C Major"),
            chord_detector=lambda samples, rate: ["C3", "E3"],
        )
        session.start("chords")
        self.play(session, C3)
        self.assertEqual(self.view.last_result, ("Heard: C,E [wrong]", "error"))
        self.assertTrue(session.cooldown)
        self.assertEqual(session.session_stats.note_stats["C Major-CHORD"].attempts, 1)

    def test_runtime_error_stops_session_once(self):
        def broken_detector(samples, rate):
            raise RuntimeError("detector crashed")

        session = self.make_session(
            PracticeContext(randomize_chords=False, selected_chord="C Major"),
            chord_detector=broken_detector,
        )
        session.start("chords")
        self.play(session, C3)

        self.assertFalse(session.is_listening)
        self.assertFalse(self.provider.is_running)
        self.assertEqual(self.provider.stop_count, 1)
        self.assertIn(RUNTIME_ERROR_STATUS, self.view.statuses)
        self.assertEqual(self.view.last_result, (RUNTIME_ERROR_RESULT, "error"))


class TestArpeggioSession(PracticeSessionTestCase):
    def test_walks_the_chord_then_completes(self):
        session = self.make_session(PracticeContext(randomize_chords=False, selected_chord="C Major"))
        session.start("arpeggios")
        self.assertEqual(self.view.prompts[-1], "Play: C (Root of C Major)")

        self.play(session, C3)
        self.assertEqual(self.view.prompts[-1], "Play: E (Third of C Major)")
        self.play(session, E3)
        self.assertEqual(self.view.prompts[-1], "Play: G (Fifth of C Major)")
        self.play(session, G3)
        self.assertEqual(self.view.last_result, ("Arpeggio Complete!", "success"))
        self.assertEqual(session.context.arpeggio_index, 0)

        self.clock.advance(0.9)
        session.process_events()
        self.assertEqual(self.view.prompts[-1], "Play: C (Root of C Major)")


def _duo_library(melody_id, _instrument):
    if melody_id != "duo":
        return None
    return Melody(
        id="duo",
        name="Duo",
        events=(
            MelodyEvent((MelodyEventNote("C", "A", 3), MelodyEventNote("G", "G", 0))),
            MelodyEvent((MelodyEventNote("E", "e", 0),)),
        ),
    )


class TestMelodySession(PracticeSessionTestCase):
    def make_melody_session(self):
        return self.make_session(PracticeContext(melody_id="duo", melody_lookup=_duo_library))

    def test_multi_note_event_then_completion(self):
        session = self.make_melody_session()
        session.start("melody")
        self.assertEqual(self.view.prompts[-1], "Melody [1/2]: C (A, fret 3) + G (G, fret 0)")

        self.play(session, C3)
        self.assertEqual(self.view.last_result, ("Heard: C [1/2]", "neutral"))
        self.play(session, G3)
        self.assertEqual(self.view.last_result[1], "success")

        self.clock.advance(0.65)
        session.process_events()
        self.assertEqual(self.view.prompts[-1], "Melody [2/2]: E (e, fret 0)")

        self.play(session, E4)
        self.clock.advance(0.65)
        session.process_events()
        self.assertFalse(session.is_listening)
        self.assertEqual(self.view.last_result, ("Melody complete! (Duo)", "success"))

    def test_off_target_note(self):
        session = self.make_melody_session()
        session.start("melody")
        self.play(session, D3)
        self.assertEqual(self.view.last_result, ("Heard: D [off target]", "error"))
        self.assertTrue(session.cooldown)


class TestRhythmSession(PracticeSessionTestCase):
    def test_judges_each_beat_once(self):
        session = self.make_session(
            rhythm_timing=lambda: RhythmTimingSnapshot(True, 101500.0, 500.0)
        )
        session.start("rhythm")
        self.clock.now = 102.02
        self.play(session, A2)
        self.assertEqual(self.view.last_result, ("On beat: A (+20ms)", "success"))

        self.play(session, A2)
        self.assertEqual(len(self.view.results), 1)
        self.assertEqual(session.session_stats.rhythm.total_judged, 1)
        self.assertEqual(session.session_stats.correct_attempts, 1)

    def test_stopped_metronome_asks_for_the_click(self):
        session = self.make_session(rhythm_timing=lambda: RhythmTimingSnapshot(False, None, 500.0))
        self.assertTrue(session.start("rhythm"))
        self.play(session, A2)
        self.assertEqual(self.view.last_result, (RHYTHM_CLICK_REQUIRED_MESSAGE, "error"))
        self.assertEqual(session.session_stats.total_attempts, 0)


class TestCalibrationDuringSession(PracticeSessionTestCase):
    def test_calibration_updates_reference(self):
        session = self.make_session(calibration_config={"required_samples": 3})
        session.start("random")
        session.start_calibration()
        self.assertTrue(self.view.calibration_modal_open)

        self.play(session, A2)
        self.assertTrue(self.view.statuses[-1].startswith("Calibration complete! New A4 = "))
        self.assertAlmostEqual(session.calibrated_a4, 440.0, delta=440.0 * 0.02)
        self.assertAlmostEqual(self.stats.calibrated_a4, session.calibrated_a4)
        # The practice prompt was not judged
        self.assertEqual(self.view.results, [])

        self.clock.advance(2.0)
        session.process_events()
        self.assertFalse(self.view.calibration_modal_open)
        self.assertFalse(session.calibration.is_calibrating)


class TestSessionStatsAndGoal(PracticeSessionTestCase):
    def answer_correctly(self, session):
        self.play(session, A2)
        self.clock.advance(0.65)
        session.process_events()

    def test_attempts_are_counted_per_session(self):
        session = self.make_session()
        session.start("random")
        self.play(session, C3)
        self.clock.advance(1.5)
        session.process_events()
        self.play(session, A2)

        stats = session.session_stats
        self.assertEqual((stats.total_attempts, stats.correct_attempts), (2, 1))
        self.assertEqual((stats.current_correct_streak, stats.best_correct_streak), (1, 1))
        self.assertEqual(stats.note_stats["A-A"].attempts, 2)
        self.assertEqual(stats.target_zone_stats["A:0"].correct, 1)
        self.assertAlmostEqual(stats.total_time, 1.5)

    def test_stop_saves_last_session(self):
        session = self.make_session()
        session.start("random")
        self.answer_correctly(session)
        session.stop_listening()

        self.assertIsNone(session.session_stats)
        last = session.last_session_stats
        self.assertEqual(last.mode, "random")
        self.assertEqual(last.correct_attempts, 1)
        self.assertIsNotNone(last.ended_at)
        self.assertGreaterEqual(last.ended_at, last.started_at)

        saved = StatsStore(self.stats_path).last_session
        self.assertEqual(saved["correct_attempts"], 1)
        self.assertEqual(saved["note_stats"]["A-A"]["correct"], 1)

        # A new session shows the previous summary
        self.assertEqual(self.make_session().last_session_stats.correct_attempts, 1)

    def test_goal_stops_the_session(self):
        session = self.make_session()
        session.start("random", session_goal="correct_10")
        self.assertEqual(self.view.goal_progress, ["Goal progress: 0 / 10 correct"])

        for _ in range(9):
            self.answer_correctly(session)
        self.assertTrue(session.is_listening)
        self.assertEqual(self.view.goal_progress[-1], "Goal progress: 9 / 10 correct")

        self.play(session, A2)
        self.assertFalse(session.is_listening)
        self.assertFalse(self.provider.is_running)
        self.assertEqual(self.view.goal_progress[-1], "Goal progress: 10 / 10 correct")
        self.assertEqual(self.view.last_result, ("Goal reached: 10 correct answers.", "success"))
        self.assertEqual(session.last_session_stats.correct_attempts, 10)

    def test_timed_mode_ignores_the_goal(self):
        session = self.make_session()
        session.start("timed", timed_duration=30, session_goal="correct_10")
        self.assertEqual(self.view.goal_progress, [""])
        self.assertIsNone(session.goal_target)


if __name__ == "__main__":
    unittest.main()
