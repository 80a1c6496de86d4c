import unittest

import pytest

from fret_recall.note_types import CHORD, SINGLE_NOTE
from fret_recall.session.pace import arpeggio_complete_delay_ms, normalize_session_pace, standard_success_delay_ms
from fret_recall.session.planner import (
    INVALID_PROGRESSION_MESSAGE,
    MISSING_MODE_MESSAGE,
    STOP_MISSING_MODE,
    STOP_MISSING_PROMPT,
    SUCCESS_ARPEGGIO_COMPLETE,
    SUCCESS_ARPEGGIO_CONTINUE,
    SUCCESS_STANDARD,
    SUCCESS_TIMED,
    build_next_prompt_plan,
    build_start_plan,
    build_success_plan,
    build_time_up_plan,
    calculate_timed_points,
    create_session_reset_state,
)

PROGRESSIONS = {"Simple Folk (I-IV-V)": ["G Major", "C Major", "D Major"]}


class TestStartPlan(unittest.TestCase):
    def test_single_note_mode(self):
        plan = build_start_plan("random", SINGLE_NOTE, None, PROGRESSIONS, 60)
        self.assertEqual(
            plan.session_buttons.as_mapping(),
            {"start": True, "stop": False, "hint": False, "play_sound": True},
        )
        self.assertFalse(plan.timed.enabled)
        self.assertFalse(plan.progression.is_required)
        self.assertTrue(plan.should_start)
        self.assertIsNone(plan.error_message)
        self.assertFalse(plan.reset_arpeggio_index)

    def test_chord_mode_disables_hint(self):
        plan = build_start_plan("chords", CHORD, None, PROGRESSIONS, 60)
        self.assertTrue(plan.session_buttons.hint_disabled)

    def test_timed_mode(self):
        plan = build_start_plan("timed", SINGLE_NOTE, None, PROGRESSIONS, 45)
        self.assertTrue(plan.timed.enabled)
        self.assertEqual(plan.timed.duration_seconds, 45)
        self.assertEqual(plan.timed.initial_score, 0)

    def test_arpeggio_mode_resets_index(self):
        self.assertTrue(build_start_plan("arpeggios", SINGLE_NOTE, None, PROGRESSIONS, 60).reset_arpeggio_index)

    def test_valid_progression(self):
        plan = build_start_plan("progressions", CHORD, "Simple Folk (I-IV-V)", PROGRESSIONS, 60)
        self.assertTrue(plan.progression.is_required)
        self.assertTrue(plan.progression.is_valid)
        self.assertEqual(plan.progression.selected, ("G Major", "C Major", "D Major"))
        self.assertTrue(plan.should_start)

    def test_missing_progression(self):
        for name in (None, "Unknown"):
            plan = build_start_plan("progressions", CHORD, name, PROGRESSIONS, 60)
            self.assertFalse(plan.should_start)
            self.assertEqual(plan.error_message, INVALID_PROGRESSION_MESSAGE)


class TestNextPromptPlan(unittest.TestCase):
    def test_missing_strategy(self):
        plan = build_next_prompt_plan(False, SINGLE_NOTE, False)
        self.assertTrue(plan.should_stop_listening)
        self.assertEqual(plan.stop_reason, STOP_MISSING_MODE)
        self.assertEqual(plan.error_message, MISSING_MODE_MESSAGE)
        self.assertFalse(plan.tuner_visible)
        self.assertFalse(plan.should_reset_tuner)

    def test_missing_prompt(self):
        plan = build_next_prompt_plan(True, SINGLE_NOTE, False)
        self.assertTrue(plan.should_stop_listening)
        self.assertEqual(plan.stop_reason, STOP_MISSING_PROMPT)
        self.assertIsNone(plan.error_message)
        self.assertTrue(plan.tuner_visible)
        self.assertTrue(plan.should_reset_tuner)

    def test_continue(self):
        plan = build_next_prompt_plan(True, CHORD, True)
        self.assertFalse(plan.should_stop_listening)
        self.assertFalse(plan.tuner_visible)
        self.assertFalse(plan.should_reset_tuner)


class TestTimeUpPlan(unittest.TestCase):
    def test_below_high_score(self):
        plan = build_time_up_plan(120, 150)
        self.assertFalse(plan.should_persist_high_score)
        self.assertEqual(plan.next_high_score, 150)
        self.assertEqual(plan.message, "Time's Up! Final Score: 120")

    def test_new_high_score(self):
        plan = build_time_up_plan(200, 150)
        self.assertTrue(plan.should_persist_high_score)
        self.assertEqual(plan.next_high_score, 200)

    def test_tie_is_not_persisted(self):
        self.assertFalse(build_time_up_plan(150, 150).should_persist_high_score)


@pytest.mark.parametrize(
    "elapsed, points",
    [(0.0, 100), (0.45, 96), (3.0, 70), (9.0, 10), (42.0, 10)],
)
def test_calculate_timed_points(elapsed, points):
    assert calculate_timed_points(elapsed) == points


class TestSuccessPlan(unittest.TestCase):
    def test_arpeggio_continues(self):
        plan = build_success_plan("arpeggios", SINGLE_NOTE, 1.0, 0, 3, False, "normal")
        self.assertEqual(plan.kind, SUCCESS_ARPEGGIO_CONTINUE)
        self.assertEqual(plan.next_arpeggio_index, 1)
        self.assertEqual(plan.delay_ms, 0)
        self.assertFalse(plan.uses_cooldown_delay)

    def test_arpeggio_completes(self):
        plan = build_success_plan("arpeggios", SINGLE_NOTE, 1.0, 2, 3, False, "fast")
        self.assertEqual(plan.kind, SUCCESS_ARPEGGIO_COMPLETE)
        self.assertEqual(plan.next_arpeggio_index, 0)
        self.assertEqual(plan.message, "Arpeggio Complete!")
        self.assertEqual(plan.delay_ms, 500)
        self.assertTrue(plan.uses_cooldown_delay)

    def test_timed(self):
        plan = build_success_plan("timed", SINGLE_NOTE, 2.0, 0, 0, False, "normal")
        self.assertEqual(plan.kind, SUCCESS_TIMED)
        self.assertEqual(plan.score_delta, 80)
        self.assertEqual(plan.message, "+80")
        self.assertEqual(plan.delay_ms, 200)

    def test_standard(self):
        plan = build_success_plan("chords", CHORD, 1.234, 0, 0, False, "slow")
        self.assertEqual(plan.kind, SUCCESS_STANDARD)
        self.assertEqual(plan.message, "Correct! Time: 1.23s")
        self.assertEqual(plan.delay_ms, 1500)
        self.assertTrue(plan.hide_tuner)
        self.assertTrue(plan.draw_solved_fretboard)
        self.assertTrue(plan.draw_solved_as_polyphonic)

    def test_standard_with_all_notes_shown(self):
        plan = build_success_plan("random", SINGLE_NOTE, 1.0, 0, 0, True, "normal")
        self.assertFalse(plan.draw_solved_fretboard)
        self.assertFalse(plan.draw_solved_as_polyphonic)
        self.assertEqual(plan.delay_ms, 650)


class TestSessionPace(unittest.TestCase):
    def test_unknown_pace_is_normal(self):
        self.assertEqual(normalize_session_pace("glacial"), "normal")
        self.assertEqual(normalize_session_pace(None), "normal")

    def test_delays(self):
        self.assertEqual(
            [standard_success_delay_ms(p) for p in ("slow", "normal", "fast", "ultra")],
            [1500, 650, 280, 120],
        )
        self.assertEqual(
            [arpeggio_complete_delay_ms(p) for p in ("slow", "normal", "fast", "ultra")],
            [1500, 900, 500, 240],
        )


class TestSessionResetState(unittest.TestCase):
    def test_fresh_baseline(self):
        state = create_session_reset_state()
        self.assertIsNone(state.current_prompt)
        self.assertEqual(state.scale_notes, [])
        self.assertEqual(state.scale_index, 0)
        self.assertEqual(state.progression, [])
        self.assertEqual(state.progression_index, 0)
        self.assertEqual(state.arpeggio_index, 0)
        self.assertEqual(state.stable_note_counter, 0)
        self.assertEqual(state.last_pitches, [])

    def test_collections_are_never_shared(self):
        first = create_session_reset_state()
        second = create_session_reset_state()
        first.scale_notes.append("C")
        first.progression.append("G Major")
        first.last_pitches.append(110.0)
        first.melody_found_notes.add("E")
        self.assertEqual(second.scale_notes, [])
        self.assertEqual(second.progression, [])
        self.assertEqual(second.last_pitches, [])
        self.assertEqual(second.melody_found_notes, set())


if __name__ == "__main__":
    unittest.main()
