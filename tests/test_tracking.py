import unittest

from fret_recall.detection.tracking import (
    PromptCycleTrackingState,
    StabilityTracker,
    analyze_chord_frame,
    analyze_monophonic_frame,
    evaluate_silence_gate,
    reset_prompt_cycle,
    reset_stability,
)
from fret_recall.note_utils import get_note_name


class TestResetPrimitives(unittest.TestCase):
    def test_reset_stability_baseline(self):
        state = reset_stability()
        self.assertEqual(state.stable_note_counter, 0)
        self.assertIsNone(state.last_note)
        self.assertEqual(state.last_detected_chord, "")
        self.assertEqual(state.stable_chord_counter, 0)

    def test_prompt_cycle_arrays_are_never_shared(self):
        first = reset_prompt_cycle()
        second = reset_prompt_cycle()
        first.last_pitches.append(110.0)
        self.assertEqual(second.last_pitches, [])
        self.assertIsNot(first.last_pitches, second.last_pitches)
        self.assertEqual(second.consecutive_silence, 0)


class TestSilenceGate(unittest.TestCase):
    def test_loud_frame_clears_silence(self):
        result = evaluate_silence_gate(0.5, 0.03, 5)
        self.assertFalse(result.is_below_threshold)
        self.assertEqual(result.next_consecutive_silence, 0)
        self.assertFalse(result.should_reset_tracking)

    def test_reset_after_two_quiet_frames(self):
        first = evaluate_silence_gate(0.01, 0.03, 0)
        self.assertTrue(first.is_below_threshold)
        self.assertFalse(first.should_reset_tracking)
        second = evaluate_silence_gate(0.01, 0.03, first.next_consecutive_silence)
        self.assertTrue(second.should_reset_tracking)


class TestAnalyzeMonophonicFrame(unittest.TestCase):
    def analyze(self, frequency, **overrides):
        params = dict(
            frequency=frequency,
            last_pitches=[],
            last_note=None,
            stable_note_counter=0,
            required_stable_frames=3,
            target_note="A",
            note_resolver=get_note_name,
        )
        params.update(overrides)
        return analyze_monophonic_frame(**params)

    def test_out_of_range_leaves_state_untouched(self):
        pitches = [110.0]
        result = self.analyze(1500.0, last_pitches=pitches, last_note="A2", stable_note_counter=2)
        self.assertFalse(result.within_range)
        self.assertIs(result.next_last_pitches, pitches)
        self.assertEqual(result.next_stable_note_counter, 2)

    def test_window_is_smoothed_and_not_mutated(self):
        pitches = [109.0, 110.0]
        result = self.analyze(111.0, last_pitches=pitches)
        self.assertEqual(pitches, [109.0, 110.0])
        self.assertEqual(result.next_last_pitches, [110.0, 111.0])
        self.assertAlmostEqual(result.smoothed_frequency, 110.5)

    def test_counter_grows_until_stable_match(self):
        result = self.analyze(110.0, last_note="A2", stable_note_counter=2)
        self.assertEqual(result.next_stable_note_counter, 3)
        self.assertTrue(result.is_stable_match)
        self.assertFalse(result.is_stable_mismatch)

    def test_note_change_restarts_count(self):
        result = self.analyze(130.81, last_note="A2", stable_note_counter=5)
        self.assertEqual(result.detected_note, "C3")
        self.assertEqual(result.next_stable_note_counter, 1)
        self.assertFalse(result.is_stable_match)

    def test_stable_mismatch(self):
        result = self.analyze(130.81, last_note="C3", stable_note_counter=2)
        self.assertTrue(result.is_stable_mismatch)

    def test_unresolved_note(self):
        result = self.analyze(110.0, note_resolver=lambda _freq: None, last_note="A2", stable_note_counter=2)
        self.assertIsNone(result.detected_note)
        self.assertEqual(result.next_last_note, "A2")
        self.assertEqual(result.next_stable_note_counter, 2)


class TestAnalyzeChordFrame(unittest.TestCase):
    def test_match_after_required_frames(self):
        detected = ["C3", "E3", "G3", "C4"]
        result = analyze_chord_frame(detected, "C,E,G", 2, 3, ["C", "E", "G"])
        self.assertEqual(result.detected_notes_text, "C,E,G")
        self.assertEqual(result.next_stable_chord_counter, 3)
        self.assertTrue(result.is_stable_match)

    def test_not_yet_stable(self):
        result = analyze_chord_frame(["C", "E", "G"], "", 0, 3, ["C", "E", "G"])
        self.assertEqual(result.next_stable_chord_counter, 1)
        self.assertFalse(result.is_stable_match)
        self.assertFalse(result.is_stable_mismatch)

    def test_missing_chord_tone_is_mismatch(self):
        result = analyze_chord_frame(["C", "E"], "C,E", 2, 3, ["C", "E", "G"])
        self.assertTrue(result.is_stable_mismatch)


class TestStabilityTracker(unittest.TestCase):
    def setUp(self):
        self.tracker = StabilityTracker(required_stable_frames=3)

    def test_three_frames_to_stable_match(self):
        results = [self.tracker.add_pitch(110.0, "A", get_note_name) for _ in range(3)]
        self.assertFalse(results[0].is_stable_match)
        self.assertFalse(results[1].is_stable_match)
        self.assertTrue(results[2].is_stable_match)

    def test_silence_resets_counter(self):
        self.tracker.add_pitch(110.0, "A", get_note_name)
        self.tracker.add_pitch(110.0, "A", get_note_name)
        self.assertTrue(self.tracker.apply_silence_gate(0.0))
        self.assertEqual(self.tracker.state.stable_note_counter, 2)
        self.assertTrue(self.tracker.apply_silence_gate(0.0))
        self.assertEqual(self.tracker.state.stable_note_counter, 0)
        self.assertIsNone(self.tracker.state.last_note)
        self.assertEqual(self.tracker.state.last_pitches, [])

    def test_loud_frame_passes_gate(self):
        self.assertFalse(self.tracker.apply_silence_gate(0.5))

    def test_reset_keeps_subclass_fields(self):
        class ExtendedState(PromptCycleTrackingState):
            pass

        state = ExtendedState()
        state.current_prompt = "kept"
        state.stable_note_counter = 4
        self.tracker.state = state
        self.tracker.reset()
        self.assertIs(self.tracker.state, state)
        self.assertEqual(state.current_prompt, "kept")
        self.assertEqual(state.stable_note_counter, 0)

    def test_chord_tracking(self):
        for _ in range(2):
            self.assertFalse(self.tracker.add_chord(["G", "B", "D"], ["G", "B", "D"]).is_stable_match)
        self.assertTrue(self.tracker.add_chord(["G", "B", "D"], ["G", "B", "D"]).is_stable_match)


if __name__ == "__main__":
    unittest.main()
