"""Stability counters and per-prompt tracking state of the detection loop."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Callable, Iterable, List, Optional

from ..logger import get_logger
from ..note_matcher import NoteMatcher

logger = get_logger(__name__)

NoteResolver = Callable[[float], Optional[str]]


@dataclass
class StabilityTrackingState:
    stable_note_counter: int = 0
    last_note: Optional[str] = None
    last_detected_chord: str = ""
    stable_chord_counter: int = 0


@dataclass
class PromptCycleTrackingState(StabilityTrackingState):
    consecutive_silence: int = 0
    last_pitches: List[float] = field(default_factory=list)
    performance_prompt_resolved: bool = False
    performance_prompt_matched: bool = False


def reset_stability() -> StabilityTrackingState:
    return StabilityTrackingState()


def reset_prompt_cycle() -> PromptCycleTrackingState:
    """Baseline tracking state for a new prompt or a stopped session."""
    return PromptCycleTrackingState()


@dataclass(frozen=True)
class SilenceGateResult:
    is_below_threshold: bool
    next_consecutive_silence: int
    should_reset_tracking: bool


def evaluate_silence_gate(
    volume: float,
    volume_threshold: float,
    consecutive_silence: int,
    reset_after_frames: int = 2,
) -> SilenceGateResult:
    if volume < volume_threshold:
        next_silence = consecutive_silence + 1
        return SilenceGateResult(True, next_silence, next_silence >= reset_after_frames)
    return SilenceGateResult(False, 0, False)


@dataclass(frozen=True)
class MonophonicFrameResult:
    within_range: bool
    detected_note: Optional[str]
    smoothed_frequency: Optional[float]
    next_last_pitches: List[float]
    next_last_note: Optional[str]
    next_stable_note_counter: int
    is_stable_match: bool
    is_stable_mismatch: bool


def analyze_monophonic_frame(
    frequency: float,
    last_pitches: List[float],
    last_note: Optional[str],
    stable_note_counter: int,
    required_stable_frames: int,
    target_note: Optional[str],
    note_resolver: NoteResolver,
    min_frequency: float = 50.0,
    max_frequency: float = 1000.0,
    max_pitch_window: int = 2,
) -> MonophonicFrameResult:
    """Fold one pitch estimate into the rolling window and stability counter.

    Returns new values rather than mutating; ``last_pitches`` is never
    modified in place.
    """
    if frequency <= min_frequency or frequency >= max_frequency:
        return MonophonicFrameResult(
            within_range=False,
            detected_note=None,
            smoothed_frequency=None,
            next_last_pitches=last_pitches,
            next_last_note=last_note,
            next_stable_note_counter=stable_note_counter,
            is_stable_match=False,
            is_stable_mismatch=False,
        )

    next_last_pitches = (last_pitches + [frequency])[-max(1, max_pitch_window):]
    smoothed = sum(next_last_pitches) / len(next_last_pitches)
    detected_note = note_resolver(smoothed)

    if not detected_note:
        return MonophonicFrameResult(
            within_range=True,
            detected_note=None,
            smoothed_frequency=smoothed,
            next_last_pitches=next_last_pitches,
            next_last_note=last_note,
            next_stable_note_counter=stable_note_counter,
            is_stable_match=False,
            is_stable_mismatch=False,
        )

    next_counter = stable_note_counter + 1 if detected_note == last_note else 1
    is_stable = next_counter >= required_stable_frames
    is_match = is_stable and NoteMatcher.match(target_note, detected_note)

    return MonophonicFrameResult(
        within_range=True,
        detected_note=detected_note,
        smoothed_frequency=smoothed,
        next_last_pitches=next_last_pitches,
        next_last_note=detected_note,
        next_stable_note_counter=next_counter,
        is_stable_match=is_match,
        is_stable_mismatch=is_stable and not is_match,
    )


@dataclass(frozen=True)
class ChordFrameResult:
    detected_notes_text: str
    next_stable_chord_counter: int
    is_stable_match: bool
    is_stable_mismatch: bool


def analyze_chord_frame(
    detected_notes: Iterable[str],
    last_detected_chord: str,
    stable_chord_counter: int,
    required_stable_frames: int,
    target_chord_notes: Iterable[str],
) -> ChordFrameResult:
    """Stability counting over the note set reported by the chord detector."""
    detected = sorted(NoteMatcher.pitch_class_set(detected_notes))
    detected_text = ",".join(detected)

    if detected_text and detected_text == last_detected_chord:
        next_counter = stable_chord_counter + 1
    else:
        next_counter = 1

    if next_counter < required_stable_frames:
        return ChordFrameResult(detected_text, next_counter, False, False)

    is_match = NoteMatcher.chord_matches(target_chord_notes, detected)
    return ChordFrameResult(detected_text, next_counter, is_match, not is_match)


class StabilityTracker:
    """
    Owns the tracking state of the current prompt and folds pitch estimates
    into it, one frame at a time.
    """

    def __init__(
        self,
        required_stable_frames: int = 3,
        max_pitch_window: int = 2,
        volume_threshold: float = 0.03,
        silence_reset_frames: int = 2,
        min_frequency: float = 50.0,
        max_frequency: float = 1000.0,
    ):
        self._required_stable_frames = required_stable_frames
        self._max_pitch_window = max_pitch_window
        self._volume_threshold = volume_threshold
        self._silence_reset_frames = silence_reset_frames
        self._min_frequency = min_frequency
        self._max_frequency = max_frequency
        self.state = reset_prompt_cycle()

    def reset(self) -> None:
        """Clear the tracking fields in place; extra fields of a subclassed state survive."""
        fresh = reset_prompt_cycle()
        for state_field in fields(fresh):
            setattr(self.state, state_field.name, getattr(fresh, state_field.name))

    def apply_silence_gate(self, volume: float) -> bool:
        """Returns True when the frame is too quiet to analyse."""
        gate = evaluate_silence_gate(
            volume,
            self._volume_threshold,
            self.state.consecutive_silence,
            self._silence_reset_frames,
        )
        self.state.consecutive_silence = gate.next_consecutive_silence
        if gate.should_reset_tracking:
            # Silence breaks a run of matching detections
            self.state.stable_note_counter = 0
            self.state.last_note = None
            self.state.last_pitches = []
        return gate.is_below_threshold

    def add_pitch(
        self, frequency: float, target_note: Optional[str], note_resolver: NoteResolver
    ) -> MonophonicFrameResult:
        result = analyze_monophonic_frame(
            frequency=frequency,
            last_pitches=self.state.last_pitches,
            last_note=self.state.last_note,
            stable_note_counter=self.state.stable_note_counter,
            required_stable_frames=self._required_stable_frames,
            target_note=target_note,
            note_resolver=note_resolver,
            min_frequency=self._min_frequency,
            max_frequency=self._max_frequency,
            max_pitch_window=self._max_pitch_window,
        )
        self.state.last_pitches = result.next_last_pitches
        self.state.last_note = result.next_last_note
        self.state.stable_note_counter = result.next_stable_note_counter

        if result.is_stable_match or result.is_stable_mismatch:
            logger.debug(
                f"Stable note {result.detected_note} "
                f"({result.smoothed_frequency:.1f}Hz, target {target_note}): "
                f"{'match' if result.is_stable_match else 'mismatch'}"
            )
        return result

    def add_chord(self, detected_notes: Iterable[str], target_chord_notes: Iterable[str]) -> ChordFrameResult:
        result = analyze_chord_frame(
            detected_notes,
            self.state.last_detected_chord,
            self.state.stable_chord_counter,
            self._required_stable_frames,
            target_chord_notes,
        )
        self.state.last_detected_chord = result.detected_notes_text
        self.state.stable_chord_counter = result.next_stable_chord_counter
        return result
