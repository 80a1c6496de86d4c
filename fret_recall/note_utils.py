"""Utility functions for working with musical notes and frequencies."""

import math
from typing import Dict, List, Optional

from .logger import get_logger

# Get logger for this module
logger = get_logger(__name__)

DEFAULT_A4_FREQUENCY = 440.0

NATURAL_NOTES: List[str] = ["A", "B", "C", "D", "E", "F", "G"]
ALL_NOTES: List[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]
FLAT_NOTES: List[str] = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

NOTE_TO_SEMITONE: Dict[str, int] = {note: i for i, note in enumerate(ALL_NOTES)}
SEMITONE_TO_NOTE: Dict[int, str] = {i: note for note, i in NOTE_TO_SEMITONE.items()}


def _half_steps_from_a4(freq: float, a4_frequency: float) -> Optional[int]:
    if not math.isfinite(freq) or freq <= 0 or a4_frequency <= 0:
        return None
    return round(12 * math.log2(freq / a4_frequency))


def get_note_name(
    freq: float, a4_frequency: float = DEFAULT_A4_FREQUENCY, use_flats: bool = False
) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        a4_frequency: Reference pitch for A4, usually the calibrated value
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---' if invalid

    Note:
        - Middle C is C4
        - Octave numbers change between B and C (e.g., B3 -> C4)
    """
    half_steps = _half_steps_from_a4(freq, a4_frequency)
    if half_steps is None:
        return "---"

    midi_number = 69 + half_steps  # A4 = 69 in MIDI
    octave = (midi_number // 12) - 1
    note_idx = midi_number % 12

    names = FLAT_NOTES if use_flats else ALL_NOTES
    return f"{names[note_idx]}{octave}"


def freq_to_pitch_class(freq: float, a4_frequency: float) -> Optional[str]:
    """Convert a frequency to the nearest pitch class (sharps), ignoring octave."""
    half_steps = _half_steps_from_a4(freq, a4_frequency)
    if half_steps is None:
        return None
    return ALL_NOTES[(half_steps + 9) % 12]


def transpose_pitch_class(note: str, semitones: int) -> Optional[str]:
    semitone = NOTE_TO_SEMITONE.get(note)
    if semitone is None:
        return None
    return SEMITONE_TO_NOTE[(semitone + semitones) % 12]


def interval_name_from_index(index: int, note_count: int) -> str:
    """Name of a chord tone by its root-position index (Root, Third, ...)."""
    if index == 0:
        return "Root"
    if index == 1:
        return "Third"
    if index == 2:
        return "Fifth"
    if index == 3 and note_count == 4:
        return "Seventh"
    return f"Note {index + 1}"
