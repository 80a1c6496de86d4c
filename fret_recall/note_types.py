"""Type definitions for the Fret Recall project."""

from typing import Optional, Tuple
from dataclasses import dataclass, field

import numpy as np

SINGLE_NOTE = "single-note"
CHORD = "chord"


@dataclass
class AudioFrame:
    """One window of mono audio handed to the estimator."""

    samples: np.ndarray  # float32 amplitudes
    sample_rate: int  # Hz
    timestamp: float = 0.0  # Capture time in seconds


@dataclass(frozen=True)
class ChordNote:
    """A fretted note of a chord shape or melody event."""

    note: str  # Pitch class, e.g. 'C#'
    string: str  # String name, e.g. 'A' or 'e'
    fret: int

    def __str__(self):
        return f"{self.note}({self.string}{self.fret})"


@dataclass(frozen=True)
class Prompt:
    """Everything needed to present and judge a single challenge."""

    display_text: str
    target_note: Optional[str] = None
    target_string: Optional[str] = None
    target_chord_notes: Tuple[str, ...] = ()
    target_chord_fingering: Tuple[ChordNote, ...] = ()
    base_chord_name: Optional[str] = None
    target_melody_event_notes: Optional[Tuple[ChordNote, ...]] = None


@dataclass
class NoteStat:
    """Aggregated history for one (note, string) pair."""

    attempts: int = 0
    correct: int = 0
    total_time: float = 0.0  # Seconds spent on correct answers


@dataclass(frozen=True)
class RhythmTimingSnapshot:
    """Read-only view of the metronome used to judge timing."""

    is_running: bool
    last_beat_at_ms: Optional[float]
    interval_ms: float


@dataclass(frozen=True)
class MelodyEventNote:
    note: str
    string_name: Optional[str] = None
    fret: Optional[int] = None


@dataclass(frozen=True)
class MelodyEvent:
    notes: Tuple[MelodyEventNote, ...]


@dataclass(frozen=True)
class Melody:
    id: str
    name: str
    events: Tuple[MelodyEvent, ...] = field(default_factory=tuple)

