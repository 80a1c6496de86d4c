"""Static instrument and music-theory tables used by the challenge strategies."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .note_types import ChordNote
from .note_utils import ALL_NOTES, NOTE_TO_SEMITONE

SCALES: Dict[str, List[str]] = {
    "C Major": ["C", "D", "E", "F", "G", "A", "B"],
    "G Major": ["G", "A", "B", "C", "D", "E", "F#"],
    "A Minor Pentatonic": ["A", "C", "D", "E", "G"],
}

# A C Major chord is C-E-G on any instrument.
CHORDS: Dict[str, List[str]] = {
    "C Major": ["C", "E", "G"],
    "G Major": ["G", "B", "D"],
    "D Major": ["D", "F#", "A"],
    "A Major": ["A", "C#", "E"],
    "E Major": ["E", "G#", "B"],
    "F Major": ["F", "A", "C"],
    "A Minor": ["A", "C", "E"],
    "E Minor": ["E", "G", "B"],
    "D Minor": ["D", "F", "A"],
    "B Minor": ["B", "D", "F#"],
    "C7": ["C", "E", "G", "A#"],
    "G7": ["G", "B", "D", "F"],
    "D7": ["D", "F#", "A", "C"],
    "A7": ["A", "C#", "E", "G"],
    "E7": ["E", "G#", "B", "D"],
    "B7": ["B", "D#", "F#", "A"],
    "Cmaj7": ["C", "E", "G", "B"],
    "Am7": ["A", "C", "E", "G"],
    "Dm7": ["D", "F", "A", "C"],
    "Em7": ["E", "G", "B", "D"],
}

INTERVALS: Dict[str, int] = {
    "Minor Third": 3,
    "Major Third": 4,
    "Perfect Fourth": 5,
    "Perfect Fifth": 7,
    "Major Sixth": 9,
}


@dataclass(frozen=True)
class Instrument:
    """Tuning, fretboard and chord tables of a fretted instrument.

    ``string_order`` runs from the thinnest string to the thickest, and
    ``chord_shapes`` lists frets in the reverse order (thickest first), with
    'x' for a muted string.
    """

    name: str
    string_order: Tuple[str, ...]
    tuning: Dict[str, str]
    chord_shapes: Dict[str, str]
    chord_progressions: Dict[str, List[str]]
    fretboard: Dict[str, Dict[str, int]] = field(init=False)

    def __post_init__(self):
        fretboard = {}
        for string_name in self.string_order:
            open_semitone = NOTE_TO_SEMITONE[_pitch_class(self.tuning[string_name])]
            fretboard[string_name] = {
                ALL_NOTES[(open_semitone + fret) % 12]: fret for fret in range(12)
            }
        object.__setattr__(self, "fretboard", fretboard)

    def open_note(self, string_name: str) -> Optional[str]:
        base = self.tuning.get(string_name)
        return _pitch_class(base) if base else None

    def chord_fingering(self, chord_name: str) -> Optional[Tuple[ChordNote, ...]]:
        shape = self.chord_shapes.get(chord_name)
        if shape is None:
            return None

        fingering = []
        for string_name, fret_text in zip(reversed(self.string_order), shape):
            if fret_text == "x":
                continue
            fret = int(fret_text)
            open_semitone = NOTE_TO_SEMITONE[self.open_note(string_name)]
            fingering.append(
                ChordNote(ALL_NOTES[(open_semitone + fret) % 12], string_name, fret)
            )
        return tuple(fingering)


def _pitch_class(scientific_name: str) -> str:
    return scientific_name.rstrip("-0123456789")


GUITAR = Instrument(
    name="guitar",
    string_order=("e", "B", "G", "D", "A", "E"),
    tuning={"e": "E4", "B": "B3", "G": "G3", "D": "D3", "A": "A2", "E": "E2"},
    chord_shapes={
        "C Major": "x32010",
        "G Major": "320003",
        "D Major": "xx0232",
        "A Major": "x02220",
        "E Major": "022100",
        "F Major": "133211",
        "A Minor": "x02210",
        "E Minor": "022000",
        "D Minor": "xx0231",
        "B Minor": "x24432",
        "C7": "x32310",
        "G7": "320001",
        "D7": "xx0212",
        "A7": "x02020",
        "E7": "020100",
        "B7": "x21202",
        "Cmaj7": "x32000",
        "Am7": "x02010",
        "Dm7": "xx0211",
        "Em7": "020000",
    },
    chord_progressions={
        "Axis of Awesome (I-V-vi-IV)": ["C Major", "G Major", "A Minor", "F Major"],
        "Simple Folk (I-IV-V)": ["G Major", "C Major", "D Major"],
        "50s Progression (I-vi-IV-V)": ["C Major", "A Minor", "F Major", "G Major"],
        "Pop Anthem (vi-IV-I-V)": ["A Minor", "F Major", "C Major", "G Major"],
        "Classic Jazz (ii-V-I)": ["Dm7", "G7", "Cmaj7"],
        "Minor Blues (i-iv-v)": ["A Minor", "D Minor", "E7"],
        "Andalusian Cadence (vi-V-IV-III)": ["A Minor", "G Major", "F Major", "E Major"],
    },
)

UKULELE = Instrument(
    name="ukulele",
    string_order=("A", "E", "C", "G"),
    tuning={"A": "A4", "E": "E4", "C": "C4", "G": "G4"},
    chord_shapes={
        "C Major": "0003",
        "G Major": "0232",
        "D Major": "2220",
        "A Major": "2100",
        "E Major": "4442",
        "F Major": "2010",
        "A Minor": "2000",
        "E Minor": "0432",
        "D Minor": "2210",
        "G7": "0212",
        "C7": "0001",
        "E7": "1202",
        "Am7": "0000",
        "Cmaj7": "0002",
        "Dm7": "2213",
    },
    chord_progressions={
        "Island Strum (I-V-vi-IV)": ["C Major", "G Major", "A Minor", "F Major"],
        "Simple Minor (i-iv-V7)": ["A Minor", "D Minor", "E7"],
        "Jazzy (ii-V-I)": ["Dm7", "G7", "Cmaj7"],
        "Classic Pop (I-vi-IV-V)": ["C Major", "A Minor", "F Major", "G Major"],
    },
)

INSTRUMENTS: Dict[str, Instrument] = {
    GUITAR.name: GUITAR,
    UKULELE.name: UKULELE,
}
