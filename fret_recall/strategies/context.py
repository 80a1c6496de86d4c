"""Mutable per-session state shared with the challenge strategies."""

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from ..instruments import GUITAR, Instrument
from ..note_types import ChordNote, Melody, NoteStat, Prompt
from ..note_utils import ALL_NOTES, NATURAL_NOTES

MelodyLookup = Callable[[str, Instrument], Optional[Melody]]

ARPEGGIO_PATTERNS = ("ascending", "descending", "asc-desc", "first-inversion", "second-inversion")


def _no_melodies(_melody_id: str, _instrument: Instrument) -> Optional[Melody]:
    return None


@dataclass
class PracticeContext:
    """
    Everything a strategy may read or write while building prompts.

    The session owns one context and passes it by reference into every
    ``next()`` call; progress fields such as ``scale_index`` are advanced by the
    strategies themselves, except ``arpeggio_index`` which follows the success
    plan.
    """

    instrument: Instrument = GUITAR
    enabled_strings: List[str] = field(default_factory=list)
    min_fret: int = 0
    max_fret: int = 12
    difficulty: str = "natural"  # 'natural' or 'all'
    note_stats: Dict[str, NoteStat] = field(default_factory=dict)
    previous_note: Optional[str] = None

    scale_name: str = "C Major"
    scale_notes: List[ChordNote] = field(default_factory=list)
    scale_index: int = 0

    selected_chord: Optional[str] = None
    randomize_chords: bool = True
    available_chords: Optional[List[str]] = None  # None means every chord of the instrument

    arpeggio_pattern: str = "ascending"
    arpeggio_index: int = 0
    arpeggio_chord: Optional[Prompt] = None

    progression: List[str] = field(default_factory=list)
    progression_index: int = 0

    melody_id: Optional[str] = None
    current_melody_id: Optional[str] = None
    melody_event_index: int = 0
    melody_found_notes: Set[str] = field(default_factory=set)
    melody_lookup: MelodyLookup = _no_melodies
    show_note_hint: bool = True

    is_listening: bool = False
    current_prompt: Optional[Prompt] = None
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self):
        if not self.enabled_strings:
            self.enabled_strings = list(self.instrument.string_order)

    @property
    def note_pool(self) -> List[str]:
        return NATURAL_NOTES if self.difficulty == "natural" else ALL_NOTES

    def chord_choices(self) -> List[str]:
        if self.available_chords is not None:
            return list(self.available_chords)
        return list(self.instrument.chord_shapes)

    def notes_on_string(self, string_name: str) -> List[str]:
        """Notes of the pool playable on a string inside the fret range, in fret order."""
        notes_on_string = self.instrument.fretboard.get(string_name, {})
        pool = self.note_pool
        return [
            note
            for note, fret in notes_on_string.items()
            if self.min_fret <= fret <= self.max_fret and note in pool
        ]
