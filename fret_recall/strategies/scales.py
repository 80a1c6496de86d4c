from typing import List

from ..instruments import SCALES
from ..note_types import SINGLE_NOTE, ChordNote, Prompt
from .context import PracticeContext
from .interfaces import Completed, Failed, IChallengeStrategy, StrategyResult

SCALE_COMPLETE_MESSAGE = "Scale complete!"
NO_SCALE_NOTES_MESSAGE = (
    "No notes in the selected scale are available within the specified fret range "
    "and on the selected strings. Please adjust your settings."
)


def build_scale_sequence(context: PracticeContext) -> List[ChordNote]:
    """All positions of the selected scale, thickest string first, then by fret.

    When the range ends at the 12th fret the octave of each open string is
    included as well.
    """
    notes_in_scale = SCALES.get(context.scale_name)
    if not notes_in_scale:
        return []

    instrument = context.instrument
    found: List[ChordNote] = []
    for string_name in context.enabled_strings:
        for note, fret in instrument.fretboard.get(string_name, {}).items():
            if note in notes_in_scale and context.min_fret <= fret <= context.max_fret:
                found.append(ChordNote(note, string_name, fret))

        if context.max_fret == 12:
            open_note = instrument.open_note(string_name)
            if open_note in notes_in_scale:
                found.append(ChordNote(open_note, string_name, 12))

    string_order = list(instrument.string_order)
    found.sort(key=lambda position: (-string_order.index(position.string), position.fret))
    return found


class ScaleStrategy(IChallengeStrategy):
    """Walk every position of a scale once, then complete."""

    detection_type = SINGLE_NOTE

    def next(self, context: PracticeContext) -> StrategyResult:
        if context.scale_index == 0:
            context.scale_notes = build_scale_sequence(context)

        if not context.scale_notes:
            return Failed(NO_SCALE_NOTES_MESSAGE)

        if context.scale_index >= len(context.scale_notes):
            return Completed(SCALE_COMPLETE_MESSAGE)

        current = context.scale_notes[context.scale_index]
        context.scale_index += 1

        return Prompt(
            display_text=f"Find: {current.note} on {current.string} string ({context.scale_name})",
            target_note=current.note,
            target_string=current.string,
        )
