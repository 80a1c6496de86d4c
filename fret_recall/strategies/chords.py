"""Chord, arpeggio and chord-progression prompts."""

from dataclasses import replace
from typing import List, Sequence, Union

from ..instruments import CHORDS
from ..logger import get_logger
from ..note_types import CHORD, SINGLE_NOTE, Prompt
from ..note_utils import interval_name_from_index
from .context import PracticeContext
from .interfaces import Failed, IChallengeStrategy, StrategyResult

logger = get_logger(__name__)

NO_CHORDS_MESSAGE = "No chords available to practice. Please check instrument settings."
NO_CHORD_SELECTED_MESSAGE = "No chord selected. Please select one from the dropdown."
INVALID_PROGRESSION_CHORD_MESSAGE = "Invalid chord found in progression. Stopping session."


def generate_chord_prompt(context: PracticeContext) -> Union[Prompt, Failed]:
    """Prompt for a whole chord, either the selected one or a random pick."""
    if context.randomize_chords:
        choices = context.chord_choices()
        if not choices:
            return Failed(NO_CHORDS_MESSAGE)
        chord_name = context.rng.choice(choices)
        context.selected_chord = chord_name
    else:
        chord_name = context.selected_chord

    if not chord_name:
        return Failed(NO_CHORD_SELECTED_MESSAGE)

    chord_notes = CHORDS.get(chord_name)
    fingering = context.instrument.chord_fingering(chord_name)
    if not chord_notes or fingering is None:
        return Failed(f'Could not find complete data for chord "{chord_name}". Stopping session.')

    return Prompt(
        display_text=f"Play a {chord_name} chord",
        target_chord_notes=tuple(chord_notes),
        target_chord_fingering=fingering,
        base_chord_name=chord_name,
    )


def apply_arpeggio_pattern(notes: Sequence[str], pattern: str) -> List[str]:
    """Reorder root-position chord tones for an arpeggio pattern.

    Unknown patterns play ascending.
    """
    notes = list(notes)
    if pattern == "descending":
        return notes[::-1]
    if pattern == "asc-desc":
        # C E G -> C E G E C
        return notes + notes[:-1][::-1]
    if pattern == "first-inversion":
        return notes[1:] + notes[:1]
    if pattern == "second-inversion":
        if len(notes) >= 3:
            return notes[2:] + notes[:2]
        return notes[::-1]
    return notes


class ChordStrategy(IChallengeStrategy):
    detection_type = CHORD

    def next(self, context: PracticeContext) -> StrategyResult:
        return generate_chord_prompt(context)


class ArpeggioStrategy(IChallengeStrategy):
    """One chord tone at a time; a new chord is drawn whenever the index is back at 0."""

    detection_type = SINGLE_NOTE

    def next(self, context: PracticeContext) -> StrategyResult:
        if context.arpeggio_index == 0 or context.arpeggio_chord is None:
            chord_prompt = generate_chord_prompt(context)
            if isinstance(chord_prompt, Failed):
                return chord_prompt
            context.arpeggio_index = 0
            context.arpeggio_chord = replace(
                chord_prompt,
                target_chord_notes=tuple(
                    apply_arpeggio_pattern(chord_prompt.target_chord_notes, context.arpeggio_pattern)
                ),
            )

        chord = context.arpeggio_chord
        arpeggio_notes = chord.target_chord_notes
        if not chord.base_chord_name or not arpeggio_notes:
            logger.error("Arpeggio mode cannot proceed without a valid chord")
            return Failed(NO_CHORDS_MESSAGE)

        target_note = arpeggio_notes[min(context.arpeggio_index, len(arpeggio_notes) - 1)]
        root_position = CHORDS.get(chord.base_chord_name, [])
        index_in_root = root_position.index(target_note) if target_note in root_position else -1
        interval_name = interval_name_from_index(index_in_root, len(root_position))

        return Prompt(
            display_text=f"Play: {target_note} ({interval_name} of {chord.base_chord_name})",
            target_note=target_note,
            target_chord_notes=arpeggio_notes,
            target_chord_fingering=chord.target_chord_fingering,
            base_chord_name=chord.base_chord_name,
        )


class ProgressionStrategy(IChallengeStrategy):
    """Cycle through the chords of the selected progression, looping at the end."""

    detection_type = CHORD

    def next(self, context: PracticeContext) -> StrategyResult:
        if not context.progression or context.progression_index >= len(context.progression):
            context.progression_index = 0

        chord_name = context.progression[context.progression_index] if context.progression else None
        if not chord_name:
            return Failed(INVALID_PROGRESSION_CHORD_MESSAGE)

        chord_notes = CHORDS.get(chord_name)
        fingering = context.instrument.chord_fingering(chord_name)
        if not chord_notes or fingering is None:
            return Failed(
                f'Could not find complete data for chord "{chord_name}" in the progression. '
                "Stopping session."
            )

        display_text = (
            f"Progression ({context.progression_index + 1}/{len(context.progression)}): "
            f"Play {chord_name}"
        )
        context.progression_index += 1

        return Prompt(
            display_text=display_text,
            target_chord_notes=tuple(chord_notes),
            target_chord_fingering=fingering,
            base_chord_name=chord_name,
        )
