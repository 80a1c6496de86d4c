"""Step through the events of a melody from the library."""

from typing import List, Optional, Tuple

from ..note_types import SINGLE_NOTE, ChordNote, MelodyEvent, Prompt
from .context import PracticeContext
from .interfaces import Completed, Failed, IChallengeStrategy, StrategyResult

NO_MELODY_SELECTED_MESSAGE = "Select a melody to practice."
MELODY_UNAVAILABLE_MESSAGE = (
    "Selected melody is not available for the current instrument. "
    "Choose another melody or re-import the tab."
)
EMPTY_MELODY_MESSAGE = "Selected melody has no playable notes."


def format_event_hint(event: MelodyEvent) -> str:
    parts = []
    for note in event.notes:
        if note.string_name is not None and note.fret is not None:
            parts.append(f"{note.note} ({note.string_name}, fret {note.fret})")
        else:
            parts.append(note.note)
    return " + ".join(parts)


def format_melody_prompt_text(index: int, total: int, event: MelodyEvent, show_hint: bool) -> str:
    step_label = f"[{index + 1}/{total}]"
    if not show_hint:
        return f"Melody {step_label}: play the next note"
    return f"Melody {step_label}: {format_event_hint(event)}"


def event_pitch_classes(event: MelodyEvent) -> Tuple[str, ...]:
    # dict keeps first-seen order
    return tuple(dict.fromkeys(note.note for note in event.notes))


def event_fingering(event: MelodyEvent) -> Tuple[ChordNote, ...]:
    return tuple(
        ChordNote(note.note, note.string_name, note.fret)
        for note in event.notes
        if note.string_name is not None and note.fret is not None
    )


class MelodyStrategy(IChallengeStrategy):
    """
    One prompt per melody event. Events with several pitch classes become
    chord-style targets; a degraded event with at most one fretted note keeps
    a single-note target so the fretboard still has something to show.
    """

    detection_type = SINGLE_NOTE

    def next(self, context: PracticeContext) -> StrategyResult:
        if not context.melody_id:
            return Failed(NO_MELODY_SELECTED_MESSAGE)

        melody = context.melody_lookup(context.melody_id, context.instrument)
        if melody is None:
            return Failed(MELODY_UNAVAILABLE_MESSAGE)

        if context.current_melody_id != melody.id:
            context.current_melody_id = melody.id
            context.melody_event_index = 0
            context.melody_found_notes.clear()

        if not melody.events:
            return Failed(EMPTY_MELODY_MESSAGE)

        if context.melody_event_index >= len(melody.events):
            return Completed(f"Melody complete! ({melody.name})")

        event_index = context.melody_event_index
        event = melody.events[event_index]
        context.melody_event_index += 1
        context.melody_found_notes.clear()

        fingering = event_fingering(event)
        pitch_classes = event_pitch_classes(event)
        is_polyphonic = len(pitch_classes) > 1

        fallback_note: Optional[str] = None
        fallback_string: Optional[str] = None
        if fingering:
            fallback_note, fallback_string = fingering[0].note, fingering[0].string
        elif event.notes:
            fallback_note, fallback_string = event.notes[0].note, event.notes[0].string_name

        use_fallback = not is_polyphonic or len(fingering) <= 1
        return Prompt(
            display_text=format_melody_prompt_text(
                event_index, len(melody.events), event, context.show_note_hint
            ),
            target_note=fallback_note if use_fallback else None,
            target_string=fallback_string if use_fallback else None,
            target_chord_notes=pitch_classes if is_polyphonic else (),
            target_chord_fingering=fingering if is_polyphonic else (),
            target_melody_event_notes=fingering,
        )
