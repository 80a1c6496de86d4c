from ..logger import get_logger
from ..note_types import SINGLE_NOTE, Prompt
from .context import PracticeContext
from .interfaces import Failed, IChallengeStrategy, StrategyResult

logger = get_logger(__name__)

NO_STRINGS_MESSAGE = "Please select at least one string to practice on."
NO_NOTES_MESSAGE = (
    "No notes available for the selected strings, difficulty, and fret range. "
    "Please adjust your settings."
)


class RandomNoteStrategy(IChallengeStrategy):
    """Find a random note on a random enabled string, never the same note twice in a row."""

    detection_type = SINGLE_NOTE

    def next(self, context: PracticeContext) -> StrategyResult:
        if not context.enabled_strings:
            return Failed(NO_STRINGS_MESSAGE)

        target_string = context.rng.choice(context.enabled_strings)
        available_notes = context.notes_on_string(target_string)
        if not available_notes:
            return Failed(NO_NOTES_MESSAGE)

        target_note = context.rng.choice(available_notes)
        while len(available_notes) > 1 and target_note == context.previous_note:
            target_note = context.rng.choice(available_notes)

        context.previous_note = target_note
        logger.debug(f"Random target: {target_note} on {target_string}")

        return Prompt(
            display_text=f"Find: {target_note} on {target_string} string",
            target_note=target_note,
            target_string=target_string,
        )
