from ..instruments import INTERVALS
from ..logger import get_logger
from ..note_types import SINGLE_NOTE, Prompt
from ..note_utils import transpose_pitch_class
from .context import PracticeContext
from .interfaces import Failed, IChallengeStrategy, StrategyResult
from .random_note import NO_NOTES_MESSAGE

logger = get_logger(__name__)

MAX_ATTEMPTS = 20
NO_INTERVAL_MESSAGE = (
    "Could not find a playable interval with current settings. "
    "Please adjust strings, fret range, or difficulty."
)


class IntervalStrategy(IChallengeStrategy):
    """Name an interval above a root; any string may be used to answer."""

    detection_type = SINGLE_NOTE

    def _is_playable(self, context: PracticeContext, note: str) -> bool:
        for string_name in context.enabled_strings:
            fret = context.instrument.fretboard.get(string_name, {}).get(note)
            if fret is not None and context.min_fret <= fret <= context.max_fret:
                return True
        return False

    def next(self, context: PracticeContext) -> StrategyResult:
        roots = [
            note
            for string_name in context.enabled_strings
            for note in context.notes_on_string(string_name)
        ]
        if not roots:
            return Failed(NO_NOTES_MESSAGE)

        interval_names = list(INTERVALS)
        for _ in range(MAX_ATTEMPTS):
            root = context.rng.choice(roots)
            interval_name = context.rng.choice(interval_names)
            target_note = transpose_pitch_class(root, INTERVALS[interval_name])

            if target_note and self._is_playable(context, target_note):
                return Prompt(
                    display_text=f"Find: {interval_name} of {root}",
                    target_note=target_note,
                )

        logger.warning(f"No playable interval found in {MAX_ATTEMPTS} attempts")
        return Failed(NO_INTERVAL_MESSAGE)
