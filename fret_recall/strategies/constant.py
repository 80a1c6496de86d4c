from ..note_types import SINGLE_NOTE, Prompt
from .context import PracticeContext
from .interfaces import IChallengeStrategy, StrategyResult


class ConstantPromptStrategy(IChallengeStrategy):
    """A fixed prompt with no target, for open practice."""

    detection_type = SINGLE_NOTE

    def __init__(self, display_text: str):
        self._prompt = Prompt(display_text=display_text)

    def next(self, context: PracticeContext) -> StrategyResult:
        return self._prompt


class FreePlayStrategy(ConstantPromptStrategy):
    def __init__(self):
        super().__init__("Free Play: play any note")


class RhythmStrategy(ConstantPromptStrategy):
    def __init__(self):
        super().__init__("Rhythm: Play any note on the click")
