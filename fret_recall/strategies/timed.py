from typing import Optional

from .context import PracticeContext
from .interfaces import IChallengeStrategy, StrategyResult
from .random_note import RandomNoteStrategy


class TimedChallengeStrategy(IChallengeStrategy):
    """
    Random-note prompts for the countdown mode. The timer and scoring live in
    the session; prompt generation is delegated.
    """

    def __init__(self, delegate: Optional[IChallengeStrategy] = None):
        self._delegate = delegate or RandomNoteStrategy()

    @property
    def detection_type(self) -> str:
        return self._delegate.detection_type

    def next(self, context: PracticeContext) -> StrategyResult:
        return self._delegate.next(context)
