"""The contract every challenge strategy follows."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from ..note_types import Prompt

if TYPE_CHECKING:
    from .context import PracticeContext


@dataclass(frozen=True)
class Completed:
    """The strategy ran out of prompts; the session should stop and show the message."""

    message: str


@dataclass(frozen=True)
class Failed:
    """The current settings leave nothing to practice."""

    message: str


StrategyResult = Union[Prompt, Completed, Failed]


class IChallengeStrategy(ABC):
    """Interface for prompt generators of the training modes."""

    # 'single-note' or 'chord'
    detection_type: str

    @abstractmethod
    def next(self, context: PracticeContext) -> StrategyResult:
        """Generate the next challenge, reading and updating the shared context."""
        pass
