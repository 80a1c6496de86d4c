"""Lookup of the challenge strategies by training-mode key."""

from typing import Callable, Dict, List

from ..logger import get_logger
from .adaptive import AdaptiveStrategy
from .chords import ArpeggioStrategy, ChordStrategy, ProgressionStrategy
from .constant import FreePlayStrategy, RhythmStrategy
from .interfaces import IChallengeStrategy
from .intervals import IntervalStrategy
from .melody import MelodyStrategy
from .random_note import RandomNoteStrategy
from .scales import ScaleStrategy
from .timed import TimedChallengeStrategy

logger = get_logger(__name__)

STRATEGY_CLASSES: Dict[str, Callable[[], IChallengeStrategy]] = {
    "random": RandomNoteStrategy,
    "adaptive": AdaptiveStrategy,
    "intervals": IntervalStrategy,
    "scales": ScaleStrategy,
    "chords": ChordStrategy,
    "arpeggios": ArpeggioStrategy,
    "progressions": ProgressionStrategy,
    "timed": TimedChallengeStrategy,
    "melody": MelodyStrategy,
    "free": FreePlayStrategy,
    "rhythm": RhythmStrategy,
}


def available_modes() -> List[str]:
    return list(STRATEGY_CLASSES)


def get_strategy(mode: str) -> IChallengeStrategy:
    """Create the strategy registered for a training mode.

    Raises:
        ValueError: If no strategy is registered under ``mode``
    """
    if mode not in STRATEGY_CLASSES:
        raise ValueError(f"Unknown training mode: {mode}")

    strategy = STRATEGY_CLASSES[mode]()
    logger.debug(f"Created strategy for mode '{mode}': {type(strategy).__name__}")
    return strategy
