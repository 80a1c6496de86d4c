from .context import PracticeContext
from .factory import STRATEGY_CLASSES, available_modes, get_strategy
from .interfaces import Completed, Failed, IChallengeStrategy, StrategyResult

__all__ = [
    "Completed",
    "Failed",
    "IChallengeStrategy",
    "PracticeContext",
    "STRATEGY_CLASSES",
    "StrategyResult",
    "available_modes",
    "get_strategy",
]
