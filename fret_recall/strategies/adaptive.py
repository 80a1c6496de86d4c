"""Weighted note selection that favours the weakest spots on the neck."""

import random
from dataclasses import dataclass
from typing import List, Optional

from ..logger import get_logger
from ..note_types import SINGLE_NOTE, NoteStat, Prompt
from .context import PracticeContext
from .interfaces import Failed, IChallengeStrategy, StrategyResult
from .random_note import NO_NOTES_MESSAGE, NO_STRINGS_MESSAGE

logger = get_logger(__name__)

UNTRIED_WEIGHT = 4.5
MIN_WEIGHT = 0.25
MAX_WEIGHT = 8.0
REPEAT_DAMPING = 0.25


@dataclass
class AdaptiveCandidate:
    note: str
    string: str
    weight: float


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def note_stat_key(note: str, string_name: str) -> str:
    return f"{note}-{string_name}"


def compute_candidate_weight(stat: Optional[NoteStat]) -> float:
    """Selection weight of a (note, string) pair from its history.

    Grows with the miss rate and the average time to a correct answer; pairs
    never attempted get a fixed elevated weight.
    """
    if stat is None or stat.attempts <= 0:
        return UNTRIED_WEIGHT

    accuracy = stat.correct / max(1, stat.attempts)
    avg_correct_time = stat.total_time / stat.correct if stat.correct > 0 else 0.0

    weight = 1.0
    weight += (1 - accuracy) * 4
    weight += _clamp(avg_correct_time / 1.8, 0, 2.25)
    if stat.correct == 0:
        weight += 1.5  # attempted but never answered

    return _clamp(weight, MIN_WEIGHT, MAX_WEIGHT)


def pick_weighted_candidate(
    candidates: List[AdaptiveCandidate], rng: random.Random
) -> Optional[AdaptiveCandidate]:
    """Cumulative-weight search against a single uniform draw."""
    if not candidates:
        return None

    total_weight = sum(candidate.weight for candidate in candidates)
    if total_weight <= 0:
        return candidates[int(rng.random() * len(candidates))]

    threshold = rng.random() * total_weight
    for candidate in candidates:
        threshold -= candidate.weight
        if threshold <= 0:
            return candidate
    return candidates[-1]


class AdaptiveStrategy(IChallengeStrategy):
    detection_type = SINGLE_NOTE

    def build_candidates(self, context: PracticeContext) -> List[AdaptiveCandidate]:
        candidates: List[AdaptiveCandidate] = []
        for string_name in context.enabled_strings:
            for note in context.notes_on_string(string_name):
                weight = compute_candidate_weight(
                    context.note_stats.get(note_stat_key(note, string_name))
                )
                # The first candidate is never damped so a one-note pool still works
                if candidates and note == context.previous_note:
                    weight *= REPEAT_DAMPING
                candidates.append(AdaptiveCandidate(note, string_name, weight))
        return candidates

    def next(self, context: PracticeContext) -> StrategyResult:
        if not context.enabled_strings:
            return Failed(NO_STRINGS_MESSAGE)

        candidates = self.build_candidates(context)
        selected = pick_weighted_candidate(candidates, context.rng)
        if selected is None:
            return Failed(NO_NOTES_MESSAGE)

        context.previous_note = selected.note
        logger.debug(
            f"Adaptive pick {selected.note}/{selected.string} "
            f"(weight {selected.weight:.2f} of {len(candidates)} candidates)"
        )

        return Prompt(
            display_text=f"Adaptive: Find {selected.note} on {selected.string} string",
            target_note=selected.note,
            target_string=selected.string,
        )
