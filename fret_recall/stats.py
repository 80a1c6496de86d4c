import os
import json
from typing import Dict, Optional

from .logger import get_logger
from .note_types import NoteStat

# Get logger for this module
logger = get_logger(__name__)

STATS_FILE = os.path.join(os.path.expanduser("~"), ".config", "fret_recall", "stats.json")


def _empty_stats():
    return {"high_score": 0, "calibrated_a4": None, "note_stats": {}, "last_session": None}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _valid_note_stat(value) -> bool:
    return isinstance(value, dict) and all(
        _is_number(value.get(name, 0)) for name in ("attempts", "correct", "total_time")
    )


# Field name -> check applied to the stored value before it is trusted
_FIELD_CHECKS = {
    "high_score": lambda value: isinstance(value, int) and not isinstance(value, bool) and value >= 0,
    "calibrated_a4": lambda value: value is None or (_is_number(value) and value > 0),
    "note_stats": lambda value: isinstance(value, dict) and all(_valid_note_stat(v) for v in value.values()),
    "last_session": lambda value: value is None or isinstance(value, dict),
}


class StatsStore:
    """Per-note history, the timed-mode high score, the calibrated A4 and the last session, in one JSON file."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or STATS_FILE
        self._stats = self._load()

    def _load(self):
        if not os.path.exists(self.path):
            return _empty_stats()
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read stats from {self.path}: {e}")
            return _empty_stats()

        stats = _empty_stats()
        if not isinstance(data, dict):
            logger.warning(f"Ignoring stats in {self.path}: expected an object")
            return stats

        for name, check in _FIELD_CHECKS.items():
            if name not in data:
                continue
            if check(data[name]):
                stats[name] = data[name]
            else:
                logger.warning(f"Ignoring invalid '{name}' in {self.path}")
        return stats

    def save(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._stats, f, indent=2)

    @property
    def high_score(self) -> int:
        return int(self._stats.get("high_score") or 0)

    def save_high_score(self, score: int) -> None:
        self._stats["high_score"] = score
        self.save()
        logger.info(f"New high score: {score}")

    @property
    def calibrated_a4(self) -> Optional[float]:
        return self._stats.get("calibrated_a4")

    def save_calibrated_a4(self, frequency: float) -> None:
        self._stats["calibrated_a4"] = frequency
        self.save()

    def note_stat(self, key: str) -> Optional[NoteStat]:
        raw = self._stats["note_stats"].get(key)
        if raw is None:
            return None
        return NoteStat(
            attempts=raw.get("attempts", 0),
            correct=raw.get("correct", 0),
            total_time=raw.get("total_time", 0.0),
        )

    def note_stats(self) -> Dict[str, NoteStat]:
        return {key: self.note_stat(key) for key in self._stats["note_stats"]}

    def record_attempt(self, key: str, correct: bool, elapsed_seconds: float = 0.0) -> NoteStat:
        """Count an answer for a 'note-string' key; only correct answers add time."""
        stat = self.note_stat(key) or NoteStat()
        stat.attempts += 1
        if correct:
            stat.correct += 1
            stat.total_time += elapsed_seconds

        self._stats["note_stats"][key] = {
            "attempts": stat.attempts,
            "correct": stat.correct,
            "total_time": stat.total_time,
        }
        self.save()
        return stat

    @property
    def last_session(self) -> Optional[dict]:
        """Summary of the most recently finished session, as saved."""
        return self._stats.get("last_session")

    def save_last_session(self, summary: dict) -> None:
        self._stats["last_session"] = summary
        self.save()
