"""Attempt statistics of a single practice session and the correct-answer goal."""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..detection.rhythm import RhythmSessionStats, RhythmTimingResult
from ..instruments import Instrument
from ..logger import get_logger
from ..note_types import NoteStat, Prompt
from ..strategies.adaptive import note_stat_key

logger = get_logger(__name__)

NO_GOAL = "none"
SESSION_GOALS: Dict[str, int] = {
    "correct_10": 10,
    "correct_20": 20,
    "correct_50": 50,
}


def session_goal_target(goal: Optional[str]) -> Optional[int]:
    """Number of correct answers a goal key asks for, or None for no goal."""
    return SESSION_GOALS.get(goal) if goal else None


def format_goal_progress(correct_attempts: int, goal_target: int) -> str:
    return f"Goal progress: {min(correct_attempts, goal_target)} / {goal_target} correct"


def format_goal_reached(goal_target: int) -> str:
    return f"Goal reached: {goal_target} correct answers."


def session_note_key(prompt: Optional[Prompt]) -> Optional[str]:
    """Key of a prompt in the per-session note table.

    Chord prompts count under '<chord>-CHORD', string-bound notes under
    'note-string' and bare notes under the note alone.
    """
    if prompt is None:
        return None
    if prompt.base_chord_name:
        return f"{prompt.base_chord_name}-CHORD"
    if prompt.target_note and prompt.target_string:
        return note_stat_key(prompt.target_note, prompt.target_string)
    return prompt.target_note or None


def target_zone_key(prompt: Optional[Prompt], instrument: Optional[Instrument]) -> Optional[str]:
    """'string:fret' of the fretboard spot a single-note prompt points at."""
    if prompt is None or instrument is None or not prompt.target_note or not prompt.target_string:
        return None
    fret = instrument.fretboard.get(prompt.target_string, {}).get(prompt.target_note)
    if fret is None:
        return None
    return f"{prompt.target_string}:{fret}"


def _note_stat(table: Dict[str, NoteStat], key: str) -> NoteStat:
    if key not in table:
        table[key] = NoteStat()
    return table[key]


@dataclass
class SessionStats:
    """Running totals of one session, from start until the session stops."""

    mode: str
    instrument_name: str = ""
    string_order: List[str] = field(default_factory=list)
    enabled_strings: List[str] = field(default_factory=list)
    min_fret: int = 0
    max_fret: int = 12
    started_at: float = 0.0  # Epoch seconds
    ended_at: Optional[float] = None
    total_attempts: int = 0
    correct_attempts: int = 0
    total_time: float = 0.0  # Seconds spent on correct answers
    current_correct_streak: int = 0
    best_correct_streak: int = 0
    note_stats: Dict[str, NoteStat] = field(default_factory=dict)
    target_zone_stats: Dict[str, NoteStat] = field(default_factory=dict)
    rhythm: RhythmSessionStats = field(default_factory=RhythmSessionStats)

    @property
    def accuracy(self) -> Optional[float]:
        if self.total_attempts == 0:
            return None
        return self.correct_attempts / self.total_attempts

    def _count(self, correct: bool) -> None:
        self.total_attempts += 1
        if not correct:
            self.current_correct_streak = 0
            return
        self.correct_attempts += 1
        self.current_correct_streak += 1
        self.best_correct_streak = max(self.best_correct_streak, self.current_correct_streak)

    def record_attempt(
        self,
        prompt: Optional[Prompt],
        correct: bool,
        elapsed_seconds: float = 0.0,
        instrument: Optional[Instrument] = None,
    ) -> bool:
        """Count an answer to ``prompt``.

        Prompts with neither a note key nor a target zone (free play, for
        instance) are not counted. Returns whether the answer was counted.
        """
        note_key = session_note_key(prompt)
        zone_key = target_zone_key(prompt, instrument)
        if note_key is None and zone_key is None:
            return False

        self._count(correct)
        if correct:
            self.total_time += elapsed_seconds

        for table, key in ((self.note_stats, note_key), (self.target_zone_stats, zone_key)):
            if key is None:
                continue
            stat = _note_stat(table, key)
            stat.attempts += 1
            if correct:
                stat.correct += 1
                stat.total_time += elapsed_seconds
        return True

    def record_rhythm(self, result: RhythmTimingResult) -> None:
        """Count a rhythm judgement; an on-beat hit is a correct answer."""
        self._count(result.is_on_beat)
        self.rhythm.record(result)

    def finalize(self, ended_at: float) -> SessionStats:
        """Detached copy of the totals, stamped with the end time."""
        final = copy.deepcopy(self)
        final.ended_at = ended_at
        return final

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Optional[SessionStats]:
        """Rebuild stats saved with ``to_dict``; None when the data is unusable."""
        try:
            note_stats = {key: NoteStat(**value) for key, value in (data.get("note_stats") or {}).items()}
            zone_stats = {key: NoteStat(**value) for key, value in (data.get("target_zone_stats") or {}).items()}
            rhythm = RhythmSessionStats(**(data.get("rhythm") or {}))
            fields = {
                key: value
                for key, value in data.items()
                if key not in ("note_stats", "target_zone_stats", "rhythm")
            }
            return cls(note_stats=note_stats, target_zone_stats=zone_stats, rhythm=rhythm, **fields)
        except (AttributeError, TypeError) as e:
            logger.warning(f"Ignoring malformed session stats: {e}")
            return None
