"""Judging played notes against the metronome beat."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..note_types import RhythmTimingSnapshot

STRICT = "strict"
LOOSE = "loose"
NORMAL = "normal"

TONE_SUCCESS = "success"
TONE_ERROR = "error"


@dataclass(frozen=True)
class RhythmThresholds:
    on_beat_ms: int
    feedback_ms: int


_THRESHOLDS = {
    STRICT: RhythmThresholds(55, 120),
    LOOSE: RhythmThresholds(130, 240),
}
_DEFAULT_THRESHOLDS = RhythmThresholds(90, 180)


def rhythm_thresholds(mode: str) -> RhythmThresholds:
    return _THRESHOLDS.get(mode, _DEFAULT_THRESHOLDS)


@dataclass(frozen=True)
class RhythmTimingResult:
    beat_at_ms: float
    signed_offset_ms: int
    abs_offset_ms: int
    tone: str
    label: str

    @property
    def is_on_beat(self) -> bool:
        return self.tone == TONE_SUCCESS


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def evaluate_rhythm_timing(
    now_ms: float, snapshot: RhythmTimingSnapshot, mode: str = NORMAL
) -> Optional[RhythmTimingResult]:
    """Judge an event against the nearer of the last beat and the one after it.

    Returns None while the metronome is stopped or has not ticked yet. On an
    exact tie the previous beat is used.
    """
    if (
        not snapshot.is_running
        or snapshot.last_beat_at_ms is None
        or snapshot.interval_ms <= 0
    ):
        return None

    previous_beat = snapshot.last_beat_at_ms
    next_beat = previous_beat + snapshot.interval_ms
    previous_offset = now_ms - previous_beat
    next_offset = now_ms - next_beat

    use_next = abs(next_offset) < abs(previous_offset)
    beat_at_ms = next_beat if use_next else previous_beat
    signed_offset = _round_half_up(next_offset if use_next else previous_offset)
    abs_offset = abs(signed_offset)
    thresholds = rhythm_thresholds(mode)

    if abs_offset <= thresholds.on_beat_ms:
        return RhythmTimingResult(beat_at_ms, signed_offset, abs_offset, TONE_SUCCESS, "On beat")

    if abs_offset <= thresholds.feedback_ms:
        label = "Early" if signed_offset < 0 else "Late"
    else:
        label = "Too early" if signed_offset < 0 else "Too late"
    return RhythmTimingResult(beat_at_ms, signed_offset, abs_offset, TONE_ERROR, label)


def format_rhythm_feedback(result: RhythmTimingResult, detected_note: str) -> str:
    sign = "+" if result.signed_offset_ms > 0 else ""
    return f"{result.label}: {detected_note} ({sign}{result.signed_offset_ms}ms)"


@dataclass
class RhythmSessionStats:
    """Running totals of the rhythm judgements of one session."""

    total_judged: int = 0
    on_beat: int = 0
    early: int = 0
    late: int = 0
    total_abs_offset_ms: int = 0
    best_abs_offset_ms: Optional[int] = None

    def record(self, result: RhythmTimingResult) -> None:
        self.total_judged += 1
        self.total_abs_offset_ms += result.abs_offset_ms
        if self.best_abs_offset_ms is None:
            self.best_abs_offset_ms = result.abs_offset_ms
        else:
            self.best_abs_offset_ms = min(self.best_abs_offset_ms, result.abs_offset_ms)

        if result.is_on_beat:
            self.on_beat += 1
        elif result.signed_offset_ms < 0:
            self.early += 1
        else:
            self.late += 1

    @property
    def average_abs_offset_ms(self) -> Optional[float]:
        if self.total_judged == 0:
            return None
        return self.total_abs_offset_ms / self.total_judged
