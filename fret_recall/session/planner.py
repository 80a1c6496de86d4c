"""Decision functions for the session lifecycle.

Every builder here is pure: it takes the facts of the moment and returns a
frozen plan. Carrying a plan out is the job of the executors and of
``PracticeSession``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set

from ..detection.tracking import PromptCycleTrackingState
from ..note_types import CHORD, SINGLE_NOTE, ChordNote, Prompt
from .pace import arpeggio_complete_delay_ms, standard_success_delay_ms

ARPEGGIO_MODE = "arpeggios"
PROGRESSION_MODE = "progressions"
TIMED_MODE = "timed"

INVALID_PROGRESSION_MESSAGE = "Please select a valid chord progression."
MISSING_MODE_MESSAGE = "Selected training mode is not available."

STOP_MISSING_MODE = "missing_mode"
STOP_MISSING_PROMPT = "missing_prompt"


@dataclass(frozen=True)
class SessionButtonsState:
    start_disabled: bool
    stop_disabled: bool
    hint_disabled: bool
    play_sound_disabled: bool

    def as_mapping(self) -> Dict[str, bool]:
        return {
            "start": self.start_disabled,
            "stop": self.stop_disabled,
            "hint": self.hint_disabled,
            "play_sound": self.play_sound_disabled,
        }


@dataclass(frozen=True)
class TimedStartParams:
    enabled: bool
    duration_seconds: int
    initial_score: int = 0


@dataclass(frozen=True)
class ProgressionStartParams:
    is_required: bool
    is_valid: bool
    selected: Sequence[str]


@dataclass(frozen=True)
class SessionStartPlan:
    session_buttons: SessionButtonsState
    timed: TimedStartParams
    progression: ProgressionStartParams
    reset_arpeggio_index: bool
    should_start: bool
    error_message: Optional[str]


def build_start_plan(
    mode: str,
    detection_type: Optional[str],
    progression_name: Optional[str],
    progressions: Mapping[str, Sequence[str]],
    timed_duration: int,
) -> SessionStartPlan:
    """Preflight for starting a session in ``mode``."""
    progression_required = mode == PROGRESSION_MODE
    selected = tuple(progressions.get(progression_name, ())) if progression_required else ()
    progression_valid = not progression_required or bool(progression_name and selected)

    return SessionStartPlan(
        session_buttons=SessionButtonsState(
            start_disabled=True,
            stop_disabled=False,
            hint_disabled=detection_type != SINGLE_NOTE,
            play_sound_disabled=True,
        ),
        timed=TimedStartParams(enabled=mode == TIMED_MODE, duration_seconds=timed_duration),
        progression=ProgressionStartParams(progression_required, progression_valid, selected),
        reset_arpeggio_index=mode == ARPEGGIO_MODE,
        should_start=progression_valid,
        error_message=None if progression_valid else INVALID_PROGRESSION_MESSAGE,
    )


@dataclass(frozen=True)
class NextPromptPlan:
    should_stop_listening: bool
    stop_reason: Optional[str]
    error_message: Optional[str]
    tuner_visible: bool
    should_reset_tuner: bool


def build_next_prompt_plan(
    has_strategy: bool, detection_type: Optional[str], has_prompt: bool
) -> NextPromptPlan:
    if not has_strategy:
        return NextPromptPlan(True, STOP_MISSING_MODE, MISSING_MODE_MESSAGE, False, False)

    tuner_visible = detection_type == SINGLE_NOTE
    if not has_prompt:
        return NextPromptPlan(True, STOP_MISSING_PROMPT, None, tuner_visible, tuner_visible)

    return NextPromptPlan(False, None, None, tuner_visible, tuner_visible)


@dataclass(frozen=True)
class TimeUpPlan:
    message: str
    next_high_score: int
    should_persist_high_score: bool


def build_time_up_plan(score: int, high_score: int) -> TimeUpPlan:
    should_persist = score > high_score
    return TimeUpPlan(
        message=f"Time's Up! Final Score: {score}",
        next_high_score=score if should_persist else high_score,
        should_persist_high_score=should_persist,
    )


SUCCESS_ARPEGGIO_CONTINUE = "arpeggio_continue"
SUCCESS_ARPEGGIO_COMPLETE = "arpeggio_complete"
SUCCESS_TIMED = "timed"
SUCCESS_STANDARD = "standard"


@dataclass(frozen=True)
class SuccessPlan:
    kind: str
    next_arpeggio_index: int
    score_delta: int
    message: str
    delay_ms: int
    hide_tuner: bool
    draw_solved_fretboard: bool
    draw_solved_as_polyphonic: bool
    uses_cooldown_delay: bool


def calculate_timed_points(elapsed_seconds: float) -> int:
    """Points for a timed-mode answer: 100 minus 10 per second, never below 10."""
    return max(10, 100 - math.floor(elapsed_seconds * 10))


def build_success_plan(
    mode: str,
    detection_type: Optional[str],
    elapsed_seconds: float,
    arpeggio_index: int,
    arpeggio_length: int,
    showing_all_notes: bool,
    session_pace: str,
) -> SuccessPlan:
    if mode == ARPEGGIO_MODE:
        next_index = arpeggio_index + 1
        if next_index >= arpeggio_length:
            return SuccessPlan(
                kind=SUCCESS_ARPEGGIO_COMPLETE,
                next_arpeggio_index=0,
                score_delta=0,
                message="Arpeggio Complete!",
                delay_ms=arpeggio_complete_delay_ms(session_pace),
                hide_tuner=False,
                draw_solved_fretboard=False,
                draw_solved_as_polyphonic=False,
                uses_cooldown_delay=True,
            )
        return SuccessPlan(
            kind=SUCCESS_ARPEGGIO_CONTINUE,
            next_arpeggio_index=next_index,
            score_delta=0,
            message="",
            delay_ms=0,
            hide_tuner=False,
            draw_solved_fretboard=False,
            draw_solved_as_polyphonic=False,
            uses_cooldown_delay=False,
        )

    if mode == TIMED_MODE:
        points = calculate_timed_points(elapsed_seconds)
        return SuccessPlan(
            kind=SUCCESS_TIMED,
            next_arpeggio_index=arpeggio_index,
            score_delta=points,
            message=f"+{points}",
            delay_ms=200,
            hide_tuner=False,
            draw_solved_fretboard=False,
            draw_solved_as_polyphonic=False,
            uses_cooldown_delay=False,
        )

    return SuccessPlan(
        kind=SUCCESS_STANDARD,
        next_arpeggio_index=arpeggio_index,
        score_delta=0,
        message=f"Correct! Time: {elapsed_seconds:.2f}s",
        delay_ms=standard_success_delay_ms(session_pace),
        hide_tuner=True,
        draw_solved_fretboard=not showing_all_notes,
        draw_solved_as_polyphonic=detection_type == CHORD,
        uses_cooldown_delay=True,
    )


@dataclass
class ResultMessage:
    text: str
    tone: str = "neutral"


@dataclass
class SessionResetState(PromptCycleTrackingState):
    """Prompt-cycle tracking plus the progress fields cleared when a session stops."""

    current_prompt: Optional[Prompt] = None
    live_detected_note: Optional[str] = None
    rhythm_last_judged_beat_at_ms: Optional[float] = None
    scale_notes: List[ChordNote] = field(default_factory=list)
    scale_index: int = 0
    progression: List[str] = field(default_factory=list)
    progression_index: int = 0
    arpeggio_index: int = 0
    melody_id: Optional[str] = None
    melody_event_index: int = 0
    melody_found_notes: Set[str] = field(default_factory=set)
    pending_result_message: Optional[ResultMessage] = None


def create_session_reset_state() -> SessionResetState:
    return SessionResetState()
