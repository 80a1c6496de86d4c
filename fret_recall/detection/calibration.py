"""Tuning-reference calibration from a burst of open A string pitches."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Sequence

from ..logger import get_logger
from ..note_utils import DEFAULT_A4_FREQUENCY

logger = get_logger(__name__)

OPEN_A_PATTERN = re.compile(r"^A(-?\d+)$")

CALIBRATION_RETRY_STATUS = "Could not detect A string. Please try again."
CALIBRATION_DELAY_MS = 2000


@dataclass(frozen=True)
class OpenATuningInfo:
    expected_frequency: float
    octave: int


DEFAULT_OPEN_A_TUNING_INFO = OpenATuningInfo(DEFAULT_A4_FREQUENCY, 4)


def open_a_tuning_info(tuning: Optional[Mapping[str, str]]) -> OpenATuningInfo:
    """Expected frequency and octave of the instrument's open A string.

    The tuning maps string names to scientific pitch names; only the 'A'
    entry matters. Anything that is not of the form 'A<octave>' falls back to
    A4 = 440 Hz.
    """
    open_a = tuning.get("A") if tuning else None
    if not isinstance(open_a, str):
        return DEFAULT_OPEN_A_TUNING_INFO

    match = OPEN_A_PATTERN.match(open_a)
    if not match:
        return DEFAULT_OPEN_A_TUNING_INFO

    octave = int(match.group(1))
    return OpenATuningInfo(DEFAULT_A4_FREQUENCY * 2 ** (octave - 4), octave)


def compute_calibrated_reference(samples: Sequence[float], open_a_octave: int) -> Optional[float]:
    """Average the usable samples and transpose the result to the A4 octave."""
    usable = [value for value in samples if math.isfinite(value) and value > 0]
    if not usable:
        return None
    return (sum(usable) / len(usable)) * 2 ** (4 - open_a_octave)


@dataclass(frozen=True)
class CalibrationSampleResult:
    accepted: bool
    next_sample_count: int
    progress_percent: float
    is_complete: bool


def evaluate_calibration_sample(
    frequency: float,
    expected_frequency: float,
    current_sample_count: int,
    required_samples: int,
    tolerance_ratio: float = 0.15,
) -> CalibrationSampleResult:
    """Accept a pitch sample when it lies within the tolerance of the open A."""
    lower_bound = expected_frequency * (1 - tolerance_ratio)
    upper_bound = expected_frequency * (1 + tolerance_ratio)
    accepted = lower_bound <= frequency <= upper_bound
    next_sample_count = current_sample_count + 1 if accepted else current_sample_count
    safe_required = max(1, required_samples)
    progress = max(0.0, min(100.0, next_sample_count / safe_required * 100))

    return CalibrationSampleResult(
        accepted=accepted,
        next_sample_count=next_sample_count,
        progress_percent=progress,
        is_complete=next_sample_count >= safe_required,
    )


@dataclass(frozen=True)
class FinishCalibrationOutcome:
    kind: str  # 'retry' or 'success'
    status_text: str
    delay_ms: int
    timeout_context: str
    next_calibrated_a4: Optional[float]


def build_finish_outcome(has_samples: bool, calibrated_a4: Optional[float] = None) -> FinishCalibrationOutcome:
    if not has_samples:
        return FinishCalibrationOutcome(
            kind="retry",
            status_text=CALIBRATION_RETRY_STATUS,
            delay_ms=CALIBRATION_DELAY_MS,
            timeout_context="finishCalibration empty-samples",
            next_calibrated_a4=None,
        )

    if calibrated_a4 is None:
        return FinishCalibrationOutcome(
            kind="retry",
            status_text=CALIBRATION_RETRY_STATUS,
            delay_ms=CALIBRATION_DELAY_MS,
            timeout_context="finishCalibration invalid-samples",
            next_calibrated_a4=None,
        )

    return FinishCalibrationOutcome(
        kind="success",
        status_text=f"Calibration complete! New A4 = {calibrated_a4:.2f} Hz",
        delay_ms=CALIBRATION_DELAY_MS,
        timeout_context="finishCalibration timeout",
        next_calibrated_a4=calibrated_a4,
    )


@dataclass
class CalibrationState:
    is_calibrating: bool = False
    frequencies: List[float] = field(default_factory=list)
    is_listening: bool = False  # A practice session owns the stream


def close_calibration_session(
    state: CalibrationState,
    hide_modal: Callable[[], None],
    stop_listening: Callable[[bool], None],
) -> None:
    """Tear down a calibration attempt.

    ``stop_listening`` receives ``keep_stream_open=not state.is_listening``.
    """
    hide_modal()
    state.is_calibrating = False
    state.frequencies = []
    stop_listening(not state.is_listening)
