from .calibration import (
    CalibrationState,
    build_finish_outcome,
    close_calibration_session,
    compute_calibrated_reference,
    evaluate_calibration_sample,
    open_a_tuning_info,
)
from .rhythm import (
    RhythmSessionStats,
    evaluate_rhythm_timing,
    format_rhythm_feedback,
    rhythm_thresholds,
)
from .tracking import (
    PromptCycleTrackingState,
    StabilityTracker,
    StabilityTrackingState,
    analyze_chord_frame,
    analyze_monophonic_frame,
    evaluate_silence_gate,
    reset_prompt_cycle,
    reset_stability,
)

__all__ = [
    "CalibrationState",
    "PromptCycleTrackingState",
    "RhythmSessionStats",
    "StabilityTracker",
    "StabilityTrackingState",
    "analyze_chord_frame",
    "analyze_monophonic_frame",
    "build_finish_outcome",
    "close_calibration_session",
    "compute_calibrated_reference",
    "evaluate_calibration_sample",
    "evaluate_rhythm_timing",
    "evaluate_silence_gate",
    "format_rhythm_feedback",
    "open_a_tuning_info",
    "reset_prompt_cycle",
    "reset_stability",
]
