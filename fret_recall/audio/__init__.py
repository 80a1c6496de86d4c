"""Audio capture and signal analysis."""

from .pitch import calculate_rms_level, estimate_pitch

__all__ = ["calculate_rms_level", "estimate_pitch"]
