"""YIN fundamental-frequency estimation for monophonic guitar and ukulele notes."""

from __future__ import annotations

import math
from typing import ClassVar, Sequence, Union

import numpy as np

from ..logger import get_logger

logger = get_logger(__name__)

AudioBuffer = Union[np.ndarray, Sequence[float]]


class YinOptions:
    """Default search band and confidence threshold of the estimator."""

    MIN_FREQUENCY: ClassVar[float] = 50.0  # Hz - below the low E of a drop-tuned guitar
    MAX_FREQUENCY: ClassVar[float] = 1200.0  # Hz - well above the top fret of the high e
    THRESHOLD: ClassVar[float] = 0.12  # Absolute CMNDF threshold
    FALLBACK_MAX_CMNDF: ClassVar[float] = 0.35  # Reject weaker global minima


def _difference(samples: np.ndarray, max_tau: int) -> np.ndarray:
    diff = np.zeros(max_tau + 1, dtype=np.float64)
    n = len(samples)
    for tau in range(1, max_tau + 1):
        delta = samples[: n - tau] - samples[tau:]
        diff[tau] = np.dot(delta, delta)
    return diff


def _cumulative_mean_normalized(diff: np.ndarray) -> np.ndarray:
    cmndf = np.ones_like(diff)
    running_sum = np.cumsum(diff[1:])
    taus = np.arange(1, len(diff), dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        normalized = diff[1:] * taus / running_sum
    cmndf[1:] = np.where(running_sum == 0, 1.0, normalized)
    return cmndf


def _absolute_threshold(cmndf: np.ndarray, min_tau: int, max_tau: int, threshold: float) -> int:
    for tau in range(min_tau, max_tau + 1):
        if cmndf[tau] < threshold:
            # Walk down to the bottom of this dip
            while tau + 1 <= max_tau and cmndf[tau + 1] < cmndf[tau]:
                tau += 1
            return tau
    return -1


def _parabolic_refine(cmndf: np.ndarray, tau: int, max_tau: int) -> float:
    if tau <= 1 or tau >= max_tau:
        return float(tau)

    s0, s1, s2 = cmndf[tau - 1], cmndf[tau], cmndf[tau + 1]
    denominator = 2 * (2 * s1 - s2 - s0)
    if denominator == 0:
        return float(tau)
    return tau + (s2 - s0) / denominator


def estimate_pitch(
    buffer: AudioBuffer,
    sample_rate: float,
    min_frequency: float = YinOptions.MIN_FREQUENCY,
    max_frequency: float = YinOptions.MAX_FREQUENCY,
    threshold: float = YinOptions.THRESHOLD,
) -> float:
    """Estimate the fundamental frequency of an audio window.

    Args:
        buffer: Mono samples of one analysis window
        sample_rate: Sample rate in Hz
        min_frequency: Lowest frequency to report
        max_frequency: Highest frequency to report
        threshold: CMNDF value a lag must fall under to be accepted outright

    Returns:
        The frequency in Hz, or 0.0 when no stable pitch was found
    """
    samples = np.asarray(buffer, dtype=np.float64)
    if sample_rate <= 0 or samples.size < 2:
        return 0.0

    max_tau = min(int(sample_rate // min_frequency), samples.size // 2 - 1)
    min_tau = max(2, int(sample_rate // max_frequency))
    if max_tau <= min_tau:
        return 0.0

    cmndf = _cumulative_mean_normalized(_difference(samples, max_tau))

    tau_estimate = _absolute_threshold(cmndf, min_tau, max_tau, threshold)
    if tau_estimate == -1:
        band = cmndf[min_tau : max_tau + 1]
        tau_estimate = min_tau + int(np.argmin(band))
        min_value = float(band[tau_estimate - min_tau])
        if not math.isfinite(min_value) or min_value > YinOptions.FALLBACK_MAX_CMNDF:
            return 0.0

    better_tau = _parabolic_refine(cmndf, tau_estimate, max_tau)
    if not math.isfinite(better_tau) or better_tau <= 0:
        return 0.0

    frequency = sample_rate / better_tau
    if not math.isfinite(frequency) or frequency < min_frequency or frequency > max_frequency:
        return 0.0

    return float(frequency)


def calculate_rms_level(buffer: AudioBuffer) -> float:
    """Root-mean-square level of a buffer, 0.0 for an empty one."""
    samples = np.asarray(buffer, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples**2)))
