"""Dominant-frequency estimation over fixed-length segments of a PCM buffer."""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Sequence

import numpy as np

from .types import SegmentEstimate

LOGGER = logging.getLogger("deafield.frequency")

DEFAULT_SEGMENT_SECONDS = 1.0


class AnalysisError(ValueError):
    pass


def segment_length(sample_rate: float, segment_seconds: float) -> int:
    """Return the number of samples in one segment, rejecting unusable parameters."""
    if not math.isfinite(sample_rate) or sample_rate <= 0:
        raise AnalysisError(f"sample_rate must be a positive finite number, got {sample_rate!r}")
    if not math.isfinite(segment_seconds) or segment_seconds <= 0:
        raise AnalysisError(f"segment_seconds must be a positive finite number, got {segment_seconds!r}")
    samples = int(math.floor(sample_rate * segment_seconds))
    if samples < 1:
        raise AnalysisError(
            f"segment of {segment_seconds}s at {sample_rate} Hz holds no samples"
        )
    return samples


def autocorrelate(segment: np.ndarray) -> np.ndarray:
    """Linear autocorrelation of ``segment`` for lags ``0 .. len(segment) - 1``."""
    data = np.asarray(segment, dtype=np.float64)
    if data.size == 0:
        return data
    full = np.correlate(data, data, mode="full")
    return full[data.size - 1 :]


def peak_lag(autocorr: np.ndarray) -> int:
    """Return the lag of the autocorrelation peak beyond the central lobe.

    Lag 0 always carries the signal energy, so the search starts at the first
    negative lag. ``0`` means no usable peak: no energy, no negative lag
    (silence, DC or monotone content) or a non-positive maximum.
    """
    if autocorr.size < 2 or not autocorr[0] > 0:
        return 0
    negative = np.flatnonzero(autocorr < 0)
    if negative.size == 0:
        return 0
    start = int(negative[0])
    lag = start + int(np.argmax(autocorr[start:]))
    if not autocorr[lag] > 0:
        return 0
    return lag


class FrequencyAnalyzer:
    """Estimates one dominant frequency per non-overlapping segment."""

    def __init__(self, segment_seconds: float = DEFAULT_SEGMENT_SECONDS) -> None:
        if not math.isfinite(segment_seconds) or segment_seconds <= 0:
            raise AnalysisError(f"segment_seconds must be a positive finite number, got {segment_seconds!r}")
        self.segment_seconds = float(segment_seconds)

    def segments(self, samples: Sequence[float] | np.ndarray, sample_rate: float) -> List[SegmentEstimate]:
        """Analyse every complete segment and report accepted and rejected ones alike."""
        seg_len = segment_length(sample_rate, self.segment_seconds)
        data = self._as_mono(samples)
        results: List[SegmentEstimate] = []
        cursor = 0
        index = 0
        while cursor + seg_len <= data.size:
            results.append(self._estimate(data[cursor : cursor + seg_len], index, cursor, sample_rate))
            cursor += seg_len
            index += 1
        return results

    def analyze(self, samples: Sequence[float] | np.ndarray, sample_rate: float) -> List[float]:
        return [item.frequency for item in self.segments(samples, sample_rate) if item.frequency is not None]

    def _estimate(self, segment: np.ndarray, index: int, start: int, sample_rate: float) -> SegmentEstimate:
        autocorr = autocorrelate(segment)
        lag = peak_lag(autocorr)
        value = float(autocorr[lag]) if autocorr.size else 0.0
        if lag <= 0 or lag >= segment.size:
            LOGGER.debug("Segment %d: invalid peak lag %d, skipped", index, lag)
            return SegmentEstimate(index=index, start=start, peak_lag=lag, peak_value=value, frequency=None)
        frequency = float(sample_rate) / lag
        if not math.isfinite(frequency):
            LOGGER.debug("Segment %d: non-finite frequency, skipped", index)
            return SegmentEstimate(index=index, start=start, peak_lag=lag, peak_value=value, frequency=None)
        return SegmentEstimate(index=index, start=start, peak_lag=lag, peak_value=value, frequency=frequency)

    @staticmethod
    def _as_mono(samples: Iterable[float] | np.ndarray) -> np.ndarray:
        data = np.asarray(samples if isinstance(samples, np.ndarray) else list(samples), dtype=np.float64)
        if data.ndim == 0:
            raise AnalysisError("samples must be a one-dimensional sequence")
        if data.ndim > 1:
            raise AnalysisError(f"expected mono samples, got array of shape {data.shape}")
        return data


def analyze(
    samples: Sequence[float] | np.ndarray,
    sample_rate: float,
    segment_seconds: float = DEFAULT_SEGMENT_SECONDS,
) -> List[float]:
    """Return the dominant frequency (Hz) of every segment that yields one, in segment order."""
    return FrequencyAnalyzer(segment_seconds).analyze(samples, sample_rate)


__all__ = [
    "AnalysisError",
    "FrequencyAnalyzer",
    "analyze",
    "autocorrelate",
    "peak_lag",
    "segment_length",
]
