"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class SegmentEstimate:
    """Outcome of analysing one complete segment of a sample buffer."""

    index: int
    start: int
    peak_lag: int
    peak_value: float
    frequency: Optional[float]

    @property
    def accepted(self) -> bool:
        return self.frequency is not None


@dataclass(slots=True)
class RecordingHandle:
    """Metadata for a recording kept by the recording repository."""

    id: str
    name: str
    path: str
    created_at: str
    duration_s: float
    sample_rate: int
