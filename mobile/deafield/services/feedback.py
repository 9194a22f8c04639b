"""Maps dominant frequencies to haptic/visual feedback actions."""

from __future__ import annotations

import math
from bisect import bisect_right
from typing import Any, Iterable, List, Mapping, Sequence

from pydantic import BaseModel, Field, ValidationError, model_validator


class FeedbackTableError(ValueError):
    pass


class FeedbackAction(BaseModel):
    model_config = {"frozen": True}

    identifier: str = Field(min_length=1)
    sharpness: float = Field(default=0.5, ge=0.0, le=1.0)
    intensity: float = Field(default=1.0, ge=0.0, le=1.0)


class FeedbackBand(BaseModel):
    """Half-open frequency range ``[lower_hz, upper_hz)`` bound to one action."""

    model_config = {"frozen": True}

    lower_hz: float = Field(ge=0.0, allow_inf_nan=False)
    upper_hz: float = Field(allow_inf_nan=False)
    action: FeedbackAction

    @model_validator(mode="after")
    def _check_bounds(self) -> "FeedbackBand":
        if self.upper_hz <= self.lower_hz:
            raise ValueError(f"upper_hz ({self.upper_hz}) must exceed lower_hz ({self.lower_hz})")
        return self

    def contains(self, frequency: float) -> bool:
        return self.lower_hz <= frequency < self.upper_hz


DEFAULT_ACTION = FeedbackAction(identifier="DefaultVibration", sharpness=0.5, intensity=0.5)

# Roughly follows the voice range: strong, dull pulses for low pitches and
# lighter, sharper ones as pitch rises.
DEFAULT_BANDS: tuple[tuple[float, float, str, float, float], ...] = (
    (20.0, 80.0, "RumbleVibration", 0.2, 1.0),
    (80.0, 160.0, "LowVibration", 0.35, 1.0),
    (160.0, 300.0, "MidVibration", 0.5, 0.8),
    (300.0, 600.0, "HighVibration", 0.7, 0.6),
    (600.0, 1200.0, "BrightVibration", 0.9, 0.5),
)


class FeedbackTable:
    """Sorted, non-overlapping set of bands resolved by binary search."""

    def __init__(self, bands: Iterable[FeedbackBand], default: FeedbackAction = DEFAULT_ACTION) -> None:
        ordered = sorted(bands, key=lambda band: band.lower_hz)
        for previous, current in zip(ordered, ordered[1:]):
            if current.lower_hz < previous.upper_hz:
                raise FeedbackTableError(
                    f"Band [{current.lower_hz}, {current.upper_hz}) overlaps "
                    f"[{previous.lower_hz}, {previous.upper_hz})"
                )
        self._bands: List[FeedbackBand] = ordered
        self._lowers = [band.lower_hz for band in ordered]
        self.default = default

    @property
    def bands(self) -> List[FeedbackBand]:
        return list(self._bands)

    def resolve(self, frequency: float) -> FeedbackAction:
        if not math.isfinite(frequency):
            return self.default
        position = bisect_right(self._lowers, frequency) - 1
        if position >= 0 and self._bands[position].contains(frequency):
            return self._bands[position].action
        return self.default

    def resolve_all(self, frequencies: Sequence[float]) -> List[FeedbackAction]:
        return [self.resolve(value) for value in frequencies]

    @classmethod
    def from_dicts(
        cls,
        entries: Iterable[Mapping[str, Any]],
        default: Mapping[str, Any] | None = None,
    ) -> "FeedbackTable":
        try:
            bands = [FeedbackBand.model_validate(entry) for entry in entries]
            fallback = FeedbackAction.model_validate(default) if default is not None else DEFAULT_ACTION
        except ValidationError as exc:
            raise FeedbackTableError(str(exc)) from exc
        return cls(bands, fallback)

    @classmethod
    def default_table(cls) -> "FeedbackTable":
        return cls(
            FeedbackBand(
                lower_hz=lower,
                upper_hz=upper,
                action=FeedbackAction(identifier=identifier, sharpness=sharpness, intensity=intensity),
            )
            for lower, upper, identifier, sharpness, intensity in DEFAULT_BANDS
        )

    def __len__(self) -> int:
        return len(self._bands)


__all__ = [
    "DEFAULT_ACTION",
    "FeedbackAction",
    "FeedbackBand",
    "FeedbackTable",
    "FeedbackTableError",
]
