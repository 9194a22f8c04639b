"""Decode finished recordings into float PCM for analysis."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
import soundfile as sf


class RecordingLoadError(Exception):
    pass


def load_samples(path: Path | str) -> Tuple[np.ndarray, int]:
    """Read ``path`` fully into memory and return ``(mono_float32, sample_rate)``.

    Multi-channel files are reduced to their first channel.
    """
    path = Path(path)
    if not path.exists():
        raise RecordingLoadError(f"Recording does not exist: {path}")
    try:
        data, sample_rate = sf.read(str(path), dtype="float32", always_2d=False)
    except RuntimeError as exc:  # soundfile.LibsndfileError
        raise RecordingLoadError(f"Unable to decode {path.name}: {exc}") from exc
    return _to_mono_array(np.asarray(data, dtype=np.float32)), int(sample_rate)


def probe(path: Path | str) -> Tuple[float, int]:
    """Return ``(duration_seconds, sample_rate)`` without decoding the samples."""
    try:
        info = sf.info(str(path))
    except RuntimeError as exc:  # soundfile.LibsndfileError
        raise RecordingLoadError(f"Unable to read {Path(path).name}: {exc}") from exc
    return float(info.duration), int(info.samplerate)


def _to_mono_array(data: np.ndarray) -> np.ndarray:
    if data.ndim == 1:
        return data
    return np.ascontiguousarray(data[:, 0])


__all__ = ["RecordingLoadError", "load_samples", "probe"]
