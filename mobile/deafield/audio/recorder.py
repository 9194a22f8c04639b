"""Microphone capture that hands back a finished recording on stop."""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

import numpy as np
import soundfile as sf

from ..config import CONFIG
from ..services.logger import LogBuffer
from ..store.recording_store import RecordingRepository, RecordingStoreError
from .types import RecordingHandle


class RecorderError(Exception):
    pass


class AudioRecorder:
    """Captures float32 blocks from a ``sounddevice.InputStream``.

    ``level_callback`` receives the RMS level (0..1) of every captured block.
    A capture whose save fails is kept; calling ``stop()`` again retries it.
    """

    def __init__(
        self,
        repository: RecordingRepository,
        logger: LogBuffer,
        *,
        sample_rate: int = CONFIG.sample_rate,
        channels: int = CONFIG.channels,
        backend=None,
        level_callback: Callable[[float], None] | None = None,
    ) -> None:
        self.repository = repository
        self.logger = logger
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.level_callback = level_callback
        self.level = 0.0
        self._sd = backend if backend is not None else self._try_import_sounddevice()
        self._stream = None
        self._blocks: List[np.ndarray] = []
        self._unsaved = False
        self._lock = threading.Lock()

    def _try_import_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore

            return sd
        except (ImportError, OSError):
            return None

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    @property
    def has_unsaved(self) -> bool:
        return self._unsaved

    def start(self) -> None:
        if self._stream is not None:
            return
        if self._unsaved:
            raise RecorderError("Previous recording has not been saved yet")
        if self._sd is None:
            raise RecorderError("No audio input backend available (install sounddevice and PortAudio)")
        with self._lock:
            self._blocks = []
        try:
            stream = self._sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="float32",
                callback=self._on_block,
            )
            stream.start()
        except Exception as exc:
            self.logger.add(f"Recording failed: {exc}", logging.ERROR)
            raise RecorderError(f"Unable to open input stream: {exc}") from exc
        self._stream = stream
        self.logger.add("Recording started")

    def stop(self, name: Optional[str] = None) -> RecordingHandle:
        """Close the capture session, persist it and return its handle."""
        stream = self._stream
        if stream is None and not self._unsaved:
            raise RecorderError("Recorder is not running")
        if stream is not None:
            self._stream = None
            self._unsaved = True
            self._close_stream(stream)
            self._report_level(np.zeros(0, dtype=np.float32))
        with self._lock:
            blocks = list(self._blocks)
        pcm = np.concatenate(blocks) if blocks else np.zeros(0, dtype=np.float32)
        path = self.repository.reserve_path(".flac")
        try:
            sf.write(str(path), pcm, self.sample_rate, format="FLAC", subtype="PCM_16")
            handle = self.repository.add_recording(
                path,
                name=name,
                duration_s=len(pcm) / float(self.sample_rate),
                sample_rate=self.sample_rate,
            )
        except (RuntimeError, OSError, RecordingStoreError) as exc:
            path.unlink(missing_ok=True)
            self.logger.add(f"Saving recording failed: {exc}", logging.ERROR)
            raise RecorderError(f"Unable to save recording: {exc}") from exc
        with self._lock:
            self._blocks = []
        self._unsaved = False
        self.logger.add(f"Recording stopped ({handle.duration_s:.1f}s saved as {handle.name})")
        return handle

    def _close_stream(self, stream) -> None:
        try:
            stream.stop()
        except Exception as exc:
            self.logger.add(f"Input stream stop failed: {exc}", logging.WARNING)
        try:
            stream.close()
        except Exception as exc:
            self.logger.add(f"Input stream close failed: {exc}", logging.WARNING)

    def _on_block(self, indata, frames, time_info, status) -> None:  # noqa: ARG002
        if status:
            self.logger.add(f"Input status: {status}")
        block = _to_mono_array(np.array(indata, dtype=np.float32, copy=True))
        with self._lock:
            self._blocks.append(block)
        self._report_level(block)

    def _report_level(self, block: np.ndarray) -> float:
        level = float(np.sqrt(np.mean(np.square(block)))) if block.size else 0.0
        if not np.isfinite(level):
            level = 0.0
        level = max(0.0, min(1.0, level))
        self.level = level
        if self.level_callback:
            self.level_callback(level)
        return level


def _to_mono_array(data: np.ndarray) -> np.ndarray:
    if data.ndim == 1:
        return data
    return data[:, 0]


__all__ = ["AudioRecorder", "RecorderError"]
