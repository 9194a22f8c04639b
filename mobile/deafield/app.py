"""Headless entrypoint wiring the Deafield recorder, stores and feedback loop."""

from __future__ import annotations

import math
from pathlib import Path
from typing import List, Optional

from .audio.frequency import FrequencyAnalyzer
from .audio.recorder import AudioRecorder
from .audio.types import RecordingHandle
from .config import CONFIG, AppConfig
from .services.analysis import AnalysisService
from .services.feedback import FeedbackAction, FeedbackTable
from .services.logger import LogBuffer
from .services.scheduler import EnjoyState, FeedbackScheduler, FeedbackSink
from .store.recording_store import RecordingRepository
from .store.settings_store import AppSettings, SettingsStore


class DeafieldApp:
    def __init__(
        self,
        config: AppConfig = CONFIG,
        *,
        base_dir: Optional[Path] = None,
        sink: Optional[FeedbackSink] = None,
        audio_backend=None,
        table: Optional[FeedbackTable] = None,
    ) -> None:
        self.config = config
        self.base_dir = Path(base_dir) if base_dir else config.base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.logger = LogBuffer(config.log_history)
        self.settings_store = SettingsStore(
            self.base_dir / config.settings_file,
            AppSettings(
                segment_seconds=config.segment_seconds,
                feedback_interval_s=config.feedback_interval_s,
                feedback_hold_s=config.feedback_hold_s,
            ),
        )
        settings = self.settings_store.get()
        self.repository = RecordingRepository(self.base_dir / config.recordings_dir)
        self.recorder = AudioRecorder(
            self.repository,
            self.logger,
            sample_rate=config.sample_rate,
            channels=config.channels,
            backend=audio_backend,
            level_callback=self._on_input_level,
        )
        self.input_level = 0.0
        self.enjoy_state = EnjoyState.ANALYZING
        self.scheduler = FeedbackScheduler(
            sink or self._log_feedback,
            self.logger,
            interval_s=settings.feedback_interval_s,
            hold_s=settings.feedback_hold_s,
            on_state=self._on_enjoy_state,
        )
        self.analysis = AnalysisService(
            self.repository,
            self.logger,
            analyzer=FrequencyAnalyzer(settings.segment_seconds),
            scheduler=self.scheduler,
            table=table,
        )

    @property
    def is_first_launch(self) -> bool:
        return not self.settings_store.get().has_launched_before

    def on_start(self) -> None:
        if self.is_first_launch:
            self.settings_store.update(has_launched_before=True)
        self.scheduler.start()

    def on_stop(self) -> None:
        if self.recorder.is_recording:
            self.recorder.stop()
        self.scheduler.cancel()
        self.scheduler.stop()

    def toggle_recording(self) -> Optional[RecordingHandle]:
        """Start capturing, or stop and return the saved recording."""
        if self.recorder.is_recording or self.recorder.has_unsaved:
            return self.recorder.stop()
        self.recorder.start()
        return None

    def recordings(self) -> List[RecordingHandle]:
        return self.repository.list_recordings()

    def rename_recording(self, recording_id: str, name: str) -> RecordingHandle:
        handle = self.repository.rename_recording(recording_id, name)
        self.logger.add(f"Recording renamed to {handle.name}")
        return handle

    def delete_recording(self, recording_id: str) -> None:
        self.repository.delete_recording(recording_id)
        self.logger.add("Recording deleted")

    def import_recording(self, path: Path, name: Optional[str] = None) -> RecordingHandle:
        return self.repository.add_recording(path, name=name)

    def analyze(self, recording_id: str) -> List[float]:
        return self.analysis.analyze_recording(recording_id)

    def update_segment_seconds(self, value: float) -> None:
        analyzer = FrequencyAnalyzer(value)
        self.settings_store.update(segment_seconds=analyzer.segment_seconds)
        self.analysis.analyzer = analyzer
        self.logger.add(f"Segment length set to {analyzer.segment_seconds:.2f}s")

    def update_feedback_timing(self, interval_s: float, hold_s: float) -> None:
        interval_s, hold_s = float(interval_s), float(hold_s)
        if not (math.isfinite(interval_s) and math.isfinite(hold_s)):
            raise ValueError("Feedback timing must be finite")
        interval_s, hold_s = max(0.0, interval_s), max(0.0, hold_s)
        self.settings_store.update(feedback_interval_s=interval_s, feedback_hold_s=hold_s)
        self.scheduler.interval_s = interval_s
        self.scheduler.hold_s = hold_s
        self.logger.add(f"Feedback timing set to {interval_s:.2f}s apart, {hold_s:.2f}s hold")

    def _on_input_level(self, level: float) -> None:
        self.input_level = level

    def _on_enjoy_state(self, state: EnjoyState) -> None:
        self.enjoy_state = state

    def _log_feedback(self, action: FeedbackAction) -> None:
        self.logger.add(
            f"Feedback {action.identifier} (sharpness {action.sharpness:.2f}, intensity {action.intensity:.2f})"
        )


__all__ = ["DeafieldApp"]
