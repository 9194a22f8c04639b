"""Runs frequency analysis on stored recordings and queues the feedback."""

from __future__ import annotations

from typing import List, Optional

from ..audio.frequency import FrequencyAnalyzer
from ..audio.loader import RecordingLoadError, load_samples
from ..store.recording_store import RecordingRepository
from .feedback import FeedbackTable
from .logger import LogBuffer
from .scheduler import FeedbackScheduler


class AnalysisService:
    def __init__(
        self,
        repository: RecordingRepository,
        logger: LogBuffer,
        *,
        analyzer: Optional[FrequencyAnalyzer] = None,
        scheduler: Optional[FeedbackScheduler] = None,
        table: Optional[FeedbackTable] = None,
    ) -> None:
        self.repository = repository
        self.logger = logger
        self.analyzer = analyzer or FrequencyAnalyzer()
        self.scheduler = scheduler
        self.table = table or FeedbackTable.default_table()

    def analyze_recording(self, recording_id: str) -> List[float]:
        """Return the dominant frequencies of a recording and queue their feedback.

        A recording that cannot be decoded is logged and yields an empty list.
        Unknown ids raise ``RecordingNotFound``.
        """
        handle = self.repository.get(recording_id)
        try:
            samples, sample_rate = load_samples(handle.path)
        except RecordingLoadError as exc:
            self.logger.add(f"Error loading {handle.name}: {exc}")
            return []
        frequencies = self.analyzer.analyze(samples, sample_rate)
        if not frequencies:
            self.logger.add(f"No dominant frequencies found in {handle.name}")
            return frequencies
        self.logger.add(
            f"{handle.name}: {len(frequencies)} dominant frequencies "
            f"({min(frequencies):.1f}-{max(frequencies):.1f} Hz)"
        )
        if self.scheduler is not None:
            self.scheduler.schedule(frequencies, self.table)
        return frequencies


__all__ = ["AnalysisService"]
