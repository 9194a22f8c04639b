"""Background worker that plays feedback actions one estimate at a time."""

from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .feedback import FeedbackAction, FeedbackTable
from .logger import LogBuffer


class EnjoyState(str, enum.Enum):
    ANALYZING = "analyzing"
    ENJOYING = "enjoying"


@dataclass(slots=True)
class FeedbackTask:
    index: int
    frequency: float
    action: FeedbackAction


FeedbackSink = Callable[[FeedbackAction], None]


class FeedbackScheduler:
    """Drains an ordered queue of feedback tasks with a fixed stagger between pulses."""

    def __init__(
        self,
        sink: FeedbackSink,
        logger: LogBuffer,
        *,
        interval_s: float = 0.3,
        hold_s: float = 1.0,
        on_state: Optional[Callable[[EnjoyState], None]] = None,
    ) -> None:
        self.sink = sink
        self.logger = logger
        self.interval_s = max(0.0, float(interval_s))
        self.hold_s = max(0.0, float(hold_s))
        self.on_state = on_state
        self.state = EnjoyState.ANALYZING
        self._queue: "queue.Queue[FeedbackTask]" = queue.Queue()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="feedback-scheduler", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None
        self._set_state(EnjoyState.ANALYZING)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def schedule(self, frequencies: Sequence[float], table: FeedbackTable) -> int:
        """Queue one task per frequency, preserving order. Returns the number queued."""
        for index, frequency in enumerate(frequencies):
            self._queue.put(FeedbackTask(index=index, frequency=float(frequency), action=table.resolve(frequency)))
        return len(frequencies)

    def cancel(self) -> int:
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
            dropped += 1
        if dropped:
            self.logger.add(f"Cancelled {dropped} pending feedback pulse(s)")
        return dropped

    def pending(self) -> int:
        return self._queue.qsize()

    def join(self) -> None:
        """Block until every queued task has been dispatched or cancelled."""
        self._queue.join()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                task = self._queue.get(timeout=self.hold_s or 0.05)
            except queue.Empty:
                self._set_state(EnjoyState.ANALYZING)
                continue
            try:
                self._dispatch(task)
            finally:
                self._queue.task_done()
            if self.interval_s:
                self._stop_event.wait(self.interval_s)

    def _dispatch(self, task: FeedbackTask) -> None:
        self._set_state(EnjoyState.ENJOYING)
        try:
            self.sink(task.action)
        except Exception as exc:
            self.logger.add(f"Feedback {task.index} failed: {exc}", logging.ERROR)
            return
        self.logger.add(
            f"Pulse {task.index}: {task.frequency:.1f} Hz -> {task.action.identifier}",
            logging.DEBUG,
        )

    def _set_state(self, state: EnjoyState) -> None:
        if state is self.state:
            return
        self.state = state
        if self.on_state:
            self.on_state(state)


__all__ = ["EnjoyState", "FeedbackScheduler", "FeedbackSink", "FeedbackTask"]
