"""Bounded activity log shared by the recorder, scheduler and analysis service."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import List

LOGGER = logging.getLogger("deafield.activity")


class LogBuffer:
    """Keeps the most recent ``history`` lines and mirrors them into ``logging``."""

    def __init__(self, history: int = 200) -> None:
        self._lines: deque[str] = deque(maxlen=max(1, int(history)))
        self._lock = threading.Lock()

    def add(self, message: str, level: int = logging.INFO) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        with self._lock:
            self._lines.append(f"[{stamp}] {message}")
        LOGGER.log(level, message)

    def get(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["LogBuffer", "configure_logging"]
