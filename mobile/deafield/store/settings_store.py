"""Persistent user settings for analysis and feedback playback."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Optional

LOGGER = logging.getLogger("deafield.store")


@dataclass(slots=True)
class AppSettings:
    segment_seconds: float = 1.0
    feedback_interval_s: float = 0.3
    feedback_hold_s: float = 1.0
    has_launched_before: bool = False


class SettingsStore:
    """JSON-backed settings.

    Values missing from the file come from ``defaults``. Stored values that
    cannot be coerced, or fall outside their valid range, are logged and
    replaced by the default.
    """

    def __init__(self, path: Path, defaults: Optional[AppSettings] = None) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.defaults = defaults or AppSettings()
        self._settings = self._load()

    def _load(self) -> AppSettings:
        settings = replace(self.defaults)
        if not self.path.exists():
            return settings
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as exc:
            LOGGER.warning("Settings file %s unreadable, using defaults: %s", self.path, exc)
            raw = {}
        if not isinstance(raw, dict):
            return settings
        for field in fields(AppSettings):
            if field.name not in raw:
                continue
            default = getattr(settings, field.name)
            try:
                value = _coerce(default, raw[field.name])
            except (TypeError, ValueError):
                value = None
            if value is None or not _is_valid(field.name, value):
                LOGGER.warning(
                    "Ignoring invalid setting %s=%r in %s, using %r",
                    field.name,
                    raw[field.name],
                    self.path,
                    default,
                )
                continue
            setattr(settings, field.name, value)
        return settings

    def get(self) -> AppSettings:
        return self._settings

    def update(self, **kwargs) -> AppSettings:
        for key, value in kwargs.items():
            if not hasattr(self._settings, key):
                continue
            setattr(self._settings, key, _coerce(getattr(self._settings, key), value))
        self._persist()
        return self._settings

    def _persist(self) -> None:
        self.path.write_text(json.dumps(asdict(self._settings)), encoding="utf-8")


def _coerce(current, value):
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes"}
        return bool(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, int):
        return int(value)
    return value or ""


def _is_valid(name: str, value) -> bool:
    if name == "segment_seconds":
        return math.isfinite(value) and value > 0
    if name in ("feedback_interval_s", "feedback_hold_s"):
        return math.isfinite(value) and value >= 0
    return True


__all__ = ["AppSettings", "SettingsStore"]
