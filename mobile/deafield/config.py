"""Application config resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    app_name: str = Field(default="Deafield")
    data_dir: str = Field(default=os.getenv("DEAFIELD_DATA_DIR", str(Path.home() / ".deafield")))
    recordings_dir: str = Field(default=os.getenv("DEAFIELD_RECORDINGS_DIR", "recordings"))
    settings_file: str = Field(default=os.getenv("DEAFIELD_SETTINGS_FILE", "settings.json"))
    sample_rate: int = Field(default=int(os.getenv("DEAFIELD_SAMPLE_RATE", "12000")), gt=0)
    channels: int = Field(default=int(os.getenv("DEAFIELD_CHANNELS", "1")), ge=1)
    segment_seconds: float = Field(default=float(os.getenv("DEAFIELD_SEGMENT_SECONDS", "1.0")), gt=0)
    feedback_interval_s: float = Field(default=float(os.getenv("DEAFIELD_FEEDBACK_INTERVAL", "0.3")), ge=0)
    feedback_hold_s: float = Field(default=float(os.getenv("DEAFIELD_FEEDBACK_HOLD", "1.0")), ge=0)
    log_history: int = Field(default=int(os.getenv("DEAFIELD_LOG_HISTORY", "200")), gt=0)
    log_level: str = Field(default=os.getenv("DEAFIELD_LOG_LEVEL", "INFO"))

    @property
    def base_dir(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def recordings_path(self) -> Path:
        return self.base_dir / self.recordings_dir

    @property
    def settings_path(self) -> Path:
        return self.base_dir / self.settings_file


@lru_cache()
def get_config() -> AppConfig:
    return AppConfig()


CONFIG = get_config()
