import json
import math
import types

import numpy as np
import pytest
import soundfile as sf

from mobile.deafield.app import DeafieldApp
from mobile.deafield.config import AppConfig
from mobile.deafield.services.logger import LogBuffer
from mobile.deafield.services.scheduler import EnjoyState


class DummyStream:
    def __init__(self, **kwargs) -> None:
        self.callback = kwargs["callback"]

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def close(self) -> None:
        pass


def _make_app(tmp_path, played):
    streams: list[DummyStream] = []

    def factory(**kwargs):
        stream = DummyStream(**kwargs)
        streams.append(stream)
        return stream

    config = AppConfig(data_dir=str(tmp_path), sample_rate=12_000)
    app = DeafieldApp(
        config,
        sink=lambda action: played.append(action.identifier),
        audio_backend=types.SimpleNamespace(InputStream=factory),
    )
    app.update_feedback_timing(0.0, 0.05)
    return app, streams


def test_record_analyze_and_play_feedback(tmp_path):
    played: list[str] = []
    app, streams = _make_app(tmp_path, played)
    assert app.is_first_launch
    app.on_start()
    try:
        assert not app.is_first_launch
        assert app.toggle_recording() is None
        t = np.arange(24_000)
        tone = (0.6 * np.sin(2 * math.pi * 250.0 * t / 12_000)).astype(np.float32)
        streams[0].callback(tone.reshape(-1, 1), tone.size, None, None)
        handle = app.toggle_recording()
        assert handle is not None
        assert [item.id for item in app.recordings()] == [handle.id]

        frequencies = app.analyze(handle.id)
        assert frequencies == [pytest.approx(250.0), pytest.approx(250.0)]
        app.scheduler.join()
        assert played == ["MidVibration", "MidVibration"]
    finally:
        app.on_stop()
    assert app.enjoy_state is EnjoyState.ANALYZING


def test_rename_delete_and_settings(tmp_path):
    app, streams = _make_app(tmp_path, [])
    app.toggle_recording()
    streams[0].callback(np.zeros((1_200, 1), dtype=np.float32), 1_200, None, None)
    handle = app.toggle_recording()

    renamed = app.rename_recording(handle.id, "Walk")
    assert renamed.name == "Walk"
    app.update_segment_seconds(0.5)
    assert app.settings_store.get().segment_seconds == 0.5
    assert app.analysis.analyzer.segment_seconds == 0.5

    app.delete_recording(handle.id)
    assert app.recordings() == []
    assert any("Recording deleted" in line for line in app.logger.get())


def test_settings_default_to_config_values(tmp_path):
    config = AppConfig(data_dir=str(tmp_path), segment_seconds=0.5, feedback_interval_s=0.1, feedback_hold_s=2.0)
    app = DeafieldApp(config, audio_backend=types.SimpleNamespace(InputStream=DummyStream))
    assert app.analysis.analyzer.segment_seconds == 0.5
    assert app.scheduler.interval_s == 0.1
    assert app.scheduler.hold_s == 2.0


def test_invalid_stored_segment_length_falls_back(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({"segment_seconds": 0}), encoding="utf-8")
    config = AppConfig(data_dir=str(tmp_path), segment_seconds=0.25)
    app = DeafieldApp(config, audio_backend=types.SimpleNamespace(InputStream=DummyStream))
    assert app.analysis.analyzer.segment_seconds == 0.25


def test_update_feedback_timing_persists_and_applies(tmp_path):
    app, _ = _make_app(tmp_path, [])
    app.update_feedback_timing(0.2, -1.0)
    settings = app.settings_store.get()
    assert settings.feedback_interval_s == 0.2
    assert settings.feedback_hold_s == 0.0
    assert app.scheduler.interval_s == 0.2
    assert app.scheduler.hold_s == 0.0
    with pytest.raises(ValueError):
        app.update_feedback_timing(float("inf"), 1.0)


def test_input_level_follows_capture(tmp_path):
    app, streams = _make_app(tmp_path, [])
    app.toggle_recording()
    streams[0].callback(np.full((600, 1), 0.3, dtype=np.float32), 600, None, None)
    assert app.input_level == pytest.approx(0.3)
    app.toggle_recording()
    assert app.input_level == 0.0


def test_deleting_imported_memo_keeps_original(tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    original = outside / "my_memo.wav"
    sf.write(str(original), np.zeros(1_200, dtype=np.float32), 12_000)
    app, _ = _make_app(tmp_path / "app", [])

    handle = app.import_recording(original)
    assert handle.name == "my_memo"
    assert handle.duration_s == pytest.approx(0.1)
    app.delete_recording(handle.id)

    assert original.exists()
    assert app.recordings() == []


def test_log_buffer_is_bounded():
    logger = LogBuffer(history=2)
    for index in range(3):
        logger.add(f"line {index}")
    lines = logger.get()
    assert len(lines) == 2
    assert lines[-1].endswith("line 2")
