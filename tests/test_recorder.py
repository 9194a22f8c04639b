import types

import numpy as np
import pytest
import soundfile as sf

from mobile.deafield.audio import recorder as recorder_module
from mobile.deafield.audio.recorder import AudioRecorder, RecorderError
from mobile.deafield.services.logger import LogBuffer
from mobile.deafield.store.recording_store import RecordingRepository


class DummyStream:
    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.callback = kwargs["callback"]
        self.started = False
        self.closed = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def close(self) -> None:
        self.closed = True


def _backend(streams: list[DummyStream]):
    def factory(**kwargs):
        stream = DummyStream(**kwargs)
        streams.append(stream)
        return stream

    return types.SimpleNamespace(InputStream=factory)


def test_stop_returns_saved_recording(tmp_path):
    streams: list[DummyStream] = []
    repo = RecordingRepository(tmp_path / "recordings")
    recorder = AudioRecorder(repo, LogBuffer(), sample_rate=12_000, channels=1, backend=_backend(streams))

    recorder.start()
    assert recorder.is_recording
    stream = streams[0]
    assert stream.started
    assert stream.kwargs["samplerate"] == 12_000
    assert stream.kwargs["dtype"] == "float32"

    block = np.full((6_000, 1), 0.25, dtype=np.float32)
    stream.callback(block, 6_000, None, None)
    stream.callback(block, 6_000, None, None)

    handle = recorder.stop(name="Morning note")
    assert not recorder.is_recording
    assert stream.closed
    assert handle.name == "Morning note"
    assert handle.duration_s == pytest.approx(1.0)
    assert handle.sample_rate == 12_000
    assert [item.id for item in repo.list_recordings()] == [handle.id]

    data, rate = sf.read(handle.path, dtype="float32")
    assert rate == 12_000
    assert data.shape == (12_000,)
    assert np.allclose(data, 0.25, atol=1e-3)


def test_multichannel_blocks_keep_first_channel(tmp_path):
    streams: list[DummyStream] = []
    repo = RecordingRepository(tmp_path / "recordings")
    recorder = AudioRecorder(repo, LogBuffer(), sample_rate=8_000, channels=2, backend=_backend(streams))
    recorder.start()
    block = np.zeros((800, 2), dtype=np.float32)
    block[:, 0] = 0.5
    streams[0].callback(block, 800, None, None)
    handle = recorder.stop()

    data, _ = sf.read(handle.path, dtype="float32")
    assert data.ndim == 1
    assert np.allclose(data, 0.5, atol=1e-3)


def test_stop_without_start_raises(tmp_path):
    recorder = AudioRecorder(RecordingRepository(tmp_path), LogBuffer(), backend=_backend([]))
    with pytest.raises(RecorderError):
        recorder.stop()


def test_missing_backend_raises(tmp_path, monkeypatch):
    monkeypatch.setattr(AudioRecorder, "_try_import_sounddevice", lambda self: None)
    recorder = AudioRecorder(RecordingRepository(tmp_path), LogBuffer())
    with pytest.raises(RecorderError):
        recorder.start()
    assert not recorder.is_recording


def test_stream_open_failure_is_reported(tmp_path):
    def broken(**kwargs):
        raise OSError("device busy")

    logger = LogBuffer()
    recorder = AudioRecorder(
        RecordingRepository(tmp_path), logger, backend=types.SimpleNamespace(InputStream=broken)
    )
    with pytest.raises(RecorderError):
        recorder.start()
    assert any("device busy" in line for line in logger.get())


def test_blocks_report_rms_level(tmp_path):
    streams: list[DummyStream] = []
    levels: list[float] = []
    recorder = AudioRecorder(
        RecordingRepository(tmp_path),
        LogBuffer(),
        sample_rate=8_000,
        backend=_backend(streams),
        level_callback=levels.append,
    )
    recorder.start()
    callback = streams[0].callback
    callback(np.full((400, 1), 0.5, dtype=np.float32), 400, None, None)
    callback(np.zeros((400, 1), dtype=np.float32), 400, None, None)
    callback(np.full((400, 1), -4.0, dtype=np.float32), 400, None, None)

    assert levels == [pytest.approx(0.5), 0.0, 1.0]
    assert recorder.level == 1.0

    recorder.stop()
    assert recorder.level == 0.0
    assert levels[-1] == 0.0


def test_failed_save_keeps_capture_for_retry(tmp_path, monkeypatch):
    streams: list[DummyStream] = []
    logger = LogBuffer()
    repo = RecordingRepository(tmp_path / "recordings")
    recorder = AudioRecorder(repo, logger, sample_rate=8_000, backend=_backend(streams))
    recorder.start()
    block = np.full((4_000, 1), 0.25, dtype=np.float32)
    streams[0].callback(block, 4_000, None, None)
    streams[0].callback(block, 4_000, None, None)

    real_write = recorder_module.sf.write

    def failing_write(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(recorder_module.sf, "write", failing_write)
    with pytest.raises(RecorderError):
        recorder.stop()
    assert not recorder.is_recording
    assert recorder.has_unsaved
    assert len(repo) == 0
    assert not list((tmp_path / "recordings").glob("*.flac"))
    assert any("disk full" in line for line in logger.get())
    with pytest.raises(RecorderError):
        recorder.start()

    monkeypatch.setattr(recorder_module.sf, "write", real_write)
    handle = recorder.stop()
    assert handle.duration_s == pytest.approx(1.0)
    assert not recorder.has_unsaved
    assert [item.id for item in repo.list_recordings()] == [handle.id]
    with pytest.raises(RecorderError):
        recorder.stop()


def test_stream_stop_failure_still_saves(tmp_path):
    streams: list[DummyStream] = []
    logger = LogBuffer()
    recorder = AudioRecorder(RecordingRepository(tmp_path), logger, sample_rate=8_000, backend=_backend(streams))
    recorder.start()
    stream = streams[0]
    stream.callback(np.full((800, 1), 0.1, dtype=np.float32), 800, None, None)

    def broken_stop():
        raise RuntimeError("device lost")

    stream.stop = broken_stop
    handle = recorder.stop()
    assert stream.closed
    assert handle.duration_s == pytest.approx(0.1)
    assert any("device lost" in line for line in logger.get())
