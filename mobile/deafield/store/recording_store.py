"""File-system repository of voice memos with a JSON index."""

from __future__ import annotations

import json
import logging
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from ..audio.loader import RecordingLoadError, probe
from ..audio.types import RecordingHandle

LOGGER = logging.getLogger("deafield.store")

INDEX_FILE = "recordings.json"


class RecordingStoreError(Exception):
    pass


class RecordingNotFound(RecordingStoreError, KeyError):
    def __str__(self) -> str:
        return f"Unknown recording: {self.args[0]}" if self.args else "Unknown recording"


class RecordingRepository:
    """Keeps recordings in one directory and tracks them in ``recordings.json``.

    Files added from elsewhere are copied in, so deleting a recording never
    touches the caller's original.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.index_path = self.directory / INDEX_FILE
        self._sequence = 0
        self._data: List[Dict] = []
        self._load()

    def list_recordings(self) -> List[RecordingHandle]:
        return [self._to_handle(item) for item in self._data]

    def get(self, recording_id: str) -> RecordingHandle:
        return self._to_handle(self._find(recording_id))

    def reserve_path(self, suffix: str = ".flac") -> Path:
        """Return an unused file path for the next recording."""
        while True:
            self._sequence += 1
            candidate = self.directory / f"recording_{self._sequence}{suffix}"
            if not candidate.exists():
                self._persist()
                return candidate

    def add_recording(
        self,
        path: Path | str,
        *,
        name: Optional[str] = None,
        duration_s: Optional[float] = None,
        sample_rate: Optional[int] = None,
    ) -> RecordingHandle:
        path = Path(path)
        if not path.exists():
            raise RecordingStoreError(f"Recording file missing: {path}")
        if duration_s is None or sample_rate is None:
            try:
                probed_duration, probed_rate = probe(path)
            except RecordingLoadError as exc:
                raise RecordingStoreError(str(exc)) from exc
            duration_s = probed_duration if duration_s is None else duration_s
            sample_rate = probed_rate if sample_rate is None else sample_rate
        if not self._owns(path):
            source = path
            path = self.reserve_path(source.suffix)
            shutil.copy2(source, path)
            name = name or source.stem
        display = (name or "").strip() or path.stem
        entry = {
            "id": uuid.uuid4().hex,
            "name": display,
            "path": str(path),
            "created_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "duration_s": float(duration_s),
            "sample_rate": int(sample_rate),
        }
        self._data.append(entry)
        self._persist()
        LOGGER.info("Recording %s added (%s)", entry["id"][:6], display)
        return self._to_handle(entry)

    def rename_recording(self, recording_id: str, name: str) -> RecordingHandle:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValueError("Recording name cannot be empty")
        entry = self._find(recording_id)
        entry["name"] = cleaned
        self._persist()
        return self._to_handle(entry)

    def delete_recording(self, recording_id: str) -> None:
        entry = self._find(recording_id)
        path = Path(entry["path"])
        if self._owns(path):
            path.unlink(missing_ok=True)
        self._data = [item for item in self._data if item["id"] != recording_id]
        self._persist()
        LOGGER.info("Recording %s deleted", recording_id[:6])

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, recording_id: object) -> bool:
        return any(item["id"] == recording_id for item in self._data)

    def _owns(self, path: Path) -> bool:
        return path.resolve().parent == self.directory.resolve()

    def _find(self, recording_id: str) -> Dict:
        for item in self._data:
            if item["id"] == recording_id:
                return item
        raise RecordingNotFound(recording_id)

    def _load(self) -> None:
        if not self.index_path.exists():
            return
        try:
            raw = json.loads(self.index_path.read_text(encoding="utf-8"))
            entries = [dict(item) for item in raw.get("recordings", [])]
            sequence = int(raw.get("sequence", 0))
        except (ValueError, TypeError, AttributeError) as exc:
            LOGGER.warning("Recording index %s unreadable, starting empty: %s", self.index_path, exc)
            return
        self._data = [item for item in entries if item.get("path") and Path(item["path"]).exists()]
        self._sequence = sequence
        pruned = len(entries) - len(self._data)
        if pruned:
            LOGGER.info("Pruned %d recording(s) with missing files", pruned)
            self._persist()

    def _persist(self) -> None:
        payload = {"sequence": self._sequence, "recordings": self._data}
        self.index_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")

    @staticmethod
    def _to_handle(entry: Dict) -> RecordingHandle:
        return RecordingHandle(
            id=entry["id"],
            name=entry["name"],
            path=entry["path"],
            created_at=entry["created_at"],
            duration_s=float(entry.get("duration_s", 0.0)),
            sample_rate=int(entry.get("sample_rate", 0)),
        )


__all__ = ["RecordingNotFound", "RecordingRepository", "RecordingStoreError"]
