"""Lightweight checkpoint registry backed by JSON files per job/phase."""
from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

SCAN_PHASE = "scan"


@dataclass(slots=True)
class ScanCheckpoint:
    """Where a resumable scan stopped: the byte offset of the next unread line."""

    file_path: str
    position: int
    lines_read: int
    completed: bool = False

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["ScanCheckpoint"]:
        try:
            position = int(payload["position"])
            lines_read = int(payload.get("lines_read", 0))
            file_path = str(payload["file_path"])
        except (KeyError, TypeError, ValueError):
            return None
        if position < 0 or lines_read < 0:
            return None
        return cls(
            file_path=file_path,
            position=position,
            lines_read=lines_read,
            completed=bool(payload.get("completed", False)),
        )


class CheckpointRegistry:
    """Stores checkpoint payloads as JSON per job_id/phase (thread-safe)."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir else Path("artifacts/checkpoints")
        self._lock = threading.Lock()

    def load(self, job_id: str, phase: str) -> Dict[str, Any]:
        path = self._path(job_id, phase)
        with self._lock:
            if not path.exists():
                return {}
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                logger.warning("ignoring unreadable checkpoint %s", path)
                return {}
        return data if isinstance(data, dict) else {}

    def save(self, job_id: str, phase: str, payload: Dict[str, Any]) -> None:
        path = self._path(job_id, phase)
        enriched = dict(payload)
        enriched["updated_at"] = time.time()
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(json.dumps(enriched, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, path)
        logger.debug("saved checkpoint %s/%s", phase, job_id)

    def clear(self, job_id: str, phase: str) -> None:
        path = self._path(job_id, phase)
        with self._lock:
            path.unlink(missing_ok=True)

    def load_scan(self, job_id: str) -> Optional[ScanCheckpoint]:
        payload = self.load(job_id, SCAN_PHASE)
        if not payload:
            return None
        return ScanCheckpoint.from_payload(payload)

    def save_scan(self, job_id: str, checkpoint: ScanCheckpoint, **extra: Any) -> None:
        self.save(job_id, SCAN_PHASE, {**asdict(checkpoint), **extra})

    def _path(self, job_id: str, phase: str) -> Path:
        safe_phase = phase.replace("/", "_")
        safe_job = job_id.replace(os.sep, "_").replace("/", "_")
        return self.base_dir / safe_phase / f"{safe_job}.json"
