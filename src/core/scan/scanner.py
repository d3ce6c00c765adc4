"""Resumable line scanning with periodic checkpoints."""
from __future__ import annotations

import logging
import time
from itertools import islice
from pathlib import Path
from typing import Callable, Optional, Tuple

from common.errors import BackendError, ErrorCode
from common.models import LineRecord, RuntimeConfig, ScanProgress, ScanSummary
from common.progress import ProgressLogger
from core.jobs import CheckpointRegistry, JobState, JobStateMachine, ScanCheckpoint
from core.lines import LineReader

logger = logging.getLogger(__name__)

RecordHandler = Optional[Callable[[LineRecord], None]]
ProgressCallback = Optional[Callable[[ScanProgress], None]]


class ResumableScanner:
    """Feeds every line of a file to a handler and remembers how far it got.

    The stored position is always the offset of the first line the handler
    has not yet accepted, so a resumed scan never skips or repeats a line.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        *,
        checkpoint_dir: Optional[Path] = None,
        progress_log: Optional[Path] = None,
    ) -> None:
        self.config = config
        base_dir = Path(checkpoint_dir) if checkpoint_dir else Path(config.global_settings.checkpoint_dir)
        self.registry = CheckpointRegistry(base_dir)
        self.progress_logger = ProgressLogger(progress_log) if progress_log else None

    def scan(
        self,
        path: Path,
        *,
        job_id: str,
        start_offset: int = 0,
        resume: bool = False,
        handler: RecordHandler = None,
        progress_callback: ProgressCallback = None,
        limit: Optional[int] = None,
    ) -> ScanSummary:
        path = Path(path)
        if limit is not None and limit < 0:
            raise BackendError(
                ErrorCode.INVALID_ARGUMENT, "limit must be >= 0", context={"limit": limit}
            )
        offset, prior_lines, checkpoint = self._resolve_start(path, job_id, start_offset, resume)
        summary = ScanSummary(
            file_path=path,
            job_id=job_id,
            start_offset=offset,
            end_offset=offset,
            lines_read=0,
            resumed=checkpoint is not None,
        )
        machine = JobStateMachine(job_id)
        if checkpoint is not None and checkpoint.completed:
            logger.info("job %s already completed at offset %d", job_id, offset)
            summary.completed = True
            summary.state = JobState.DONE.value
            return summary

        total_bytes = _file_size(path)
        every = self.config.profile.checkpoint_every_lines
        started = time.perf_counter()
        machine.transition(JobState.SCANNING, detail=f"offset={offset}")
        summary.state = machine.state.value
        try:
            with LineReader.from_path(
                path,
                offset,
                buffer_size=self.config.profile.read_buffer_bytes,
                initial_capacity=self.config.profile.initial_line_capacity,
            ) as reader:
                records = reader.iter_records(first_number=prior_lines + 1)
                if limit is not None:
                    # islice never pulls a line beyond the limit
                    records = islice(records, limit)
                for record in records:
                    if handler:
                        handler(record)
                    summary.lines_read += 1
                    summary.end_offset = record.end_offset
                    if summary.lines_read % every == 0:
                        self._save(summary, prior_lines, path)
                        self._emit_progress(summary, prior_lines, total_bytes, started, progress_callback)
                summary.completed = not reader.has_next()
        except KeyboardInterrupt:
            machine.mark_cancelled("interrupted")
            summary.state = machine.state.value
            self._save(summary, prior_lines, path)
            logger.info("job %s cancelled at offset %d", job_id, summary.end_offset)
            raise
        except Exception as exc:
            machine.mark_failed(str(exc))
            summary.state = machine.state.value
            self._save(summary, prior_lines, path)
            raise

        if summary.completed:
            machine.transition(JobState.DONE, detail=f"lines={summary.lines_read}")
        summary.state = machine.state.value
        self._save(summary, prior_lines, path)
        self._emit_progress(summary, prior_lines, total_bytes, started, progress_callback)
        return summary

    def _resolve_start(
        self,
        path: Path,
        job_id: str,
        start_offset: int,
        resume: bool,
    ) -> Tuple[int, int, Optional[ScanCheckpoint]]:
        if start_offset < 0:
            raise BackendError(ErrorCode.INVALID_ARGUMENT, "start offset must be >= 0")
        if not resume:
            return start_offset, 0, None
        checkpoint = self.registry.load_scan(job_id)
        if checkpoint is None:
            logger.info("no checkpoint for job %s; starting at offset %d", job_id, start_offset)
            return start_offset, 0, None
        if checkpoint.file_path != str(path.resolve()):
            raise BackendError(
                ErrorCode.STATE_ERROR,
                f"Checkpoint for job '{job_id}' belongs to {checkpoint.file_path}",
                context={"job_id": job_id, "file_path": str(path)},
            )
        return checkpoint.position, checkpoint.lines_read, checkpoint

    def _save(self, summary: ScanSummary, prior_lines: int, path: Path) -> None:
        self.registry.save_scan(
            summary.job_id,
            ScanCheckpoint(
                file_path=str(path.resolve()),
                position=summary.end_offset,
                lines_read=prior_lines + summary.lines_read,
                completed=summary.completed,
            ),
            state=summary.state,
        )

    def _emit_progress(
        self,
        summary: ScanSummary,
        prior_lines: int,
        total_bytes: Optional[int],
        started: float,
        progress_callback: ProgressCallback,
    ) -> None:
        elapsed = time.perf_counter() - started
        progress = ScanProgress(
            file_path=summary.file_path,
            job_id=summary.job_id,
            lines_read=prior_lines + summary.lines_read,
            position=summary.end_offset,
            total_bytes=total_bytes,
            current_phase="scan-complete" if summary.completed else "scanning",
            bytes_per_second=summary.bytes_read / elapsed if elapsed > 0 else None,
        )
        if progress_callback:
            progress_callback(progress)
        if self.progress_logger:
            self.progress_logger.emit(progress)


def _file_size(path: Path) -> Optional[int]:
    try:
        return path.stat().st_size
    except OSError:
        return None
