"""State machine tracking long-running scan jobs."""
from __future__ import annotations

import threading
from enum import Enum
from typing import Dict, List, Optional, Tuple

from common.errors import BackendError, ErrorCode


class JobState(str, Enum):
    """Supported lifecycle states for scan jobs."""

    PENDING = "PENDING"
    SCANNING = "SCANNING"
    DONE = "DONE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


_TERMINAL_STATES = {JobState.DONE, JobState.FAILED, JobState.CANCELLED}
_STATE_ORDER: Dict[JobState, int] = {
    JobState.PENDING: 0,
    JobState.SCANNING: 1,
    JobState.DONE: 2,
}


class JobStateMachine:
    """Thread-safe helper that keeps the ordered history of a job's states."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self._state = JobState.PENDING
        self._lock = threading.Lock()
        self.history: List[Tuple[JobState, Optional[str]]] = [(JobState.PENDING, "job registered")]

    @property
    def state(self) -> JobState:
        return self._state

    def transition(self, target: JobState, *, detail: str | None = None) -> None:
        with self._lock:
            if target == self._state:
                return
            if not self._can_transition(target):
                raise BackendError(
                    ErrorCode.STATE_ERROR,
                    f"Invalid transition {self._state.value} -> {target.value}",
                    context={"job_id": self.job_id},
                )
            self._state = target
            self.history.append((target, detail))

    def mark_failed(self, detail: str | None = None) -> None:
        with self._lock:
            self._state = JobState.FAILED
            self.history.append((JobState.FAILED, detail))

    def mark_cancelled(self, detail: str | None = None) -> None:
        with self._lock:
            self._state = JobState.CANCELLED
            self.history.append((JobState.CANCELLED, detail))

    def _can_transition(self, target: JobState) -> bool:
        if self._state in _TERMINAL_STATES:
            return False
        if target in {JobState.FAILED, JobState.CANCELLED}:
            return True
        current_rank = _STATE_ORDER.get(self._state, -1)
        target_rank = _STATE_ORDER.get(target, -1)
        return target_rank >= current_rank
