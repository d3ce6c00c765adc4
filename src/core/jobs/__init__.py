"""Job orchestration utilities (state machine, checkpoints)."""

from .state_machine import JobState, JobStateMachine
from .checkpoints import CheckpointRegistry, ScanCheckpoint

__all__ = ["JobState", "JobStateMachine", "CheckpointRegistry", "ScanCheckpoint"]
