"""Data models shared across the reader core, tools, and storage layers."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Literal, Optional

TerminatorKind = Literal["lf", "crlf", "cr", "none"]


@dataclass(slots=True, frozen=True)
class LineRecord:
    """A returned line together with where it started in the byte stream."""

    number: int
    offset: int
    text: str
    terminator: str = ""

    @property
    def byte_length(self) -> int:
        return len(self.text)

    @property
    def end_offset(self) -> int:
        return self.offset + len(self.text)

    @property
    def body(self) -> str:
        return self.text[: len(self.text) - len(self.terminator)]

    @property
    def kind(self) -> TerminatorKind:
        return terminator_kind(self.terminator)


def terminator_kind(terminator: str) -> TerminatorKind:
    if terminator == "\r\n":
        return "crlf"
    if terminator == "\n":
        return "lf"
    if terminator == "\r":
        return "cr"
    return "none"


@dataclass(slots=True)
class LineStats:
    """Line and terminator counts gathered for one file."""

    file_path: Path
    total_lines: int = 0
    total_bytes: int = 0
    terminators: Dict[str, int] = field(
        default_factory=lambda: {"lf": 0, "crlf": 0, "cr": 0, "none": 0}
    )
    longest_line_bytes: int = 0

    @property
    def mixed_terminators(self) -> bool:
        used = [kind for kind in ("lf", "crlf", "cr") if self.terminators.get(kind)]
        return len(used) > 1


@dataclass(slots=True)
class ScanProgress:
    """Progress payload reported back to callers during long scans."""

    file_path: Path
    job_id: str
    lines_read: int
    position: int
    total_bytes: Optional[int]
    current_phase: str
    bytes_per_second: Optional[float] = None


@dataclass(slots=True)
class ScanSummary:
    """Outcome of a resumable scan over a single file."""

    file_path: Path
    job_id: str
    start_offset: int
    end_offset: int
    lines_read: int
    resumed: bool = False
    completed: bool = False
    state: str = "PENDING"

    @property
    def bytes_read(self) -> int:
        return self.end_offset - self.start_offset


@dataclass(slots=True)
class GlobalSettings:
    """Global knobs that apply across profiles."""

    encoding: str = "utf-8"
    error_policy: str = "fail-fast"  # fail-fast | replace
    checkpoint_dir: str = "artifacts/checkpoints"


@dataclass(slots=True)
class ProfileSettings:
    """Profile-specific reader and tooling settings."""

    description: str
    initial_line_capacity: int = 200
    read_buffer_bytes: int = 65_536
    checkpoint_every_lines: int = 10_000
    index_chunk_rows: int = 10_000


@dataclass(slots=True)
class RuntimeConfig:
    """Resolved configuration for a single run."""

    global_settings: GlobalSettings
    profile: ProfileSettings
