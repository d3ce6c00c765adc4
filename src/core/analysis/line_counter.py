"""Line and terminator statistics with bounded memory usage."""
from __future__ import annotations

from pathlib import Path

from common.models import LineStats, terminator_kind
from core.lines import LineReader, split_terminator
from core.lines.sources import DEFAULT_READ_BUFFER


class LineCounter:
    """Counts logical lines (LF, CRLF or lone CR terminated) one line at a time."""

    def __init__(self, *, buffer_size: int = DEFAULT_READ_BUFFER) -> None:
        self.buffer_size = max(1024, buffer_size)

    def count(self, path: Path) -> int:
        return self.stats(path).total_lines

    def stats(self, path: Path, *, start_offset: int = 0) -> LineStats:
        result = LineStats(file_path=path)
        with LineReader.from_path(path, start_offset, buffer_size=self.buffer_size) as reader:
            for line in reader:
                result.total_lines += 1
                result.total_bytes += len(line)
                result.longest_line_bytes = max(result.longest_line_bytes, len(line))
                kind = terminator_kind(split_terminator(line)[1])
                result.terminators[kind] += 1
        return result
