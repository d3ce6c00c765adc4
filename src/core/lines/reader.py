"""Line reader that keeps end-of-line characters and tracks byte positions."""
from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol, Tuple, Union

from common.errors import InvalidArgumentError, IOFailure
from common.models import LineRecord
from .buffer import GrowableBuffer
from .sources import DEFAULT_READ_BUFFER, EOF, ByteSource, FileByteSource, as_byte_source

logger = logging.getLogger(__name__)

# Most human readable lines are shorter than this; longer ones grow the buffer.
INITIAL_LINE_CAPACITY = 200

LF = 0x0A
CR = 0x0D


class EndOfStream(Enum):
    """Marker queued behind the last line once the source is exhausted."""

    MARKER = "end-of-stream"


END_OF_STREAM = EndOfStream.MARKER


class LineParser(Protocol):
    """Common surface of line readers consumed by record-level readers."""

    @property
    def position(self) -> int:
        ...

    def has_next(self) -> bool:
        ...

    def peek(self) -> Optional[str]:
        ...

    def next(self) -> Optional[str]:
        ...

    def tracks_position(self) -> bool:
        ...

    def close(self) -> None:
        ...


class LineReader:
    """Reads lines from a byte source, including their end-of-line characters.

    A line ends with ``\\n`` (Unix), ``\\r\\n`` (Windows) or a lone ``\\r``
    (classic Mac OS); the style is detected per line so mixed streams work.
    Each byte maps to one character (code points 0-255), so the length of a
    returned string equals the number of bytes it consumed.

    One line is always read ahead so :meth:`peek` never touches the source.
    :attr:`position` only counts lines already handed out by :meth:`next`.

    Not thread-safe. Use as a context manager so the source is always closed.
    """

    def __init__(
        self,
        source: Union[ByteSource, Any],
        start_offset: int = 0,
        *,
        initial_capacity: int = INITIAL_LINE_CAPACITY,
    ) -> None:
        if source is None:
            raise InvalidArgumentError("source can not be None")
        if isinstance(start_offset, bool) or not isinstance(start_offset, int):
            raise InvalidArgumentError(
                "start offset must be an integer", context={"start_offset": start_offset}
            )
        if start_offset < 0:
            raise InvalidArgumentError(
                "start offset must be >= 0", context={"start_offset": start_offset}
            )
        self._source = as_byte_source(source)
        self._source_closed = False
        self._position = start_offset
        self._buffer = GrowableBuffer(initial_capacity)
        # byte read after a lone CR that belongs to the following line
        self._pending_byte: Optional[int] = None
        self._pending_line: Optional[str] = None
        self._pending_length = 0
        self._finished = False
        try:
            self._fill()
        except BaseException:
            try:
                self._close_source()
            except IOFailure:
                # keep the priming error
                logger.debug("closing source after failed priming scan also failed", exc_info=True)
            raise

    @classmethod
    def from_path(
        cls,
        path: Union[str, Path],
        start_offset: int = 0,
        *,
        buffer_size: int = DEFAULT_READ_BUFFER,
        initial_capacity: int = INITIAL_LINE_CAPACITY,
    ) -> "LineReader":
        """Open ``path`` positioned at ``start_offset`` instead of skipping bytes."""

        source = FileByteSource(path, start_offset, buffer_size=buffer_size)
        try:
            return cls(source, start_offset, initial_capacity=initial_capacity)
        except BaseException:
            source.close()
            raise

    @property
    def position(self) -> int:
        """Bytes returned by :meth:`next` so far, plus the starting offset."""

        return self._position

    def tracks_position(self) -> bool:
        return True

    def has_next(self) -> bool:
        return self.lookahead() is not END_OF_STREAM

    def lookahead(self) -> Union[str, EndOfStream]:
        """Head of the read-ahead: the next line, or the end-of-stream marker."""

        if self._pending_line is None:
            return END_OF_STREAM
        return self._pending_line

    def peek(self) -> Optional[str]:
        """Return the line :meth:`next` would return, without consuming it."""

        head = self.lookahead()
        return None if head is END_OF_STREAM else head

    def next(self) -> Optional[str]:
        """Return the next line with its terminator, or ``None`` at end of stream.

        :raises IOFailure: if reading the line after this one fails
        """

        line = self.lookahead()
        if line is END_OF_STREAM:
            return None
        self._pending_line = None
        self._position += self._pending_length
        self._pending_length = 0
        self._fill()
        return line

    def iter_records(self, first_number: int = 1) -> Iterator[LineRecord]:
        """Yield remaining lines as :class:`LineRecord` with their start offsets."""

        number = first_number
        while True:
            offset = self._position
            line = self.next()
            if line is None:
                return
            yield LineRecord(
                number=number,
                offset=offset,
                text=line,
                terminator=split_terminator(line)[1],
            )
            number += 1

    def close(self) -> None:
        """Close the source and drop any read-ahead line. Safe to call repeatedly."""

        self._pending_line = None
        self._pending_length = 0
        self._pending_byte = None
        self._finished = True
        self._close_source()

    def _fill(self) -> None:
        if self._finished:
            return
        buffer = self._buffer
        if self._pending_byte is None:
            value = self._source.read_byte()
        else:
            value = self._pending_byte
            self._pending_byte = None
        byte_count = 0

        while True:
            if value == EOF:
                self._finished = True
                self._close_source()
                break
            byte_count += 1
            buffer.append(chr(value))
            if value == CR:
                following = self._source.read_byte()
                if following == LF:
                    byte_count += 1
                    buffer.append("\n")
                elif following != EOF:
                    # lone CR: the byte starts the next line
                    self._pending_byte = following
                break
            if value == LF:
                break
            value = self._source.read_byte()

        if buffer.current_length() > 0:
            self._pending_line = buffer.to_string_and_reset()
            self._pending_length = byte_count
        if self._finished:
            logger.debug(
                "end of stream reached, %d bytes pending after position %d",
                byte_count,
                self._position,
            )

    def _close_source(self) -> None:
        if self._source_closed:
            return
        self._source_closed = True
        self._source.close()

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        line = self.next()
        if line is None:
            raise StopIteration
        return line

    def __enter__(self) -> "LineReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LineReader(position={self._position}, has_next={self.has_next()})"


def split_terminator(line: str) -> Tuple[str, str]:
    """Split a returned line into its body and end-of-line sequence."""

    if line.endswith("\r\n"):
        return line[:-2], "\r\n"
    if line.endswith("\n") or line.endswith("\r"):
        return line[:-1], line[-1]
    return line, ""
