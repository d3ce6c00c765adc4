"""Byte sources consumed by the line reader."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, BinaryIO, Optional, Protocol, Union, runtime_checkable

from common.errors import InvalidArgumentError, IOFailure

logger = logging.getLogger(__name__)

EOF = -1
DEFAULT_READ_BUFFER = 65_536


@runtime_checkable
class ByteSource(Protocol):
    """Sequential source handing out one byte at a time."""

    def read_byte(self) -> int:
        """Return the next byte as 0-255, or ``EOF`` when exhausted."""

    def close(self) -> None:
        ...


class StreamByteSource:
    """Adapts a binary file object to the :class:`ByteSource` contract.

    The wrapped stream is owned by this source and closed at most once.
    """

    def __init__(self, stream: BinaryIO, *, name: Optional[str] = None) -> None:
        if stream is None:
            raise InvalidArgumentError("stream can not be None")
        self._stream = stream
        self.name = name or str(getattr(stream, "name", "<stream>"))
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def read_byte(self) -> int:
        if self._closed:
            raise IOFailure(f"Byte source '{self.name}' is closed")
        try:
            chunk = self._stream.read(1)
        except OSError as exc:
            raise IOFailure(f"Failed reading from '{self.name}': {exc}") from exc
        if not chunk:
            return EOF
        return chunk[0]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.close()
        except OSError as exc:
            raise IOFailure(f"Failed closing '{self.name}': {exc}") from exc
        logger.debug("closed byte source %s", self.name)


class FileByteSource(StreamByteSource):
    """File source opened so that its first readable byte is the one at ``offset``."""

    def __init__(
        self,
        path: Union[str, Path],
        offset: int = 0,
        *,
        buffer_size: int = DEFAULT_READ_BUFFER,
    ) -> None:
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise InvalidArgumentError("offset must be an integer", context={"offset": offset})
        if offset < 0:
            raise InvalidArgumentError("offset must be >= 0", context={"offset": offset})
        if buffer_size <= 0:
            raise InvalidArgumentError("buffer_size must be > 0", context={"buffer_size": buffer_size})
        self.path = Path(path)
        self.offset = offset
        try:
            handle = self.path.open("rb", buffering=buffer_size)
        except OSError as exc:
            raise IOFailure(f"Failed opening '{self.path}': {exc}", context={"path": str(self.path)}) from exc
        try:
            if offset:
                handle.seek(offset)
        except OSError as exc:
            handle.close()
            raise IOFailure(f"Failed seeking '{self.path}' to {offset}: {exc}") from exc
        super().__init__(handle, name=str(self.path))
        logger.debug("opened %s at offset %d (buffer=%d)", self.path, offset, buffer_size)


def as_byte_source(source: Any) -> ByteSource:
    """Accept a :class:`ByteSource` or any binary file object with ``read``."""

    if isinstance(source, ByteSource):
        return source
    if hasattr(source, "read") and hasattr(source, "close"):
        return StreamByteSource(source)
    raise InvalidArgumentError(f"Unsupported byte source type: {type(source).__name__}")


def open_byte_source(
    path: Union[str, Path],
    offset: int = 0,
    *,
    buffer_size: int = DEFAULT_READ_BUFFER,
) -> FileByteSource:
    return FileByteSource(path, offset, buffer_size=buffer_size)
