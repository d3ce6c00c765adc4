"""EOL-preserving line reading over byte sources."""

from .buffer import GrowableBuffer
from .reader import (
    END_OF_STREAM,
    EndOfStream,
    LineParser,
    LineReader,
    split_terminator,
)
from .sources import EOF, ByteSource, FileByteSource, StreamByteSource, as_byte_source, open_byte_source

__all__ = [
    "ByteSource",
    "END_OF_STREAM",
    "EOF",
    "EndOfStream",
    "FileByteSource",
    "GrowableBuffer",
    "LineParser",
    "LineReader",
    "StreamByteSource",
    "as_byte_source",
    "open_byte_source",
    "split_terminator",
]
