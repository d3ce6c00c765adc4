"""Growable character buffer used while a line is being assembled."""
from __future__ import annotations

DEFAULT_CAPACITY = 200


class GrowableBuffer:
    """Accumulates single-byte characters and doubles its storage when full.

    Characters are limited to code points 0-255 so that one character always
    stands for exactly one byte of the underlying stream.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("initial capacity must be > 0")
        self._data = bytearray(capacity)
        self._length = 0

    def append(self, char: str) -> None:
        if self._length == len(self._data):
            self._data.extend(bytes(len(self._data)))
        self._data[self._length] = ord(char)
        self._length += 1

    def current_length(self) -> int:
        return self._length

    def capacity(self) -> int:
        return len(self._data)

    def to_string_and_reset(self) -> str:
        text = self._data[: self._length].decode("latin-1")
        self._length = 0
        return text

    def __len__(self) -> int:
        return self._length
