from __future__ import annotations

import pytest

from core.lines import GrowableBuffer


def test_append_and_snapshot_resets_buffer() -> None:
    buffer = GrowableBuffer(4)
    for char in "abc":
        buffer.append(char)
    assert buffer.current_length() == 3
    assert buffer.to_string_and_reset() == "abc"
    assert buffer.current_length() == 0
    buffer.append("z")
    assert buffer.to_string_and_reset() == "z"


def test_capacity_doubles_when_full() -> None:
    buffer = GrowableBuffer(2)
    for char in "abcde":
        buffer.append(char)
    assert buffer.capacity() == 8
    assert len(buffer) == 5
    assert buffer.to_string_and_reset() == "abcde"


def test_high_byte_characters_round_trip() -> None:
    buffer = GrowableBuffer()
    for value in (0, 13, 10, 200, 255):
        buffer.append(chr(value))
    assert [ord(c) for c in buffer.to_string_and_reset()] == [0, 13, 10, 200, 255]


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        GrowableBuffer(0)
