from __future__ import annotations

import io
import json

import pytest

from common.errors import BackendError, ErrorCode
from core.lines import LineReader
from storage import load_line_index, offset_for_line, write_line_index


def records(payload: bytes):
    reader = LineReader(io.BytesIO(payload))
    return reader.iter_records()


def test_csv_index_round_trip(tmp_path) -> None:
    path = tmp_path / "out" / "index.csv"
    rows = write_line_index(records(b"a\nbb\r\nccc\rd"), path, fmt="csv", chunk_rows=2)
    assert rows == 4
    loaded = load_line_index(path)
    assert loaded[0] == {"line_number": 1, "offset": 0, "byte_length": 2, "terminator": "lf"}
    assert [row["offset"] for row in loaded] == [0, 2, 6, 10]
    assert [row["terminator"] for row in loaded] == ["lf", "crlf", "cr", "none"]
    assert offset_for_line(path, 3) == 6
    assert offset_for_line(path, 99) is None


def test_jsonl_index_lines_are_objects(tmp_path) -> None:
    path = tmp_path / "index.jsonl"
    write_line_index(records(b"x\ny\n"), path, fmt="jsonl")
    first = json.loads(path.read_text(encoding="utf-8").splitlines()[0])
    assert first == {"line_number": 1, "offset": 0, "byte_length": 2, "terminator": "lf"}
    assert offset_for_line(path, 2) == 2


def test_parquet_index(tmp_path) -> None:
    pytest.importorskip("pyarrow")
    path = tmp_path / "index.parquet"
    rows = write_line_index(records(b"one\r\ntwo\n"), path, fmt="parquet")
    assert rows == 2
    assert offset_for_line(path, 2) == 5


def test_unknown_format_rejected(tmp_path) -> None:
    with pytest.raises(BackendError) as exc:
        write_line_index(records(b"x"), tmp_path / "index.xml", fmt="xml")
    assert exc.value.code == ErrorCode.CONFIG_ERROR


def test_malformed_index_row(tmp_path) -> None:
    path = tmp_path / "index.csv"
    path.write_text("line_number,offset,byte_length,terminator\n1,abc,2,lf\n", encoding="utf-8")
    with pytest.raises(BackendError) as exc:
        load_line_index(path)
    assert exc.value.code == ErrorCode.SCHEMA_ERROR
