"""Line offset index writers (CSV / JSONL / Parquet) and lookups."""
from __future__ import annotations

import csv
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from common.errors import BackendError, ErrorCode
from common.models import LineRecord

try:  # pragma: no cover - optional dependency validated via tests
    import pyarrow as pa
    import pyarrow.parquet as pq
except ImportError:  # pragma: no cover
    pa = None  # type: ignore[assignment]
    pq = None  # type: ignore[assignment]

INDEX_COLUMNS = ("line_number", "offset", "byte_length", "terminator")
SUPPORTED_FORMATS = ("csv", "jsonl", "parquet")


def index_row(record: LineRecord) -> List[Any]:
    return [record.number, record.offset, record.byte_length, record.kind]


class BaseIndexWriter(ABC):
    """Streams index rows to ``path``; flushes every ``chunk_rows`` rows."""

    def __init__(self, path: Path, *, chunk_rows: int = 10_000) -> None:
        self.path = Path(path)
        self.chunk_rows = max(1, chunk_rows)
        self.rows_written = 0
        self._pending: List[List[Any]] = []
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._open()

    def write(self, record: LineRecord) -> None:
        self._pending.append(index_row(record))
        if len(self._pending) >= self.chunk_rows:
            self.flush()

    def flush(self) -> None:
        if not self._pending:
            return
        self._write_rows(self._pending)
        self.rows_written += len(self._pending)
        self._pending = []

    def close(self) -> None:
        self.flush()
        self._close()

    def __enter__(self) -> "BaseIndexWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abstractmethod
    def _open(self) -> None:
        ...

    @abstractmethod
    def _write_rows(self, rows: Sequence[List[Any]]) -> None:
        ...

    @abstractmethod
    def _close(self) -> None:
        ...


class CSVIndexWriter(BaseIndexWriter):
    def _open(self) -> None:
        self._handle = self.path.open("w", newline="", encoding="utf-8")
        self._csv_writer = csv.writer(self._handle)
        self._csv_writer.writerow(INDEX_COLUMNS)

    def _write_rows(self, rows: Sequence[List[Any]]) -> None:
        self._csv_writer.writerows(rows)

    def _close(self) -> None:
        self._handle.close()


class JSONLIndexWriter(BaseIndexWriter):
    def _open(self) -> None:
        self._handle = self.path.open("w", encoding="utf-8")

    def _write_rows(self, rows: Sequence[List[Any]]) -> None:
        for row in rows:
            self._handle.write(json.dumps(dict(zip(INDEX_COLUMNS, row))))
            self._handle.write("\n")

    def _close(self) -> None:
        self._handle.close()


class ParquetIndexWriter(BaseIndexWriter):
    def __init__(self, path: Path, *, chunk_rows: int = 10_000) -> None:
        if pa is None or pq is None:
            raise BackendError(
                ErrorCode.CONFIG_ERROR,
                "pyarrow is required for parquet indexes. Install the 'pyarrow' dependency.",
            )
        self._schema = pa.schema(
            [
                ("line_number", pa.int64()),
                ("offset", pa.int64()),
                ("byte_length", pa.int64()),
                ("terminator", pa.string()),
            ]
        )
        self._parquet_writer: Optional[Any] = None
        super().__init__(path, chunk_rows=chunk_rows)

    def _open(self) -> None:
        self._parquet_writer = pq.ParquetWriter(self.path, self._schema)

    def _write_rows(self, rows: Sequence[List[Any]]) -> None:
        columns = {name: [row[idx] for row in rows] for idx, name in enumerate(INDEX_COLUMNS)}
        self._parquet_writer.write_table(pa.table(columns, schema=self._schema))

    def _close(self) -> None:
        if self._parquet_writer is not None:
            self._parquet_writer.close()
            self._parquet_writer = None


def build_index_writer(path: Path, fmt: str, *, chunk_rows: int = 10_000) -> BaseIndexWriter:
    fmt = fmt.lower()
    if fmt == "csv":
        return CSVIndexWriter(path, chunk_rows=chunk_rows)
    if fmt == "jsonl":
        return JSONLIndexWriter(path, chunk_rows=chunk_rows)
    if fmt == "parquet":
        return ParquetIndexWriter(path, chunk_rows=chunk_rows)
    raise BackendError(
        ErrorCode.CONFIG_ERROR,
        f"Unsupported index format '{fmt}'. Allowed: {', '.join(SUPPORTED_FORMATS)}",
    )


def write_line_index(
    records: Iterable[LineRecord],
    path: Path,
    *,
    fmt: str = "csv",
    chunk_rows: int = 10_000,
) -> int:
    """Write one index row per record; returns the number of rows written."""

    with build_index_writer(path, fmt, chunk_rows=chunk_rows) as writer:
        for record in records:
            writer.write(record)
    return writer.rows_written


def load_line_index(path: Path) -> List[dict]:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        with path.open("r", newline="", encoding="utf-8") as handle:
            return [_coerce_row(row) for row in csv.DictReader(handle)]
    if suffix == ".jsonl":
        with path.open("r", encoding="utf-8") as handle:
            return [_coerce_row(json.loads(line)) for line in handle if line.strip()]
    if suffix == ".parquet":
        if pq is None:
            raise BackendError(
                ErrorCode.CONFIG_ERROR,
                "pyarrow is required for parquet indexes. Install the 'pyarrow' dependency.",
            )
        return [_coerce_row(row) for row in pq.read_table(path).to_pylist()]
    raise BackendError(ErrorCode.CONFIG_ERROR, f"Cannot infer index format from '{path.name}'")


def offset_for_line(path: Path, line_number: int) -> Optional[int]:
    """Byte offset where ``line_number`` starts according to the index, if listed."""

    for row in load_line_index(path):
        if row["line_number"] == line_number:
            return row["offset"]
    return None


def _coerce_row(row: dict) -> dict:
    try:
        return {
            "line_number": int(row["line_number"]),
            "offset": int(row["offset"]),
            "byte_length": int(row["byte_length"]),
            "terminator": str(row["terminator"]),
        }
    except (KeyError, TypeError, ValueError) as exc:
        raise BackendError(ErrorCode.SCHEMA_ERROR, f"Malformed index row: {row!r}") from exc
