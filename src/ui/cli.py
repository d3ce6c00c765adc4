"""CLI shell covering line listing, statistics, indexing and resumable scans."""
from __future__ import annotations

import argparse
import logging
from itertools import islice
from pathlib import Path
from typing import Iterable, List
from uuid import uuid4

from common.config import error_mode_from_policy, load_runtime_config
from common.errors import BackendError, ErrorCode
from common.models import LineRecord, RuntimeConfig, ScanProgress
from core.analysis import LineCounter
from core.lines import LineReader
from core.scan import ResumableScanner
from storage import SUPPORTED_FORMATS, write_line_index

VISIBLE_TERMINATORS = {"\r\n": "\\r\\n", "\n": "\\n", "\r": "\\r", "": ""}


def collect_input_files(targets: Iterable[Path]) -> List[Path]:
    files: List[Path] = []
    for target in targets:
        if target.is_dir():
            files.extend(sorted(p for p in target.rglob("*") if p.is_file()))
        elif target.is_file():
            files.append(target)
    deduped = []
    seen = set()
    for path in files:
        if path in seen:
            continue
        seen.add(path)
        deduped.append(path)
    return deduped


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def render_line(record: LineRecord, *, encoding: str, errors: str, show_offsets: bool) -> str:
    try:
        body = record.body.encode("latin-1").decode(encoding, errors=errors)
    except UnicodeDecodeError as exc:
        raise BackendError(
            ErrorCode.SCHEMA_ERROR,
            f"Line {record.number} at offset {record.offset} is not valid {encoding}",
            context={"line_number": record.number, "offset": record.offset},
        ) from exc
    text = f"{body}{VISIBLE_TERMINATORS[record.terminator]}"
    if show_offsets:
        return f"{record.number:>6} @{record.offset:<10} {text}"
    return text


def render_progress(progress: ScanProgress) -> None:
    total = progress.total_bytes if progress.total_bytes is not None else "?"
    print(
        f"[scan/progress] {progress.file_path.name} lines={progress.lines_read} "
        f"position={progress.position}/{total} phase={progress.current_phase}"
    )


def load_config(args: argparse.Namespace) -> RuntimeConfig:
    config_path = Path(args.config) if getattr(args, "config", None) else None
    return load_runtime_config(profile=args.profile, config_path=config_path)


def command_lines(args: argparse.Namespace) -> None:
    runtime = load_config(args)
    errors = error_mode_from_policy(runtime.global_settings.error_policy)
    with LineReader.from_path(
        Path(args.file),
        args.start_offset,
        buffer_size=runtime.profile.read_buffer_bytes,
        initial_capacity=runtime.profile.initial_line_capacity,
    ) as reader:
        records = reader.iter_records()
        if args.limit is not None:
            records = islice(records, args.limit)
        for record in records:
            print(
                render_line(
                    record,
                    encoding=runtime.global_settings.encoding,
                    errors=errors,
                    show_offsets=args.show_offsets,
                )
            )
        print(f"[lines] next offset: {reader.position}")


def command_count(args: argparse.Namespace) -> None:
    files = collect_input_files(Path(p) for p in args.inputs)
    if not files:
        raise SystemExit("No input files found.")
    runtime = load_config(args)
    counter = LineCounter(buffer_size=runtime.profile.read_buffer_bytes)
    for path in files:
        stats = counter.stats(path)
        terminators = " ".join(f"{kind}={count}" for kind, count in stats.terminators.items())
        mixed = " (mixed)" if stats.mixed_terminators else ""
        print(
            f"[count] {path} lines={stats.total_lines} bytes={stats.total_bytes} "
            f"longest={stats.longest_line_bytes} {terminators}{mixed}"
        )


def command_index(args: argparse.Namespace) -> None:
    runtime = load_config(args)
    output_path = Path(args.output)
    with LineReader.from_path(
        Path(args.file),
        buffer_size=runtime.profile.read_buffer_bytes,
        initial_capacity=runtime.profile.initial_line_capacity,
    ) as reader:
        rows = write_line_index(
            reader.iter_records(),
            output_path,
            fmt=args.format,
            chunk_rows=runtime.profile.index_chunk_rows,
        )
    print(f"[index] Wrote {rows} row(s) to {output_path} ({args.format})")


def command_scan(args: argparse.Namespace) -> None:
    runtime = load_config(args)
    job_id = args.job_id or uuid4().hex
    scanner = ResumableScanner(
        runtime,
        checkpoint_dir=Path(args.checkpoint_dir) if args.checkpoint_dir else None,
        progress_log=Path(args.progress_log) if args.progress_log else None,
    )
    print(f"[scan] job_id={job_id}{' (resume)' if args.resume else ''}")
    summary = scanner.scan(
        Path(args.file),
        job_id=job_id,
        start_offset=args.start_offset,
        resume=args.resume,
        progress_callback=render_progress,
        limit=args.limit,
    )
    print(
        f"[scan] {summary.file_path} lines={summary.lines_read} "
        f"offsets={summary.start_offset}->{summary.end_offset} state={summary.state}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eolscan", description="Line reader that keeps end-of-line bytes and byte offsets"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--profile",
        default="low_memory",
        help="Profile from config/defaults.json (e.g., low_memory, workstation)",
    )
    common.add_argument("--config", help="Alternative configuration JSON")

    lines = subparsers.add_parser("lines", parents=[common], help="Print lines with visible terminators")
    lines.add_argument("file", help="File to read")
    lines.add_argument("--start-offset", type=int, default=0, help="Byte offset to start reading at")
    lines.add_argument("--limit", type=non_negative_int, help="Stop after this many lines")
    lines.add_argument("--show-offsets", action="store_true", help="Prefix lines with number and offset")
    lines.set_defaults(func=command_lines)

    count = subparsers.add_parser("count", parents=[common], help="Line and terminator statistics")
    count.add_argument("inputs", nargs="+", help="Files or directories to process")
    count.set_defaults(func=command_count)

    index = subparsers.add_parser("index", parents=[common], help="Write a line offset index")
    index.add_argument("file", help="File to index")
    index.add_argument("--output", required=True, help="Index destination path")
    index.add_argument("--format", choices=SUPPORTED_FORMATS, default="csv", help="Index file format")
    index.set_defaults(func=command_index)

    scan = subparsers.add_parser("scan", parents=[common], help="Resumable scan with checkpoints")
    scan.add_argument("file", help="File to scan")
    scan.add_argument("--job-id", help="Identifier for checkpoints (auto-generated when omitted)")
    scan.add_argument("--resume", action="store_true", help="Continue from the job's checkpoint")
    scan.add_argument("--start-offset", type=int, default=0, help="Byte offset for a fresh scan")
    scan.add_argument("--limit", type=non_negative_int, help="Stop after this many lines")
    scan.add_argument(
        "--checkpoint-dir",
        help="Directory where per-job checkpoints are stored (defaults to global.checkpoint_dir)",
    )
    scan.add_argument("--progress-log", help="Path to JSONL file for structured progress events")
    scan.set_defaults(func=command_scan)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        args.func(args)
    except BackendError as exc:
        print(f"[{args.command}] {exc}")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
