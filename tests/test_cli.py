from __future__ import annotations

import json
from pathlib import Path

import pytest

from storage import load_line_index
from ui import cli


def write_sample(tmp_path: Path) -> Path:
    path = tmp_path / "input.txt"
    path.write_bytes(b"alpha\r\nbeta\ngamma\rdelta")
    return path


def test_lines_command_shows_terminators(tmp_path, capsys):
    path = write_sample(tmp_path)
    cli.main(["lines", str(path), "--show-offsets", "--limit", "2"])
    out = capsys.readouterr().out.splitlines()
    assert out[0].endswith("alpha\\r\\n")
    assert "@0 " in out[0]
    assert out[1].endswith("beta\\n")
    assert out[-1] == "[lines] next offset: 12"


def test_lines_command_from_offset(tmp_path, capsys):
    path = write_sample(tmp_path)
    cli.main(["lines", str(path), "--start-offset", "12"])
    out = capsys.readouterr().out.splitlines()
    assert out == ["gamma\\r", "delta", "[lines] next offset: 23"]


def test_count_command(tmp_path, capsys):
    path = write_sample(tmp_path)
    cli.main(["count", str(tmp_path)])
    out = capsys.readouterr().out
    assert f"[count] {path} lines=4 bytes=23" in out
    assert "crlf=1" in out and "(mixed)" in out


def test_index_command_writes_csv(tmp_path, capsys):
    path = write_sample(tmp_path)
    output = tmp_path / "idx" / "input.csv"
    cli.main(["index", str(path), "--output", str(output)])
    assert [row["offset"] for row in load_line_index(output)] == [0, 7, 12, 18]
    assert "Wrote 4 row(s)" in capsys.readouterr().out


def test_scan_command_resumes(tmp_path, capsys):
    path = write_sample(tmp_path)
    checkpoints = tmp_path / "cp"
    cli.main(["scan", str(path), "--job-id", "j1", "--limit", "1", "--checkpoint-dir", str(checkpoints)])
    first = capsys.readouterr().out
    assert "offsets=0->7 state=SCANNING" in first
    cli.main(["scan", str(path), "--job-id", "j1", "--resume", "--checkpoint-dir", str(checkpoints)])
    second = capsys.readouterr().out
    assert "(resume)" in second
    assert "offsets=7->23 state=DONE" in second


def test_backend_errors_exit_non_zero(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["lines", str(tmp_path / "missing.txt")])
    assert exc.value.code == 1
    assert "[lines]" in capsys.readouterr().out


def test_main_without_command_prints_help(capsys):
    cli.main([])
    assert "usage" in capsys.readouterr().out


def test_lines_command_zero_limit_prints_no_lines(tmp_path, capsys):
    path = write_sample(tmp_path)
    cli.main(["lines", str(path), "--limit", "0"])
    out = capsys.readouterr().out.splitlines()
    assert out == ["[lines] next offset: 0"]


def test_negative_limit_is_a_usage_error(tmp_path, capsys):
    path = write_sample(tmp_path)
    with pytest.raises(SystemExit) as exc:
        cli.main(["lines", str(path), "--limit", "-1"])
    assert exc.value.code == 2
    assert "must be >= 0" in capsys.readouterr().err


def test_fail_fast_policy_reports_undecodable_line(tmp_path, capsys):
    config_path = tmp_path / "strict.json"
    config_path.write_text(
        json.dumps(
            {
                "version": 1,
                "global": {
                    "encoding": "utf-8",
                    "error_policy": "fail-fast",
                    "checkpoint_dir": str(tmp_path / "checkpoints"),
                },
                "profiles": {
                    "low_memory": {
                        "description": "strict decoding",
                        "initial_line_capacity": 16,
                        "read_buffer_bytes": 64,
                        "checkpoint_every_lines": 10,
                    }
                },
            }
        ),
        encoding="utf-8",
    )
    path = tmp_path / "latin.txt"
    path.write_bytes(b"\xff\xfe bad\n")
    with pytest.raises(SystemExit) as exc:
        cli.main(["lines", str(path), "--config", str(config_path)])
    assert exc.value.code == 1
    out = capsys.readouterr().out
    assert "[lines] [SCHEMA_ERROR] Line 1 at offset 0 is not valid utf-8" in out
