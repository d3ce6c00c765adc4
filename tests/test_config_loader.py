"""Tests for runtime configuration loader."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from common.config import error_mode_from_policy, load_config_document, load_runtime_config
from common.errors import BackendError, ErrorCode
from core.lines import GrowableBuffer, LineReader


def test_load_low_memory_profile_defaults() -> None:
    config = load_runtime_config("low_memory")
    assert config.profile.initial_line_capacity == 200
    assert config.profile.checkpoint_every_lines == 1000
    assert config.global_settings.encoding == "utf-8"


def test_default_profiles_drive_a_reader(tmp_path: Path) -> None:
    document = load_config_document()
    assert {"low_memory", "workstation"}.issubset(document.profiles)
    sample = tmp_path / "sample.txt"
    sample.write_bytes(b"a\r\nb\rc\n")
    for name, profile in document.profiles.items():
        assert profile.read_buffer_bytes > 0, name
        assert profile.checkpoint_every_lines > 0, name
        assert profile.index_chunk_rows > 0, name
        assert GrowableBuffer(profile.initial_line_capacity).current_length() == 0
        with LineReader.from_path(
            sample,
            buffer_size=profile.read_buffer_bytes,
            initial_capacity=profile.initial_line_capacity,
        ) as reader:
            assert list(reader) == ["a\r\n", "b\r", "c\n"], name


def test_error_mode_resolution() -> None:
    assert error_mode_from_policy("fail-fast") == "strict"
    assert error_mode_from_policy("replace") == "replace"


def test_profile_overrides_applied(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, _document({"low_memory": _profile_payload()}))
    config = load_runtime_config(
        "low_memory",
        config_path=config_path,
        overrides={"profile": {"read_buffer_bytes": 512}, "global": {"encoding": "cp1251"}},
    )
    assert config.profile.read_buffer_bytes == 512
    assert config.profile.index_chunk_rows == 10_000
    assert config.global_settings.encoding == "cp1251"


def test_missing_profile_raises_backend_error(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, _document({"only": _profile_payload()}))
    with pytest.raises(BackendError) as exc:
        load_runtime_config("missing", config_path=config_path)
    assert exc.value.code == ErrorCode.CONFIG_ERROR


def test_invalid_error_policy_rejected(tmp_path: Path) -> None:
    document = _document({"low_memory": _profile_payload()})
    document["global"]["error_policy"] = "panic"
    config_path = _write_config(tmp_path, document)
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert "error_policy" in str(exc.value)


def test_blank_path_rejected(tmp_path: Path) -> None:
    document = _document({"low_memory": _profile_payload()})
    document["global"]["checkpoint_dir"] = " "
    config_path = _write_config(tmp_path, document)
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert exc.value.code == ErrorCode.CONFIG_ERROR


def test_non_positive_capacity_rejected(tmp_path: Path) -> None:
    profile = _profile_payload()
    profile["initial_line_capacity"] = 0
    config_path = _write_config(tmp_path, _document({"low_memory": profile}))
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert "initial_line_capacity" in str(exc.value)


def test_missing_profile_fields_reported(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, _document({"low_memory": {"description": "tmp"}}))
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert "read_buffer_bytes" in str(exc.value)


def test_invalid_json_rejected(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=path)
    assert exc.value.code == ErrorCode.CONFIG_ERROR


def _write_config(tmp_path: Path, payload: dict) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def _document(profiles: dict) -> dict:
    return {
        "version": 1,
        "global": {
            "encoding": "utf-8",
            "error_policy": "fail-fast",
            "checkpoint_dir": "artifacts/checkpoints",
        },
        "profiles": profiles,
    }


def _profile_payload() -> dict:
    return {
        "description": "tmp",
        "initial_line_capacity": 64,
        "read_buffer_bytes": 4096,
        "checkpoint_every_lines": 10,
    }
