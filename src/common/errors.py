"""Shared error codes and exceptions for the line reader and its tools."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    CONFIG_ERROR = "CONFIG_ERROR"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    IO_ERROR = "IO_ERROR"
    STATE_ERROR = "STATE_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"


class BackendError(RuntimeError):
    """Exception carrying a structured error code for CLI/library callers."""

    def __init__(self, code: ErrorCode, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.context = context or {}

    def __str__(self) -> str:  # pragma: no cover - formatting sugar
        base = super().__str__()
        return f"[{self.code.value}] {base}" if base else self.code.value


class InvalidArgumentError(BackendError, ValueError):
    """Raised when a reader is constructed with a missing source or bad offset."""

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(ErrorCode.INVALID_ARGUMENT, message, context=context)


class IOFailure(BackendError):
    """Raised when reading from or closing the underlying byte source fails.

    The reader that raised it is left in an undefined state and should be discarded.
    """

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(ErrorCode.IO_ERROR, message, context=context)
