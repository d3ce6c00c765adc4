"""Resumable, checkpointed scans over large text files."""

from .scanner import ResumableScanner

__all__ = ["ResumableScanner"]
