"""File analysis helpers built on the line reader."""

from .line_counter import LineCounter

__all__ = ["LineCounter"]
