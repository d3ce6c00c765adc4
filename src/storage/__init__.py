"""Storage providers for line offset indexes."""

from .index_store import (
	SUPPORTED_FORMATS,
	build_index_writer,
	load_line_index,
	offset_for_line,
	write_line_index,
)

__all__ = [
	"SUPPORTED_FORMATS",
	"build_index_writer",
	"load_line_index",
	"offset_for_line",
	"write_line_index",
]
