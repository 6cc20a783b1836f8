# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source span representation shared by the AST, diagnostics and the printer.

`start`/`end` are character offsets into the unit's source text; the printer
relies on them to copy untouched source verbatim. Line/column are 1-based and
only used for reporting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (offsets plus best-effort file/line/column)."""

	file: Optional[str] = None
	start: Optional[int] = None
	end: Optional[int] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None

	@property
	def known(self) -> bool:
		return self.start is not None and self.end is not None

	def contains(self, other: "Span") -> bool:
		if not (self.known and other.known):
			return False
		return self.start <= other.start and other.end <= self.end  # type: ignore[operator]

	@classmethod
	def from_loc(cls, loc: Any, file: Optional[str] = None) -> "Span":
		"""
		Construct a Span from a lark Token or tree Meta.

		Tokens expose `start_pos`/`end_pos`; metas expose the same names once
		`propagate_positions` is enabled. Empty metas yield `Span(file=file)`.
		"""
		if loc is None or getattr(loc, "empty", False):
			return cls(file=file)
		if isinstance(loc, cls):
			return loc
		return cls(
			file=file,
			start=getattr(loc, "start_pos", None),
			end=getattr(loc, "end_pos", None),
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			end_line=getattr(loc, "end_line", None),
			end_column=getattr(loc, "end_column", None),
		)

	@classmethod
	def cover(cls, first: "Span", last: "Span") -> "Span":
		"""Smallest span covering `first` through `last`."""
		if not first.known:
			return last
		if not last.known:
			return first
		return cls(
			file=first.file or last.file,
			start=first.start,
			end=last.end,
			line=first.line,
			column=first.column,
			end_line=last.end_line,
			end_column=last.end_column,
		)

	def __str__(self) -> str:
		loc = f"{self.line if self.line is not None else '?'}:{self.column if self.column is not None else '?'}"
		return f"{self.file}:{loc}" if self.file else loc


__all__ = ["Span"]
