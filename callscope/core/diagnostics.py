# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Common diagnostic structure for every callscope pass.

Fatal conditions are raised (see `errors`); everything else is collected as a
Diagnostic and returned next to the partial result so callers can report
several issues from one pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from .span import Span

# Diagnostic codes emitted by the analysis passes.
UNRESOLVED_REFERENCE = "unresolved-reference"
INTERFACE_DISPATCH = "interface-dispatch"
CONVERSION = "conversion"
REWRITE_CONFLICT = "rewrite-conflict"
REWRITE_SKIPPED = "rewrite-skipped"


@dataclass
class Diagnostic:
	"""Represents an analysis diagnostic (error/warning/note)."""

	message: str
	code: str | None = None
	# Pass that produced the diagnostic: parser, typecheck, selectors,
	# classify, callgraph, rewrite.
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)  # Source location (Span() denotes unknown).
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	def format(self) -> str:
		return f"{self.span}: {self.severity}: {self.message}"

	def to_json(self) -> dict:
		return {
			"phase": self.phase,
			"code": self.code,
			"message": self.message,
			"severity": self.severity,
			"file": self.span.file,
			"line": self.span.line,
			"column": self.span.column,
			"notes": list(self.notes),
		}


def errors_only(diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
	return [d for d in diagnostics if d.severity == "error"]


__all__ = [
	"Diagnostic",
	"errors_only",
	"UNRESOLVED_REFERENCE",
	"INTERFACE_DISPATCH",
	"CONVERSION",
	"REWRITE_CONFLICT",
	"REWRITE_SKIPPED",
]
