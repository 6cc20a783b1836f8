# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Exception hierarchy for conditions that abort a pass.

Parse and type-check failures are fatal for the unit set: classification and
rewriting never fall back to name-based guessing without type information.
Non-fatal conditions are reported as `Diagnostic`s instead.
"""

from __future__ import annotations

from typing import List, Sequence

from .diagnostics import Diagnostic
from .span import Span


class CallscopeError(Exception):
	"""Base class for fatal callscope errors."""


class ParseError(SyntaxError):
	"""
	Raised when the parser rejects a source unit.

	Subclasses the builtin SyntaxError so `filename`, `lineno`, `offset` and
	`text` are populated the usual way; `span` carries the same location as a
	Span for diagnostics.
	"""

	def __init__(self, message: str, *, span: Span, text: str | None = None) -> None:
		super().__init__(message, (span.file, span.line, span.column, text))
		self.span = span

	def to_diagnostic(self) -> Diagnostic:
		return Diagnostic(message=self.msg, phase="parser", severity="error", span=self.span)


class ConfigError(CallscopeError):
	"""Raised when an analysis configuration file is malformed."""


class TypeCheckError(CallscopeError):
	"""Raised when a closed unit set fails to type-check."""

	def __init__(self, diagnostics: Sequence[Diagnostic]) -> None:
		self.diagnostics: List[Diagnostic] = list(diagnostics)
		first = self.diagnostics[0].format() if self.diagnostics else "type check failed"
		extra = len(self.diagnostics) - 1
		super().__init__(first if extra <= 0 else f"{first} (and {extra} more)")


class RewriteConflict(CallscopeError):
	"""Raised when unordered rewrite rules match the same call site."""

	def __init__(self, diagnostics: Sequence[Diagnostic]) -> None:
		self.diagnostics: List[Diagnostic] = list(diagnostics)
		super().__init__(
			"; ".join(d.format() for d in self.diagnostics) or "conflicting rewrite rules"
		)


__all__ = ["CallscopeError", "ConfigError", "ParseError", "TypeCheckError", "RewriteConflict"]
