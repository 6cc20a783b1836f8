# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Call classification.

Every call expression gets exactly one CallKind. The decision table is
evaluated in order and the first match wins:

1. bare identifier resolving to a builtin                    -> BUILTIN
2. bare identifier resolving to a function of the unit set   -> LOCAL_FUNCTION
3. selector chain rooted at a package, ending in a function  -> PACKAGE_FUNCTION
4. selector chain ending in a concrete method                -> INSTANCE_METHOD
5. anything else                                             -> UNKNOWN

Package and value roots are told apart only by the root's object kind from
TypeInfo. Calls through interface-typed values have no statically unique
target and are UNKNOWN. Conversions such as `T(x)` are type operations, not
calls: `collect_call_sites` skips them and `classify` reports them UNKNOWN.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from callscope.checker import Object, ObjectKind, TypeInfo
from callscope.core.diagnostics import (
	CONVERSION,
	INTERFACE_DISPATCH,
	UNRESOLVED_REFERENCE,
	Diagnostic,
)
from callscope.core.span import Span
from callscope.parser import SourceUnit
from callscope.parser.ast import Call, Expr, FuncDecl, GenDecl, Name, Node, Selector, unparen, walk
from callscope.parser.printer import expr_string

from .selectors import SelectorChain, decompose

logger = logging.getLogger(__name__)


class CallKind(Enum):
	PACKAGE_FUNCTION = "PackageFunction"
	BUILTIN = "BuiltIn"
	LOCAL_FUNCTION = "LocalFunction"
	INSTANCE_METHOD = "InstanceMethod"
	UNKNOWN = "Unknown"


# Kinds that name a concrete callee and so become call-graph edges.
RESOLVED_KINDS = frozenset({CallKind.LOCAL_FUNCTION, CallKind.PACKAGE_FUNCTION, CallKind.INSTANCE_METHOD})


@dataclass
class CallSite:
	"""
	One classified call expression.

	`enclosing` is the function or method declaration containing the call
	(calls inside function literals belong to the enclosing declaration);
	None for calls in package-level initializers.
	"""

	call: Call
	kind: CallKind
	chain: Optional[SelectorChain] = None
	enclosing: Optional[Object] = None
	args: List[Expr] = field(default_factory=list)
	callee: Optional[Object] = None
	diagnostics: List[Diagnostic] = field(default_factory=list)
	package: Optional[str] = None  # import path of the declaring unit

	@property
	def span(self) -> Span:
		return self.call.span

	@property
	def resolved(self) -> bool:
		return self.kind in RESOLVED_KINDS and self.callee is not None

	def to_json(self) -> dict:
		return {
			"kind": self.kind.value,
			"call": expr_string(self.call),
			"file": self.span.file,
			"line": self.span.line,
			"column": self.span.column,
			"enclosing": self.enclosing.name if self.enclosing is not None else None,
			"callee": self.callee.name if self.callee is not None else None,
			"promoted_hops": len(self.chain.promoted_hops) if self.chain is not None else 0,
		}


def classify(call: Call, info: TypeInfo, enclosing: Optional[Object] = None) -> CallSite:
	"""Classify one call expression. Pure: reads `info`, mutates nothing."""
	site = CallSite(call=call, kind=CallKind.UNKNOWN, enclosing=enclosing, args=list(call.args))
	func = unparen(call.func)

	tv = info.types.get(call.func)
	if tv is not None and tv.is_type:
		_downgrade(site, CONVERSION, f"{expr_string(call)} is a conversion, not a call", "note")
		return site

	if isinstance(func, Name):
		obj = info.object_of(func)
		if obj is not None and obj.kind is ObjectKind.BUILTIN:
			site.kind = CallKind.BUILTIN
			site.callee = obj
		elif obj is not None and obj.kind is ObjectKind.FUNCTION and info.is_analyzed(obj):
			site.kind = CallKind.LOCAL_FUNCTION
			site.callee = obj
		elif obj is None:
			_downgrade(site, UNRESOLVED_REFERENCE, f"cannot resolve {func.ident}")
		else:
			_downgrade(site, UNRESOLVED_REFERENCE, f"call through {obj.kind.name.lower()} {func.ident} has no static target")
		return site

	if not isinstance(func, Selector):
		_downgrade(site, UNRESOLVED_REFERENCE, f"call of {expr_string(func)} has no static target")
		return site

	chain = decompose(func, info)
	site.chain = chain
	if chain.incomplete or chain.terminal is None:
		site.diagnostics.extend(chain.diagnostics)
		site.kind = CallKind.UNKNOWN
		return site

	terminal = chain.terminal
	member = terminal.obj
	if terminal.member_kind is ObjectKind.METHOD and member is not None and member.abstract:
		_downgrade(
			site,
			INTERFACE_DISPATCH,
			f"{expr_string(func)} dispatches through interface {info.type_string(terminal.owner) if terminal.owner else '?'}",
		)
		return site
	if chain.root.is_package and terminal.member_kind in (ObjectKind.FUNCTION, ObjectKind.METHOD):
		site.kind = CallKind.PACKAGE_FUNCTION
		site.callee = member
		return site
	if terminal.member_kind is ObjectKind.METHOD:
		site.kind = CallKind.INSTANCE_METHOD
		site.callee = member
		return site
	_downgrade(site, UNRESOLVED_REFERENCE, f"call through {terminal.member_kind.name.lower()} {expr_string(func)} has no static target")
	return site


def _downgrade(site: CallSite, code: str, message: str, severity: str = "warning") -> None:
	site.kind = CallKind.UNKNOWN
	site.diagnostics.append(
		Diagnostic(message=message, code=code, phase="classify", severity=severity, span=site.call.span)
	)
	logger.debug("%s: %s", site.call.span, message)


def iter_calls(unit: SourceUnit, info: TypeInfo) -> Iterator[Tuple[Call, Optional[Object]]]:
	"""Calls of a unit in source order, each with its enclosing declaration."""
	for decl in unit.tree.decls:
		if isinstance(decl, FuncDecl):
			if decl.body is None:
				continue
			enclosing = info.defs.get(decl.name)
			yield from ((call, enclosing) for call in _calls_in(decl.body))
		elif isinstance(decl, GenDecl):
			yield from ((call, None) for call in _calls_in(decl))


def _calls_in(node: Node) -> Iterator[Call]:
	for current in walk(node):
		if isinstance(current, Call):
			yield current


def is_conversion(call: Call, info: TypeInfo) -> bool:
	tv = info.types.get(call.func)
	return tv is not None and tv.is_type


def collect_call_sites(unit: SourceUnit, info: TypeInfo) -> List[CallSite]:
	"""Classify every call (not conversion) in `unit`."""
	sites: List[CallSite] = []
	for call, enclosing in iter_calls(unit, info):
		if is_conversion(call, info):
			continue
		site = classify(call, info, enclosing)
		site.package = unit.import_path
		sites.append(site)
	logger.debug("%s: classified %d call site(s)", unit.filename, len(sites))
	return sites


def classify_units(units: Sequence[SourceUnit], info: TypeInfo) -> List[CallSite]:
	sites: List[CallSite] = []
	for unit in units:
		sites.extend(collect_call_sites(unit, info))
	return sites


__all__ = [
	"CallKind",
	"CallSite",
	"RESOLVED_KINDS",
	"classify",
	"classify_units",
	"collect_call_sites",
	"is_conversion",
	"iter_calls",
]
