# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Selector chain decomposition.

`decompose(selector, info)` turns a dotted access such as `a.b.c.M` into a
root, the intermediate hops and the terminal member. Each explicit selector
level contributes the embedded fields its selection traversed (implicit,
promoted hops) followed by the member itself, so an access that reaches a
method through N embedded fields yields N promoted hops before the method.

Roles come only from the TypeInfo index. A level the index cannot resolve
truncates the chain, which is then marked incomplete.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from callscope.checker import Object, ObjectKind, TypeInfo
from callscope.core.diagnostics import UNRESOLVED_REFERENCE, Diagnostic
from callscope.core.types_core import TypeId
from callscope.parser.ast import Expr, Name, Selector, unparen
from callscope.parser.printer import expr_string


@dataclass(frozen=True)
class ChainRoot:
	"""
	Leftmost operand of a selector chain.

	`kind` is the object kind of a plain identifier root, or None for an
	expression root (call result, index, literal, ...).
	"""

	expr: Expr
	name: Optional[str] = None
	kind: Optional[ObjectKind] = None
	obj: Optional[Object] = None
	type: Optional[TypeId] = None

	@property
	def is_expression(self) -> bool:
		return self.kind is None

	@property
	def is_package(self) -> bool:
		return self.kind is ObjectKind.PACKAGE


@dataclass(frozen=True)
class Hop:
	"""
	One member access in a chain.

	`implicit` hops are embedded fields the source does not spell; they carry
	no selector. `owner` is the type declaring the member (None for package
	members).
	"""

	name: str
	member_kind: ObjectKind
	owner: Optional[TypeId] = None
	promoted: bool = False
	implicit: bool = False
	obj: Optional[Object] = None
	selector: Optional[Selector] = None


@dataclass
class SelectorChain:
	root: ChainRoot
	hops: List[Hop] = field(default_factory=list)
	terminal: Optional[Hop] = None
	incomplete: bool = False
	diagnostics: List[Diagnostic] = field(default_factory=list)

	@property
	def promoted_hops(self) -> List[Hop]:
		return [hop for hop in self.hops if hop.promoted]

	@property
	def depth(self) -> int:
		"""Number of intermediate hops between root and terminal."""
		return len(self.hops)

	def describe(self, info: TypeInfo, relative_to: Optional[str] = None) -> str:
		"""Readable form, e.g. `x -> (Inner) -> Method` with implicit hops in parentheses."""
		parts = [self.root.name if self.root.name is not None else expr_string(self.root.expr)]
		for hop in self.hops:
			parts.append(f"({hop.name})" if hop.implicit else hop.name)
		if self.terminal is not None:
			owner = ""
			if self.terminal.owner is not None:
				owner = f" [{info.type_string(self.terminal.owner, relative_to)}]"
			parts.append(self.terminal.name + owner)
		if self.incomplete:
			parts.append("?")
		return " -> ".join(parts)


def decompose(selector: Selector, info: TypeInfo) -> SelectorChain:
	"""Decompose `selector` into root, hops and terminal using `info`."""
	levels: List[Selector] = []
	node: Expr = selector
	while isinstance(node, Selector):
		levels.append(node)
		node = unparen(node.value)
	levels.reverse()

	chain = SelectorChain(root=_root(node, info))
	if chain.root.kind is ObjectKind.UNRESOLVED:
		_truncate(chain, node)
		return chain

	members: List[Hop] = []
	for idx, level in enumerate(levels):
		hops = _level_hops(level, info, qualified=idx == 0 and chain.root.is_package)
		if hops is None:
			chain.hops = members
			_truncate(chain, level)
			return chain
		members.extend(hops)
	chain.terminal = members.pop()
	chain.hops = members
	return chain


def _root(expr: Expr, info: TypeInfo) -> ChainRoot:
	if isinstance(expr, Name):
		obj = info.object_of(expr)
		kind = obj.kind if obj is not None else ObjectKind.UNRESOLVED
		return ChainRoot(expr=expr, name=expr.ident, kind=kind, obj=obj, type=info.type_of(expr))
	return ChainRoot(expr=expr, type=info.type_of(expr))


def _level_hops(level: Selector, info: TypeInfo, qualified: bool) -> Optional[List[Hop]]:
	"""Hops contributed by one explicit selector level; None when unresolved."""
	if qualified:
		# pkg.Name: a package member, not a selection
		obj = info.object_of(level.attr)
		if obj is None or obj.kind is ObjectKind.UNRESOLVED:
			return None
		return [Hop(name=obj.name, member_kind=obj.kind, obj=obj, selector=level)]

	sel = info.selection(level)
	if sel is None:
		return None
	hops = [
		Hop(
			name=embedded.name,
			member_kind=ObjectKind.FIELD,
			owner=owner,
			promoted=True,
			implicit=True,
			obj=embedded,
		)
		for embedded, owner in zip(sel.path, sel.path_owners)
	]
	hops.append(
		Hop(
			name=sel.obj.name,
			member_kind=sel.member_kind,
			owner=sel.owner,
			promoted=sel.promoted,
			obj=sel.obj,
			selector=level,
		)
	)
	return hops


def _truncate(chain: SelectorChain, at: Expr) -> None:
	chain.incomplete = True
	chain.diagnostics.append(
		Diagnostic(
			message=f"cannot resolve {expr_string(at)}",
			code=UNRESOLVED_REFERENCE,
			phase="selectors",
			severity="warning",
			span=at.span,
		)
	)


__all__ = ["ChainRoot", "Hop", "SelectorChain", "decompose"]
