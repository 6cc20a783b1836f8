# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Serializer for SourceUnits.

Rendering copies the unit's source text verbatim and splices in the
outermost rewritten calls. A rewritten call is printed from its structure;
any original subtree it reuses (its span is known and it contains no other
rewritten call) is printed as the original source slice, so formatting
inside reused arguments survives the rewrite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from .ast import (
	ArrayType,
	Binary,
	Call,
	ChanType,
	CompositeLit,
	Expr,
	FuncLit,
	FuncType,
	Index,
	InterfaceType,
	KeyValue,
	Literal,
	MapType,
	Name,
	Node,
	Paren,
	PointerType,
	Selector,
	SliceExpr,
	SliceType,
	StructType,
	TypeAssert,
	Unary,
	iter_child_nodes,
)

if TYPE_CHECKING:
	from .parser import SourceUnit


def render(unit: "SourceUnit") -> bytes:
	"""Render a unit; untouched source is reproduced byte-for-byte."""
	return _Printer(unit.source).splice(unit.tree, 0, len(unit.source)).encode("utf-8")


class _Printer:
	def __init__(self, source: str) -> None:
		self.source = source

	def splice(self, node: Node, start: int, end: int) -> str:
		"""Source text of [start, end) with rewritten calls under `node` re-printed."""
		out: List[str] = []
		cursor = start
		for call in _outermost_rewrites(node):
			if not call.span.known:
				continue
			out.append(self.source[cursor:call.span.start])
			out.append(self.expr(call))
			cursor = call.span.end  # type: ignore[assignment]
		out.append(self.source[cursor:end])
		return "".join(out)

	def expr(self, node: Expr) -> str:
		if node.span.known and not _is_rewritten(node):
			return self.splice(node, node.span.start, node.span.end)  # type: ignore[arg-type]
		if isinstance(node, Name):
			return node.ident
		if isinstance(node, Literal):
			return node.raw
		if isinstance(node, Selector):
			return f"{self.expr(node.value)}.{self.expr(node.attr)}"
		if isinstance(node, Call):
			args = ", ".join(self.expr(arg) for arg in node.args)
			return f"{self.expr(node.func)}({args}{'...' if node.ellipsis else ''})"
		if isinstance(node, Paren):
			return f"({self.expr(node.value)})"
		if isinstance(node, Unary):
			return f"{node.op}{self.expr(node.operand)}"
		if isinstance(node, Binary):
			return f"{self.expr(node.left)} {node.op} {self.expr(node.right)}"
		if isinstance(node, Index):
			return f"{self.expr(node.value)}[{self.expr(node.index)}]"
		if isinstance(node, KeyValue):
			return f"{self.expr(node.key)}: {self.expr(node.value)}"
		if isinstance(node, CompositeLit) and node.type is not None:
			elements = ", ".join(self.expr(e) for e in node.elements)
			return f"{self.expr(node.type)}{{{elements}}}"
		raise ValueError(f"cannot print synthesized node {type(node).__name__}")


def _is_rewritten(node: Node) -> bool:
	return isinstance(node, Call) and node.rewritten_by is not None


def _outermost_rewrites(node: Node):
	"""Rewritten calls strictly below `node`, not nested in another one, in source order."""
	stack = list(reversed(list(iter_child_nodes(node))))
	while stack:
		current = stack.pop()
		if _is_rewritten(current):
			yield current
			continue
		stack.extend(reversed(list(iter_child_nodes(current))))


def expr_string(node: Node) -> str:
	"""Compact source-free rendering of an expression, used in messages."""
	if isinstance(node, Name):
		return node.ident
	if isinstance(node, Literal):
		return node.raw
	if isinstance(node, Selector):
		return f"{expr_string(node.value)}.{node.attr.ident}"
	if isinstance(node, Call):
		args = ", ".join(expr_string(a) for a in node.args)
		return f"{expr_string(node.func)}({args}{'...' if node.ellipsis else ''})"
	if isinstance(node, Paren):
		return f"({expr_string(node.value)})"
	if isinstance(node, Unary):
		return f"{node.op}{expr_string(node.operand)}"
	if isinstance(node, Binary):
		return f"{expr_string(node.left)} {node.op} {expr_string(node.right)}"
	if isinstance(node, Index):
		return f"{expr_string(node.value)}[{expr_string(node.index)}]"
	if isinstance(node, SliceExpr):
		parts = [expr_string(p) if p is not None else "" for p in (node.low, node.high)]
		if node.max is not None:
			parts.append(expr_string(node.max))
		return f"{expr_string(node.value)}[{':'.join(parts)}]"
	if isinstance(node, TypeAssert):
		inner = expr_string(node.type) if node.type is not None else "type"
		return f"{expr_string(node.value)}.({inner})"
	if isinstance(node, KeyValue):
		return f"{expr_string(node.key)}: {expr_string(node.value)}"
	if isinstance(node, CompositeLit):
		return f"{expr_string(node.type) if node.type is not None else ''}{{...}}"
	if isinstance(node, FuncLit):
		return "func literal"
	if isinstance(node, PointerType):
		return "*" + expr_string(node.elem)
	if isinstance(node, SliceType):
		return "[]" + expr_string(node.elem)
	if isinstance(node, ArrayType):
		length = expr_string(node.length) if node.length is not None else "..."
		return f"[{length}]{expr_string(node.elem)}"
	if isinstance(node, MapType):
		return f"map[{expr_string(node.key)}]{expr_string(node.value)}"
	if isinstance(node, ChanType):
		prefix = {"send": "chan<- ", "recv": "<-chan "}.get(node.direction, "chan ")
		return prefix + expr_string(node.elem)
	if isinstance(node, FuncType):
		return "func(...)"
	if isinstance(node, StructType):
		return "struct{...}"
	if isinstance(node, InterfaceType):
		return "interface{...}" if node.elements else "interface{}"
	return type(node).__name__


__all__ = ["render", "expr_string"]
