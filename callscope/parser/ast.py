# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Syntax tree for the Go subset accepted by `callscope.parser`.

Nodes compare by identity (`eq=False`) so the checker can key its tables on
them, the way go/types keys Uses/Types/Selections on AST nodes. Every node
carries a Span; nodes synthesized by a rewrite carry `Span()` (unknown), which
tells the printer to render them structurally instead of copying source text.

Type expressions share the expression hierarchy: a bare type name is a `Name`
and a qualified one (`pkg.T`) is a `Selector`, so identifier resolution works
the same way in type and value positions.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Iterator, List, Optional

from callscope.core.span import Span


class Node:
	span: Span


class Expr(Node):
	"""Base class for expressions (and type expressions)."""


class Stmt(Node):
	"""Base class for statements."""


# --------------------------------------------------------------- expressions


@dataclass(eq=False)
class Name(Expr):
	span: Span
	ident: str


@dataclass(eq=False)
class Literal(Expr):
	"""
	Basic literal. `kind` is one of int, float, string, rune; `raw` is the
	literal exactly as written in source.
	"""

	span: Span
	kind: str
	raw: str


@dataclass(eq=False)
class Selector(Expr):
	span: Span
	value: Expr
	attr: Name


@dataclass(eq=False)
class Call(Expr):
	span: Span
	func: Expr
	args: List[Expr] = field(default_factory=list)
	ellipsis: bool = False
	# Name of the rewrite rule that produced this call, if any.
	rewritten_by: Optional[str] = None


@dataclass(eq=False)
class Index(Expr):
	span: Span
	value: Expr
	index: Expr


@dataclass(eq=False)
class SliceExpr(Expr):
	span: Span
	value: Expr
	low: Optional[Expr] = None
	high: Optional[Expr] = None
	max: Optional[Expr] = None


@dataclass(eq=False)
class TypeAssert(Expr):
	"""`x.(T)`; `type` is None for the `x.(type)` guard of a type switch."""

	span: Span
	value: Expr
	type: Optional[Expr] = None


@dataclass(eq=False)
class KeyValue(Expr):
	span: Span
	key: Expr
	value: Expr


@dataclass(eq=False)
class CompositeLit(Expr):
	"""`T{...}`; `type` is None for elided inner literals (`{1, 2}`)."""

	span: Span
	type: Optional[Expr]
	elements: List[Expr] = field(default_factory=list)


@dataclass(eq=False)
class FuncLit(Expr):
	span: Span
	type: "FuncType"
	body: "Block"


@dataclass(eq=False)
class Paren(Expr):
	span: Span
	value: Expr


@dataclass(eq=False)
class Unary(Expr):
	span: Span
	op: str
	operand: Expr


@dataclass(eq=False)
class Binary(Expr):
	span: Span
	op: str
	left: Expr
	right: Expr


# -------------------------------------------------------------------- types


@dataclass(eq=False)
class Field(Node):
	"""
	Parameter, result, struct field or interface element.

	`names` is empty for unnamed parameters and embedded fields.
	"""

	span: Span
	names: List[Name]
	type: Expr
	variadic: bool = False
	tag: Optional[str] = None

	@property
	def embedded(self) -> bool:
		return not self.names


@dataclass(eq=False)
class PointerType(Expr):
	span: Span
	elem: Expr


@dataclass(eq=False)
class SliceType(Expr):
	span: Span
	elem: Expr


@dataclass(eq=False)
class ArrayType(Expr):
	"""`[N]T`; `length` is None for `[...]T`."""

	span: Span
	length: Optional[Expr]
	elem: Expr


@dataclass(eq=False)
class MapType(Expr):
	span: Span
	key: Expr
	value: Expr


@dataclass(eq=False)
class ChanType(Expr):
	span: Span
	direction: str  # both, send, recv
	elem: Expr


@dataclass(eq=False)
class FuncType(Expr):
	span: Span
	params: List[Field] = field(default_factory=list)
	results: List[Field] = field(default_factory=list)


@dataclass(eq=False)
class StructType(Expr):
	span: Span
	fields: List[Field] = field(default_factory=list)


@dataclass(eq=False)
class InterfaceType(Expr):
	"""Interface literal; method elements have one name and a FuncType."""

	span: Span
	elements: List[Field] = field(default_factory=list)


# --------------------------------------------------------------- statements


@dataclass(eq=False)
class Block(Stmt):
	span: Span
	statements: List[Stmt] = field(default_factory=list)


@dataclass(eq=False)
class ExprStmt(Stmt):
	span: Span
	value: Expr


@dataclass(eq=False)
class SendStmt(Stmt):
	span: Span
	chan: Expr
	value: Expr


@dataclass(eq=False)
class IncDecStmt(Stmt):
	span: Span
	target: Expr
	op: str


@dataclass(eq=False)
class AssignStmt(Stmt):
	"""
	Assignment, op-assignment or short variable declaration.

	`op` is the operator as written: "=", ":=", "+=", ...
	"""

	span: Span
	targets: List[Expr]
	op: str
	values: List[Expr]

	@property
	def define(self) -> bool:
		return self.op == ":="


@dataclass(eq=False)
class ReturnStmt(Stmt):
	span: Span
	values: List[Expr] = field(default_factory=list)


@dataclass(eq=False)
class GoStmt(Stmt):
	span: Span
	call: Expr


@dataclass(eq=False)
class DeferStmt(Stmt):
	span: Span
	call: Expr


@dataclass(eq=False)
class BranchStmt(Stmt):
	span: Span
	keyword: str


@dataclass(eq=False)
class IfStmt(Stmt):
	span: Span
	init: Optional[Stmt]
	cond: Expr
	then_block: Block
	else_stmt: Optional[Stmt] = None


@dataclass(eq=False)
class CaseClause(Node):
	"""`exprs` is None for the default clause."""

	span: Span
	exprs: Optional[List[Expr]]
	body: List[Stmt] = field(default_factory=list)


@dataclass(eq=False)
class SwitchStmt(Stmt):
	span: Span
	init: Optional[Stmt]
	tag: Optional[Expr]
	clauses: List[CaseClause] = field(default_factory=list)


@dataclass(eq=False)
class TypeSwitchStmt(Stmt):
	"""`switch [init;] [binding :=] subject.(type) { ... }`"""

	span: Span
	init: Optional[Stmt]
	binding: Optional[Name]
	subject: Expr
	clauses: List[CaseClause] = field(default_factory=list)


@dataclass(eq=False)
class ForStmt(Stmt):
	span: Span
	init: Optional[Stmt]
	cond: Optional[Expr]
	post: Optional[Stmt]
	body: Block


@dataclass(eq=False)
class RangeStmt(Stmt):
	span: Span
	key: Optional[Expr]
	value: Optional[Expr]
	define: bool
	expr: Expr
	body: Block


@dataclass(eq=False)
class DeclStmt(Stmt):
	span: Span
	decl: "GenDecl"


# ------------------------------------------------------------- declarations


@dataclass(eq=False)
class ImportSpec(Node):
	span: Span
	name: Optional[Name]
	path: str


@dataclass(eq=False)
class ValueSpec(Node):
	"""
	const/var spec. For constants, `iota` is the spec index in its group and
	an empty `values` list means "repeat the previous spec's expressions".
	"""

	span: Span
	names: List[Name]
	type: Optional[Expr] = None
	values: List[Expr] = field(default_factory=list)
	iota: int = 0


@dataclass(eq=False)
class TypeSpec(Node):
	span: Span
	name: Name
	type: Expr
	alias: bool = False


@dataclass(eq=False)
class GenDecl(Node):
	"""Grouped or single import/const/var/type declaration."""

	span: Span
	keyword: str
	specs: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class FuncDecl(Node):
	span: Span
	recv: Optional[Field]
	name: Name
	type: FuncType
	body: Optional[Block] = None


@dataclass(eq=False)
class File(Node):
	span: Span
	package: Name
	imports: List[ImportSpec] = field(default_factory=list)
	decls: List[Node] = field(default_factory=list)


# ------------------------------------------------------------------ walking


def iter_child_nodes(node: Node) -> Iterator[Node]:
	"""Yield the direct child nodes of `node` in source order."""
	for f in fields(node):  # type: ignore[arg-type]
		value = getattr(node, f.name)
		if isinstance(value, Node):
			yield value
		elif isinstance(value, list):
			for item in value:
				if isinstance(item, Node):
					yield item


def walk(node: Node) -> Iterator[Node]:
	"""Pre-order traversal of `node` and all its descendants."""
	stack = [node]
	while stack:
		current = stack.pop()
		yield current
		stack.extend(reversed(list(iter_child_nodes(current))))


def unparen(expr: Expr) -> Expr:
	while isinstance(expr, Paren):
		expr = expr.value
	return expr


__all__ = [
	"Node",
	"Expr",
	"Stmt",
	"Name",
	"Literal",
	"Selector",
	"Call",
	"Index",
	"SliceExpr",
	"TypeAssert",
	"KeyValue",
	"CompositeLit",
	"FuncLit",
	"Paren",
	"Unary",
	"Binary",
	"Field",
	"PointerType",
	"SliceType",
	"ArrayType",
	"MapType",
	"ChanType",
	"FuncType",
	"StructType",
	"InterfaceType",
	"Block",
	"ExprStmt",
	"SendStmt",
	"IncDecStmt",
	"AssignStmt",
	"ReturnStmt",
	"GoStmt",
	"DeferStmt",
	"BranchStmt",
	"IfStmt",
	"CaseClause",
	"SwitchStmt",
	"TypeSwitchStmt",
	"ForStmt",
	"RangeStmt",
	"DeclStmt",
	"ImportSpec",
	"ValueSpec",
	"TypeSpec",
	"GenDecl",
	"FuncDecl",
	"File",
	"iter_child_nodes",
	"walk",
	"unparen",
]
