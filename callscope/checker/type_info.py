# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
TypeInfo: the read-only index produced by one checker pass.

Keys are AST nodes (identity-hashed), mirroring go/types.Info:
- `defs`: declaring Name -> Object
- `uses`: referring Name -> Object
- `types`: Expr -> TypeAndValue
- `selections`: Selector -> Selection
- `implicits`: CaseClause -> Object (type-switch bindings)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from callscope.core.types_core import TypeId, TypeTable
from callscope.parser.ast import CaseClause, Expr, Name, Node, Selector, walk

from .objects import Object, ObjectKind, Package

if TYPE_CHECKING:
	from callscope.parser.parser import SourceUnit


class SelectionKind(Enum):
	FIELD_VAL = auto()  # x.f where f is a field
	METHOD_VAL = auto()  # x.m where m is a method
	METHOD_EXPR = auto()  # T.m where T is a type


@dataclass(frozen=True)
class Selection:
	"""
	Resolution record for one selector expression.

	`path` lists the embedded FIELD objects traversed before reaching `obj`
	(empty when the member is declared directly on the receiver's type), and
	`index` is the matching field/method index path. `owner` is the type that
	declares `obj` as seen from this receiver and `path_owners[i]` the type
	declaring `path[i]`. `indirect` is set when a pointer was dereferenced on
	the way.
	"""

	kind: SelectionKind
	recv: TypeId
	obj: Object
	owner: Optional[TypeId] = None
	index: Tuple[int, ...] = ()
	path: Tuple[Object, ...] = ()
	path_owners: Tuple[TypeId, ...] = ()
	indirect: bool = False

	@property
	def depth(self) -> int:
		return len(self.path)

	@property
	def promoted(self) -> bool:
		return bool(self.path)

	@property
	def member_kind(self) -> ObjectKind:
		return self.obj.kind


@dataclass(frozen=True)
class TypeAndValue:
	"""
	Type and addressing mode of one expression.

	`mode` is one of: novalue, builtin, typexpr, constant, variable, mapindex,
	value, commaok.
	"""

	type: TypeId
	mode: str
	value: Any = None

	@property
	def is_type(self) -> bool:
		return self.mode == "typexpr"

	@property
	def is_value(self) -> bool:
		return self.mode in {"constant", "variable", "mapindex", "value", "commaok"}


@dataclass
class TypeInfo:
	table: TypeTable
	defs: Dict[Name, Object] = field(default_factory=dict)
	uses: Dict[Name, Object] = field(default_factory=dict)
	types: Dict[Expr, TypeAndValue] = field(default_factory=dict)
	selections: Dict[Selector, Selection] = field(default_factory=dict)
	implicits: Dict[CaseClause, Object] = field(default_factory=dict)
	packages: Dict[str, Package] = field(default_factory=dict)
	units: List["SourceUnit"] = field(default_factory=list)

	def object_of(self, ident: Name) -> Optional[Object]:
		obj = self.defs.get(ident)
		if obj is not None:
			return obj
		return self.uses.get(ident)

	def object_kind(self, ident: Name) -> ObjectKind:
		obj = self.object_of(ident)
		return obj.kind if obj is not None else ObjectKind.UNRESOLVED

	def type_of(self, expr: Expr) -> Optional[TypeId]:
		tv = self.types.get(expr)
		if tv is not None:
			return tv.type
		if isinstance(expr, Name):
			obj = self.object_of(expr)
			if obj is not None and obj.type:
				return obj.type
		return None

	def selection(self, sel: Selector) -> Optional[Selection]:
		return self.selections.get(sel)

	def is_analyzed(self, obj: Object) -> bool:
		"""True when `obj` is declared in one of the analyzed units."""
		if obj.external or obj.pkg is None:
			return False
		pkg = self.packages.get(obj.pkg)
		return pkg is not None and not pkg.external

	def invalidate(self, node: Node) -> int:
		"""Drop every entry keyed by `node` or its descendants; returns the count."""
		dropped = 0
		for current in walk(node):
			for table in (self.defs, self.uses, self.types, self.selections, self.implicits):
				if current in table:
					del table[current]  # type: ignore[arg-type]
					dropped += 1
		return dropped

	def type_string(self, ty: TypeId, relative_to: Optional[str] = None) -> str:
		"""Type string with package paths, omitting `relative_to`'s own qualifier."""

		def qualifier(pkg: Optional[str]) -> str:
			if not pkg or pkg == relative_to:
				return ""
			return f"{pkg}."

		return self.table.type_string(ty, qualifier)


__all__ = ["SelectionKind", "Selection", "TypeAndValue", "TypeInfo"]
