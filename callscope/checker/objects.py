# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Resolved objects, scopes and packages.

`Object` is a tagged union keyed by `ObjectKind`: every identifier the checker
resolves points at exactly one object, and the kind alone decides whether a
dotted expression starts at a package or at a value. Kind-specific attributes
are only meaningful for their kind (e.g. `pointer_recv` for methods).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterator, List, Optional, TYPE_CHECKING

from callscope.core.types_core import TypeId

if TYPE_CHECKING:
	from callscope.parser.ast import Name, Node
	from callscope.parser.parser import SourceUnit


class ObjectKind(Enum):
	PACKAGE = auto()
	FUNCTION = auto()
	BUILTIN = auto()
	FIELD = auto()
	METHOD = auto()
	VARIABLE = auto()
	TYPE_NAME = auto()
	CONSTANT = auto()
	NIL = auto()
	UNRESOLVED = auto()


@dataclass(eq=False)
class Object:
	"""
	A declared entity.

	`pkg` is the declaring package path (None in the universe scope) and
	`external` marks objects declared outside the analyzed units (importer
	stubs). For FIELD and METHOD objects `owner` is the declaring type: the
	named type (or struct/interface literal) the member is spelled on.
	"""

	kind: ObjectKind
	name: str
	type: TypeId = 0  # 0 until the checker has typed the object
	pkg: Optional[str] = None
	ident: Optional["Name"] = None
	decl: Optional["Node"] = None
	external: bool = False
	# PACKAGE
	imported: Optional["Package"] = None
	# FIELD / METHOD
	owner: Optional[TypeId] = None
	embedded: bool = False
	pointer_recv: bool = False
	abstract: bool = False  # interface method
	# CONSTANT
	value: Any = None
	# VARIABLE: package-level variables live outside any function
	package_level: bool = False
	# FUNCTION / METHOD: the enclosing declaration for function literals
	parent: Optional["Object"] = None

	@property
	def exported(self) -> bool:
		return bool(self.name) and self.name[0].isupper()

	def __repr__(self) -> str:
		where = f"{self.pkg}." if self.pkg else ""
		return f"<{self.kind.name.lower()} {where}{self.name}>"


class Scope:
	"""Lexical scope; lookups walk the parent chain."""

	def __init__(self, parent: Optional["Scope"] = None, kind: str = "block") -> None:
		self.parent = parent
		self.kind = kind
		self.names: Dict[str, Object] = {}

	def lookup_local(self, name: str) -> Optional[Object]:
		return self.names.get(name)

	def lookup(self, name: str) -> Optional[Object]:
		scope: Optional[Scope] = self
		while scope is not None:
			obj = scope.names.get(name)
			if obj is not None:
				return obj
			scope = scope.parent
		return None

	def insert(self, obj: Object) -> Optional[Object]:
		"""Insert `obj`; returns the already-declared object on conflict."""
		existing = self.names.get(obj.name)
		if existing is not None:
			return existing
		self.names[obj.name] = obj
		return None

	def __iter__(self) -> Iterator[Object]:
		return iter(self.names.values())


@dataclass(eq=False)
class Package:
	"""One package: its units, package scope and per-file import scopes."""

	path: str
	name: str
	units: List["SourceUnit"] = field(default_factory=list)
	scope: Optional[Scope] = None
	file_scopes: Dict[int, Scope] = field(default_factory=dict)  # id(unit) -> scope
	imports: Dict[str, "Package"] = field(default_factory=dict)
	external: bool = False
	checked: bool = False

	def lookup(self, name: str) -> Optional[Object]:
		if self.scope is None:
			return None
		return self.scope.lookup_local(name)


__all__ = ["ObjectKind", "Object", "Scope", "Package"]
