# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type core shared by the checker, the selector resolver and the rewrite rules.

TypeIds are opaque ints indexing into a TypeTable. Structural types (pointers,
slices, maps, signatures, struct and interface literals) are interned, so type
identity is TypeId equality. Named types are never interned: each declaration
owns a fresh TypeId whose underlying type and method table are filled in by
the checker once the declaration has been resolved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple


TypeId = int  # opaque handle into the TypeTable


class TypeKind(Enum):
	"""Kinds of types understood by the type core."""

	BASIC = auto()
	NAMED = auto()
	POINTER = auto()
	SLICE = auto()
	ARRAY = auto()
	MAP = auto()
	CHAN = auto()
	STRUCT = auto()
	INTERFACE = auto()
	SIGNATURE = auto()
	TUPLE = auto()
	INVALID = auto()


class BasicKind(Enum):
	BOOL = "bool"
	STRING = "string"
	INT = "int"
	INT8 = "int8"
	INT16 = "int16"
	INT32 = "int32"
	INT64 = "int64"
	UINT = "uint"
	UINT8 = "uint8"
	UINT16 = "uint16"
	UINT32 = "uint32"
	UINT64 = "uint64"
	UINTPTR = "uintptr"
	FLOAT32 = "float32"
	FLOAT64 = "float64"
	UNTYPED_BOOL = "untyped bool"
	UNTYPED_INT = "untyped int"
	UNTYPED_RUNE = "untyped rune"
	UNTYPED_FLOAT = "untyped float"
	UNTYPED_STRING = "untyped string"
	UNTYPED_NIL = "untyped nil"


INTEGER_KINDS = frozenset(
	{
		BasicKind.INT,
		BasicKind.INT8,
		BasicKind.INT16,
		BasicKind.INT32,
		BasicKind.INT64,
		BasicKind.UINT,
		BasicKind.UINT8,
		BasicKind.UINT16,
		BasicKind.UINT32,
		BasicKind.UINT64,
		BasicKind.UINTPTR,
		BasicKind.UNTYPED_INT,
		BasicKind.UNTYPED_RUNE,
	}
)
FLOAT_KINDS = frozenset({BasicKind.FLOAT32, BasicKind.FLOAT64, BasicKind.UNTYPED_FLOAT})
STRING_KINDS = frozenset({BasicKind.STRING, BasicKind.UNTYPED_STRING})
BOOL_KINDS = frozenset({BasicKind.BOOL, BasicKind.UNTYPED_BOOL})
NUMERIC_KINDS = INTEGER_KINDS | FLOAT_KINDS

# Default types of untyped constants when they need a concrete type.
_UNTYPED_DEFAULTS = {
	BasicKind.UNTYPED_BOOL: BasicKind.BOOL,
	BasicKind.UNTYPED_INT: BasicKind.INT,
	BasicKind.UNTYPED_RUNE: BasicKind.INT32,
	BasicKind.UNTYPED_FLOAT: BasicKind.FLOAT64,
	BasicKind.UNTYPED_STRING: BasicKind.STRING,
}


class ChanDir(Enum):
	BOTH = auto()
	SEND = auto()
	RECV = auto()


@dataclass(frozen=True)
class FieldDef:
	"""One struct field. `pkg` qualifies unexported names."""

	name: str
	type: TypeId
	embedded: bool = False
	pkg: Optional[str] = None
	obj: Any = field(default=None, compare=False, hash=False)


@dataclass(frozen=True)
class MethodSig:
	"""Explicitly declared interface method."""

	name: str
	sig: TypeId
	pkg: Optional[str] = None
	obj: Any = field(default=None, compare=False, hash=False)


@dataclass(frozen=True)
class TypeDef:
	"""Definition of a type stored in the TypeTable."""

	kind: TypeKind
	name: str
	# elem for pointer/slice/array/chan, key+value for map, members for tuples,
	# parameters for signatures
	param_types: Tuple[TypeId, ...] = ()
	result_types: Tuple[TypeId, ...] = ()
	basic: Optional[BasicKind] = None
	length: Optional[int] = None
	variadic: bool = False
	chan_dir: Optional[ChanDir] = None
	fields: Tuple[FieldDef, ...] = ()
	methods: Tuple[MethodSig, ...] = ()
	embeddeds: Tuple[TypeId, ...] = ()
	pkg: Optional[str] = None


@dataclass
class NamedInfo:
	"""Mutable side table for a named type."""

	name: str
	pkg: Optional[str]
	obj: Any = None
	underlying: Optional[TypeId] = None
	methods: Dict[str, Any] = field(default_factory=dict)  # name -> METHOD Object, declaration order


class TypeTable:
	"""
	Owns every TypeId of one analysis pass.

	Basic types are seeded up front; `invalid()` is the poison type used after
	an error so follow-up checks stay quiet.
	"""

	def __init__(self) -> None:
		self._defs: Dict[TypeId, TypeDef] = {}
		self._named: Dict[TypeId, NamedInfo] = {}
		self._intern: Dict[tuple, TypeId] = {}
		self._next_id: TypeId = 1  # reserve 0 for "no type"
		self._basics: Dict[BasicKind, TypeId] = {}
		for kind in BasicKind:
			self._basics[kind] = self._add(TypeDef(kind=TypeKind.BASIC, name=kind.value, basic=kind))
		self._invalid = self._add(TypeDef(kind=TypeKind.INVALID, name="invalid type"))
		self._empty_interface: TypeId | None = None

	# --- constructors -----------------------------------------------------

	def basic(self, kind: BasicKind) -> TypeId:
		return self._basics[kind]

	def ensure_int(self) -> TypeId:
		return self._basics[BasicKind.INT]

	def ensure_bool(self) -> TypeId:
		return self._basics[BasicKind.BOOL]

	def ensure_string(self) -> TypeId:
		return self._basics[BasicKind.STRING]

	def invalid(self) -> TypeId:
		return self._invalid

	def new_pointer(self, elem: TypeId) -> TypeId:
		return self._interned(TypeDef(kind=TypeKind.POINTER, name="pointer", param_types=(elem,)))

	def new_slice(self, elem: TypeId) -> TypeId:
		return self._interned(TypeDef(kind=TypeKind.SLICE, name="slice", param_types=(elem,)))

	def new_array(self, elem: TypeId, length: int) -> TypeId:
		return self._interned(TypeDef(kind=TypeKind.ARRAY, name="array", param_types=(elem,), length=length))

	def new_map(self, key: TypeId, value: TypeId) -> TypeId:
		return self._interned(TypeDef(kind=TypeKind.MAP, name="map", param_types=(key, value)))

	def new_chan(self, elem: TypeId, direction: ChanDir = ChanDir.BOTH) -> TypeId:
		return self._interned(TypeDef(kind=TypeKind.CHAN, name="chan", param_types=(elem,), chan_dir=direction))

	def new_struct(self, fields: Iterable[FieldDef]) -> TypeId:
		return self._interned(TypeDef(kind=TypeKind.STRUCT, name="struct", fields=tuple(fields)))

	def new_interface(self, methods: Iterable[MethodSig] = (), embeddeds: Iterable[TypeId] = ()) -> TypeId:
		ms = tuple(sorted(methods, key=lambda m: m.name))
		return self._interned(TypeDef(kind=TypeKind.INTERFACE, name="interface", methods=ms, embeddeds=tuple(embeddeds)))

	def empty_interface(self) -> TypeId:
		if self._empty_interface is None:
			self._empty_interface = self.new_interface()
		return self._empty_interface

	def new_signature(self, params: Iterable[TypeId], results: Iterable[TypeId], variadic: bool = False) -> TypeId:
		return self._interned(
			TypeDef(
				kind=TypeKind.SIGNATURE,
				name="func",
				param_types=tuple(params),
				result_types=tuple(results),
				variadic=variadic,
			)
		)

	def new_tuple(self, members: Iterable[TypeId]) -> TypeId:
		return self._interned(TypeDef(kind=TypeKind.TUPLE, name="tuple", param_types=tuple(members)))

	def new_named(self, name: str, pkg: Optional[str], obj: Any = None) -> TypeId:
		"""Register a named type; its underlying type is set later."""
		ty = self._add(TypeDef(kind=TypeKind.NAMED, name=name, pkg=pkg))
		self._named[ty] = NamedInfo(name=name, pkg=pkg, obj=obj)
		return ty

	def set_underlying(self, named: TypeId, underlying: TypeId) -> None:
		self._named[named].underlying = self.underlying(underlying)

	def add_method(self, named: TypeId, name: str, obj: Any) -> bool:
		"""Attach a method object to a named type; False on duplicates."""
		info = self._named[named]
		if name in info.methods:
			return False
		info.methods[name] = obj
		return True

	# --- queries ----------------------------------------------------------

	def get(self, ty: TypeId) -> TypeDef:
		"""Fetch the TypeDef for a given TypeId."""
		return self._defs[ty]

	def kind(self, ty: TypeId) -> TypeKind:
		return self._defs[ty].kind

	def named_info(self, ty: TypeId) -> NamedInfo:
		return self._named[ty]

	def is_named(self, ty: TypeId) -> bool:
		return ty in self._named

	def underlying(self, ty: TypeId) -> TypeId:
		seen = set()
		while ty in self._named:
			if ty in seen:
				return self._invalid
			seen.add(ty)
			under = self._named[ty].underlying
			if under is None:
				return self._invalid
			ty = under
		return ty

	def under_def(self, ty: TypeId) -> TypeDef:
		return self._defs[self.underlying(ty)]

	def is_invalid(self, ty: TypeId) -> bool:
		return self._defs[ty].kind is TypeKind.INVALID

	def basic_kind(self, ty: TypeId) -> Optional[BasicKind]:
		return self.under_def(ty).basic

	def is_untyped(self, ty: TypeId) -> bool:
		td = self._defs[ty]
		return td.basic is not None and td.basic.value.startswith("untyped")

	def default_type(self, ty: TypeId) -> TypeId:
		td = self._defs[ty]
		if td.basic in _UNTYPED_DEFAULTS:
			return self._basics[_UNTYPED_DEFAULTS[td.basic]]
		return ty

	def is_interface(self, ty: TypeId) -> bool:
		return self.under_def(ty).kind is TypeKind.INTERFACE

	def pointer_elem(self, ty: TypeId) -> Optional[TypeId]:
		td = self.under_def(ty)
		if td.kind is TypeKind.POINTER:
			return td.param_types[0]
		return None

	def deref(self, ty: TypeId) -> Tuple[TypeId, bool]:
		"""Strip one pointer level; returns (type, was_pointer)."""
		elem = self.pointer_elem(ty)
		if elem is None:
			return ty, False
		return elem, True

	def interface_methods(self, ty: TypeId) -> Dict[str, MethodSig]:
		"""Full method set of an interface type, embedded interfaces flattened."""
		out: Dict[str, MethodSig] = {}
		self._collect_interface_methods(self.underlying(ty), out, set())
		return out

	def _collect_interface_methods(self, ty: TypeId, out: Dict[str, MethodSig], seen: set) -> None:
		if ty in seen:
			return
		seen.add(ty)
		td = self._defs[ty]
		if td.kind is not TypeKind.INTERFACE:
			return
		for m in td.methods:
			out.setdefault(m.name, m)
		for emb in td.embeddeds:
			self._collect_interface_methods(self.underlying(emb), out, seen)

	# --- display ----------------------------------------------------------

	def type_string(self, ty: TypeId, qualifier: Callable[[Optional[str]], str] | None = None) -> str:
		"""
		Render a type the way Go prints it.

		`qualifier(pkg)` returns the prefix for named types of `pkg`; the default
		qualifies every named type with its package path.
		"""
		if qualifier is None:
			qualifier = lambda pkg: f"{pkg}." if pkg else ""  # noqa: E731
		td = self._defs[ty]
		k = td.kind
		if k is TypeKind.BASIC or k is TypeKind.INVALID:
			return td.name
		if k is TypeKind.NAMED:
			return f"{qualifier(td.pkg)}{td.name}"
		if k is TypeKind.POINTER:
			return "*" + self.type_string(td.param_types[0], qualifier)
		if k is TypeKind.SLICE:
			return "[]" + self.type_string(td.param_types[0], qualifier)
		if k is TypeKind.ARRAY:
			return f"[{td.length}]" + self.type_string(td.param_types[0], qualifier)
		if k is TypeKind.MAP:
			key, value = td.param_types
			return f"map[{self.type_string(key, qualifier)}]{self.type_string(value, qualifier)}"
		if k is TypeKind.CHAN:
			elem = self.type_string(td.param_types[0], qualifier)
			if td.chan_dir is ChanDir.SEND:
				return f"chan<- {elem}"
			if td.chan_dir is ChanDir.RECV:
				return f"<-chan {elem}"
			return f"chan {elem}"
		if k is TypeKind.STRUCT:
			parts = []
			for f in td.fields:
				ft = self.type_string(f.type, qualifier)
				parts.append(ft if f.embedded else f"{f.name} {ft}")
			return "struct{" + "; ".join(parts) + "}"
		if k is TypeKind.INTERFACE:
			if not td.methods and not td.embeddeds:
				return "interface{}"
			parts = [self.type_string(e, qualifier) for e in td.embeddeds]
			parts += [m.name + self.type_string(m.sig, qualifier)[len("func"):] for m in td.methods]
			return "interface{" + "; ".join(parts) + "}"
		if k is TypeKind.SIGNATURE:
			return "func" + self._signature_tail(td, qualifier)
		if k is TypeKind.TUPLE:
			return "(" + ", ".join(self.type_string(m, qualifier) for m in td.param_types) + ")"
		return td.name

	def _signature_tail(self, td: TypeDef, qualifier) -> str:
		params: List[str] = []
		for idx, p in enumerate(td.param_types):
			if td.variadic and idx == len(td.param_types) - 1:
				elem = self.get(p).param_types[0]
				params.append("..." + self.type_string(elem, qualifier))
			else:
				params.append(self.type_string(p, qualifier))
		out = "(" + ", ".join(params) + ")"
		results = [self.type_string(r, qualifier) for r in td.result_types]
		if len(results) == 1:
			out += " " + results[0]
		elif results:
			out += " (" + ", ".join(results) + ")"
		return out

	# --- internals --------------------------------------------------------

	def _interned(self, td: TypeDef) -> TypeId:
		key = (
			td.kind,
			td.param_types,
			td.result_types,
			td.length,
			td.variadic,
			td.chan_dir,
			tuple((f.name, f.type, f.embedded, f.pkg) for f in td.fields),
			tuple((m.name, m.sig, m.pkg) for m in td.methods),
			td.embeddeds,
		)
		existing = self._intern.get(key)
		if existing is not None:
			return existing
		ty = self._add(td)
		self._intern[key] = ty
		return ty

	def _add(self, td: TypeDef) -> TypeId:
		ty_id = self._next_id
		self._next_id += 1
		self._defs[ty_id] = td
		return ty_id


__all__ = [
	"TypeId",
	"TypeKind",
	"BasicKind",
	"ChanDir",
	"FieldDef",
	"MethodSig",
	"TypeDef",
	"NamedInfo",
	"TypeTable",
	"INTEGER_KINDS",
	"FLOAT_KINDS",
	"STRING_KINDS",
	"BOOL_KINDS",
	"NUMERIC_KINDS",
]
