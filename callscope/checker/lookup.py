# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Field and method lookup with embedding promotion.

`lookup_field_or_method` walks embedded fields breadth-first, one depth level
at a time: the shallowest match wins, and two matches at the same depth are a
collision (ambiguous selector). Each named type is visited once so recursive
embedding through pointers terminates.

The search records the embedded fields it traverses, so callers get the full
ownership path of a promoted member rather than just its depth.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from callscope.core.types_core import TypeId, TypeKind, TypeTable

from .objects import Object, ObjectKind


@dataclass(frozen=True)
class LookupResult:
	"""
	Outcome of one member lookup.

	`obj` is None when nothing was found or the name is ambiguous. When a
	method with a pointer receiver was found on a non-addressable value,
	`obj` is set and `needs_pointer` is True.
	"""

	obj: Optional[Object] = None
	owner: Optional[TypeId] = None
	index: Tuple[int, ...] = ()
	path: Tuple[Object, ...] = ()
	path_owners: Tuple[TypeId, ...] = ()
	indirect: bool = False
	ambiguous: bool = False
	needs_pointer: bool = False

	@property
	def found(self) -> bool:
		return self.obj is not None and not self.ambiguous and not self.needs_pointer


@dataclass(frozen=True)
class _Embedded:
	typ: TypeId
	index: Tuple[int, ...]
	path: Tuple[Object, ...]
	path_owners: Tuple[TypeId, ...]
	indirect: bool
	multiples: bool


def same_id(obj_name: str, obj_pkg: Optional[str], name: str, pkg: Optional[str]) -> bool:
	"""Exported names match everywhere; unexported ones only inside their package."""
	if obj_name != name:
		return False
	if obj_name[:1].isupper():
		return True
	return obj_pkg is None or obj_pkg == pkg


def lookup_field_or_method(
	table: TypeTable,
	typ: TypeId,
	addressable: bool,
	pkg: Optional[str],
	name: str,
) -> LookupResult:
	"""
	Look up field or method `name` on `typ` from package `pkg`.

	`addressable` tells whether pointer-receiver methods may be selected on
	a non-pointer receiver (Go takes the address implicitly).
	"""
	if name == "_":
		return LookupResult()
	# Named pointer types have no methods and their fields are not promoted.
	if table.is_named(typ) and table.kind(table.underlying(typ)) is TypeKind.POINTER:
		return LookupResult()

	base, is_ptr = table.deref(typ)
	if is_ptr and table.is_interface(base):
		return LookupResult()

	current: List[_Embedded] = [_Embedded(base, (), (), (), is_ptr, False)]
	seen: set = set()
	while current:
		next_level: List[_Embedded] = []
		found: Optional[LookupResult] = None
		for entry in current:
			level_typ = entry.typ
			owner = level_typ
			if table.is_named(level_typ):
				if level_typ in seen:
					continue
				seen.add(level_typ)
				info = table.named_info(level_typ)
				method = info.methods.get(name)
				if method is not None and same_id(method.name, method.pkg, name, pkg):
					idx = entry.index + (list(info.methods).index(name),)
					if found is not None or entry.multiples:
						return LookupResult(index=idx, ambiguous=True)
					found = LookupResult(
						obj=method,
						owner=level_typ,
						index=idx,
						path=entry.path,
						path_owners=entry.path_owners,
						indirect=entry.indirect,
					)
					continue
				level_typ = table.underlying(level_typ)

			td = table.get(level_typ)
			if td.kind is TypeKind.STRUCT:
				for i, fd in enumerate(td.fields):
					if same_id(fd.name, fd.pkg, name, pkg):
						idx = entry.index + (i,)
						if found is not None or entry.multiples:
							return LookupResult(index=idx, ambiguous=True)
						found = LookupResult(
							obj=fd.obj,
							owner=owner,
							index=idx,
							path=entry.path,
							path_owners=entry.path_owners,
							indirect=entry.indirect,
						)
						continue
					if found is None and fd.embedded:
						emb, emb_ptr = table.deref(fd.type)
						next_level.append(
							_Embedded(
								emb,
								entry.index + (i,),
								entry.path + (fd.obj,),
								entry.path_owners + (owner,),
								entry.indirect or emb_ptr,
								entry.multiples,
							)
						)
			elif td.kind is TypeKind.INTERFACE:
				methods = table.interface_methods(level_typ)
				sig = methods.get(name)
				if sig is not None and same_id(sig.name, sig.pkg, name, pkg):
					idx = entry.index + (sorted(methods).index(name),)
					if found is not None or entry.multiples:
						return LookupResult(index=idx, ambiguous=True)
					found = LookupResult(
						obj=sig.obj,
						owner=owner,
						index=idx,
						path=entry.path,
						path_owners=entry.path_owners,
						indirect=entry.indirect,
					)

		if found is not None:
			obj = found.obj
			if (
				obj is not None
				and obj.kind is ObjectKind.METHOD
				and obj.pointer_recv
				and not found.indirect
				and not addressable
			):
				return LookupResult(
					obj=obj,
					owner=found.owner,
					index=found.index,
					path=found.path,
					path_owners=found.path_owners,
					needs_pointer=True,
				)
			return found
		current = _consolidate_multiples(next_level)
	return LookupResult()


def _consolidate_multiples(entries: List[_Embedded]) -> List[_Embedded]:
	"""Merge entries reaching the same type at one depth, flagging them as multiples."""
	if len(entries) <= 1:
		return entries
	out: List[_Embedded] = []
	positions: Dict[TypeId, int] = {}
	for entry in entries:
		pos = positions.get(entry.typ)
		if pos is None:
			positions[entry.typ] = len(out)
			out.append(entry)
		else:
			prev = out[pos]
			out[pos] = _Embedded(prev.typ, prev.index, prev.path, prev.path_owners, prev.indirect, True)
	return out


def missing_method(table: TypeTable, typ: TypeId, iface: TypeId) -> Tuple[Optional[str], bool]:
	"""
	First interface method `typ` does not implement.

	Returns (name, wrong_receiver): `wrong_receiver` is True when the method
	exists but only with a pointer receiver. (None, False) means `typ`
	implements `iface`.
	"""
	required = table.interface_methods(iface)
	if table.is_interface(typ):
		have = table.interface_methods(typ)
		for name in sorted(required):
			if name not in have or have[name].sig != required[name].sig:
				return name, False
		return None, False
	for name in sorted(required):
		want = required[name]
		res = lookup_field_or_method(table, typ, False, want.pkg, name)
		if res.needs_pointer:
			return name, True
		if not res.found or res.obj.kind is not ObjectKind.METHOD or res.obj.type != want.sig:
			return name, False
	return None, False


def implements(table: TypeTable, typ: TypeId, iface: TypeId) -> bool:
	name, _ = missing_method(table, typ, iface)
	return name is None


__all__ = ["LookupResult", "same_id", "lookup_field_or_method", "missing_method", "implements"]
