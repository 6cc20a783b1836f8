# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Type oracle: resolves identifiers, types and selections for a unit set."""

from __future__ import annotations

from typing import Optional, Sequence

from callscope.parser import SourceUnit

from .importer import Importer, SourceImporter, default_importer
from .lookup import LookupResult, implements, lookup_field_or_method
from .objects import Object, ObjectKind, Package, Scope
from .type_checker import Checker
from .type_info import Selection, SelectionKind, TypeAndValue, TypeInfo


def resolve(units: Sequence[SourceUnit], importer: Optional[Importer] = None) -> TypeInfo:
	"""
	Type-check `units` as one closed set and return the resulting index.

	Imports not satisfied by `units` go to `importer` (bundled stdlib stubs
	by default). Raises TypeCheckError carrying every diagnostic on failure.
	"""
	return Checker(importer).check(units)


__all__ = [
	"resolve",
	"Checker",
	"Importer",
	"SourceImporter",
	"default_importer",
	"LookupResult",
	"implements",
	"lookup_field_or_method",
	"Object",
	"ObjectKind",
	"Package",
	"Scope",
	"Selection",
	"SelectionKind",
	"TypeAndValue",
	"TypeInfo",
]
