# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Universe scope: predeclared types, constants, nil and builtin functions.

Builtins never have a user declaration; they resolve to BUILTIN objects so a
bare call like `append(...)` can never be mistaken for a local function.
"""

from __future__ import annotations

from callscope.core.types_core import BasicKind, MethodSig, TypeTable

from .objects import Object, ObjectKind, Scope

BUILTIN_FUNCTIONS = (
	"append",
	"cap",
	"clear",
	"close",
	"copy",
	"delete",
	"len",
	"make",
	"max",
	"min",
	"new",
	"panic",
	"print",
	"println",
	"recover",
)

_PREDECLARED_TYPES = {
	"bool": BasicKind.BOOL,
	"string": BasicKind.STRING,
	"int": BasicKind.INT,
	"int8": BasicKind.INT8,
	"int16": BasicKind.INT16,
	"int32": BasicKind.INT32,
	"int64": BasicKind.INT64,
	"uint": BasicKind.UINT,
	"uint8": BasicKind.UINT8,
	"uint16": BasicKind.UINT16,
	"uint32": BasicKind.UINT32,
	"uint64": BasicKind.UINT64,
	"uintptr": BasicKind.UINTPTR,
	"float32": BasicKind.FLOAT32,
	"float64": BasicKind.FLOAT64,
	# aliases
	"byte": BasicKind.UINT8,
	"rune": BasicKind.INT32,
}


def new_universe(table: TypeTable) -> Scope:
	"""Build the universe scope for one TypeTable."""
	scope = Scope(kind="universe")
	for name, kind in _PREDECLARED_TYPES.items():
		scope.insert(Object(kind=ObjectKind.TYPE_NAME, name=name, type=table.basic(kind)))

	error_obj = Object(kind=ObjectKind.TYPE_NAME, name="error")
	error_type = table.new_named("error", None, error_obj)
	error_obj.type = error_type
	error_sig = table.new_signature((), (table.ensure_string(),))
	error_method = Object(
		kind=ObjectKind.METHOD,
		name="Error",
		type=error_sig,
		owner=error_type,
		abstract=True,
	)
	table.set_underlying(error_type, table.new_interface([MethodSig("Error", error_sig, None, error_method)]))
	scope.insert(error_obj)
	scope.insert(Object(kind=ObjectKind.TYPE_NAME, name="any", type=table.empty_interface()))

	untyped_bool = table.basic(BasicKind.UNTYPED_BOOL)
	scope.insert(Object(kind=ObjectKind.CONSTANT, name="true", type=untyped_bool, value=True))
	scope.insert(Object(kind=ObjectKind.CONSTANT, name="false", type=untyped_bool, value=False))
	scope.insert(Object(kind=ObjectKind.CONSTANT, name="iota", type=table.basic(BasicKind.UNTYPED_INT), value=0))
	scope.insert(Object(kind=ObjectKind.NIL, name="nil", type=table.basic(BasicKind.UNTYPED_NIL)))
	for name in BUILTIN_FUNCTIONS:
		scope.insert(Object(kind=ObjectKind.BUILTIN, name=name, type=table.invalid()))
	return scope


__all__ = ["BUILTIN_FUNCTIONS", "new_universe"]
