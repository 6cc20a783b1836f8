# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Constant values: literal decoding, folding and representability.

Untyped constants are kept as plain Python values (int, float, str, bool)
with arbitrary precision for integers; typed constants are checked against
their type's range when they are converted.
"""

from __future__ import annotations

import ast
from typing import Any, Optional

from callscope.core.types_core import BasicKind, FLOAT_KINDS, INTEGER_KINDS

_INT_RANGES = {
	BasicKind.INT: (-(1 << 63), (1 << 63) - 1),
	BasicKind.INT8: (-(1 << 7), (1 << 7) - 1),
	BasicKind.INT16: (-(1 << 15), (1 << 15) - 1),
	BasicKind.INT32: (-(1 << 31), (1 << 31) - 1),
	BasicKind.INT64: (-(1 << 63), (1 << 63) - 1),
	BasicKind.UINT: (0, (1 << 64) - 1),
	BasicKind.UINT8: (0, (1 << 8) - 1),
	BasicKind.UINT16: (0, (1 << 16) - 1),
	BasicKind.UINT32: (0, (1 << 32) - 1),
	BasicKind.UINT64: (0, (1 << 64) - 1),
	BasicKind.UINTPTR: (0, (1 << 64) - 1),
}

# Ordering used when two untyped operands meet: the larger kind wins.
_UNTYPED_RANK = {
	BasicKind.UNTYPED_INT: 1,
	BasicKind.UNTYPED_RUNE: 2,
	BasicKind.UNTYPED_FLOAT: 3,
}


def int_literal(raw: str) -> int:
	text = raw.replace("_", "")
	if len(text) > 1 and text[0] == "0" and text[1].isdigit():
		return int(text, 8)  # legacy octal: 0755
	return int(text, 0)


def float_literal(raw: str) -> float:
	return float(raw.replace("_", ""))


def string_literal(raw: str) -> str:
	if raw.startswith("`"):
		return raw[1:-1].replace("\r", "")
	return ast.literal_eval(raw)


def rune_literal(raw: str) -> int:
	return ord(ast.literal_eval(raw))


def larger_untyped(a: BasicKind, b: BasicKind) -> BasicKind:
	"""Kind of the result when untyped numeric constants `a` and `b` combine."""
	return a if _UNTYPED_RANK.get(a, 0) >= _UNTYPED_RANK.get(b, 0) else b


def representable(value: Any, kind: BasicKind) -> Optional[Any]:
	"""`value` converted to `kind`, or None when it cannot be represented."""
	if kind in INTEGER_KINDS:
		if isinstance(value, bool) or not isinstance(value, (int, float)):
			return None
		if isinstance(value, float):
			if not value.is_integer():
				return None
			value = int(value)
		bounds = _INT_RANGES.get(kind)
		if bounds is not None and not bounds[0] <= value <= bounds[1]:
			return None
		return value
	if kind in FLOAT_KINDS:
		if isinstance(value, bool) or not isinstance(value, (int, float)):
			return None
		return float(value) if kind is not BasicKind.UNTYPED_FLOAT else value
	if kind in (BasicKind.STRING, BasicKind.UNTYPED_STRING):
		return value if isinstance(value, str) else None
	if kind in (BasicKind.BOOL, BasicKind.UNTYPED_BOOL):
		return value if isinstance(value, bool) else None
	return None


def fold_unary(op: str, value: Any, kind: Optional[BasicKind]) -> Any:
	if op == "+":
		return value
	if op == "-":
		return -value
	if op == "!":
		return not value
	if op == "^":
		bounds = _INT_RANGES.get(kind) if kind is not None else None
		if bounds is not None and bounds[0] == 0:
			return bounds[1] ^ value  # unsigned: flip within the type's width
		return ~value
	raise ValueError(f"cannot fold unary {op}")


def fold_binary(op: str, x: Any, y: Any, integer: bool) -> Any:
	"""Fold `x op y`; raises ZeroDivisionError on constant division by zero."""
	if op == "+":
		return x + y
	if op == "-":
		return x - y
	if op == "*":
		return x * y
	if op == "/":
		if y == 0:
			raise ZeroDivisionError
		if integer:
			quotient = abs(x) // abs(y)
			return quotient if (x < 0) == (y < 0) else -quotient
		return x / y
	if op == "%":
		if y == 0:
			raise ZeroDivisionError
		remainder = abs(x) % abs(y)
		return remainder if x >= 0 else -remainder
	if op == "&":
		return x & y
	if op == "|":
		return x | y
	if op == "^":
		return x ^ y
	if op == "&^":
		return x & ~y
	if op == "<<":
		return x << y
	if op == ">>":
		return x >> y
	if op == "&&":
		return x and y
	if op == "||":
		return x or y
	return compare(op, x, y)


def compare(op: str, x: Any, y: Any) -> bool:
	if op == "==":
		return x == y
	if op == "!=":
		return x != y
	if op == "<":
		return x < y
	if op == "<=":
		return x <= y
	if op == ">":
		return x > y
	if op == ">=":
		return x >= y
	raise ValueError(f"cannot fold comparison {op}")


def format_value(value: Any) -> str:
	if isinstance(value, bool):
		return "true" if value else "false"
	if isinstance(value, str):
		return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
	return str(value)


__all__ = [
	"int_literal",
	"float_literal",
	"string_literal",
	"rune_literal",
	"larger_untyped",
	"representable",
	"fold_unary",
	"fold_binary",
	"compare",
	"format_value",
]
