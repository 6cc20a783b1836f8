# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Parser service: lark-based front end for the Go subset plus the serializer.

`parse(source, filename)` returns a SourceUnit (or raises ParseError);
`render(unit)` serializes it back to bytes.
"""

from __future__ import annotations

from . import ast
from .parser import SourceUnit, parse
from .printer import expr_string, render

__all__ = ["ast", "SourceUnit", "parse", "render", "expr_string"]
