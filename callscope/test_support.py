# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Shared helpers for tests that need parsed and resolved inputs.

Sources are given as Go text; a leading tab-indented block is dedented so
fixtures can be written inline. Multi-package fixtures pass a mapping of
import path -> source (or list of sources).
"""

from __future__ import annotations

import textwrap
from typing import Dict, List, Mapping, Sequence, Tuple

from callscope.checker import TypeInfo, resolve
from callscope.classifier import CallSite, classify_units
from callscope.parser import SourceUnit, expr_string, parse
from callscope.parser.ast import Call, walk


def go(source: str) -> str:
	"""Dedent an inline fixture."""
	return textwrap.dedent(source).lstrip("\n")


def parse_units(packages: Mapping[str, str | Sequence[str]]) -> List[SourceUnit]:
	units: List[SourceUnit] = []
	for path, sources in packages.items():
		if isinstance(sources, str):
			sources = [sources]
		for idx, source in enumerate(sources):
			units.append(parse(go(source), f"{path}/file{idx}.go", import_path=path))
	return units


def load(source: str | None = None, **packages: str | Sequence[str]) -> Tuple[List[SourceUnit], TypeInfo]:
	"""
	Parse and resolve a fixture.

	`load(src)` is a single `main` package; keyword arguments add packages by
	import path (`load(main=..., shapes=...)`).
	"""
	spec: Dict[str, str | Sequence[str]] = {}
	if source is not None:
		spec["main"] = source
	spec.update(packages)
	units = parse_units(spec)
	return units, resolve(units)


def sites_of(source: str | None = None, **packages: str | Sequence[str]) -> List[CallSite]:
	units, info = load(source, **packages)
	return classify_units(units, info)


def site_for(sites: Sequence[CallSite], text: str) -> CallSite:
	"""The single site whose call renders as `text` (see expr_string)."""
	found = [s for s in sites if expr_string(s.call) == text]
	assert len(found) == 1, f"expected one call {text!r}, got {[expr_string(s.call) for s in sites]}"
	return found[0]


def calls_in(unit: SourceUnit) -> List[Call]:
	return [node for node in walk(unit.tree) if isinstance(node, Call)]


__all__ = ["go", "parse_units", "load", "sites_of", "site_for", "calls_in"]
