# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Import resolution for packages outside the analyzed unit set.

The checker first resolves an import path against the analyzed units; paths
it cannot find there are handed to an Importer. `SourceImporter` parses Go
declaration files: the bundled stubs under `stdlib/` (`fmt`, `strings`,
`strconv`, `errors`, `os`) plus any extra search roots, where package `a/b`
lives in `<root>/a/b/*.go`. Objects declared by imported units are marked
external.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from callscope.parser import SourceUnit, parse

logger = logging.getLogger(__name__)

STDLIB_DIR = Path(__file__).with_name("stdlib")


class Importer:
	"""Resolves an import path to the units declaring that package."""

	def import_units(self, path: str) -> Optional[List[SourceUnit]]:
		raise NotImplementedError


class SourceImporter(Importer):
	"""Importer over bundled stubs and optional source roots; results are cached."""

	def __init__(self, roots: Iterable[Path | str] = (), include_stdlib: bool = True) -> None:
		self.roots: List[Path] = [Path(r) for r in roots]
		self.include_stdlib = include_stdlib
		self._cache: Dict[str, Optional[List[SourceUnit]]] = {}

	def import_units(self, path: str) -> Optional[List[SourceUnit]]:
		if path in self._cache:
			return self._cache[path]
		files = self._locate(path)
		units = None
		if files:
			logger.debug("importing %s from %s", path, ", ".join(str(f) for f in files))
			units = [parse(f.read_bytes(), str(f), import_path=path) for f in files]
		self._cache[path] = units
		return units

	def _locate(self, path: str) -> Sequence[Path]:
		if self.include_stdlib:
			stub = STDLIB_DIR / f"{path}.go"
			if stub.is_file():
				return [stub]
		for root in self.roots:
			pkg_dir = root / path
			if pkg_dir.is_dir():
				files = sorted(p for p in pkg_dir.glob("*.go") if not p.name.endswith("_test.go"))
				if files:
					return files
		return []


def default_importer() -> SourceImporter:
	return SourceImporter()


__all__ = ["Importer", "SourceImporter", "STDLIB_DIR", "default_importer"]
