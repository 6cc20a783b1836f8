# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Pipeline driver and command-line entry point.

`analyze(units)` runs resolve -> classify -> call graph over a closed unit
set. `main(argv)` wraps it:

	callscope FILE... [--graph] [--classify] [--rewrite-format [--write]]
	          [--config PATH] [--import-root DIR] [--json] [-v]

Diagnostics print as `file:line:col: severity: message` on stderr, or as one
JSON object on stdout with --json. Parse and type errors exit with status 1.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from callscope.callgraph import CallGraph, build, format_edges
from callscope.checker import Importer, SourceImporter, TypeInfo, resolve
from callscope.classifier import CallSite, classify_units
from callscope.config import AnalysisConfig, load_config
from callscope.core.diagnostics import Diagnostic
from callscope.core.errors import ConfigError, ParseError, RewriteConflict, TypeCheckError
from callscope.parser import SourceUnit, expr_string, parse
from callscope.rewrite import FormatCallRule, RewritePass

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
	units: List[SourceUnit]
	info: TypeInfo
	sites: List[CallSite]
	graph: CallGraph
	diagnostics: List[Diagnostic] = field(default_factory=list)


def analyze(
	units: Sequence[SourceUnit],
	config: Optional[AnalysisConfig] = None,
	importer: Optional[Importer] = None,
) -> AnalysisResult:
	"""
	Resolve, classify and build the call graph of `units`.

	Raises TypeCheckError when the set does not type-check; non-fatal
	conditions are returned as diagnostics.
	"""
	config = config or AnalysisConfig()
	info = resolve(units, importer)
	sites = classify_units(units, info)
	graph = build(units, info, config, sites=sites)
	diagnostics = [d for site in sites for d in site.diagnostics]
	logger.info(
		"analyzed %d unit(s): %d call site(s), %d graph node(s), %d edge(s)",
		len(units),
		len(sites),
		len(graph),
		len(graph.edges),
	)
	return AnalysisResult(units=list(units), info=info, sites=sites, graph=graph, diagnostics=diagnostics)


def _print_diagnostics(diagnostics: Sequence[Diagnostic]) -> None:
	for d in diagnostics:
		print(d.format(), file=sys.stderr)


def _fail(diagnostics: Sequence[Diagnostic], as_json: bool) -> int:
	if as_json:
		print(json.dumps({"exit_code": 1, "diagnostics": [d.to_json() for d in diagnostics]}))
	else:
		_print_diagnostics(diagnostics)
	return 1


def _site_line(site: CallSite, result: AnalysisResult, relative_to: Optional[str]) -> str:
	chain = ""
	if site.chain is not None:
		chain = f" [{site.chain.describe(result.info, relative_to)}]"
	return f"{site.span}: {site.kind.value}: {expr_string(site.call)}{chain}"


def main(argv: list[str] | None = None) -> int:
	"""
	Analyze Go source files.

	Files sharing a package clause form one package; each package's import
	path is its name. Imports not among the files resolve to the bundled
	stdlib declarations or to packages under --import-root.
	"""
	parser = argparse.ArgumentParser(prog="callscope", description="Classify calls, build call graphs and rewrite Go sources")
	parser.add_argument("source", type=Path, nargs="+", help="Path(s) to Go source file(s)")
	parser.add_argument("--graph", action="store_true", help="Print the static call graph (caller --> callee)")
	parser.add_argument("--classify", action="store_true", help="Print the kind of every call site")
	parser.add_argument(
		"--rewrite-format",
		action="store_true",
		help="Rewrite single-argument Println calls into Printf with a type-directed verb",
	)
	parser.add_argument("--write", action="store_true", help="With --rewrite-format, write the results back to the files")
	parser.add_argument("--config", type=Path, help="Path to a JSON analysis configuration")
	parser.add_argument(
		"--import-root",
		dest="import_roots",
		action="append",
		type=Path,
		default=[],
		help="Directory searched for imported packages as <root>/<path>/*.go (repeatable)",
	)
	parser.add_argument("--json", action="store_true", help="Emit results and diagnostics as JSON")
	parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")
	args = parser.parse_args(argv)

	level = logging.WARNING
	if args.verbose == 1:
		level = logging.INFO
	elif args.verbose > 1:
		level = logging.DEBUG
	logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

	try:
		config = load_config(args.config) if args.config else AnalysisConfig()
	except (ConfigError, OSError) as err:
		return _fail([Diagnostic(message=str(err), phase="config")], args.json)

	units: List[SourceUnit] = []
	for path in args.source:
		try:
			units.append(parse(path.read_bytes(), str(path)))
		except ParseError as err:
			return _fail([err.to_diagnostic()], args.json)
		except OSError as err:
			return _fail([Diagnostic(message=f"{path}: {err.strerror or err}", phase="parser")], args.json)

	importer = SourceImporter(args.import_roots)
	try:
		result = analyze(units, config, importer)
	except TypeCheckError as err:
		return _fail(err.diagnostics, args.json)

	relative_to = units[0].import_path if len({u.import_path for u in units}) == 1 else None
	payload: Dict[str, object] = {"exit_code": 0}
	diagnostics = list(result.diagnostics)

	if args.classify:
		if args.json:
			payload["sites"] = [site.to_json() for site in result.sites]
		else:
			for site in result.sites:
				print(_site_line(site, result, relative_to))
	if args.graph:
		if args.json:
			payload["edges"] = [edge.display(relative_to) for edge in result.graph.edges]
		else:
			print(format_edges(result.graph, relative_to))
	if args.rewrite_format:
		rewrite_pass = RewritePass([FormatCallRule(config.format_rule)], ordered=True, importer=importer)
		try:
			rewritten = rewrite_pass.run(units, result.info)
		except (RewriteConflict, TypeCheckError) as err:
			return _fail(err.diagnostics, args.json)
		diagnostics.extend(rewritten.diagnostics)
		outputs = {unit.filename: unit.render().decode("utf-8") for unit in rewritten.units}
		if args.write:
			for filename, text in outputs.items():
				Path(filename).write_text(text, encoding="utf-8")
			logger.info("rewrote %d call(s) in %d file(s)", rewritten.rewritten, len(outputs))
		elif args.json:
			payload["rewritten"] = rewritten.rewritten
			payload["outputs"] = outputs
		else:
			for text in outputs.values():
				sys.stdout.write(text)

	if args.json:
		payload["diagnostics"] = [d.to_json() for d in diagnostics]
		print(json.dumps(payload))
	else:
		_print_diagnostics([d for d in diagnostics if d.severity != "note"])
	return 0


__all__ = ["AnalysisResult", "analyze", "main"]
