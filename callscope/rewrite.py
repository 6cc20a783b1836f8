# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type-directed rewriting of call sites.

A RewriteRule pairs a match predicate over (CallSite, TypeInfo) with a
template producing the replacement call. `apply` mutates matched calls in
place: the call keeps its node identity and span, gets the template's
function and arguments, and is recorded on the unit so the printer re-prints
exactly that span. Everything else in the unit renders byte-for-byte.

Several rules run through a RewritePass. Unordered passes refuse to pick a
winner when two rules match one call (RewriteConflict); ordered passes run
the rules one after another and re-parse and re-resolve the units after a
rule that changed anything, since rewritten calls are unknown to the old
TypeInfo.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from callscope.checker import Importer, TypeInfo, resolve
from callscope.config import FormatRuleConfig
from callscope.core.diagnostics import REWRITE_CONFLICT, REWRITE_SKIPPED, Diagnostic
from callscope.core.errors import RewriteConflict
from callscope.core.span import Span
from callscope.core.types_core import BOOL_KINDS, FLOAT_KINDS, INTEGER_KINDS, STRING_KINDS, TypeKind
from callscope.parser import SourceUnit
from callscope.parser.ast import Call, Literal, Name, Selector
from callscope.parser.printer import expr_string

from .classifier import CallKind, CallSite, collect_call_sites

logger = logging.getLogger(__name__)


class RewriteRule:
	"""
	Base class for rewrite rules.

	Rules are stateless: `match` decides whether a site is rewritten and
	`template` builds the replacement call (None skips the site). A rule must
	not match its own output.
	"""

	name = "rule"

	def match(self, site: CallSite, info: TypeInfo) -> bool:
		raise NotImplementedError

	def template(self, site: CallSite, info: TypeInfo) -> Optional[Call]:
		raise NotImplementedError


def apply(
	rule: RewriteRule,
	unit: SourceUnit,
	info: TypeInfo,
	diagnostics: Optional[List[Diagnostic]] = None,
) -> SourceUnit:
	"""Rewrite every call in `unit` matched by `rule`; returns the same unit."""
	sites = [site for site in collect_call_sites(unit, info) if site.call.rewritten_by is None]
	count = 0
	for site in sites:
		if rule.match(site, info) and _rewrite(rule, site, unit, info, diagnostics):
			count += 1
	logger.debug("%s: rule %s rewrote %d call(s)", unit.filename, rule.name, count)
	return unit


def _rewrite(
	rule: RewriteRule,
	site: CallSite,
	unit: SourceUnit,
	info: TypeInfo,
	diagnostics: Optional[List[Diagnostic]],
) -> bool:
	replacement = rule.template(site, info)
	if replacement is None:
		if diagnostics is not None:
			diagnostics.append(
				Diagnostic(
					message=f"rule {rule.name} matched {expr_string(site.call)} but produced no replacement",
					code=REWRITE_SKIPPED,
					phase="rewrite",
					severity="warning",
					span=site.span,
				)
			)
		return False
	call = site.call
	info.invalidate(call.func)
	info.types.pop(call, None)
	call.func = replacement.func
	call.args = list(replacement.args)
	call.ellipsis = replacement.ellipsis
	call.rewritten_by = rule.name
	unit.rewrites.append(call)
	return True


@dataclass
class RewriteResult:
	units: List[SourceUnit]
	info: TypeInfo
	rewritten: int = 0
	diagnostics: List[Diagnostic] = field(default_factory=list)


class RewritePass:
	"""
	Applies several rules to a unit set.

	With `ordered=False` all rules see the same TypeInfo in one traversal and a
	call matched by more than one rule raises RewriteConflict before anything
	is changed. With `ordered=True` rules run in the given order; overlapping
	matches are reported as warnings and the earlier rule wins.
	"""

	def __init__(self, rules: Sequence[RewriteRule], ordered: bool = False, importer: Optional[Importer] = None) -> None:
		self.rules = list(rules)
		self.ordered = ordered
		self.importer = importer

	def run(self, units: Sequence[SourceUnit], info: TypeInfo) -> RewriteResult:
		result = RewriteResult(units=list(units), info=info)
		matches = self._matches(result.units, info)
		conflicts = self._conflicts(matches)
		if conflicts and not self.ordered:
			raise RewriteConflict(conflicts)
		for diag in conflicts:
			diag.severity = "warning"
		result.diagnostics.extend(conflicts)

		if not self.ordered:
			for unit, site, rules in matches:
				if _rewrite(rules[0], site, unit, info, result.diagnostics):
					result.rewritten += 1
			return result

		for rule in self.rules:
			before = sum(len(u.rewrites) for u in result.units)
			for unit in result.units:
				apply(rule, unit, result.info, result.diagnostics)
			changed = sum(len(u.rewrites) for u in result.units) - before
			if changed:
				result.rewritten += changed
				for unit in result.units:
					if unit.rewrites:
						unit.reload()
				logger.debug("rule %s changed %d call(s); re-resolving", rule.name, changed)
				result.info = resolve(result.units, self.importer)
		return result

	def _matches(self, units: Sequence[SourceUnit], info: TypeInfo) -> List[Tuple[SourceUnit, CallSite, List[RewriteRule]]]:
		out = []
		for unit in units:
			for site in collect_call_sites(unit, info):
				if site.call.rewritten_by is not None:
					continue
				rules = [rule for rule in self.rules if rule.match(site, info)]
				if rules:
					out.append((unit, site, rules))
		return out

	def _conflicts(self, matches: Sequence[Tuple[SourceUnit, CallSite, List[RewriteRule]]]) -> List[Diagnostic]:
		return [
			Diagnostic(
				message=f"{expr_string(site.call)} matched by rules {', '.join(r.name for r in rules)}",
				code=REWRITE_CONFLICT,
				phase="rewrite",
				severity="error",
				span=site.span,
			)
			for _, site, rules in matches
			if len(rules) > 1
		]


class FormatCallRule(RewriteRule):
	"""
	Rewrites `fmt.Println(x)` into `fmt.Printf("<verb>\\n", x)`.

	The verb comes from the static type category of the single argument:
	integers, floats, strings and booleans by default. Arguments of other
	types (structs, pointers, interfaces, named types with methods, whose
	printing could involve String or Error) are left alone.
	"""

	name = "format-call"

	def __init__(self, config: Optional[FormatRuleConfig] = None) -> None:
		self.config = config or FormatRuleConfig()

	def match(self, site: CallSite, info: TypeInfo) -> bool:
		callee = site.callee
		if site.kind is not CallKind.PACKAGE_FUNCTION or callee is None:
			return False
		if callee.pkg != self.config.package or callee.name != self.config.function:
			return False
		if len(site.args) != 1 or site.call.ellipsis:
			return False
		return self.specifier(site, info) is not None

	def specifier(self, site: CallSite, info: TypeInfo) -> Optional[str]:
		ty = info.type_of(site.args[0])
		if ty is None:
			return None
		table = info.table
		if table.is_named(ty) and table.named_info(ty).methods:
			return None
		under = table.get(table.underlying(ty))
		if under.kind is not TypeKind.BASIC:
			return None
		category = _category(under.basic)
		return self.config.specifiers.get(category) if category else None

	def template(self, site: CallSite, info: TypeInfo) -> Optional[Call]:
		verb = self.specifier(site, info)
		chain = site.chain
		if verb is None or chain is None or chain.root.name is None:
			return None
		fmt = verb + ("\\n" if self.config.append_newline else "")
		unknown = Span()
		func = Selector(
			span=unknown,
			value=Name(span=unknown, ident=chain.root.name),
			attr=Name(span=unknown, ident=self.config.replacement),
		)
		literal = Literal(span=unknown, kind="string", raw=f'"{fmt}"')
		return Call(span=site.call.span, func=func, args=[literal, site.args[0]])


def _category(kind) -> Optional[str]:
	if kind in BOOL_KINDS:
		return "bool"
	if kind in STRING_KINDS:
		return "string"
	if kind in FLOAT_KINDS:
		return "float"
	if kind in INTEGER_KINDS:
		return "int"
	return None


__all__ = [
	"RewriteRule",
	"RewritePass",
	"RewriteResult",
	"FormatCallRule",
	"apply",
]
