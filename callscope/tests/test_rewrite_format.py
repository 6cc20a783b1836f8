import pytest

from callscope.classifier import CallKind
from callscope.config import FormatRuleConfig
from callscope.core.diagnostics import REWRITE_CONFLICT, REWRITE_SKIPPED
from callscope.core.errors import RewriteConflict
from callscope.core.span import Span
from callscope.parser import ast as A
from callscope.rewrite import FormatCallRule, RewritePass, RewriteRule, apply
from callscope.test_support import calls_in, load

SOURCE = """package main

import "fmt"

type Point struct{ X, Y int }

func main() {
	// print a few values
	fmt.Println(42)
	fmt.Println("s")
	fmt.Println(Point{1, 2})
	fmt.Println(1, 2)
}
"""


class RenameRule(RewriteRule):
	"""Turns every fmt.Println call into fmt.Print."""

	name = "rename-println"

	def match(self, site, info):
		return site.kind is CallKind.PACKAGE_FUNCTION and site.callee.name == "Println"

	def template(self, site, info):
		unknown = Span()
		func = A.Selector(span=unknown, value=A.Name(span=unknown, ident="fmt"), attr=A.Name(span=unknown, ident="Print"))
		return A.Call(span=site.call.span, func=func, args=list(site.args))


class NeverRule(RewriteRule):
	name = "never"

	def match(self, site, info):
		return site.kind is CallKind.PACKAGE_FUNCTION

	def template(self, site, info):
		return None


def _render(units):
	return units[0].render().decode("utf-8")


def test_argument_type_selects_the_verb():
	units, info = load(SOURCE)
	result = RewritePass([FormatCallRule()], ordered=True).run(units, info)
	assert result.rewritten == 2
	assert _render(result.units) == SOURCE.replace(
		"fmt.Println(42)", 'fmt.Printf("%d\\n", 42)'
	).replace(
		'fmt.Println("s")', 'fmt.Printf("%s\\n", "s")'
	)


def test_unordered_pass_rewrites_in_place_and_preserves_bytes():
	units, info = load(SOURCE)
	original = units[0].source
	result = RewritePass([FormatCallRule()]).run(units, info)
	assert result.rewritten == 2
	assert units[0].source == original
	assert [call.rewritten_by for call in units[0].rewrites] == ["format-call", "format-call"]
	rendered = _render(units)
	assert rendered.startswith(original[:original.index("fmt.Println(42)")])
	assert rendered.endswith(original[original.index("\tfmt.Println(Point"):])
	assert rendered.count("fmt.Printf(") == 2


def test_apply_forgets_the_replaced_callee_but_keeps_reused_arguments():
	units, info = load(SOURCE)
	answer, text, point, pair = calls_in(units[0])
	old_func = answer.func
	assert old_func in info.types
	assert info.uses[old_func.attr].name == "Println"
	arg = answer.args[0]
	arg_type = info.types[arg]
	point_func_type = info.types[point.func]
	point_callee = info.uses[point.func.attr]
	point_type = info.types.get(point)

	apply(FormatCallRule(), units[0], info)

	assert answer.rewritten_by == text.rewritten_by == "format-call"
	assert answer.func is not old_func
	assert old_func not in info.types
	assert old_func not in info.selections
	assert old_func.value not in info.uses
	assert old_func.attr not in info.uses
	assert answer not in info.types
	assert answer.args[1] is arg
	assert info.types[arg] is arg_type

	assert point.rewritten_by is None and pair.rewritten_by is None
	assert info.types[point.func] is point_func_type
	assert info.uses[point.func.attr] is point_callee
	assert info.types.get(point) is point_type


def test_rewriting_is_idempotent():
	units, info = load(SOURCE)
	first = RewritePass([FormatCallRule()], ordered=True).run(units, info)
	once = _render(first.units)
	second = RewritePass([FormatCallRule()], ordered=True).run(first.units, first.info)
	assert second.rewritten == 0
	assert _render(second.units) == once

	# within one session, already rewritten calls are skipped
	units, info = load(SOURCE)
	rule_pass = RewritePass([FormatCallRule()])
	rule_pass.run(units, info)
	again = rule_pass.run(units, info)
	assert again.rewritten == 0
	assert len(units[0].rewrites) == 2


def test_argument_text_is_reused():
	units, info = load("""package main

import "fmt"

func main() {
	a, b := 1, 2
	fmt.Println(a  +  b)
}
""")
	RewritePass([FormatCallRule()]).run(units, info)
	assert '\tfmt.Printf("%d\\n", a  +  b)\n' in _render(units)


def test_named_and_sized_types():
	units, info = load("""package main

import "fmt"

type Celsius float64

type Label string

func (l Label) String() string { return "label" }

func main() {
	var n int64 = 3
	var c Celsius = 21.5
	var l Label = "x"
	ok := n > 2
	fmt.Println(n)
	fmt.Println(c)
	fmt.Println(l)
	fmt.Println(ok)
	fmt.Println('r')
}
""")
	RewritePass([FormatCallRule()]).run(units, info)
	text = _render(units)
	assert 'fmt.Printf("%d\\n", n)' in text
	assert 'fmt.Printf("%g\\n", c)' in text
	assert "fmt.Println(l)" in text
	assert 'fmt.Printf("%t\\n", ok)' in text
	assert "fmt.Printf(\"%d\\n\", 'r')" in text


def test_import_alias_is_kept():
	units, info = load("""package main

import out "fmt"

func main() {
	out.Println("x")
}
""")
	RewritePass([FormatCallRule()]).run(units, info)
	assert 'out.Printf("%s\\n", "x")' in _render(units)


def test_configured_specifiers():
	units, info = load(SOURCE)
	rule = FormatCallRule(FormatRuleConfig(specifiers={"int": "%v"}, append_newline=False))
	result = RewritePass([rule]).run(units, info)
	assert result.rewritten == 1
	text = _render(units)
	assert 'fmt.Printf("%v", 42)' in text
	assert 'fmt.Println("s")' in text


def test_unordered_conflict_raises_before_mutating():
	units, info = load(SOURCE)
	with pytest.raises(RewriteConflict) as excinfo:
		RewritePass([FormatCallRule(), RenameRule()]).run(units, info)
	codes = {d.code for d in excinfo.value.diagnostics}
	assert codes == {REWRITE_CONFLICT}
	assert len(excinfo.value.diagnostics) == 2
	assert units[0].rewrites == []
	assert _render(units) == SOURCE


def test_ordered_rules_run_in_sequence():
	units, info = load(SOURCE)
	result = RewritePass([FormatCallRule(), RenameRule()], ordered=True).run(units, info)
	assert [d.code for d in result.diagnostics] == [REWRITE_CONFLICT, REWRITE_CONFLICT]
	assert all(d.severity == "warning" for d in result.diagnostics)
	assert result.rewritten == 4
	text = _render(result.units)
	assert 'fmt.Printf("%d\\n", 42)' in text
	assert 'fmt.Printf("%s\\n", "s")' in text
	assert "fmt.Print(Point{1, 2})" in text
	assert "fmt.Print(1, 2)" in text
	assert "Println" not in text


def test_rule_without_replacement_is_reported():
	units, info = load(SOURCE)
	diagnostics = []
	apply(NeverRule(), units[0], info, diagnostics)
	assert units[0].rewrites == []
	assert {d.code for d in diagnostics} == {REWRITE_SKIPPED}
	assert len(diagnostics) == 4
