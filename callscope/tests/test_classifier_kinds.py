import logging

from callscope.classifier import CallKind, classify, collect_call_sites
from callscope.core.diagnostics import CONVERSION, INTERFACE_DISPATCH, UNRESOLVED_REFERENCE
from callscope.parser import expr_string
from callscope.test_support import calls_in, load, site_for, sites_of


def test_builtin_local_function_and_promoted_method():
	sites = sites_of("""package main

type Base struct{}

func (b Base) Method() int { return 1 }

type Derived struct{ Base }

func g(xs []int) int { return len(xs) }

func main() {
	instance := Derived{}
	xs := append([]int{}, 1)
	_ = g(xs)
	_ = instance.Method()
}
""")
	append_site = site_for(sites, "append([]int{...}, 1)")
	assert append_site.kind is CallKind.BUILTIN
	assert append_site.callee.name == "append"

	g_site = site_for(sites, "g(xs)")
	assert g_site.kind is CallKind.LOCAL_FUNCTION
	assert g_site.enclosing.name == "main"

	method = site_for(sites, "instance.Method()")
	assert method.kind is CallKind.INSTANCE_METHOD
	assert len(method.chain.promoted_hops) == 1
	assert method.chain.promoted_hops[0].name == "Base"
	assert method.callee.name == "Method"

	assert site_for(sites, "len(xs)").kind is CallKind.BUILTIN
	assert site_for(sites, "len(xs)").enclosing.name == "g"


def test_package_function_calls():
	sites = sites_of(
		main="""package main

import (
	"fmt"
	"strings"
	"util"
)

func main() {
	fmt.Println(strings.ToUpper(util.Name()))
}
""",
		util="""package util

func Name() string { return "x" }
""",
	)
	for text, pkg in [
		("fmt.Println(strings.ToUpper(util.Name()))", "fmt"),
		("strings.ToUpper(util.Name())", "strings"),
		("util.Name()", "util"),
	]:
		site = site_for(sites, text)
		assert site.kind is CallKind.PACKAGE_FUNCTION
		assert site.callee.pkg == pkg
		assert site.chain.root.is_package


def test_variable_shadowing_package_name_is_a_method_call():
	sites = sites_of("""package main

import "strings"

type joiner struct{}

func (joiner) ToUpper(s string) string { return s }

func main() {
	_ = strings.ToUpper("a")
	{
		strings := joiner{}
		_ = strings.ToUpper("b")
	}
}
""")
	assert site_for(sites, 'strings.ToUpper("a")').kind is CallKind.PACKAGE_FUNCTION
	shadowed = site_for(sites, 'strings.ToUpper("b")')
	assert shadowed.kind is CallKind.INSTANCE_METHOD
	assert shadowed.chain.root.is_package is False


def test_uppercase_local_function_is_not_treated_as_package_call():
	sites = sites_of("""package main

func Helper() {}

func main() {
	Helper()
}
""")
	assert site_for(sites, "Helper()").kind is CallKind.LOCAL_FUNCTION


def test_interface_dispatch_is_unknown():
	sites = sites_of("""package main

type Shape interface {
	Area() float64
}

type Square struct{ side float64 }

func (s Square) Area() float64 { return s.side * s.side }

func total(s Shape) float64 {
	return s.Area()
}

func main() {
	_ = total(Square{side: 2})
}
""")
	site = site_for(sites, "s.Area()")
	assert site.kind is CallKind.UNKNOWN
	assert site.callee is None
	assert [d.code for d in site.diagnostics] == [INTERFACE_DISPATCH]


def test_function_values_have_no_static_target(caplog):
	with caplog.at_level(logging.DEBUG, logger="callscope.classifier"):
		sites = sites_of("""package main

func g() int { return 1 }

func main() {
	f := g
	_ = f()
	_ = func() int { return g() }()
}
""")
	site = site_for(sites, "f()")
	assert site.kind is CallKind.UNKNOWN
	assert [d.code for d in site.diagnostics] == [UNRESOLVED_REFERENCE]
	assert "has no static target" in caplog.text
	assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

	literal_call = site_for(sites, "func literal()")
	assert literal_call.kind is CallKind.UNKNOWN
	inner = site_for(sites, "g()")
	assert inner.kind is CallKind.LOCAL_FUNCTION
	assert inner.enclosing.name == "main"


def test_conversions_are_not_call_sites():
	units, info = load("""package main

type Celsius float64

func main() {
	c := Celsius(3)
	_ = float64(c)
	_ = []byte("x")
}
""")
	assert collect_call_sites(units[0], info) == []
	conversion = next(c for c in calls_in(units[0]) if expr_string(c) == "Celsius(3)")
	site = classify(conversion, info)
	assert site.kind is CallKind.UNKNOWN
	assert [(d.code, d.severity) for d in site.diagnostics] == [(CONVERSION, "note")]


def test_package_level_initializer_calls_have_no_enclosing_function():
	sites = sites_of("""package main

var seed = compute()

func compute() int { return 7 }

func main() {}
""")
	site = site_for(sites, "compute()")
	assert site.kind is CallKind.LOCAL_FUNCTION
	assert site.enclosing is None
	assert site.package == "main"


def test_every_call_gets_exactly_one_kind_in_source_order():
	sites = sites_of("""package main

import "fmt"

type T struct{}

func (t *T) Go() {}

func main() {
	t := &T{}
	t.Go()
	fmt.Println(len("ab"))
	defer t.Go()
}
""")
	assert [(expr_string(s.call), s.kind) for s in sites] == [
		("t.Go()", CallKind.INSTANCE_METHOD),
		('fmt.Println(len("ab"))', CallKind.PACKAGE_FUNCTION),
		('len("ab")', CallKind.BUILTIN),
		("t.Go()", CallKind.INSTANCE_METHOD),
	]


def test_call_site_json():
	sites = sites_of("""package main

func g() {}

func main() {
	g()
}
""")
	data = sites[0].to_json()
	assert data["kind"] == "LocalFunction"
	assert data["call"] == "g()"
	assert data["file"] == "main/file0.go"
	assert data["line"] == 6
	assert data["enclosing"] == "main"
	assert data["callee"] == "g"
	assert data["promoted_hops"] == 0
