import pytest

from callscope.checker import ObjectKind, SelectionKind, SourceImporter, resolve
from callscope.core.errors import TypeCheckError
from callscope.parser import ast as A
from callscope.parser import parse
from callscope.test_support import load, parse_units


def _def(info, name):
	return next(obj for ident, obj in info.defs.items() if ident.ident == name)


def _use(info, name):
	return next(obj for ident, obj in info.uses.items() if ident.ident == name)


def _type_errors(source=None, **packages):
	with pytest.raises(TypeCheckError) as excinfo:
		load(source, **packages)
	return [d.message for d in excinfo.value.diagnostics]


def test_short_var_decl_takes_default_types():
	_units, info = load("""package main

func main() {
	i := 1
	f := 1.5
	s := "x"
	b := i > 0
	r := 'r'
	_, _, _, _, _ = i, f, s, b, r
}
""")
	assert info.type_string(_def(info, "i").type) == "int"
	assert info.type_string(_def(info, "f").type) == "float64"
	assert info.type_string(_def(info, "s").type) == "string"
	assert info.type_string(_def(info, "b").type) == "bool"
	assert info.type_string(_def(info, "r").type) == "int32"


def test_universe_builtins_resolve_to_builtin_objects():
	_units, info = load("""package main

func main() {
	xs := []int{}
	xs = append(xs, len(xs))
	_ = cap(xs)
}
""")
	assert _use(info, "append").kind is ObjectKind.BUILTIN
	assert _use(info, "len").kind is ObjectKind.BUILTIN
	assert info.type_string(_def(info, "xs").type) == "[]int"


def test_package_level_declarations_in_any_order():
	_units, info = load("""package main

var total = double(base)

const base = 21

func double(n int) int { return n * 2 }
""")
	assert info.type_string(_def(info, "total").type) == "int"
	assert _def(info, "double").kind is ObjectKind.FUNCTION
	assert _def(info, "base").kind is ObjectKind.CONSTANT


def test_undefined_identifier_is_a_type_error():
	messages = _type_errors("""package main

func main() {
	x := y + 1
	_ = x
}
""")
	assert messages == ["undefined: y"]


def test_diagnostics_carry_location():
	with pytest.raises(TypeCheckError) as excinfo:
		load("""package main

func main() {
	undefinedCall()
}
""")
	diag = excinfo.value.diagnostics[0]
	assert diag.phase == "typecheck"
	assert diag.span.file == "main/file0.go"
	assert diag.span.line == 4
	assert diag.format() == "main/file0.go:4:2: error: undefined: undefinedCall"


def test_assignment_type_mismatch():
	messages = _type_errors("""package main

func main() {
	var n int = "text"
	_ = n
}
""")
	assert len(messages) == 1
	assert messages[0].startswith("cannot use \"text\"")


def test_missing_return():
	assert _type_errors("""package main

func f(x int) int {
	if x > 0 {
		return 1
	}
}
""") == ["missing return"]


def test_cross_package_exported_names_only():
	messages = _type_errors(
		main="""package main

import "shapes"

func main() {
	_ = shapes.area(2)
}
""",
		shapes="""package shapes

func area(n int) int { return n * n }
""",
	)
	assert messages == ["name area not exported by package shapes"]


def test_cross_package_member_resolves_to_declaring_package():
	_units, info = load(
		main="""package main

import "shapes"

func main() {
	_ = shapes.Area(2)
}
""",
		shapes="""package shapes

func Area(n int) int { return n * n }
""",
	)
	area = _use(info, "Area")
	assert area.kind is ObjectKind.FUNCTION
	assert area.pkg == "shapes"
	assert info.is_analyzed(area)
	assert _use(info, "shapes").kind is ObjectKind.PACKAGE


def test_bundled_stdlib_objects_are_external():
	_units, info = load("""package main

import "fmt"

func main() {
	fmt.Println("hi")
}
""")
	println = _use(info, "Println")
	assert println.pkg == "fmt"
	assert not info.is_analyzed(println)


def test_import_cycle_is_rejected():
	messages = _type_errors(
		a="""package a

import "b"

func A() { b.B() }
""",
		b="""package b

import "a"

func B() { a.A() }
""",
	)
	assert len(messages) == 1
	assert messages[0].startswith("import cycle not allowed: ")
	assert "a -> b -> a" in messages[0] or "b -> a -> b" in messages[0]


def test_unknown_import_is_reported():
	assert _type_errors("""package main

import "nosuch/pkg"

func main() {}
""") == ["could not import nosuch/pkg (package not found)"]


def test_importer_search_roots(tmp_path):
	pkg_dir = tmp_path / "geo" / "units"
	pkg_dir.mkdir(parents=True)
	(pkg_dir / "units.go").write_text("package units\n\nfunc Meters(n float64) float64 { return n }\n")
	unit = parse("""package main

import "geo/units"

func main() {
	_ = units.Meters(2)
}
""", "main.go")
	info = resolve([unit], SourceImporter([tmp_path]))
	meters = _use(info, "Meters")
	assert meters.pkg == "geo/units"
	assert meters.external
	assert not info.is_analyzed(meters)


def test_promoted_method_selection_records_embedding_path():
	units, info = load("""package main

type Base struct{}

func (Base) Hello() string { return "hi" }

type Middle struct{ Base }

type Outer struct {
	Middle
	name string
}

func main() {
	var o Outer
	_ = o.Hello()
	_ = o.name
}
""")
	selectors = [n for n in A.walk(units[0].tree) if isinstance(n, A.Selector)]
	hello = next(s for s in selectors if s.attr.ident == "Hello")
	sel = info.selection(hello)
	assert sel.kind is SelectionKind.METHOD_VAL
	assert [f.name for f in sel.path] == ["Middle", "Base"]
	assert info.type_string(sel.owner, "main") == "Base"
	assert [info.type_string(t, "main") for t in sel.path_owners] == ["Outer", "Middle"]

	name = next(s for s in selectors if s.attr.ident == "name")
	field = info.selection(name)
	assert field.kind is SelectionKind.FIELD_VAL
	assert not field.promoted


def test_interface_satisfaction_is_checked():
	messages = _type_errors("""package main

type Shape interface {
	Area() float64
}

type Square struct{ side float64 }

func main() {
	var s Shape = Square{side: 2}
	_ = s
}
""")
	assert len(messages) == 1
	assert "Shape" in messages[0]
	assert "Area" in messages[0]


def test_untyped_constant_passed_as_interface_gets_default_type():
	units, info = load("""package main

import "fmt"

func main() {
	fmt.Println(42)
	fmt.Println(2.5)
}
""")
	literals = [n for n in A.walk(units[0].tree) if isinstance(n, A.Literal)]
	assert [info.type_string(info.type_of(lit)) for lit in literals] == ["int", "float64"]


def test_multi_file_package():
	units = parse_units({
		"main": [
			"package main\n\nfunc main() { helper() }\n",
			"package main\n\nfunc helper() {}\n",
		],
	})
	info = resolve(units)
	assert _use(info, "helper").kind is ObjectKind.FUNCTION
	assert len(info.packages["main"].units) == 2


def test_mismatched_package_clause_in_one_import_path():
	units = parse_units({
		"main": [
			"package main\n\nfunc main() {}\n",
			"package other\n\nfunc helper() {}\n",
		],
	})
	with pytest.raises(TypeCheckError, match="package other; expected package main"):
		resolve(units)
