from pathlib import Path

import pytest
from lark import Token, Tree

from callscope.core.errors import ParseError
from callscope.parser import ast as A
from callscope.parser import parse
from callscope.parser.parser import _TreeBuilder


def test_parse_package_imports_and_decls():
	unit = parse("""package main

import (
	"fmt"
	str "strings"
)

const answer = 42

var greeting = "hi"

type Point struct {
	X, Y int
}

func (p Point) Sum() int { return p.X + p.Y }

func main() {
	fmt.Println(str.ToUpper(greeting), answer)
}
""", "main.go")
	assert unit.package_name == "main"
	assert unit.import_path == "main"
	assert [spec.path for spec in unit.tree.imports] == ["fmt", "strings"]
	assert unit.tree.imports[1].name.ident == "str"
	kinds = [type(decl).__name__ for decl in unit.tree.decls]
	assert kinds == ["GenDecl", "GenDecl", "GenDecl", "FuncDecl", "FuncDecl"]
	method = unit.tree.decls[3]
	assert method.recv is not None
	assert method.name.ident == "Sum"


def test_import_path_defaults_to_package_name_and_can_be_overridden():
	assert parse("package shapes\n").import_path == "shapes"
	assert parse("package shapes\n", import_path="example.com/shapes").import_path == "example.com/shapes"


def test_semicolons_are_inserted_at_line_ends():
	unit = parse("""package main

func f(a, b int) int {
	x := a +
		b
	x++
	if x > 3 {
		return x
	}
	return g(
		x,
		b,
	)
}

func g(a, b int) int { return a }
""")
	body = unit.tree.decls[0].body.statements
	assert [type(s).__name__ for s in body] == ["AssignStmt", "IncDecStmt", "IfStmt", "ReturnStmt"]
	assert isinstance(body[0].values[0], A.Binary)
	call = body[3].values[0]
	assert isinstance(call, A.Call)
	assert len(call.args) == 2


def test_header_brace_opens_body_not_composite_literal():
	unit = parse("""package main

type T struct{ n int }

func f(xs []int) int {
	t := T{n: 1}
	for i := 0; i < len(xs); i++ {
		t.n += xs[i]
	}
	switch t.n {
	case 0:
		return 0
	default:
	}
	if v := (T{n: 2}); v.n > t.n {
		return v.n
	}
	return t.n
}
""")
	stmts = unit.tree.decls[1].body.statements
	assert isinstance(stmts[0].values[0], A.CompositeLit)
	assert isinstance(stmts[1], A.ForStmt)
	assert isinstance(stmts[2], A.SwitchStmt)
	assert len(stmts[2].clauses) == 2
	assert stmts[2].clauses[1].exprs is None
	assert isinstance(stmts[3], A.IfStmt)
	assert isinstance(stmts[3].init, A.AssignStmt)


def test_slice_and_map_literals_in_headers_are_not_bodies():
	unit = parse("""package main

func f(s string, g func() int) int {
	n := 0
	for _, x := range []int{1, 2} {
		n += x
	}
	for k := range map[string]int{"a": 1} {
		n += len(k)
	}
	if len([]int{n}) > 0 {
		n++
	}
	for _, b := range []byte(s) {
		n += int(b)
	}
	for _, xs := range [][]int{{1}, {2, 3}} {
		n += len(xs)
	}
	for _, h := range []func() int{g, g} {
		n += h()
	}
	for _, p := range []struct{ X int }{{1}} {
		n += p.X
	}
	return n
}
""")
	stmts = unit.tree.decls[0].body.statements
	slice_range = stmts[1]
	assert isinstance(slice_range, A.RangeStmt)
	assert isinstance(slice_range.expr, A.CompositeLit)
	assert isinstance(slice_range.expr.type, A.SliceType)
	assert len(slice_range.expr.elements) == 2
	assert len(slice_range.body.statements) == 1

	map_range = stmts[2]
	assert isinstance(map_range, A.RangeStmt)
	assert map_range.value is None
	assert isinstance(map_range.expr, A.CompositeLit)
	assert isinstance(map_range.expr.type, A.MapType)
	assert isinstance(map_range.expr.elements[0], A.KeyValue)

	assert isinstance(stmts[3], A.IfStmt)
	assert isinstance(stmts[3].cond, A.Binary)
	assert isinstance(stmts[4].expr, A.Call)
	assert len(stmts[4].body.statements) == 1
	assert len(stmts[5].expr.elements) == 2
	assert isinstance(stmts[6].expr.type.elem, A.FuncType)
	assert isinstance(stmts[7].expr.type.elem, A.StructType)
	assert all(isinstance(s, A.RangeStmt) for s in stmts[4:8])


def test_type_switch_and_range():
	unit = parse("""package main

func f(v any, m map[string]int) int {
	n := 0
	switch x := v.(type) {
	case int:
		n = x
	case string, bool:
	}
	for k, c := range m {
		n += c + len(k)
	}
	return n
}
""")
	stmts = unit.tree.decls[0].body.statements
	assert isinstance(stmts[1], A.TypeSwitchStmt)
	assert stmts[1].binding.ident == "x"
	assert len(stmts[1].clauses[1].exprs) == 2
	assert isinstance(stmts[2], A.RangeStmt)
	assert stmts[2].define


def test_call_span_covers_call_text():
	src = """package main

import "fmt"

func main() {
	fmt.Println(  1 + 2  )
}
"""
	unit = parse(src, "main.go")
	call = next(n for n in A.walk(unit.tree) if isinstance(n, A.Call))
	assert src[call.span.start:call.span.end] == "fmt.Println(  1 + 2  )"
	assert call.span.file == "main.go"
	assert call.span.line == 6
	assert isinstance(call.func, A.Selector)
	assert call.func.attr.ident == "Println"


def test_literal_kinds():
	unit = parse("""package main

var a, b, c, d, e = 1, 2.5, "s", `raw`, 'r'
""")
	spec = unit.tree.decls[0].specs[0]
	assert [v.kind for v in spec.values] == ["int", "float", "string", "string", "rune"]
	assert spec.values[3].raw == "`raw`"


def test_syntax_error_reports_location():
	with pytest.raises(ParseError) as excinfo:
		parse("package main\n\nfunc main() {\n\tx := \n}\n", "bad.go")
	err = excinfo.value
	assert isinstance(err, SyntaxError)
	assert err.span.file == "bad.go"
	assert err.lineno is not None
	diag = err.to_diagnostic()
	assert diag.phase == "parser"
	assert diag.format().startswith("bad.go:")


def test_invalid_utf8_is_a_parse_error():
	with pytest.raises(ParseError, match="invalid UTF-8") as excinfo:
		parse(b"package main\n\nvar s = \"\xff\"\n", "bad.go")
	err = excinfo.value
	assert isinstance(err, SyntaxError)
	assert (err.span.line, err.span.column) == (3, 10)
	assert err.to_diagnostic().format() == "bad.go:3:10: error: invalid UTF-8 encoding"


def test_func_decl_without_signature_is_a_parse_error():
	tree = Tree("func_decl", [Token("FUNC", "func"), Token("NAME", "f")])
	with pytest.raises(ParseError, match="no signature"):
		_TreeBuilder("x.go")._build_func_decl(tree)


def test_short_var_decl_requires_names():
	with pytest.raises(ParseError, match="non-name on left side of :="):
		parse("package main\n\nfunc main() {\n\ta.b := 1\n}\n")


def test_missing_package_clause_is_rejected():
	with pytest.raises(ParseError):
		parse("func main() {}\n")


def test_render_is_byte_identical_without_rewrites(tmp_path: Path):
	src = tmp_path / "odd.go"
	src.write_bytes(
		b"package main\n\n"
		b"import \"fmt\"  // trailing comment\n\n"
		b"/* block\n   comment */\n"
		b"func main()   {\n"
		b"\tfmt.Println( \"x\" ,1)\t\n"
		b"\n\n"
		b"}\n"
	)
	unit = parse(src.read_bytes(), str(src))
	assert unit.render() == src.read_bytes()
	assert unit.rewrites == []
