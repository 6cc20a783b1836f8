import json
from pathlib import Path

from callscope.classifier import CallKind
from callscope.driver import analyze, main
from callscope.test_support import parse_units

PROGRAM = """package main

import "fmt"

func square(n int) int { return n * n }

func main() {
	fmt.Println(square(3))
}
"""


def _write(tmp_path: Path, text: str, name: str = "main.go") -> Path:
	src = tmp_path / name
	src.write_text(text)
	return src


def test_analyze_runs_the_whole_pipeline():
	result = analyze(parse_units({"main": PROGRAM}))
	assert [site.kind for site in result.sites] == [CallKind.PACKAGE_FUNCTION, CallKind.LOCAL_FUNCTION]
	assert len(result.graph) == 3
	assert len(result.graph.edges) == 2
	assert result.diagnostics == []


def test_graph_output(tmp_path: Path, capsys):
	src = _write(tmp_path, PROGRAM)
	assert main([str(src), "--graph"]) == 0
	out = capsys.readouterr().out
	assert out == "All calls\n  main --> fmt.Println\n  main --> square\n"


def test_classify_output(tmp_path: Path, capsys):
	src = _write(tmp_path, PROGRAM)
	assert main([str(src), "--classify"]) == 0
	lines = capsys.readouterr().out.splitlines()
	assert len(lines) == 2
	assert lines[0].startswith(f"{src}:8:2: PackageFunction: fmt.Println(square(3))")
	assert lines[1].startswith(f"{src}:8:14: LocalFunction: square(3)")


def test_json_output(tmp_path: Path, capsys):
	src = _write(tmp_path, PROGRAM)
	assert main([str(src), "--classify", "--graph", "--json"]) == 0
	data = json.loads(capsys.readouterr().out)
	assert data["exit_code"] == 0
	assert [site["kind"] for site in data["sites"]] == ["PackageFunction", "LocalFunction"]
	assert sorted(data["edges"]) == ["main --> fmt.Println", "main --> square"]
	assert data["diagnostics"] == []


def test_syntax_error_exits_nonzero(tmp_path: Path, capsys):
	src = _write(tmp_path, "package main\n\nfunc main() {\n\tx := \n}\n")
	assert main([str(src)]) == 1
	err = capsys.readouterr().err
	assert err.startswith(f"{src}:5:")
	assert ": error: unexpected" in err


def test_undecodable_source_exits_nonzero(tmp_path: Path, capsys):
	src = tmp_path / "latin1.go"
	src.write_bytes(b"package main\n\n// caf\xe9\n")
	assert main([str(src)]) == 1
	assert capsys.readouterr().err.strip() == f"{src}:3:7: error: invalid UTF-8 encoding"


def test_type_error_as_json(tmp_path: Path, capsys):
	src = _write(tmp_path, "package main\n\nfunc main() {\n\t_ = y\n}\n")
	assert main([str(src), "--json"]) == 1
	data = json.loads(capsys.readouterr().out)
	assert data["exit_code"] == 1
	[diag] = data["diagnostics"]
	assert diag["phase"] == "typecheck"
	assert diag["message"] == "undefined: y"
	assert diag["line"] == 4


def test_rewrite_prints_rewritten_source(tmp_path: Path, capsys):
	src = _write(tmp_path, PROGRAM)
	assert main([str(src), "--rewrite-format"]) == 0
	out = capsys.readouterr().out
	assert out == PROGRAM.replace("fmt.Println(square(3))", 'fmt.Printf("%d\\n", square(3))')
	assert src.read_text() == PROGRAM


def test_rewrite_write_updates_files(tmp_path: Path):
	src = _write(tmp_path, PROGRAM)
	assert main([str(src), "--rewrite-format", "--write"]) == 0
	assert 'fmt.Printf("%d\\n", square(3))' in src.read_text()
	# a second run finds nothing left to rewrite
	before = src.read_text()
	assert main([str(src), "--rewrite-format", "--write"]) == 0
	assert src.read_text() == before


def test_config_file(tmp_path: Path, capsys):
	src = _write(tmp_path, PROGRAM)
	config = tmp_path / "callscope.json"
	config.write_text(json.dumps({"format_rule": {"specifiers": {"int": "%v"}, "append_newline": False}}))
	assert main([str(src), "--rewrite-format", "--config", str(config)]) == 0
	assert 'fmt.Printf("%v", square(3))' in capsys.readouterr().out


def test_invalid_config_is_reported(tmp_path: Path, capsys):
	src = _write(tmp_path, PROGRAM)
	config = tmp_path / "callscope.json"
	config.write_text(json.dumps({"colour": "blue"}))
	assert main([str(src), "--config", str(config)]) == 1
	assert "unknown key(s) colour" in capsys.readouterr().err


def test_import_root(tmp_path: Path, capsys):
	lib = tmp_path / "lib" / "mathx"
	lib.mkdir(parents=True)
	(lib / "mathx.go").write_text("package mathx\n\nfunc Twice(n int) int { return 2 * n }\n")
	src = _write(tmp_path, """package main

import "mathx"

func main() {
	_ = mathx.Twice(2)
}
""")
	assert main([str(src), "--graph", "--import-root", str(tmp_path / "lib")]) == 0
	assert "main --> mathx.Twice" in capsys.readouterr().out


def test_multiple_packages(tmp_path: Path, capsys):
	util = _write(tmp_path, "package util\n\nfunc Do() {}\n", "util.go")
	src = _write(tmp_path, """package main

import "util"

func main() { util.Do() }
""")
	assert main([str(src), str(util), "--graph"]) == 0
	assert "main.main --> util.Do" in capsys.readouterr().out
