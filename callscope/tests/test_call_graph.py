from callscope.callgraph import CallGraph, CallGraphNode, build, format_edges
from callscope.config import AnalysisConfig
from callscope.test_support import load

PROGRAM = """package main

import "fmt"

type Counter struct{ n int }

func (c *Counter) Inc() { c.n++ }

func fact(n int) int {
	if n <= 1 {
		return 1
	}
	return n * fact(n-1)
}

func twice(c *Counter) {
	c.Inc()
	c.Inc()
}

func main() {
	c := &Counter{}
	twice(c)
	fmt.Println(fact(5))
}
"""


def _graph(source=PROGRAM, config=None, **packages):
	units, info = load(source, **packages)
	return build(units, info, config)


def test_nodes_and_edges():
	graph = _graph()
	assert sorted(n.display("main") for n in graph.nodes) == [
		"(*Counter).Inc",
		"fact",
		"fmt.Println",
		"main",
		"twice",
	]
	assert len(graph) == 5
	assert len(graph.edges) == 6


def test_self_loops_and_multi_edges_are_kept():
	graph = _graph()
	fact = graph.find("fact", "main")
	twice = graph.find("twice", "main")
	inc = graph.find("(*Counter).Inc", "main")
	assert [e.callee for e in graph.callees(fact)] == [fact]
	assert [e.callee for e in graph.callees(twice)] == [inc, inc]
	assert len(graph.callers(inc)) == 2
	assert sorted(e.caller.display("main") for e in graph.callers(fact)) == ["fact", "main"]
	assert inc.pointer
	assert inc.recv == "Counter"


def test_edge_descriptions_and_sites():
	graph = _graph()
	twice = graph.find("twice", "main")
	edges = graph.callees(twice)
	assert {e.description for e in edges} == {"static method call"}
	assert [e.site.span.line for e in edges] == [17, 18]
	main = graph.find("main", "main")
	assert {e.description for e in graph.callees(main)} == {"static function call"}


def test_external_callees_can_be_excluded():
	graph = _graph(config=AnalysisConfig(include_external_callees=False))
	assert graph.find("fmt.Println", "main") is None
	assert len(graph) == 4
	assert len(graph.edges) == 5
	assert all(not n.external for n in graph.nodes)


def test_has_path():
	graph = _graph()
	main = graph.find("main", "main")
	inc = graph.find("(*Counter).Inc", "main")
	fact = graph.find("fact", "main")
	assert graph.has_path(main, inc)
	assert not graph.has_path(inc, main)
	assert graph.has_path(fact, fact)
	assert graph.has_path(inc, inc)
	assert not graph.has_path(main, CallGraphNode("main", "missing"))


def test_format_edges_is_sorted_and_relative():
	graph = _graph()
	assert format_edges(graph, "main") == "\n".join([
		"All calls",
		"  fact --> fact",
		"  main --> fact",
		"  main --> fmt.Println",
		"  main --> twice",
		"  twice --> (*Counter).Inc",
		"  twice --> (*Counter).Inc",
	])
	assert format_edges(graph, "main", match="method", title="Method calls") == "\n".join([
		"Method calls",
		"  twice --> (*Counter).Inc",
		"  twice --> (*Counter).Inc",
	])
	assert "main.fact --> main.fact" in format_edges(graph)


def test_promoted_method_edge_targets_declaring_method():
	graph = _graph("""package main

type Base struct{}

func (b Base) Hello() {}

type Wrapper struct{ Base }

func main() {
	w := Wrapper{}
	w.Hello()
}
""")
	main = graph.find("main", "main")
	assert [e.callee.display("main") for e in graph.callees(main)] == ["(Base).Hello"]
	assert len(graph) == 2


def test_interface_calls_add_no_edges():
	graph = _graph("""package main

type Runner interface{ Run() }

type job struct{}

func (job) Run() {}

func start(r Runner) { r.Run() }

func main() { start(job{}) }
""")
	start = graph.find("start", "main")
	assert graph.callees(start) == []
	assert len(graph.edges) == 1


def test_cross_package_edges():
	graph = _graph(
		main="""package main

import "util"

func main() { util.Do() }
""",
		util="""package util

func Do() { helper() }

func helper() {}
""",
	)
	assert format_edges(graph, "main") == "\n".join([
		"All calls",
		"  main --> util.Do",
		"  util.Do --> util.helper",
	])
	do = graph.find("util.Do", "main")
	assert not do.external


def test_initializer_calls_use_a_synthetic_node():
	source = """package main

var seed = compute()

func compute() int { return helper() }

func helper() int { return 1 }

func init() { _ = helper() }

func init() {}

func main() {}
"""
	kept = _graph(source, AnalysisConfig(keep_synthetic_nodes=True))
	init = kept.find("init", "main")
	assert init is not None and init.synthetic
	assert [e.callee.name for e in kept.callees(init)] == ["compute"]
	assert kept.find("init#1", "main") is not None
	assert kept.find("init#2", "main") is not None
	assert [e.caller.name for e in kept.callers(kept.find("helper", "main"))] == ["compute", "init#1"]

	dropped = _graph(source)
	assert dropped.find("init", "main") is None
	assert dropped.callers(dropped.find("compute", "main")) == []
	assert all(not n.synthetic for n in dropped.nodes)


def test_delete_synthetic_nodes_bridges_edges():
	graph = CallGraph()
	a = CallGraphNode("p", "a")
	s = CallGraphNode("p", "init", synthetic=True)
	b = CallGraphNode("p", "b")
	c = CallGraphNode("p", "c")
	graph.add_edge(a, s)
	graph.add_edge(s, b)
	graph.add_edge(s, c)
	graph.add_edge(s, s)
	graph.delete_synthetic_nodes()
	assert s not in graph
	assert [e.callee for e in graph.callees(a)] == [b, c]
	assert graph.callers(b)[0].caller == a
	assert len(graph.edges) == 2


def test_remove_node_drops_incident_edges():
	graph = CallGraph()
	a = CallGraphNode("p", "a")
	b = CallGraphNode("p", "b")
	graph.add_edge(a, b)
	graph.add_edge(b, b)
	graph.remove_node(b)
	assert graph.nodes == [a]
	assert graph.edges == []
	assert graph.callees(a) == []
