import pytest

from callscope.checker import ObjectKind
from callscope.parser import ast as A
from callscope.parser import expr_string
from callscope.selectors import decompose
from callscope.core.diagnostics import UNRESOLVED_REFERENCE
from callscope.test_support import calls_in, load


def _chain(units, info, text):
	calls = [c for u in units for c in calls_in(u) if expr_string(c) == text]
	assert len(calls) == 1, text
	return decompose(calls[0].func, info)


EMBEDDING = """package main

type D struct{}

func (D) M() int { return 4 }

type C struct{ D }

type B struct{ C }

type A struct{ B }

type Direct struct{}

func (Direct) M() int { return 0 }

type Once struct{ Direct }

func main() {
	var d Direct
	var o Once
	var a A
	_ = d.M()
	_ = o.M()
	_ = a.M()
}
"""


@pytest.mark.parametrize(
	("text", "promoted", "owner"),
	[
		("d.M()", [], "Direct"),
		("o.M()", ["Direct"], "Direct"),
		("a.M()", ["B", "C", "D"], "D"),
	],
)
def test_embedding_depth_yields_one_promoted_hop_per_level(text, promoted, owner):
	units, info = load(EMBEDDING)
	chain = _chain(units, info, text)
	assert not chain.incomplete
	assert [hop.name for hop in chain.promoted_hops] == promoted
	assert all(hop.implicit and hop.member_kind is ObjectKind.FIELD for hop in chain.promoted_hops)
	assert chain.depth == len(promoted)
	assert chain.terminal.name == "M"
	assert chain.terminal.member_kind is ObjectKind.METHOD
	assert info.type_string(chain.terminal.owner, "main") == owner


def test_describe_shows_implicit_hops():
	units, info = load(EMBEDDING)
	chain = _chain(units, info, "a.M()")
	assert chain.describe(info, "main") == "a -> (B) -> (C) -> (D) -> M [D]"


def test_explicit_field_hops_are_not_promoted():
	units, info = load("""package main

type Leaf struct{}

func (l *Leaf) Do() {}

type Branch struct{ leaf *Leaf }

type Tree struct{ branch Branch }

func main() {
	t := Tree{}
	t.branch.leaf.Do()
}
""")
	chain = _chain(units, info, "t.branch.leaf.Do()")
	assert chain.root.name == "t"
	assert chain.root.kind is ObjectKind.VARIABLE
	assert [hop.name for hop in chain.hops] == ["branch", "leaf"]
	assert [hop.member_kind for hop in chain.hops] == [ObjectKind.FIELD, ObjectKind.FIELD]
	assert chain.promoted_hops == []
	assert chain.terminal.name == "Do"


def test_explicitly_spelled_embedded_field_is_a_plain_hop():
	units, info = load("""package main

type Inner struct{}

func (i *Inner) Run() {}

type Outer struct{ *Inner }

func main() {
	o := Outer{Inner: &Inner{}}
	o.Run()
	o.Inner.Run()
}
""")
	promoted = _chain(units, info, "o.Run()")
	assert [hop.name for hop in promoted.promoted_hops] == ["Inner"]
	spelled = _chain(units, info, "o.Inner.Run()")
	assert spelled.promoted_hops == []
	assert [hop.name for hop in spelled.hops] == ["Inner"]
	assert not spelled.hops[0].implicit


def test_package_root_is_a_qualified_member():
	units, info = load("""package main

import "fmt"

func main() {
	fmt.Println("x")
}
""")
	chain = _chain(units, info, 'fmt.Println("x")')
	assert chain.root.is_package
	assert chain.hops == []
	assert chain.terminal.name == "Println"
	assert chain.terminal.member_kind is ObjectKind.FUNCTION
	assert chain.terminal.owner is None


def test_expression_root():
	units, info = load("""package main

type Counter struct{ n int }

func (c *Counter) Inc() { c.n++ }

func newCounter() *Counter { return &Counter{} }

func main() {
	newCounter().Inc()
}
""")
	chain = _chain(units, info, "newCounter().Inc()")
	assert chain.root.is_expression
	assert chain.root.name is None
	assert isinstance(chain.root.expr, A.Call)
	assert chain.terminal.name == "Inc"


def test_cross_package_embedding():
	units, info = load(
		main="""package main

import "shapes"

type Circle struct {
	shapes.Base
	r float64
}

func main() {
	c := Circle{r: 1}
	_ = c.ID()
}
""",
		shapes="""package shapes

type Base struct{ id int }

func (b *Base) ID() int { return b.id }
""",
	)
	chain = _chain(units, info, "c.ID()")
	assert [hop.name for hop in chain.promoted_hops] == ["Base"]
	assert info.type_string(chain.promoted_hops[0].owner, "main") == "Circle"
	assert info.type_string(chain.terminal.owner, "main") == "shapes.Base"
	assert chain.terminal.obj.pkg == "shapes"


def test_unresolved_level_truncates_chain():
	units, info = load(EMBEDDING)
	call = next(c for c in calls_in(units[0]) if expr_string(c) == "a.M()")
	info.invalidate(call.func)
	chain = decompose(call.func, info)
	assert chain.incomplete
	assert chain.terminal is None
	assert [d.code for d in chain.diagnostics] == [UNRESOLVED_REFERENCE]
	assert chain.diagnostics[0].severity == "warning"
