# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Static call graph over classified call sites.

Nodes are the functions and methods declared in the analyzed units plus, on
demand, external callees (bundled or imported declarations) and one synthetic
initializer node per package for calls in package-level initializers. Every
resolved call site (LOCAL_FUNCTION, PACKAGE_FUNCTION, INSTANCE_METHOD) adds
one edge: repeated calls keep separate edges and recursion keeps its
self-loop.

Dispatch is static. A promoted method call is an edge to the declaring
method (no wrapper node); calls through interfaces are not expanded to
implementers and produce no edge. Reachability queries walk the graph on
demand.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from callscope.checker import Object, ObjectKind, TypeInfo
from callscope.config import AnalysisConfig
from callscope.parser import SourceUnit
from callscope.parser.ast import FuncDecl

from .classifier import CallKind, CallSite, RESOLVED_KINDS, classify_units

logger = logging.getLogger(__name__)

INIT_NAME = "init"


@dataclass(frozen=True)
class CallGraphNode:
	"""
	A function or method.

	`recv` is the receiver's type name for methods; `pointer` marks pointer
	receivers. `external` nodes are declared outside the analyzed units and
	`synthetic` nodes stand for package initializers.
	"""

	pkg: str
	name: str
	recv: Optional[str] = None
	pointer: bool = False
	external: bool = False
	synthetic: bool = False

	def display(self, relative_to: Optional[str] = None) -> str:
		"""Go-style name: `pkg.F`, `(pkg.T).M` or `(*pkg.T).M`; `relative_to` drops that package."""
		qual = "" if self.pkg == relative_to else f"{self.pkg}."
		if self.recv is None:
			return f"{qual}{self.name}"
		star = "*" if self.pointer else ""
		return f"({star}{qual}{self.recv}).{self.name}"

	def __str__(self) -> str:
		return self.display()


@dataclass(frozen=True, eq=False)
class CallGraphEdge:
	caller: CallGraphNode
	callee: CallGraphNode
	site: Optional[CallSite] = None

	@property
	def description(self) -> str:
		if self.site is None:
			return "synthetic call"
		if self.site.kind is CallKind.INSTANCE_METHOD:
			return "static method call"
		return "static function call"

	def display(self, relative_to: Optional[str] = None) -> str:
		return f"{self.caller.display(relative_to)} --> {self.callee.display(relative_to)}"


class CallGraph:
	"""Directed multigraph; edges are kept in insertion order."""

	def __init__(self) -> None:
		self._nodes: Dict[CallGraphNode, None] = {}
		self._out: Dict[CallGraphNode, List[CallGraphEdge]] = {}
		self._in: Dict[CallGraphNode, List[CallGraphEdge]] = {}

	@property
	def nodes(self) -> List[CallGraphNode]:
		return list(self._nodes)

	@property
	def edges(self) -> List[CallGraphEdge]:
		return [edge for node in self._nodes for edge in self._out[node]]

	def add_node(self, node: CallGraphNode) -> CallGraphNode:
		if node not in self._nodes:
			self._nodes[node] = None
			self._out[node] = []
			self._in[node] = []
		return node

	def add_edge(self, caller: CallGraphNode, callee: CallGraphNode, site: Optional[CallSite] = None) -> CallGraphEdge:
		self.add_node(caller)
		self.add_node(callee)
		edge = CallGraphEdge(caller, callee, site)
		self._out[caller].append(edge)
		self._in[callee].append(edge)
		return edge

	def remove_node(self, node: CallGraphNode) -> None:
		for edge in self._out.pop(node, []):
			if edge.callee != node:
				self._in[edge.callee].remove(edge)
		for edge in self._in.pop(node, []):
			if edge.caller != node:
				self._out[edge.caller].remove(edge)
		self._nodes.pop(node, None)

	def __contains__(self, node: object) -> bool:
		return node in self._nodes

	def __len__(self) -> int:
		return len(self._nodes)

	def find(self, name: str, relative_to: Optional[str] = None) -> Optional[CallGraphNode]:
		"""Node whose display name (relative to `relative_to`) is `name`."""
		for node in self._nodes:
			if node.display(relative_to) == name:
				return node
		return None

	def callees(self, node: CallGraphNode) -> List[CallGraphEdge]:
		"""Outgoing edges of `node`."""
		return list(self._out.get(node, ()))

	def callers(self, node: CallGraphNode) -> List[CallGraphEdge]:
		"""Incoming edges of `node`."""
		return list(self._in.get(node, ()))

	def has_path(self, source: CallGraphNode, target: CallGraphNode) -> bool:
		"""True when `target` is reachable from `source` (a node reaches itself)."""
		if source not in self._nodes or target not in self._nodes:
			return False
		if source == target:
			return True
		seen = {source}
		queue = deque([source])
		while queue:
			for edge in self._out[queue.popleft()]:
				if edge.callee == target:
					return True
				if edge.callee not in seen:
					seen.add(edge.callee)
					queue.append(edge.callee)
		return False

	def delete_synthetic_nodes(self) -> None:
		"""Remove synthetic nodes, bridging each caller to each callee."""
		for node in [n for n in self._nodes if n.synthetic]:
			incoming = [e for e in self._in[node] if e.caller != node]
			outgoing = [e for e in self._out[node] if e.callee != node]
			self.remove_node(node)
			for into in incoming:
				for out in outgoing:
					self.add_edge(into.caller, out.callee, out.site)


def node_for(obj: Object, info: TypeInfo) -> CallGraphNode:
	"""Node identifying a FUNCTION or METHOD object."""
	external = not info.is_analyzed(obj)
	if obj.kind is ObjectKind.METHOD and obj.owner is not None and info.table.is_named(obj.owner):
		recv = info.table.named_info(obj.owner).name
		return CallGraphNode(obj.pkg or "", obj.name, recv=recv, pointer=obj.pointer_recv, external=external)
	return CallGraphNode(obj.pkg or "", obj.name, external=external)


def build(
	units: Sequence[SourceUnit],
	info: TypeInfo,
	config: Optional[AnalysisConfig] = None,
	sites: Optional[Iterable[CallSite]] = None,
) -> CallGraph:
	"""
	Build the call graph of `units`.

	`sites` may carry already-classified call sites of the same units; they
	are classified here otherwise.
	"""
	config = config or AnalysisConfig()
	graph = CallGraph()
	declared: Dict[Object, CallGraphNode] = {}
	for unit in units:
		for decl in unit.tree.decls:
			if not isinstance(decl, FuncDecl):
				continue
			obj = info.defs.get(decl.name)
			if obj is None:
				continue
			declared[obj] = graph.add_node(_declared_node(obj, info, declared))

	if sites is None:
		sites = classify_units(units, info)
	skipped = 0
	for site in sites:
		if site.kind not in RESOLVED_KINDS or site.callee is None:
			continue
		callee = declared.get(site.callee)
		if callee is None:
			if info.is_analyzed(site.callee) or not config.include_external_callees:
				skipped += 1
				continue
			callee = node_for(site.callee, info)
		if site.enclosing is not None:
			caller = declared.get(site.enclosing)
			if caller is None:
				skipped += 1
				continue
		else:
			caller = CallGraphNode(site.package or "", INIT_NAME, synthetic=True)
		graph.add_edge(caller, callee, site)

	if not config.keep_synthetic_nodes:
		graph.delete_synthetic_nodes()
	logger.debug("call graph: %d node(s), %d edge(s), %d site(s) skipped", len(graph), len(graph.edges), skipped)
	return graph


def _declared_node(obj: Object, info: TypeInfo, declared: Dict[Object, CallGraphNode]) -> CallGraphNode:
	node = node_for(obj, info)
	if obj.kind is ObjectKind.FUNCTION and obj.name == INIT_NAME:
		# several init functions may exist per package
		count = sum(1 for n in declared.values() if n.pkg == node.pkg and n.name.startswith(INIT_NAME + "#"))
		node = CallGraphNode(node.pkg, f"{INIT_NAME}#{count + 1}")
	return node


def format_edges(
	graph: CallGraph,
	relative_to: Optional[str] = None,
	match: str = "",
	title: str = "All calls",
) -> str:
	"""Sorted `caller --> callee` lines (edges whose description contains `match`) under `title`."""
	lines = sorted(
		edge.display(relative_to) for edge in graph.edges if match in edge.description
	)
	return "\n".join([title] + [f"  {line}" for line in lines]).strip()


__all__ = [
	"CallGraph",
	"CallGraphEdge",
	"CallGraphNode",
	"build",
	"format_edges",
	"node_for",
]
