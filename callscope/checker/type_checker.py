# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type checker for the Go subset.

The checker runs over a closed set of SourceUnits:

1. units are grouped into packages by import path;
2. imports are resolved (analyzed packages first, then the Importer) and
   packages are ordered by import dependencies, rejecting cycles;
3. per package, declarations are collected into the package scope, named
   types are resolved, methods attached, then constants, variables and
   function bodies are checked.

Package-level objects are typed lazily (on first use or in declaration
order, whichever comes first), so declarations may appear in any order and
across files. Every error becomes a Diagnostic; `check` raises
TypeCheckError when any were reported. The result is a TypeInfo index.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from callscope.core.diagnostics import Diagnostic, errors_only
from callscope.core.errors import ParseError, TypeCheckError
from callscope.core.span import Span
from callscope.core.types_core import (
	BOOL_KINDS,
	INTEGER_KINDS,
	NUMERIC_KINDS,
	STRING_KINDS,
	BasicKind,
	ChanDir,
	FieldDef,
	MethodSig,
	TypeDef,
	TypeId,
	TypeKind,
	TypeTable,
)
from callscope.parser import SourceUnit
from callscope.parser.ast import (
	ArrayType,
	AssignStmt,
	Binary,
	Block,
	BranchStmt,
	Call,
	CaseClause,
	ChanType,
	CompositeLit,
	DeclStmt,
	DeferStmt,
	Expr,
	ExprStmt,
	Field,
	ForStmt,
	FuncDecl,
	FuncLit,
	FuncType,
	GenDecl,
	GoStmt,
	IfStmt,
	ImportSpec,
	IncDecStmt,
	Index,
	InterfaceType,
	KeyValue,
	Literal,
	MapType,
	Name,
	Node,
	Paren,
	PointerType,
	RangeStmt,
	ReturnStmt,
	Selector,
	SendStmt,
	SliceExpr,
	SliceType,
	Stmt,
	StructType,
	SwitchStmt,
	TypeAssert,
	TypeSpec,
	TypeSwitchStmt,
	Unary,
	ValueSpec,
	iter_child_nodes,
	unparen,
	walk,
)
from callscope.parser.printer import expr_string

from . import constants
from .importer import Importer, default_importer
from .lookup import lookup_field_or_method, missing_method
from .objects import Object, ObjectKind, Package, Scope
from .type_info import Selection, SelectionKind, TypeAndValue, TypeInfo
from .universe import new_universe

logger = logging.getLogger(__name__)

INVALID = "invalid"

_COMPARISONS = {"==", "!=", "<", "<=", ">", ">="}
_SHIFTS = {"<<", ">>"}
# Builtins whose call may stand alone as a statement.
_STATEMENT_BUILTINS = {"clear", "close", "copy", "delete", "panic", "print", "println", "recover"}


@dataclass
class Operand:
	"""Result of checking one expression (see TypeAndValue for modes)."""

	mode: str
	type: TypeId
	expr: Optional[Expr] = None
	value: Any = None
	builtin: Optional[str] = None

	@property
	def invalid(self) -> bool:
		return self.mode == INVALID


@dataclass
class _DeclInfo:
	"""Where and how a package-level object is declared."""

	kind: str  # type, func, const, var
	scope: Scope
	node: Node
	index: int = 0
	values: List[Expr] = field(default_factory=list)
	type_expr: Optional[Expr] = None
	iota: int = 0


@dataclass
class _FuncContext:
	obj: Optional[Object]
	results: Tuple[TypeId, ...]
	named_results: bool
	loops: int = 0
	breakables: int = 0


class Checker:
	"""One type-checking pass over a closed set of units."""

	def __init__(self, importer: Optional[Importer] = None) -> None:
		self.importer = importer if importer is not None else default_importer()
		self.table = TypeTable()
		self.universe = new_universe(self.table)
		self.info = TypeInfo(table=self.table)
		self.diagnostics: List[Diagnostic] = []
		self._decls: Dict[Object, _DeclInfo] = {}
		self._resolving: Set[Object] = set()
		self._checked_specs: Set[ValueSpec] = set()
		self._pkg: Optional[Package] = None
		self._scope: Scope = self.universe
		self._ctx: Optional[_FuncContext] = None
		self._iota: Optional[int] = None

	# --- driver -----------------------------------------------------------

	def check(self, units: Sequence[SourceUnit]) -> TypeInfo:
		self.info.units = list(units)
		grouped: Dict[str, List[SourceUnit]] = {}
		for unit in units:
			grouped.setdefault(unit.import_path, []).append(unit)
		for path, pkg_units in grouped.items():
			name = pkg_units[0].package_name
			for unit in pkg_units[1:]:
				if unit.package_name != name:
					self._error(f"package {unit.package_name}; expected package {name}", unit.tree.package)
			self.info.packages[path] = Package(path=path, name=name, units=pkg_units)

		for pkg in list(self.info.packages.values()):
			self._load_imports(pkg)
		order = self._import_order()
		if order is not None:
			for pkg in order:
				self._check_package(pkg)
		errors = errors_only(self.diagnostics)
		if errors:
			raise TypeCheckError(errors)
		return self.info

	def _load_imports(self, pkg: Package) -> None:
		for unit in pkg.units:
			for spec in unit.tree.imports:
				if spec.path in pkg.imports:
					continue
				dep = self._package_for(spec)
				if dep is not None:
					pkg.imports[spec.path] = dep

	def _package_for(self, spec: ImportSpec) -> Optional[Package]:
		path = spec.path
		pkg = self.info.packages.get(path)
		if pkg is not None:
			return pkg
		try:
			units = self.importer.import_units(path)
		except ParseError as err:
			self._error(f"could not import {path}: {err.msg}", spec)
			return None
		if not units:
			self._error(f"could not import {path} (package not found)", spec)
			return None
		pkg = Package(path=path, name=units[0].package_name, units=units, external=True)
		self.info.packages[path] = pkg
		self._load_imports(pkg)
		return pkg

	def _import_order(self) -> Optional[List[Package]]:
		"""Packages in dependency order; None (after reporting) on an import cycle."""
		order: List[Package] = []
		state: Dict[str, str] = {}
		stack: List[str] = []

		def visit(pkg: Package) -> bool:
			state[pkg.path] = "active"
			stack.append(pkg.path)
			for dep in pkg.imports.values():
				mark = state.get(dep.path)
				if mark == "active":
					cycle = stack[stack.index(dep.path):] + [dep.path]
					self._error(f"import cycle not allowed: {' -> '.join(cycle)}", pkg.units[0].tree.package)
					return False
				if mark is None and not visit(dep):
					return False
			stack.pop()
			state[pkg.path] = "done"
			order.append(pkg)
			return True

		for pkg in list(self.info.packages.values()):
			if pkg.path not in state and not visit(pkg):
				return None
		return order

	# --- package level ----------------------------------------------------

	def _check_package(self, pkg: Package) -> None:
		logger.debug("checking package %s (%d file(s))", pkg.path, len(pkg.units))
		self._pkg = pkg
		pkg.scope = Scope(self.universe, kind="package")
		types: List[Object] = []
		funcs: List[Tuple[Object, FuncDecl, Scope]] = []
		methods: List[Tuple[FuncDecl, Scope]] = []
		values: List[Object] = []

		for unit in pkg.units:
			file_scope = Scope(pkg.scope, kind="file")
			pkg.file_scopes[id(unit)] = file_scope
			for spec in unit.tree.imports:
				self._declare_import(spec, file_scope)
			for decl in unit.tree.decls:
				if isinstance(decl, FuncDecl):
					if decl.recv is not None:
						methods.append((decl, file_scope))
					else:
						funcs.append((self._collect_func(decl, file_scope), decl, file_scope))
				elif isinstance(decl, GenDecl):
					self._collect_gen_decl(decl, file_scope, types, values)

		for unit in pkg.units:
			for obj in pkg.file_scopes[id(unit)]:
				clash = pkg.scope.lookup_local(obj.name)
				if clash is not None and clash.ident is not None:
					self._error(f"{obj.name} already declared through import of package {obj.name}", clash.ident)

		for obj in types:
			self._ensure_type(obj)
		for decl, file_scope in methods:
			funcs.append((self._collect_method(decl, file_scope), decl, file_scope))
		for obj, _, _ in funcs:
			self._obj_type(obj)
		for obj in values:
			self._obj_type(obj)
		for obj, decl, file_scope in funcs:
			self._func_body(obj, decl, file_scope)
		pkg.checked = True

	def _declare_import(self, spec: ImportSpec, scope: Scope) -> None:
		dep = self._pkg.imports.get(spec.path)
		name = spec.name.ident if spec.name is not None else (dep.name if dep is not None else spec.path.rsplit("/", 1)[-1])
		obj = self._new_object(ObjectKind.PACKAGE, name, ident=spec.name, decl=spec, imported=dep)
		if spec.name is not None:
			self.info.defs[spec.name] = obj
		if name == "_":
			return
		if scope.insert(obj) is not None:
			self._error(f"{name} redeclared in this block", spec)

	def _collect_func(self, decl: FuncDecl, scope: Scope) -> Object:
		obj = self._new_object(ObjectKind.FUNCTION, decl.name.ident, ident=decl.name, decl=decl)
		self.info.defs[decl.name] = obj
		self._decls[obj] = _DeclInfo("func", scope, decl)
		if decl.name.ident in {"init", "main"}:
			if decl.type.params or decl.type.results:
				self._error(f"func {decl.name.ident} must have no arguments and no return values", decl.name)
		if decl.name.ident != "init":
			self._declare(self._pkg.scope, obj, decl.name)
		return obj

	def _collect_gen_decl(self, decl: GenDecl, scope: Scope, types: List[Object], values: List[Object]) -> None:
		if decl.keyword == "type":
			for spec in decl.specs:
				obj = self._new_object(ObjectKind.TYPE_NAME, spec.name.ident, ident=spec.name, decl=spec)
				if not spec.alias:
					obj.type = self.table.new_named(spec.name.ident, self._pkg.path, obj)
				self.info.defs[spec.name] = obj
				self._decls[obj] = _DeclInfo("type", scope, spec)
				self._declare(self._pkg.scope, obj, spec.name)
				types.append(obj)
			return
		inherited: List[Expr] = []
		inherited_type: Optional[Expr] = None
		for spec in decl.specs:
			if decl.keyword == "const":
				if spec.values:
					inherited, inherited_type = spec.values, spec.type
				self._check_spec_arity(spec, len(inherited), "const")
			else:
				self._check_spec_arity(spec, len(spec.values), "var")
			for idx, name in enumerate(spec.names):
				if decl.keyword == "const":
					obj = self._new_object(ObjectKind.CONSTANT, name.ident, ident=name, decl=spec)
					info = _DeclInfo("const", scope, spec, idx, inherited, inherited_type, spec.iota)
				else:
					obj = self._new_object(ObjectKind.VARIABLE, name.ident, ident=name, decl=spec, package_level=True)
					info = _DeclInfo("var", scope, spec, idx)
				self.info.defs[name] = obj
				self._decls[obj] = info
				self._declare(self._pkg.scope, obj, name)
				values.append(obj)

	def _check_spec_arity(self, spec: ValueSpec, nvalues: int, keyword: str) -> None:
		if not nvalues:
			return
		if keyword == "var" and nvalues == 1 and len(spec.names) > 1:
			return  # multi-value initializer, checked with the spec
		if nvalues < len(spec.names):
			self._error("missing init expr for const declaration" if keyword == "const" else "assignment mismatch: "
				f"{len(spec.names)} variables but {nvalues} value{'s' if nvalues != 1 else ''}", spec)
		elif nvalues > len(spec.names):
			self._error("extra init expr" if keyword == "const" else "assignment mismatch: "
				f"{len(spec.names)} variable{'s' if len(spec.names) != 1 else ''} but {nvalues} values", spec)

	def _collect_method(self, decl: FuncDecl, scope: Scope) -> Object:
		recv_expr = unparen(decl.recv.type)
		pointer = False
		if isinstance(recv_expr, PointerType):
			pointer = True
			recv_expr = unparen(recv_expr.elem)
		base: Optional[TypeId] = None
		if isinstance(recv_expr, Name):
			tobj = scope.lookup(recv_expr.ident)
			if tobj is None:
				self._error(f"undefined: {recv_expr.ident}", recv_expr)
			elif tobj.kind is not ObjectKind.TYPE_NAME:
				self._error(f"{recv_expr.ident} is not a type", recv_expr)
			else:
				self.info.uses[recv_expr] = tobj
				ty = self._obj_type(tobj)
				if not self.table.is_named(ty) or self.table.named_info(ty).pkg != self._pkg.path:
					self._error(f"cannot define new methods on non-local type {self._tstr(ty)}", recv_expr)
				elif self._under_def(ty).kind in (TypeKind.POINTER, TypeKind.INTERFACE):
					self._error(f"invalid receiver type {recv_expr.ident}", recv_expr)
				else:
					base = ty
		else:
			self._error(f"invalid receiver type {expr_string(decl.recv.type)}", decl.recv)

		name = decl.name.ident
		obj = self._new_object(
			ObjectKind.METHOD,
			name,
			ident=decl.name,
			decl=decl,
			owner=base,
			pointer_recv=pointer,
		)
		self.info.defs[decl.name] = obj
		self._decls[obj] = _DeclInfo("func", scope, decl)
		if base is not None and name != "_":
			tname = self.table.named_info(base).name
			if not self.table.add_method(base, name, obj):
				self._error(f"method {tname}.{name} already declared", decl.name)
			elif any(f.name == name for f in self._under_def(base).fields):
				self._error(f"field and method with the same name {name}", decl.name)
		return obj

	# --- lazy object typing -----------------------------------------------

	def _obj_type(self, obj: Object) -> TypeId:
		if obj.type:
			return obj.type
		info = self._decls.get(obj)
		if info is None:
			return self.table.invalid()
		if obj in self._resolving:
			self._error(f"initialization cycle or invalid recursive reference to {obj.name}", obj.ident or info.node)
			obj.type = self.table.invalid()
			return obj.type
		self._resolving.add(obj)
		saved = self._save()
		self._scope, self._ctx, self._iota = info.scope, None, None
		try:
			if info.kind == "type":
				obj.type = self._type_expr(info.node.type)
			elif info.kind == "func":
				obj.type = self._signature(info.node.type)
			elif info.kind == "const":
				self._const_object(obj, info.values, info.type_expr, info.index, info.iota)
			else:
				spec = info.node
				objs = [self.info.defs.get(n) for n in spec.names]
				self._var_spec(spec, objs)
		finally:
			self._restore(saved)
			self._resolving.discard(obj)
		if not obj.type:
			obj.type = self.table.invalid()
		return obj.type

	def _ensure_type(self, obj: Object) -> None:
		"""Resolve the underlying type of a declared named type."""
		info = self._decls.get(obj)
		if info is None:
			return
		spec = info.node
		if spec.alias:
			self._obj_type(obj)
			return
		named = obj.type
		if self.table.named_info(named).underlying is not None:
			return
		if obj in self._resolving:
			self._error(f"invalid recursive type {obj.name}", spec.name)
			self.table.set_underlying(named, self.table.invalid())
			return
		self._resolving.add(obj)
		saved = self._save()
		self._scope, self._ctx, self._iota = info.scope, None, None
		try:
			under = self._type_expr(spec.type, owner=named)
			self._under(under)
			self.table.set_underlying(named, under)
		finally:
			self._restore(saved)
			self._resolving.discard(obj)

	def _under(self, ty: TypeId) -> TypeId:
		"""Underlying type, resolving a pending named declaration first."""
		if self.table.is_named(ty):
			info = self.table.named_info(ty)
			if info.underlying is None and info.obj is not None:
				self._ensure_type(info.obj)
		return self.table.underlying(ty)

	def _under_def(self, ty: TypeId) -> TypeDef:
		return self.table.get(self._under(ty))

	# --- function bodies --------------------------------------------------

	def _func_body(self, obj: Object, decl: FuncDecl, scope: Scope) -> None:
		if decl.body is None:
			return
		sig = self.table.get(self._obj_type(obj))
		saved = self._save()
		try:
			self._scope = Scope(scope, kind="function")
			if decl.recv is not None:
				recv_type = self._type_expr(decl.recv.type)
				for name in decl.recv.names:
					self._declare_var(name, recv_type)
			self._declare_params(decl.type, sig)
			ctx = _FuncContext(obj=obj, results=sig.result_types, named_results=_has_named(decl.type.results))
			self._body(decl.body, ctx)
		finally:
			self._restore(saved)

	def _declare_params(self, ft: FuncType, sig: TypeDef) -> None:
		if sig.kind is not TypeKind.SIGNATURE:
			return
		for fields, types in ((ft.params, sig.param_types), (ft.results, sig.result_types)):
			idx = 0
			for f in fields:
				for name in f.names or [None]:
					ty = types[idx] if idx < len(types) else self.table.invalid()
					if name is not None:
						self._declare_var(name, ty)
					idx += 1

	def _body(self, body: Block, ctx: _FuncContext) -> None:
		saved_ctx = self._ctx
		self._ctx = ctx
		try:
			self._stmts(body.statements)
		finally:
			self._ctx = saved_ctx
		if ctx.results and not self._is_terminating_list(body.statements):
			self._error("missing return", _closing(body))

	# --- statements -------------------------------------------------------

	def _stmts(self, stmts: Sequence[Stmt]) -> None:
		for stmt in stmts:
			self._stmt(stmt)

	def _stmt(self, s: Stmt) -> None:
		if isinstance(s, ExprStmt):
			self._expr_stmt(s)
		elif isinstance(s, AssignStmt):
			if s.define:
				self._short_var_decl(s)
			elif s.op == "=":
				self._assignment(s)
			else:
				self._op_assignment(s)
		elif isinstance(s, Block):
			self._block(s)
		elif isinstance(s, IfStmt):
			self._if_stmt(s)
		elif isinstance(s, ForStmt):
			self._for_stmt(s)
		elif isinstance(s, RangeStmt):
			self._range_stmt(s)
		elif isinstance(s, SwitchStmt):
			self._switch_stmt(s)
		elif isinstance(s, TypeSwitchStmt):
			self._type_switch_stmt(s)
		elif isinstance(s, ReturnStmt):
			self._return_stmt(s)
		elif isinstance(s, (GoStmt, DeferStmt)):
			keyword = "go" if isinstance(s, GoStmt) else "defer"
			call = unparen(s.call)
			if not isinstance(call, Call):
				self._error(f"expression in {keyword} must be function call", s.call)
				self._expr(s.call)
			else:
				op = self._expr(call)
				if op.mode in ("value", "constant") and self._discards_result(call):
					self._error(f"{keyword} discards result of {expr_string(call)}", call)
		elif isinstance(s, IncDecStmt):
			x = self._expr(s.target)
			if not x.invalid:
				if self.table.basic_kind(x.type) not in NUMERIC_KINDS:
					self._error(f"invalid operation: {expr_string(s.target)}{s.op} (non-numeric type {self._tstr(x.type)})", s)
				elif x.mode not in ("variable", "mapindex"):
					self._error(f"cannot assign to {expr_string(s.target)}", s.target)
		elif isinstance(s, SendStmt):
			self._send_stmt(s)
		elif isinstance(s, BranchStmt):
			self._branch_stmt(s)
		elif isinstance(s, DeclStmt):
			self._decl_stmt(s.decl)
		else:
			self._error(f"unsupported statement {type(s).__name__}", s)

	def _block(self, block: Block) -> None:
		saved = self._scope
		self._scope = Scope(saved)
		try:
			self._stmts(block.statements)
		finally:
			self._scope = saved

	def _expr_stmt(self, s: ExprStmt) -> None:
		value = unparen(s.value)
		op = self._expr(s.value)
		if op.invalid:
			return
		if isinstance(value, Call):
			if op.mode in ("value", "constant") and self._discards_result(value):
				self._error(f"{expr_string(value)} ({self._describe(op)}) is not used", s.value)
			return
		if isinstance(value, Unary) and value.op == "<-":
			return
		self._error(f"{expr_string(s.value)} ({self._describe(op)}) is not used", s.value)

	def _discards_result(self, call: Call) -> bool:
		"""Conversions and value-producing builtins cannot stand alone."""
		tv = self.info.types.get(call.func)
		if tv is None:
			return False
		if tv.mode == "typexpr":
			return True
		func = unparen(call.func)
		if tv.mode == "builtin" and isinstance(func, Name):
			return func.ident not in _STATEMENT_BUILTINS
		return False

	def _short_var_decl(self, s: AssignStmt) -> None:
		ops = self._assign_values(len(s.targets), s.values, s)
		pending: List[Object] = []
		seen: Set[str] = set()
		any_new = False
		for target, op in zip(s.targets, ops):
			name = target  # the parser only admits names left of :=
			if name.ident in seen:
				self._error(f"{name.ident} repeated on left side of :=", name)
				continue
			seen.add(name.ident)
			if name.ident == "_":
				self._var_type_from(op)
				continue
			existing = self._scope.lookup_local(name.ident)
			if existing is not None:
				self.info.uses[name] = existing
				if existing.kind is ObjectKind.VARIABLE:
					self._assign(op, existing.type, "assignment")
				else:
					self._error(f"cannot assign to {name.ident}", name)
				continue
			any_new = True
			obj = self._new_object(ObjectKind.VARIABLE, name.ident, type=self._var_type_from(op), ident=name, decl=s)
			self.info.defs[name] = obj
			pending.append(obj)
		if not any_new:
			self._error("no new variables on left side of :=", s)
		for obj in pending:
			self._scope.insert(obj)

	def _assignment(self, s: AssignStmt) -> None:
		ops = self._assign_values(len(s.targets), s.values, s)
		for target, op in zip(s.targets, ops):
			if isinstance(target, Name) and target.ident == "_":
				self._var_type_from(op)
				continue
			x = self._expr(target)
			if x.invalid:
				continue
			if x.mode not in ("variable", "mapindex"):
				self._error(f"cannot assign to {expr_string(target)} (neither addressable nor a map index expression)", target)
				continue
			self._assign(op, x.type, "assignment")

	def _op_assignment(self, s: AssignStmt) -> None:
		if len(s.targets) != 1 or len(s.values) != 1:
			self._error(f"assignment operation {s.op} requires single-valued expressions", s)
			return
		x = self._value(self._expr(s.targets[0]))
		y = self._value(self._expr(s.values[0]))
		if x.invalid or y.invalid:
			return
		if x.mode not in ("variable", "mapindex"):
			self._error(f"cannot assign to {expr_string(s.targets[0])}", s.targets[0])
			return
		result = self._binary_op(s, s.op[:-1], x, y)
		if not result.invalid:
			self._assign(result, x.type, "assignment")

	def _assign_values(self, count: int, values: Sequence[Expr], node: Node) -> List[Operand]:
		"""Operands for `count` targets, unpacking tuples and comma-ok forms."""
		invalid = [Operand(INVALID, self.table.invalid()) for _ in range(count)]
		if len(values) == 1 and count > 1:
			op = self._expr(values[0])
			if op.invalid:
				return invalid
			if count == 2 and op.mode in ("commaok", "mapindex"):
				self.info.types[values[0]] = TypeAndValue(op.type, "commaok")
				return [
					Operand("value", op.type, values[0]),
					Operand("value", self.table.basic(BasicKind.UNTYPED_BOOL)),
				]
			td = self.table.get(op.type)
			if op.mode == "value" and td.kind is TypeKind.TUPLE:
				if len(td.param_types) == count:
					return [Operand("value", t) for t in td.param_types]
				self._error(
					f"assignment mismatch: {count} variables but {expr_string(values[0])} returns "
					f"{len(td.param_types)} value{'s' if len(td.param_types) != 1 else ''}",
					node,
				)
				return invalid
			if isinstance(unparen(values[0]), Call) and op.mode in ("value", "novalue"):
				returned = 0 if op.mode == "novalue" else 1
				self._error(
					f"assignment mismatch: {count} variables but {expr_string(values[0])} returns "
					f"{returned} value{'s' if returned != 1 else ''}",
					node,
				)
				return invalid
			self._error(f"assignment mismatch: {count} variables but 1 value", node)
			return invalid
		ops = [self._value(self._expr(v)) for v in values]
		if len(ops) != count:
			self._error(
				f"assignment mismatch: {count} variable{'s' if count != 1 else ''} but "
				f"{len(ops)} value{'s' if len(ops) != 1 else ''}",
				node,
			)
			return invalid
		return ops

	def _if_stmt(self, s: IfStmt) -> None:
		saved = self._scope
		self._scope = Scope(saved)
		try:
			if s.init is not None:
				self._stmt(s.init)
			self._condition(s.cond, "if")
			self._block(s.then_block)
			if isinstance(s.else_stmt, IfStmt):
				self._if_stmt(s.else_stmt)
			elif isinstance(s.else_stmt, Block):
				self._block(s.else_stmt)
		finally:
			self._scope = saved

	def _condition(self, expr: Expr, where: str) -> None:
		x = self._value(self._expr(expr))
		if x.invalid:
			return
		if self.table.is_untyped(x.type):
			self._convert_untyped(x, self.table.default_type(x.type))
		if self.table.basic_kind(x.type) not in BOOL_KINDS:
			self._error(f"non-boolean condition in {where} statement", expr)

	def _for_stmt(self, s: ForStmt) -> None:
		saved = self._scope
		self._scope = Scope(saved)
		try:
			if s.init is not None:
				self._stmt(s.init)
			if s.cond is not None:
				self._condition(s.cond, "for")
			if s.post is not None:
				self._stmt(s.post)
			self._loop_body(s.body)
		finally:
			self._scope = saved

	def _loop_body(self, body: Block) -> None:
		self._ctx.loops += 1
		self._ctx.breakables += 1
		try:
			self._block(body)
		finally:
			self._ctx.loops -= 1
			self._ctx.breakables -= 1

	def _range_stmt(self, s: RangeStmt) -> None:
		saved = self._scope
		self._scope = Scope(saved)
		try:
			x = self._value(self._expr(s.expr))
			key_t, val_t = self._range_types(s, x)
			targets = [(s.key, key_t), (s.value, val_t)]
			if s.define:
				pending: List[Object] = []
				for target, ty in targets:
					if target is None:
						continue
					if target.ident == "_":
						continue
					obj = self._new_object(ObjectKind.VARIABLE, target.ident, type=ty, ident=target, decl=s)
					self.info.defs[target] = obj
					pending.append(obj)
				for obj in pending:
					if self._scope.insert(obj) is not None:
						self._error(f"{obj.name} repeated on left side of :=", obj.ident)
			else:
				for target, ty in targets:
					if target is None or (isinstance(target, Name) and target.ident == "_"):
						continue
					lhs = self._expr(target)
					if lhs.invalid:
						continue
					if lhs.mode not in ("variable", "mapindex"):
						self._error(f"cannot assign to {expr_string(target)}", target)
					else:
						self._assign(Operand("value", ty), lhs.type, "range")
			self._loop_body(s.body)
		finally:
			self._scope = saved

	def _range_types(self, s: RangeStmt, x: Operand) -> Tuple[TypeId, TypeId]:
		invalid = self.table.invalid()
		if x.invalid:
			return invalid, invalid
		if self.table.is_untyped(x.type):
			self._convert_untyped(x, self.table.default_type(x.type))
		ty = x.type
		elem = self.table.pointer_elem(ty)
		if elem is not None and self._under_def(elem).kind is TypeKind.ARRAY:
			ty = elem
		td = self._under_def(ty)
		int_t = self.table.ensure_int()
		if td.kind is TypeKind.BASIC and td.basic in STRING_KINDS:
			return int_t, self.table.basic(BasicKind.INT32)
		if td.kind is TypeKind.BASIC and td.basic in INTEGER_KINDS:
			if s.value is not None:
				self._error(f"range over {expr_string(s.expr)} permits only one iteration variable", s.value)
			return x.type, invalid
		if td.kind in (TypeKind.ARRAY, TypeKind.SLICE):
			return int_t, td.param_types[0]
		if td.kind is TypeKind.MAP:
			return td.param_types[0], td.param_types[1]
		if td.kind is TypeKind.CHAN:
			if td.chan_dir is ChanDir.SEND:
				self._error(f"invalid operation: range {expr_string(s.expr)} receive from send-only channel", s.expr)
			if s.value is not None:
				self._error(f"range over {expr_string(s.expr)} permits only one iteration variable", s.value)
			return td.param_types[0], invalid
		self._error(f"cannot range over {expr_string(s.expr)} ({self._describe(x)})", s.expr)
		return invalid, invalid

	def _switch_stmt(self, s: SwitchStmt) -> None:
		saved = self._scope
		self._scope = Scope(saved)
		try:
			if s.init is not None:
				self._stmt(s.init)
			tag: Optional[Operand] = None
			if s.tag is not None:
				tag = self._value(self._expr(s.tag))
				if not tag.invalid and self.table.is_untyped(tag.type):
					self._convert_untyped(tag, self.table.default_type(tag.type))
			seen_default = False
			for idx, clause in enumerate(s.clauses):
				if clause.exprs is None:
					if seen_default:
						self._error("multiple defaults in switch", clause)
					seen_default = True
				else:
					for expr in clause.exprs:
						self._case_value(expr, tag)
				self._clause_body(clause, last=idx == len(s.clauses) - 1, type_switch=False)
		finally:
			self._scope = saved

	def _case_value(self, expr: Expr, tag: Optional[Operand]) -> None:
		y = self._value(self._expr(expr))
		if y.invalid or (tag is not None and tag.invalid):
			return
		if tag is None:
			if self.table.is_untyped(y.type):
				self._convert_untyped(y, self.table.ensure_bool())
			if self.table.basic_kind(y.type) not in BOOL_KINDS:
				self._error(f"invalid case {expr_string(expr)} in switch (mismatched types {self._tstr(y.type)} and bool)", expr)
			return
		if self.table.is_untyped(y.type):
			ok = self._convert_untyped(y, tag.type)
		else:
			ok = self._assignable(y.type, tag.type)[0] or self._assignable(tag.type, y.type)[0]
		if not ok:
			self._error(
				f"invalid case {expr_string(expr)} in switch on {expr_string(tag.expr) if tag.expr else 'tag'} "
				f"(mismatched types {self._tstr(y.type)} and {self._tstr(tag.type)})",
				expr,
			)

	def _clause_body(self, clause: CaseClause, last: bool, type_switch: bool, binding: Optional[Object] = None) -> None:
		saved = self._scope
		self._scope = Scope(saved)
		self._ctx.breakables += 1
		try:
			if binding is not None:
				self._scope.insert(binding)
			for idx, stmt in enumerate(clause.body):
				if isinstance(stmt, BranchStmt) and stmt.keyword == "fallthrough":
					if type_switch:
						self._error("cannot fallthrough in type switch", stmt)
					elif idx != len(clause.body) - 1:
						self._error("fallthrough statement out of place", stmt)
					elif last:
						self._error("cannot fallthrough final case in switch", stmt)
					continue
				self._stmt(stmt)
		finally:
			self._ctx.breakables -= 1
			self._scope = saved

	def _type_switch_stmt(self, s: TypeSwitchStmt) -> None:
		saved = self._scope
		self._scope = Scope(saved)
		try:
			if s.init is not None:
				self._stmt(s.init)
			x = self._value(self._expr(s.subject))
			if not x.invalid and not self.table.is_interface(x.type):
				self._error(f"{expr_string(s.subject)} ({self._describe(x)}) is not an interface", s.subject)
				x = Operand(INVALID, self.table.invalid())
			seen_default = False
			for idx, clause in enumerate(s.clauses):
				case_types: List[Optional[TypeId]] = []
				if clause.exprs is None:
					if seen_default:
						self._error("multiple defaults in switch", clause)
					seen_default = True
				else:
					for expr in clause.exprs:
						case_types.append(self._type_case(expr, x))
				binding = None
				if s.binding is not None:
					if len(case_types) == 1 and case_types[0] is not None:
						ty = case_types[0]
					else:
						ty = x.type
					binding = self._new_object(ObjectKind.VARIABLE, s.binding.ident, type=ty, ident=s.binding, decl=clause)
					self.info.implicits[clause] = binding
				self._clause_body(clause, last=idx == len(s.clauses) - 1, type_switch=True, binding=binding)
		finally:
			self._scope = saved

	def _type_case(self, expr: Expr, x: Operand) -> Optional[TypeId]:
		inner = unparen(expr)
		if isinstance(inner, Name) and inner.ident == "nil":
			obj = self._scope.lookup("nil")
			if obj is not None and obj.kind is ObjectKind.NIL:
				self.info.uses[inner] = obj
				self.info.types[expr] = TypeAndValue(obj.type, "value")
				return None
		ty = self._type_expr(expr)
		if x.invalid or self.table.is_invalid(ty) or self.table.is_interface(ty):
			return ty
		name, wrong = missing_method(self.table, ty, x.type)
		if name is not None:
			reason = "method {} has pointer receiver" if wrong else "missing method {}"
			self._error(
				f"impossible type switch case: {expr_string(expr)} cannot have dynamic type "
				f"{self._tstr(ty)} ({reason.format(name)})",
				expr,
			)
		return ty

	def _return_stmt(self, s: ReturnStmt) -> None:
		results = self._ctx.results
		if not s.values:
			if results and not self._ctx.named_results:
				self._error("not enough return values", s)
			return
		if not results:
			self._error("too many return values", s.values[0])
			for value in s.values:
				self._expr(value)
			return
		if len(s.values) == 1 and len(results) > 1:
			op = self._expr(s.values[0])
			if op.invalid:
				return
			td = self.table.get(op.type)
			if op.mode == "value" and td.kind is TypeKind.TUPLE and len(td.param_types) == len(results):
				for member, want in zip(td.param_types, results):
					self._assign(Operand("value", member, s.values[0]), want, "return statement")
				return
			self._error("not enough return values", s)
			return
		ops = [self._value(self._expr(v)) for v in s.values]
		if len(ops) < len(results):
			self._error("not enough return values", s)
		elif len(ops) > len(results):
			self._error("too many return values", s)
		else:
			for op, want in zip(ops, results):
				self._assign(op, want, "return statement")

	def _send_stmt(self, s: SendStmt) -> None:
		ch = self._value(self._expr(s.chan))
		val = self._value(self._expr(s.value))
		if ch.invalid or val.invalid:
			return
		td = self._under_def(ch.type)
		if td.kind is not TypeKind.CHAN:
			self._error(f"invalid operation: cannot send to non-channel {expr_string(s.chan)} ({self._describe(ch)})", s)
			return
		if td.chan_dir is ChanDir.RECV:
			self._error(f"invalid operation: cannot send to receive-only channel {expr_string(s.chan)}", s)
			return
		self._assign(val, td.param_types[0], "send")

	def _branch_stmt(self, s: BranchStmt) -> None:
		if s.keyword == "break" and not self._ctx.breakables:
			self._error("break is not in a loop, switch, or select", s)
		elif s.keyword == "continue" and not self._ctx.loops:
			self._error("continue is not in a loop", s)
		elif s.keyword == "fallthrough":
			self._error("fallthrough statement out of place", s)

	def _decl_stmt(self, decl: GenDecl) -> None:
		if decl.keyword == "type":
			for spec in decl.specs:
				self._local_type(spec)
			return
		inherited: List[Expr] = []
		inherited_type: Optional[Expr] = None
		for spec in decl.specs:
			objs: List[Object] = []
			if decl.keyword == "const":
				if spec.values:
					inherited, inherited_type = spec.values, spec.type
				self._check_spec_arity(spec, len(inherited), "const")
				for idx, name in enumerate(spec.names):
					obj = self._new_object(ObjectKind.CONSTANT, name.ident, ident=name, decl=spec)
					self._const_object(obj, inherited, inherited_type, idx, spec.iota)
					self.info.defs[name] = obj
					objs.append(obj)
			else:
				self._check_spec_arity(spec, len(spec.values), "var")
				for name in spec.names:
					obj = self._new_object(ObjectKind.VARIABLE, name.ident, ident=name, decl=spec)
					self.info.defs[name] = obj
					objs.append(obj)
				self._var_spec(spec, objs)
			for obj in objs:
				self._declare(self._scope, obj, obj.ident)

	def _local_type(self, spec: TypeSpec) -> None:
		obj = self._new_object(ObjectKind.TYPE_NAME, spec.name.ident, ident=spec.name, decl=spec)
		self.info.defs[spec.name] = obj
		if spec.alias:
			obj.type = self._type_expr(spec.type)
			self._declare(self._scope, obj, spec.name)
			return
		named = self.table.new_named(spec.name.ident, self._pkg.path, obj)
		obj.type = named
		self._declare(self._scope, obj, spec.name)
		under = self._type_expr(spec.type, owner=named)
		self.table.set_underlying(named, self._under(under))

	def _const_object(
		self,
		obj: Object,
		values: Sequence[Expr],
		type_expr: Optional[Expr],
		index: int,
		iota: int,
	) -> None:
		if index >= len(values):
			obj.type = self.table.invalid()
			return
		saved_iota = self._iota
		self._iota = iota
		try:
			x = self._value(self._expr(values[index]))
			declared = self._type_expr(type_expr) if type_expr is not None else None
		finally:
			self._iota = saved_iota
		if x.invalid:
			obj.type = self.table.invalid()
			return
		if x.mode != "constant":
			self._error(f"{expr_string(values[index])} ({self._describe(x)}) is not constant", values[index])
			obj.type = self.table.invalid()
			return
		if declared is None:
			obj.type, obj.value = x.type, x.value
			return
		if self._under_def(declared).kind is not TypeKind.BASIC:
			self._error(f"invalid constant type {self._tstr(declared)}", type_expr)
			obj.type = self.table.invalid()
			return
		self._assign(x, declared, "constant declaration")
		obj.type, obj.value = declared, x.value

	def _var_spec(self, spec: ValueSpec, objs: Sequence[Optional[Object]]) -> None:
		if spec in self._checked_specs:
			return
		self._checked_specs.add(spec)
		declared = self._type_expr(spec.type) if spec.type is not None else None
		if not spec.values:
			for obj in objs:
				if obj is not None:
					obj.type = declared if declared is not None else self.table.invalid()
			return
		ops = self._assign_values(len(spec.names), spec.values, spec)
		for obj, op in zip(objs, ops):
			if declared is not None:
				self._assign(op, declared, "variable declaration")
				ty = declared
			else:
				ty = self._var_type_from(op)
			if obj is not None:
				obj.type = ty

	def _var_type_from(self, op: Operand) -> TypeId:
		"""Type a new variable gets from its initializer."""
		if op.invalid:
			return self.table.invalid()
		if self.table.get(op.type).basic is BasicKind.UNTYPED_NIL:
			self._error("use of untyped nil in assignment", op.expr)
			return self.table.invalid()
		if self.table.is_untyped(op.type):
			target = self.table.default_type(op.type)
			self._convert_untyped(op, target)
			return target
		return op.type

	# --- termination ------------------------------------------------------

	def _is_terminating_list(self, stmts: Sequence[Stmt]) -> bool:
		return bool(stmts) and self._is_terminating(stmts[-1])

	def _is_terminating(self, s: Stmt) -> bool:
		if isinstance(s, ReturnStmt):
			return True
		if isinstance(s, ExprStmt):
			call = unparen(s.value)
			if isinstance(call, Call):
				func = unparen(call.func)
				if isinstance(func, Name):
					obj = self.info.uses.get(func)
					return obj is not None and obj.kind is ObjectKind.BUILTIN and obj.name == "panic"
			return False
		if isinstance(s, Block):
			return self._is_terminating_list(s.statements)
		if isinstance(s, IfStmt):
			return s.else_stmt is not None and self._is_terminating(s.then_block) and self._is_terminating(s.else_stmt)
		if isinstance(s, ForStmt):
			return s.cond is None and not _has_break(s.body.statements)
		if isinstance(s, (SwitchStmt, TypeSwitchStmt)):
			if not any(c.exprs is None for c in s.clauses):
				return False
			for clause in s.clauses:
				if _has_break(clause.body):
					return False
				last = clause.body[-1] if clause.body else None
				if last is None:
					return False
				if isinstance(last, BranchStmt) and last.keyword == "fallthrough":
					continue
				if not self._is_terminating(last):
					return False
			return True
		return False

	# --- expressions ------------------------------------------------------

	def _expr(self, e: Expr, hint: Optional[TypeId] = None) -> Operand:
		op = self._raw_expr(e, hint)
		op.expr = e
		if op.invalid:
			self.info.types[e] = TypeAndValue(self.table.invalid(), INVALID)
		else:
			self.info.types[e] = TypeAndValue(op.type, op.mode, op.value)
		return op

	def _raw_expr(self, e: Expr, hint: Optional[TypeId]) -> Operand:
		if isinstance(e, Name):
			return self._ident(e)
		if isinstance(e, Literal):
			return self._literal(e)
		if isinstance(e, Paren):
			inner = self._expr(e.value, hint)
			return Operand(inner.mode, inner.type, value=inner.value, builtin=inner.builtin)
		if isinstance(e, Selector):
			return self._selector(e)
		if isinstance(e, Call):
			return self._call(e)
		if isinstance(e, Unary):
			return self._unary(e, hint)
		if isinstance(e, Binary):
			return self._binary(e)
		if isinstance(e, Index):
			return self._index(e)
		if isinstance(e, SliceExpr):
			return self._slice_expr(e)
		if isinstance(e, TypeAssert):
			return self._type_assert(e)
		if isinstance(e, CompositeLit):
			return self._composite_lit(e, hint)
		if isinstance(e, FuncLit):
			return self._func_lit(e)
		if isinstance(e, KeyValue):
			self._error("unexpected key:value expression", e)
			return self._invalid()
		if isinstance(e, (PointerType, SliceType, ArrayType, MapType, ChanType, FuncType, StructType, InterfaceType)):
			return Operand("typexpr", self._raw_type(e, None))
		self._error(f"unsupported expression {type(e).__name__}", e)
		return self._invalid()

	def _ident(self, e: Name) -> Operand:
		if e.ident == "_":
			self._error("cannot use _ as value", e)
			return self._invalid()
		obj = self._scope.lookup(e.ident)
		if obj is None:
			self._error(f"undefined: {e.ident}", e)
			return self._invalid()
		self.info.uses[e] = obj
		if obj.kind is ObjectKind.PACKAGE:
			self._error(f"use of package {e.ident} without selector", e)
			return self._invalid()
		return self._object_operand(obj, e)

	def _object_operand(self, obj: Object, node: Node) -> Operand:
		kind = obj.kind
		if kind is ObjectKind.CONSTANT:
			if obj.name == "iota" and obj.pkg is None:
				if self._iota is None:
					self._error("cannot use iota outside constant declaration", node)
					return self._invalid()
				return Operand("constant", obj.type, value=self._iota)
			ty = self._obj_type(obj)
			if self.table.is_invalid(ty):
				return self._invalid()
			return Operand("constant", ty, value=obj.value)
		if kind is ObjectKind.TYPE_NAME:
			ty = self._obj_type(obj)
			self._under(ty)
			return Operand("typexpr", ty)
		if kind is ObjectKind.VARIABLE:
			return Operand("variable", self._obj_type(obj))
		if kind is ObjectKind.FUNCTION:
			return Operand("value", self._obj_type(obj))
		if kind is ObjectKind.BUILTIN:
			return Operand("builtin", self.table.invalid(), builtin=obj.name)
		if kind is ObjectKind.NIL:
			return Operand("value", obj.type)
		self._error(f"unexpected use of {obj.name}", node)
		return self._invalid()

	def _literal(self, e: Literal) -> Operand:
		try:
			if e.kind == "int":
				return Operand("constant", self.table.basic(BasicKind.UNTYPED_INT), value=constants.int_literal(e.raw))
			if e.kind == "float":
				return Operand("constant", self.table.basic(BasicKind.UNTYPED_FLOAT), value=constants.float_literal(e.raw))
			if e.kind == "string":
				return Operand("constant", self.table.basic(BasicKind.UNTYPED_STRING), value=constants.string_literal(e.raw))
			if e.kind == "rune":
				return Operand("constant", self.table.basic(BasicKind.UNTYPED_RUNE), value=constants.rune_literal(e.raw))
		except (ValueError, SyntaxError, TypeError):
			pass
		self._error(f"invalid literal {e.raw}", e)
		return self._invalid()

	def _selector(self, e: Selector) -> Operand:
		name = e.attr.ident
		qualified = self._qualified(e)
		if qualified is not None:
			if qualified.kind is ObjectKind.UNRESOLVED:
				return self._invalid()
			return self._object_operand(qualified, e.attr)

		x = self._expr(e.value)
		if x.invalid:
			return self._invalid()
		if x.mode == "typexpr":
			return self._method_expr(e, x)
		x = self._value(x)
		if x.invalid:
			return self._invalid()
		res = lookup_field_or_method(self.table, x.type, x.mode == "variable", self._pkg.path, name)
		if res.ambiguous:
			self._error(f"ambiguous selector {expr_string(e)}", e.attr)
			return self._invalid()
		if res.needs_pointer:
			self._error(f"cannot call pointer method {name} on {self._tstr(x.type)}", e.attr)
			return self._invalid()
		if res.obj is None:
			if self.table.pointer_elem(x.type) is not None and self.table.is_interface(self.table.pointer_elem(x.type)):
				self._error(f"{expr_string(e)} undefined (type {self._tstr(x.type)} is pointer to interface, not interface)", e.attr)
			else:
				self._error(
					f"{expr_string(e)} undefined (type {self._tstr(x.type)} has no field or method {name})",
					e.attr,
				)
			return self._invalid()
		obj = res.obj
		self.info.uses[e.attr] = obj
		if obj.kind is ObjectKind.FIELD:
			kind = SelectionKind.FIELD_VAL
			mode = "variable" if (x.mode == "variable" or res.indirect) else "value"
			ty = obj.type
		else:
			kind = SelectionKind.METHOD_VAL
			mode = "value"
			ty = self._obj_type(obj)
		self.info.selections[e] = Selection(
			kind=kind,
			recv=x.type,
			obj=obj,
			owner=res.owner,
			index=res.index,
			path=res.path,
			path_owners=res.path_owners,
			indirect=res.indirect,
		)
		return Operand(mode, ty)

	def _qualified(self, e: Selector) -> Optional[Object]:
		"""Resolve `pkg.Name`; None when the left side is not a package name."""
		if not isinstance(e.value, Name):
			return None
		pobj = self._scope.lookup(e.value.ident)
		if pobj is None or pobj.kind is not ObjectKind.PACKAGE:
			return None
		self.info.uses[e.value] = pobj
		unresolved = Object(kind=ObjectKind.UNRESOLVED, name=e.attr.ident)
		imported = pobj.imported
		if imported is None:
			return unresolved  # import failure already reported
		member = imported.lookup(e.attr.ident)
		if member is None:
			self._error(f"undefined: {e.value.ident}.{e.attr.ident}", e.attr)
			return unresolved
		if not member.exported:
			self._error(f"name {e.attr.ident} not exported by package {imported.name}", e.attr)
			return unresolved
		self.info.uses[e.attr] = member
		return member

	def _method_expr(self, e: Selector, x: Operand) -> Operand:
		name = e.attr.ident
		res = lookup_field_or_method(self.table, x.type, False, self._pkg.path, name)
		tname = self._tstr(x.type)
		if res.obj is None or res.ambiguous or res.obj.kind is not ObjectKind.METHOD:
			self._error(f"{expr_string(e)} undefined (type {tname} has no method {name})", e.attr)
			return self._invalid()
		if res.needs_pointer:
			self._error(f"invalid method expression {tname}.{name} (needs pointer receiver (*{tname}).{name})", e.attr)
			return self._invalid()
		obj = res.obj
		self.info.uses[e.attr] = obj
		sig = self.table.get(self._obj_type(obj))
		func_type = self.table.new_signature((x.type,) + sig.param_types, sig.result_types, sig.variadic)
		self.info.selections[e] = Selection(
			kind=SelectionKind.METHOD_EXPR,
			recv=x.type,
			obj=obj,
			owner=res.owner,
			index=res.index,
			path=res.path,
			path_owners=res.path_owners,
			indirect=res.indirect,
		)
		return Operand("value", func_type)

	def _func_lit(self, e: FuncLit) -> Operand:
		sig_type = self._signature(e.type)
		saved = self._save()
		try:
			self._scope = Scope(self._scope, kind="function")
			sig = self.table.get(sig_type)
			self._declare_params(e.type, sig)
			enclosing = self._ctx.obj if self._ctx is not None else None
			self._body(e.body, _FuncContext(obj=enclosing, results=sig.result_types, named_results=_has_named(e.type.results)))
		finally:
			self._restore(saved)
		return Operand("value", sig_type)

	# --- calls ------------------------------------------------------------

	def _call(self, e: Call) -> Operand:
		f = self._expr(e.func)
		if f.invalid:
			self._use(e.args)
			return self._invalid()
		if f.mode == "typexpr":
			return self._conversion(e, f.type)
		if f.mode == "builtin":
			return self._builtin(e, f.builtin)
		f = self._value(f)
		if f.invalid:
			self._use(e.args)
			return self._invalid()
		sig = self._under_def(f.type)
		if sig.kind is not TypeKind.SIGNATURE:
			self._error(f"invalid operation: cannot call non-function {expr_string(e.func)} ({self._describe(f)})", e)
			self._use(e.args)
			return self._invalid()
		args = self._call_args(e)
		if args is not None:
			self._arguments(e, sig, args)
		results = sig.result_types
		if not results:
			return Operand("novalue", self.table.new_tuple(()))
		if len(results) == 1:
			return Operand("value", results[0])
		return Operand("value", self.table.new_tuple(results))

	def _call_args(self, e: Call) -> Optional[List[Operand]]:
		if len(e.args) == 1 and isinstance(unparen(e.args[0]), Call):
			op = self._expr(e.args[0])
			if op.invalid:
				return None
			td = self.table.get(op.type)
			if op.mode == "value" and td.kind is TypeKind.TUPLE:
				return [Operand("value", t) for t in td.param_types]
			op = self._value(op)
			return None if op.invalid else [op]
		args = [self._value(self._expr(arg)) for arg in e.args]
		if any(a.invalid for a in args):
			return None
		return args

	def _arguments(self, e: Call, sig: TypeDef, args: List[Operand]) -> None:
		params = sig.param_types
		fname = expr_string(e.func)
		context = f"argument to {fname}"
		if e.ellipsis:
			if not sig.variadic:
				self._error(f"have (...) but function is not variadic: cannot use ... in call to non-variadic {fname}", e)
				return
			if len(args) != len(params):
				self._arity_error(e, fname, len(args) < len(params))
				return
			for op, want in zip(args, params):
				self._assign(op, want, context)
			return
		if sig.variadic:
			fixed = len(params) - 1
			if len(args) < fixed:
				self._arity_error(e, fname, True)
				return
			elem = self.table.get(params[-1]).param_types[0]
			for idx, op in enumerate(args):
				self._assign(op, params[idx] if idx < fixed else elem, context)
			return
		if len(args) != len(params):
			self._arity_error(e, fname, len(args) < len(params))
			return
		for op, want in zip(args, params):
			self._assign(op, want, context)

	def _arity_error(self, e: Call, fname: str, too_few: bool) -> None:
		if too_few:
			self._error(f"not enough arguments in call to {fname}", e)
		else:
			self._error(f"too many arguments in call to {fname}", e.args[-1] if e.args else e)

	def _use(self, exprs: Sequence[Expr]) -> None:
		"""Check expressions for their side tables only (after an error)."""
		for expr in exprs:
			self._expr(expr)

	def _conversion(self, e: Call, target: TypeId) -> Operand:
		tname = self._tstr(target)
		if len(e.args) != 1 or e.ellipsis:
			if not e.args:
				self._error(f"missing argument in conversion to {tname}", e)
			else:
				self._error(f"too many arguments in conversion to {tname}", e)
			self._use(e.args)
			return self._invalid()
		x = self._value(self._expr(e.args[0]))
		if x.invalid:
			return self._invalid()
		target_def = self._under_def(target)
		if x.mode == "constant" and target_def.kind is TypeKind.BASIC:
			value = self._convert_constant(x, target_def.basic)
			if value is None:
				self._error(f"cannot convert {expr_string(e.args[0])} ({self._describe(x)}) to type {tname}", e)
				return self._invalid()
			if self.table.is_untyped(x.type):
				# string(65) keeps its operand an int; float64(1) types it as float64
				fits = constants.representable(x.value, target_def.basic) is not None
				self._update_expr_type(x.expr, target if fits else self.table.default_type(x.type))
			return Operand("constant", target, value=value)
		if self.table.is_untyped(x.type):
			if self.table.get(x.type).basic is BasicKind.UNTYPED_NIL:
				if target_def.kind in (TypeKind.POINTER, TypeKind.SLICE, TypeKind.MAP, TypeKind.CHAN, TypeKind.SIGNATURE, TypeKind.INTERFACE):
					self._update_expr_type(x.expr, target)
					return Operand("value", target)
				self._error(f"cannot convert nil to type {tname}", e)
				return self._invalid()
			self._convert_untyped(x, self.table.default_type(x.type))
		if not self._convertible(x.type, target):
			self._error(f"cannot convert {expr_string(e.args[0])} ({self._describe(x)}) to type {tname}", e)
			return self._invalid()
		return Operand("value", target)

	def _convert_constant(self, x: Operand, kind: BasicKind) -> Any:
		source = self.table.basic_kind(x.type)
		if kind in STRING_KINDS and source in INTEGER_KINDS:
			return chr(x.value) if 0 <= x.value <= 0x10FFFF else "�"
		if kind in NUMERIC_KINDS and source not in NUMERIC_KINDS:
			return None
		return constants.representable(x.value, kind)

	def _convertible(self, v: TypeId, t: TypeId) -> bool:
		if self._assignable(v, t)[0]:
			return True
		vu, tu = self._under(v), self._under(t)
		if vu == tu:
			return True
		vd, td = self.table.get(vu), self.table.get(tu)
		if vd.kind is TypeKind.POINTER and td.kind is TypeKind.POINTER:
			if self._under(vd.param_types[0]) == self._under(td.param_types[0]):
				return True
		if vd.kind is TypeKind.BASIC and td.kind is TypeKind.BASIC:
			if vd.basic in NUMERIC_KINDS and td.basic in NUMERIC_KINDS:
				return True
			if td.basic in STRING_KINDS and (vd.basic in INTEGER_KINDS or vd.basic in STRING_KINDS):
				return True
		if td.kind is TypeKind.BASIC and td.basic in STRING_KINDS and self._is_bytes_or_runes(vu):
			return True
		if vd.kind is TypeKind.BASIC and vd.basic in STRING_KINDS and self._is_bytes_or_runes(tu):
			return True
		return False

	def _is_bytes_or_runes(self, ty: TypeId) -> bool:
		td = self.table.get(ty)
		if td.kind is not TypeKind.SLICE:
			return False
		return self.table.basic_kind(td.param_types[0]) in (BasicKind.UINT8, BasicKind.INT32)

	def _builtin(self, e: Call, name: str) -> Operand:
		args = e.args
		nargs = len(args)
		int_t = self.table.ensure_int()

		def arity(low: int, high: Optional[int]) -> bool:
			if nargs < low:
				self._error(f"not enough arguments for {expr_string(e)} (expected {low}, found {nargs})", e)
				self._use(args)
				return False
			if high is not None and nargs > high:
				self._error(f"too many arguments for {expr_string(e)} (expected {high}, found {nargs})", e)
				self._use(args)
				return False
			return True

		if e.ellipsis and name != "append":
			self._error(f"invalid use of ... with built-in {name}", e)
			self._use(args)
			return self._invalid()

		if name in ("len", "cap"):
			if not arity(1, 1):
				return self._invalid()
			x = self._value(self._expr(args[0]))
			if x.invalid:
				return self._invalid()
			if self.table.is_untyped(x.type):
				self._convert_untyped(x, self.table.default_type(x.type))
			ty = x.type
			elem = self.table.pointer_elem(ty)
			if elem is not None and self._under_def(elem).kind is TypeKind.ARRAY:
				ty = elem
			td = self._under_def(ty)
			allowed = {TypeKind.ARRAY, TypeKind.SLICE, TypeKind.CHAN}
			if name == "len":
				allowed |= {TypeKind.MAP}
			is_string = td.kind is TypeKind.BASIC and td.basic in STRING_KINDS
			if td.kind not in allowed and not (name == "len" and is_string):
				self._error(f"invalid argument: {expr_string(args[0])} ({self._describe(x)}) for built-in {name}", args[0])
				return self._invalid()
			if is_string and x.mode == "constant":
				return Operand("constant", int_t, value=len(x.value.encode("utf-8")))
			if td.kind is TypeKind.ARRAY and not _contains_call(args[0]):
				return Operand("constant", int_t, value=td.length)
			return Operand("value", int_t)

		if name == "append":
			if not arity(1, None):
				return self._invalid()
			s = self._value(self._expr(args[0]))
			rest = [self._value(self._expr(a)) for a in args[1:]]
			if s.invalid or any(r.invalid for r in rest):
				return self._invalid()
			if self.table.get(s.type).basic is BasicKind.UNTYPED_NIL:
				self._error("first argument to append must be a typed slice; have untyped nil", args[0])
				return self._invalid()
			td = self._under_def(s.type)
			if td.kind is not TypeKind.SLICE:
				self._error(f"invalid argument: {expr_string(args[0])} ({self._describe(s)}) is not a slice", args[0])
				return self._invalid()
			elem = td.param_types[0]
			if e.ellipsis:
				if len(rest) != 1:
					self._error("can only use ... with final argument in list", e)
					return self._invalid()
				spread = rest[0]
				if not (
					self.table.basic_kind(elem) is BasicKind.UINT8
					and self.table.basic_kind(spread.type) in STRING_KINDS
				):
					self._assign(spread, self.table.new_slice(elem), "argument to append")
			else:
				for op in rest:
					self._assign(op, elem, "argument to append")
			return Operand("value", s.type)

		if name == "make":
			if not arity(1, 3):
				return self._invalid()
			ty = self._type_expr(args[0])
			kind = self._under_def(ty).kind
			sizes = [self._value(self._expr(a)) for a in args[1:]]
			for size, expr in zip(sizes, args[1:]):
				self._index_value(size, expr, "size argument")
			bounds = {TypeKind.SLICE: (2, 3), TypeKind.MAP: (1, 2), TypeKind.CHAN: (1, 2)}.get(kind)
			if bounds is None:
				if not self.table.is_invalid(ty):
					self._error(f"invalid argument: cannot make {expr_string(args[0])}; type must be slice, map, or channel", args[0])
				return self._invalid()
			if not bounds[0] <= nargs <= bounds[1]:
				self._error(f"invalid operation: {expr_string(e)} expects {bounds[0]} or {bounds[1]} arguments; found {nargs}", e)
				return self._invalid()
			return Operand("value", ty)

		if name == "new":
			if not arity(1, 1):
				return self._invalid()
			return Operand("value", self.table.new_pointer(self._type_expr(args[0])))

		if name == "delete":
			if not arity(2, 2):
				return self._invalid()
			m = self._value(self._expr(args[0]))
			k = self._value(self._expr(args[1]))
			if m.invalid or k.invalid:
				return self._invalid()
			td = self._under_def(m.type)
			if td.kind is not TypeKind.MAP:
				self._error(f"invalid argument: {expr_string(args[0])} ({self._describe(m)}) is not a map", args[0])
				return self._invalid()
			self._assign(k, td.param_types[0], "argument to delete")
			return Operand("novalue", self.table.new_tuple(()))

		if name == "close":
			if not arity(1, 1):
				return self._invalid()
			ch = self._value(self._expr(args[0]))
			if ch.invalid:
				return self._invalid()
			td = self._under_def(ch.type)
			if td.kind is not TypeKind.CHAN or td.chan_dir is ChanDir.RECV:
				self._error(f"invalid operation: cannot close {expr_string(args[0])} ({self._describe(ch)})", args[0])
				return self._invalid()
			return Operand("novalue", self.table.new_tuple(()))

		if name == "copy":
			if not arity(2, 2):
				return self._invalid()
			dst = self._value(self._expr(args[0]))
			src = self._value(self._expr(args[1]))
			if dst.invalid or src.invalid:
				return self._invalid()
			if self._under_def(dst.type).kind is not TypeKind.SLICE:
				self._error(f"invalid argument: copy expects slice arguments; found {expr_string(args[0])} ({self._describe(dst)})", args[0])
				return self._invalid()
			return Operand("value", int_t)

		if name == "clear":
			if not arity(1, 1):
				return self._invalid()
			x = self._value(self._expr(args[0]))
			if x.invalid:
				return self._invalid()
			if self._under_def(x.type).kind not in (TypeKind.MAP, TypeKind.SLICE):
				self._error(f"invalid argument: {expr_string(args[0])} ({self._describe(x)}) must be a map or slice", args[0])
				return self._invalid()
			return Operand("novalue", self.table.new_tuple(()))

		if name == "panic":
			if not arity(1, 1):
				return self._invalid()
			x = self._value(self._expr(args[0]))
			if not x.invalid:
				self._assign(x, self.table.empty_interface(), "argument to panic")
			return Operand("novalue", self.table.new_tuple(()))

		if name in ("print", "println"):
			for arg in args:
				x = self._value(self._expr(arg))
				if not x.invalid and self.table.is_untyped(x.type):
					self._var_type_from(x)
			return Operand("novalue", self.table.new_tuple(()))

		if name == "recover":
			if not arity(0, 0):
				return self._invalid()
			return Operand("value", self.table.empty_interface())

		if name in ("min", "max"):
			if not arity(1, None):
				return self._invalid()
			ops = [self._value(self._expr(a)) for a in args]
			if any(op.invalid for op in ops):
				return self._invalid()
			result = ops[0]
			for op in ops[1:]:
				if not self._match_types(result, op):
					self._error(f"invalid argument: mismatched types {self._tstr(result.type)} and {self._tstr(op.type)} in {name}", e)
					return self._invalid()
				if self.table.is_untyped(result.type) and not self.table.is_untyped(op.type):
					result = Operand(result.mode, op.type, result.expr, result.value)
			kind = self.table.basic_kind(result.type)
			if kind not in NUMERIC_KINDS and kind not in STRING_KINDS:
				self._error(f"invalid argument: {expr_string(args[0])} cannot be ordered", args[0])
				return self._invalid()
			if all(op.mode == "constant" for op in ops):
				pick = min if name == "min" else max
				return Operand("constant", result.type, value=pick(op.value for op in ops))
			return Operand("value", result.type)

		self._error(f"unsupported built-in {name}", e)
		return self._invalid()

	# --- operators --------------------------------------------------------

	def _unary(self, e: Unary, hint: Optional[TypeId]) -> Operand:
		op = e.op
		if op == "&":
			inner = unparen(e.operand)
			if isinstance(inner, CompositeLit):
				elem_hint = self.table.pointer_elem(hint) if hint is not None else None
				x = self._expr(e.operand, elem_hint)
				if x.invalid:
					return self._invalid()
				return Operand("value", self.table.new_pointer(x.type))
			x = self._value(self._expr(e.operand))
			if x.invalid:
				return self._invalid()
			if x.mode != "variable":
				self._error(f"invalid operation: cannot take address of {expr_string(e.operand)} ({self._describe(x)})", e)
				return self._invalid()
			return Operand("value", self.table.new_pointer(x.type))
		if op == "*":
			x = self._expr(e.operand)
			if x.invalid:
				return self._invalid()
			if x.mode == "typexpr":
				return Operand("typexpr", self.table.new_pointer(x.type))
			x = self._value(x)
			if x.invalid:
				return self._invalid()
			elem = self.table.pointer_elem(x.type)
			if elem is None:
				self._error(f"invalid operation: cannot indirect {expr_string(e.operand)} ({self._describe(x)})", e)
				return self._invalid()
			return Operand("variable", elem)
		x = self._value(self._expr(e.operand))
		if x.invalid:
			return self._invalid()
		if op == "<-":
			td = self._under_def(x.type)
			if td.kind is not TypeKind.CHAN:
				self._error(f"invalid operation: cannot receive from non-channel {expr_string(e.operand)} ({self._describe(x)})", e)
				return self._invalid()
			if td.chan_dir is ChanDir.SEND:
				self._error(f"invalid operation: cannot receive from send-only channel {expr_string(e.operand)}", e)
				return self._invalid()
			return Operand("commaok", td.param_types[0])
		kind = self.table.basic_kind(x.type)
		allowed = {"+": NUMERIC_KINDS, "-": NUMERIC_KINDS, "!": BOOL_KINDS, "^": INTEGER_KINDS}.get(op, frozenset())
		if kind not in allowed:
			self._error(f"invalid operation: operator {op} not defined on {expr_string(e.operand)} ({self._describe(x)})", e)
			return self._invalid()
		if x.mode == "constant":
			value = constants.fold_unary(op, x.value, kind)
			if not self.table.is_untyped(x.type) and constants.representable(value, kind) is None:
				self._error(f"constant {constants.format_value(value)} overflows {self._tstr(x.type)}", e)
				return self._invalid()
			return Operand("constant", x.type, value=value)
		return Operand("value", x.type)

	def _binary(self, e: Binary) -> Operand:
		x = self._value(self._expr(e.left))
		y = self._value(self._expr(e.right))
		if x.invalid or y.invalid:
			return self._invalid()
		return self._binary_op(e, e.op, x, y)

	def _binary_op(self, node: Node, op: str, x: Operand, y: Operand) -> Operand:
		if op in _SHIFTS:
			return self._shift(node, op, x, y)
		if op in _COMPARISONS:
			return self._comparison(node, op, x, y)
		text = expr_string(node) if isinstance(node, Expr) else f"{expr_string(x.expr)} {op}= {expr_string(y.expr)}"
		if not self._match_types(x, y):
			self._error(f"invalid operation: {text} (mismatched types {self._tstr(x.type)} and {self._tstr(y.type)})", node)
			return self._invalid()
		ty = x.type
		if self.table.is_untyped(x.type) and self.table.is_untyped(y.type):
			ty = self._larger_untyped(x.type, y.type)
		kind = self.table.basic_kind(ty)
		allowed = {
			"+": NUMERIC_KINDS | STRING_KINDS,
			"-": NUMERIC_KINDS,
			"*": NUMERIC_KINDS,
			"/": NUMERIC_KINDS,
			"%": INTEGER_KINDS,
			"&": INTEGER_KINDS,
			"|": INTEGER_KINDS,
			"^": INTEGER_KINDS,
			"&^": INTEGER_KINDS,
			"&&": BOOL_KINDS,
			"||": BOOL_KINDS,
		}.get(op, frozenset())
		if kind not in allowed:
			self._error(f"invalid operation: operator {op} not defined on {expr_string(x.expr)} ({self._describe(x)})", node)
			return self._invalid()
		if op in ("/", "%") and y.mode == "constant" and y.value == 0 and kind in NUMERIC_KINDS:
			self._error("invalid operation: division by zero", node)
			return self._invalid()
		if x.mode == "constant" and y.mode == "constant":
			integer = kind in INTEGER_KINDS
			value = constants.fold_binary(op, x.value, y.value, integer)
			if integer and isinstance(value, float):
				value = int(value)
			if not self.table.is_untyped(ty) and constants.representable(value, kind) is None:
				self._error(f"constant {constants.format_value(value)} overflows {self._tstr(ty)}", node)
				return self._invalid()
			return Operand("constant", ty, value=value)
		return Operand("value", ty)

	def _comparison(self, node: Node, op: str, x: Operand, y: Operand) -> Operand:
		text = expr_string(node) if isinstance(node, Expr) else op
		x_nil = self.table.get(x.type).basic is BasicKind.UNTYPED_NIL
		y_nil = self.table.get(y.type).basic is BasicKind.UNTYPED_NIL
		if x_nil and y_nil:
			self._error(f"invalid operation: {text} (operator {op} not defined on nil)", node)
			return self._invalid()
		if not self._match_types(x, y):
			self._error(f"invalid operation: {text} (mismatched types {self._tstr(x.type)} and {self._tstr(y.type)})", node)
			return self._invalid()
		td = self._under_def(x.type)
		if op in ("==", "!="):
			if td.kind in (TypeKind.SLICE, TypeKind.MAP, TypeKind.SIGNATURE) and not (x_nil or y_nil):
				self._error(f"invalid operation: {text} ({td.kind.name.lower()} can only be compared to nil)", node)
				return self._invalid()
		else:
			kind = self.table.basic_kind(x.type)
			if kind not in NUMERIC_KINDS and kind not in STRING_KINDS:
				self._error(f"invalid operation: {text} (operator {op} not defined on {expr_string(x.expr)})", node)
				return self._invalid()
		untyped_bool = self.table.basic(BasicKind.UNTYPED_BOOL)
		if x.mode == "constant" and y.mode == "constant":
			return Operand("constant", untyped_bool, value=constants.compare(op, x.value, y.value))
		return Operand("value", untyped_bool)

	def _shift(self, node: Node, op: str, x: Operand, y: Operand) -> Operand:
		text = expr_string(node) if isinstance(node, Expr) else op
		if self.table.is_untyped(y.type):
			if not self._convert_untyped(y, self.table.basic(BasicKind.UINT)):
				self._error(f"invalid operation: shift count {expr_string(y.expr)} must be integer", node)
				return self._invalid()
		elif self.table.basic_kind(y.type) not in INTEGER_KINDS:
			self._error(f"invalid operation: shift count {expr_string(y.expr)} must be integer", node)
			return self._invalid()
		if y.mode == "constant" and y.value < 0:
			self._error(f"invalid operation: negative shift count {expr_string(y.expr)}", node)
			return self._invalid()
		if x.mode == "constant" and self.table.is_untyped(x.type):
			if constants.representable(x.value, BasicKind.UNTYPED_INT) is None:
				self._error(f"invalid operation: shifted operand {expr_string(x.expr)} must be integer", node)
				return self._invalid()
			if y.mode == "constant":
				return Operand("constant", self.table.basic(BasicKind.UNTYPED_INT), value=constants.fold_binary(op, int(x.value), y.value, True))
			self._convert_untyped(x, self.table.ensure_int())
		kind = self.table.basic_kind(x.type)
		if kind not in INTEGER_KINDS:
			self._error(f"invalid operation: shifted operand {expr_string(x.expr)} must be integer", node)
			return self._invalid()
		if x.mode == "constant" and y.mode == "constant":
			value = constants.fold_binary(op, x.value, y.value, True)
			if constants.representable(value, kind) is None:
				self._error(f"constant {value} overflows {self._tstr(x.type)}", node)
				return self._invalid()
			return Operand("constant", x.type, value=value)
		return Operand("value", x.type)

	def _match_types(self, x: Operand, y: Operand) -> bool:
		"""Bring untyped operands to a common type; False on mismatch."""
		x_untyped = self.table.is_untyped(x.type)
		y_untyped = self.table.is_untyped(y.type)
		if x_untyped and y_untyped:
			xk, yk = self.table.get(x.type).basic, self.table.get(y.type).basic
			if xk is BasicKind.UNTYPED_NIL or yk is BasicKind.UNTYPED_NIL:
				return xk is yk
			if xk in NUMERIC_KINDS and yk in NUMERIC_KINDS:
				return True
			return (xk in BOOL_KINDS and yk in BOOL_KINDS) or (xk in STRING_KINDS and yk in STRING_KINDS)
		if x_untyped:
			return self._convert_untyped(x, y.type)
		if y_untyped:
			return self._convert_untyped(y, x.type)
		if x.type == y.type:
			return True
		# interface comparisons: either side may implement the other
		if self.table.is_interface(x.type) or self.table.is_interface(y.type):
			return self._assignable(x.type, y.type)[0] or self._assignable(y.type, x.type)[0]
		return False

	def _larger_untyped(self, a: TypeId, b: TypeId) -> TypeId:
		ak, bk = self.table.get(a).basic, self.table.get(b).basic
		if ak in NUMERIC_KINDS and bk in NUMERIC_KINDS:
			return self.table.basic(constants.larger_untyped(ak, bk))
		return a

	# --- index, slice, assertions, literals -------------------------------

	def _index(self, e: Index) -> Operand:
		x = self._value(self._expr(e.value))
		if x.invalid:
			self._expr(e.index)
			return self._invalid()
		if self.table.is_untyped(x.type):
			self._convert_untyped(x, self.table.default_type(x.type))
		ty = x.type
		via_pointer = False
		elem = self.table.pointer_elem(ty)
		if elem is not None and self._under_def(elem).kind is TypeKind.ARRAY:
			ty, via_pointer = elem, True
		td = self._under_def(ty)
		if td.kind is TypeKind.MAP:
			key = self._value(self._expr(e.index))
			if not key.invalid:
				self._assign(key, td.param_types[0], "map index")
			return Operand("mapindex", td.param_types[1])
		idx = self._value(self._expr(e.index))
		self._index_value(idx, e.index, "index")
		if td.kind is TypeKind.BASIC and td.basic in STRING_KINDS:
			return Operand("value", self.table.basic(BasicKind.UINT8))
		if td.kind is TypeKind.ARRAY:
			if idx.mode == "constant" and isinstance(idx.value, int) and td.length is not None and idx.value >= td.length:
				self._error(f"invalid argument: index {idx.value} out of bounds [0:{td.length}]", e.index)
			mode = "variable" if (x.mode == "variable" or via_pointer) else "value"
			return Operand(mode, td.param_types[0])
		if td.kind is TypeKind.SLICE:
			return Operand("variable", td.param_types[0])
		self._error(f"invalid operation: cannot index {expr_string(e.value)} ({self._describe(x)})", e)
		return self._invalid()

	def _index_value(self, op: Operand, expr: Expr, what: str) -> None:
		if op.invalid:
			return
		if self.table.is_untyped(op.type):
			if not self._convert_untyped(op, self.table.ensure_int()):
				self._error(f"invalid argument: {what} {expr_string(expr)} ({self._describe(op)}) must be integer", expr)
				return
		elif self.table.basic_kind(op.type) not in INTEGER_KINDS:
			self._error(f"invalid argument: {what} {expr_string(expr)} ({self._describe(op)}) must be integer", expr)
			return
		if op.mode == "constant" and isinstance(op.value, int) and op.value < 0:
			self._error(f"invalid argument: {what} {expr_string(expr)} (constant of type int) must not be negative", expr)

	def _slice_expr(self, e: SliceExpr) -> Operand:
		x = self._value(self._expr(e.value))
		for part in (e.low, e.high, e.max):
			if part is not None:
				self._index_value(self._value(self._expr(part)), part, "index")
		if x.invalid:
			return self._invalid()
		if self.table.is_untyped(x.type):
			self._convert_untyped(x, self.table.default_type(x.type))
		td = self._under_def(x.type)
		if td.kind is TypeKind.BASIC and td.basic in STRING_KINDS:
			if e.max is not None:
				self._error("invalid operation: 3-index slice of string", e)
				return self._invalid()
			return Operand("value", x.type)
		if td.kind is TypeKind.SLICE:
			return Operand("value", x.type)
		if td.kind is TypeKind.ARRAY:
			if x.mode != "variable":
				self._error(f"invalid operation: {expr_string(e.value)} (slice of unaddressable value)", e)
				return self._invalid()
			return Operand("value", self.table.new_slice(td.param_types[0]))
		elem = self.table.pointer_elem(x.type)
		if elem is not None and self._under_def(elem).kind is TypeKind.ARRAY:
			return Operand("value", self.table.new_slice(self._under_def(elem).param_types[0]))
		self._error(f"cannot slice {expr_string(e.value)} ({self._describe(x)})", e)
		return self._invalid()

	def _type_assert(self, e: TypeAssert) -> Operand:
		x = self._value(self._expr(e.value))
		target = self._type_expr(e.type)
		if x.invalid or self.table.is_invalid(target):
			return self._invalid()
		if not self.table.is_interface(x.type):
			self._error(f"invalid operation: {expr_string(e.value)} ({self._describe(x)}) is not an interface", e.value)
			return self._invalid()
		if not self.table.is_interface(target):
			name, wrong = missing_method(self.table, target, x.type)
			if name is not None:
				reason = f"method {name} has pointer receiver" if wrong else f"missing method {name}"
				self._error(
					f"impossible type assertion: {expr_string(e)}\n\t{self._tstr(target)} does not implement "
					f"{self._tstr(x.type)} ({reason})",
					e,
				)
				return self._invalid()
		return Operand("commaok", target)

	def _composite_lit(self, e: CompositeLit, hint: Optional[TypeId]) -> Operand:
		if e.type is None:
			if hint is None:
				self._error("invalid composite literal type: missing type", e)
				self._use([el.value if isinstance(el, KeyValue) else el for el in e.elements])
				return self._invalid()
			typ = hint
			elem = self.table.pointer_elem(hint)
			base = elem if elem is not None else hint
		elif isinstance(e.type, ArrayType) and e.type.length is None:
			elem_t = self._type_expr(e.type.elem)
			length = self._array_literal_length(e)
			typ = base = self.table.new_array(elem_t, length)
			self.info.types[e.type] = TypeAndValue(typ, "typexpr")
		else:
			typ = base = self._type_expr(e.type)
		if self.table.is_invalid(base):
			self._use([el.value if isinstance(el, KeyValue) else el for el in e.elements])
			return self._invalid()
		td = self._under_def(base)
		if td.kind is TypeKind.STRUCT:
			self._struct_lit(e, base, td)
		elif td.kind in (TypeKind.ARRAY, TypeKind.SLICE):
			self._array_lit(e, td)
		elif td.kind is TypeKind.MAP:
			for el in e.elements:
				if not isinstance(el, KeyValue):
					self._error("missing key in map literal", el)
					self._expr(el)
					continue
				self._element(el.key, td.param_types[0], "map literal")
				self._element(el.value, td.param_types[1], "map literal")
		else:
			self._error(f"invalid composite literal type {self._tstr(base)}", e)
			return self._invalid()
		return Operand("value", typ)

	def _array_literal_length(self, e: CompositeLit) -> int:
		idx = length = 0
		for el in e.elements:
			if isinstance(el, KeyValue):
				key = self._expr(el.key)
				if key.mode == "constant" and isinstance(key.value, int):
					idx = key.value
			idx += 1
			length = max(length, idx)
		return length

	def _struct_lit(self, e: CompositeLit, base: TypeId, td: TypeDef) -> None:
		if not e.elements:
			return
		keyed = [isinstance(el, KeyValue) for el in e.elements]
		tname = self._tstr(base)
		if all(keyed):
			seen: Set[str] = set()
			for el in e.elements:
				key = el.key
				if not isinstance(key, Name):
					self._error(f"invalid field name {expr_string(key)} in struct literal", key)
					self._expr(el.value)
					continue
				fd = next((f for f in td.fields if f.name == key.ident), None)
				if fd is None:
					self._error(f"unknown field {key.ident} in struct literal of type {tname}", key)
					self._expr(el.value)
					continue
				if not fd.name[:1].isupper() and fd.pkg != self._pkg.path:
					self._error(f"cannot refer to unexported field {key.ident} in struct literal of type {tname}", key)
				if key.ident in seen:
					self._error(f"duplicate field name {key.ident} in struct literal", key)
				seen.add(key.ident)
				self.info.uses[key] = fd.obj
				self._element(el.value, fd.type, "struct literal")
			return
		if any(keyed):
			self._error("mixture of field:value and value elements in struct literal", e)
			self._use([el.value if isinstance(el, KeyValue) else el for el in e.elements])
			return
		for el, fd in zip(e.elements, td.fields):
			if not fd.name[:1].isupper() and fd.pkg != self._pkg.path:
				self._error(f"implicit assignment to unexported field {fd.name} in struct literal of type {tname}", el)
			self._element(el, fd.type, "struct literal")
		if len(e.elements) < len(td.fields):
			self._error(f"too few values in struct literal of type {tname}", e)
		elif len(e.elements) > len(td.fields):
			self._error(f"too many values in struct literal of type {tname}", e.elements[len(td.fields)])
			self._use(e.elements[len(td.fields):])

	def _array_lit(self, e: CompositeLit, td: TypeDef) -> None:
		elem = td.param_types[0]
		idx = 0
		for el in e.elements:
			value = el
			if isinstance(el, KeyValue):
				key = self._value(self._expr(el.key))
				self._index_value(key, el.key, "index")
				if key.mode == "constant" and isinstance(key.value, int):
					idx = key.value
				value = el.value
			if td.kind is TypeKind.ARRAY and td.length is not None and idx >= td.length:
				self._error(f"index {idx} out of bounds [0:{td.length}]", el)
			self._element(value, elem, "array or slice literal")
			idx += 1

	def _element(self, value: Expr, want: TypeId, context: str) -> None:
		op = self._value(self._expr(value, want))
		if not op.invalid:
			self._assign(op, want, context)

	# --- types ------------------------------------------------------------

	def _type_expr(self, e: Expr, owner: Optional[TypeId] = None) -> TypeId:
		ty = self._raw_type(e, owner)
		self.info.types[e] = TypeAndValue(ty, "typexpr")
		return ty

	def _raw_type(self, e: Expr, owner: Optional[TypeId]) -> TypeId:
		invalid = self.table.invalid()
		if isinstance(e, Paren):
			return self._type_expr(e.value, owner)
		if isinstance(e, Name):
			obj = self._scope.lookup(e.ident)
			if obj is None:
				self._error(f"undefined: {e.ident}", e)
				return invalid
			self.info.uses[e] = obj
			if obj.kind is not ObjectKind.TYPE_NAME:
				self._error(f"{e.ident} is not a type", e)
				return invalid
			return self._obj_type(obj)
		if isinstance(e, Selector):
			obj = self._qualified(e)
			if obj is None:
				self._error(f"{expr_string(e)} is not a type", e)
				return invalid
			if obj.kind is ObjectKind.UNRESOLVED:
				return invalid
			if obj.kind is not ObjectKind.TYPE_NAME:
				self._error(f"{expr_string(e)} is not a type", e)
				return invalid
			return self._obj_type(obj)
		if isinstance(e, PointerType):
			return self.table.new_pointer(self._type_expr(e.elem))
		if isinstance(e, Unary) and e.op == "*":
			return self.table.new_pointer(self._type_expr(e.operand))
		if isinstance(e, SliceType):
			return self.table.new_slice(self._type_expr(e.elem))
		if isinstance(e, ArrayType):
			if e.length is None:
				self._error("invalid use of [...] array (outside a composite literal)", e)
				self._type_expr(e.elem)
				return invalid
			n = self._array_length(e.length)
			elem = self._type_expr(e.elem)
			return invalid if n is None else self.table.new_array(elem, n)
		if isinstance(e, MapType):
			key = self._type_expr(e.key)
			value = self._type_expr(e.value)
			if self.table.kind(self.table.underlying(key)) in (TypeKind.SLICE, TypeKind.MAP, TypeKind.SIGNATURE):
				self._error(f"invalid map key type {self._tstr(key)}", e.key)
			return self.table.new_map(key, value)
		if isinstance(e, ChanType):
			direction = {"send": ChanDir.SEND, "recv": ChanDir.RECV}.get(e.direction, ChanDir.BOTH)
			return self.table.new_chan(self._type_expr(e.elem), direction)
		if isinstance(e, FuncType):
			return self._signature(e)
		if isinstance(e, StructType):
			return self._struct_type(e, owner)
		if isinstance(e, InterfaceType):
			return self._interface_type(e, owner)
		self._error(f"{expr_string(e)} is not a type", e)
		return invalid

	def _array_length(self, length: Expr) -> Optional[int]:
		op = self._value(self._expr(length))
		if op.invalid:
			return None
		if op.mode != "constant" or constants.representable(op.value, BasicKind.INT) is None:
			self._error(f"array length {expr_string(length)} must be a non-negative integer constant", length)
			return None
		value = int(op.value)
		if value < 0:
			self._error(f"invalid array length {expr_string(length)}", length)
			return None
		if self.table.is_untyped(op.type):
			self._update_expr_type(length, self.table.ensure_int())
		return value

	def _signature(self, ft: FuncType) -> TypeId:
		params: List[TypeId] = []
		results: List[TypeId] = []
		for fields, out in ((ft.params, params), (ft.results, results)):
			for f in fields:
				ty = self._type_expr(f.type)
				if f.variadic:
					ty = self.table.new_slice(ty)
				out.extend([ty] * max(1, len(f.names)))
		variadic = bool(ft.params) and ft.params[-1].variadic
		sig = self.table.new_signature(params, results, variadic)
		self.info.types[ft] = TypeAndValue(sig, "typexpr")
		return sig

	def _struct_type(self, e: StructType, owner: Optional[TypeId]) -> TypeId:
		defs: List[FieldDef] = []
		idents: List[Optional[Name]] = []
		objs: List[Object] = []
		seen: Dict[str, Node] = {}
		for f in e.fields:
			ty = self._type_expr(f.type)
			if f.embedded:
				base = unparen(f.type)
				if isinstance(base, PointerType):
					base = unparen(base.elem)
				if isinstance(base, Name):
					entries = [(base.ident, None)]
				elif isinstance(base, Selector):
					entries = [(base.attr.ident, None)]
				else:
					self._error(f"invalid embedded field type {expr_string(f.type)}", f)
					continue
				if self.table.pointer_elem(ty) is not None and self.table.is_interface(self.table.pointer_elem(ty)):
					self._error("embedded field type cannot be a pointer to an interface", f)
			else:
				entries = [(n.ident, n) for n in f.names]
			for name, ident in entries:
				if name != "_" and name in seen:
					self._error(f"{name} redeclared", ident or f)
					continue
				seen[name] = f
				obj = self._new_object(
					ObjectKind.FIELD,
					name,
					type=ty,
					ident=ident,
					decl=f,
					owner=owner,
					embedded=f.embedded,
				)
				if ident is not None:
					self.info.defs[ident] = obj
				defs.append(FieldDef(name=name, type=ty, embedded=f.embedded, pkg=self._pkg.path, obj=obj))
				idents.append(ident)
				objs.append(obj)
		st = self.table.new_struct(defs)
		for ident, interned in zip(idents, self.table.get(st).fields):
			# structurally identical literals share one entry; keep defs consistent with it
			if ident is not None:
				self.info.defs[ident] = interned.obj
		for obj in objs:
			if obj.owner is None:
				obj.owner = st
		return st

	def _interface_type(self, e: InterfaceType, owner: Optional[TypeId]) -> TypeId:
		methods: List[MethodSig] = []
		embeddeds: List[TypeId] = []
		objs: List[Object] = []
		seen: Set[str] = set()
		for el in e.elements:
			if el.embedded:
				ty = self._type_expr(el.type)
				if not self.table.is_invalid(ty) and self._under_def(ty).kind is not TypeKind.INTERFACE:
					self._error(f"cannot use {expr_string(el.type)} as interface element (not an interface)", el)
					continue
				embeddeds.append(ty)
				continue
			ident = el.names[0]
			if ident.ident in seen:
				self._error(f"duplicate method {ident.ident}", ident)
				continue
			seen.add(ident.ident)
			sig = self._signature(el.type)
			obj = self._new_object(
				ObjectKind.METHOD,
				ident.ident,
				type=sig,
				ident=ident,
				decl=el,
				owner=owner,
				abstract=True,
			)
			self.info.defs[ident] = obj
			methods.append(MethodSig(name=ident.ident, sig=sig, pkg=self._pkg.path, obj=obj))
			objs.append(obj)
		it = self.table.new_interface(methods, embeddeds)
		interned = {m.name: m.obj for m in self.table.get(it).methods}
		for obj in objs:
			if interned.get(obj.name) is not obj and obj.ident is not None:
				self.info.defs[obj.ident] = interned[obj.name]
			if obj.owner is None:
				obj.owner = it
		return it

	# --- assignability ----------------------------------------------------

	def _assign(self, op: Operand, target: TypeId, context: str) -> bool:
		if op.invalid or self.table.is_invalid(target) or self.table.is_invalid(op.type):
			return False
		if self.table.is_untyped(op.type):
			before = self._describe(op)
			if self._convert_untyped(op, target):
				return True
			reason = ""
			if op.mode == "constant" and self._under_def(target).kind is TypeKind.BASIC:
				if self.table.basic_kind(target) in NUMERIC_KINDS and isinstance(op.value, (int, float)) and not isinstance(op.value, bool):
					reason = " (truncated)" if isinstance(op.value, float) else " (overflows)"
			self._error(
				f"cannot use {expr_string(op.expr) if op.expr else 'value'} ({before}) as "
				f"{self._tstr(target)} value in {context}{reason}",
				op.expr,
			)
			return False
		ok, reason = self._assignable(op.type, target)
		if not ok:
			self._error(
				f"cannot use {expr_string(op.expr) if op.expr else 'value'} ({self._describe(op)}) as "
				f"{self._tstr(target)} value in {context}{': ' + reason if reason else ''}",
				op.expr,
			)
		return ok

	def _assignable(self, v: TypeId, t: TypeId) -> Tuple[bool, str]:
		if v == t or self.table.is_invalid(v) or self.table.is_invalid(t):
			return True, ""
		vu, tu = self._under(v), self._under(t)
		if vu == tu and (not self._is_named(v) or not self._is_named(t)):
			return True, ""
		if self.table.kind(tu) is TypeKind.INTERFACE:
			name, wrong = missing_method(self.table, v, t)
			if name is None:
				return True, ""
			detail = f"method {name} has pointer receiver" if wrong else f"missing method {name}"
			return False, f"{self._tstr(v)} does not implement {self._tstr(t)} ({detail})"
		vd, td = self.table.get(vu), self.table.get(tu)
		if (
			vd.kind is TypeKind.CHAN
			and td.kind is TypeKind.CHAN
			and vd.chan_dir is ChanDir.BOTH
			and vd.param_types == td.param_types
			and (not self._is_named(v) or not self._is_named(t))
		):
			return True, ""
		return False, ""

	def _is_named(self, ty: TypeId) -> bool:
		return self.table.is_named(ty) or self.table.kind(ty) is TypeKind.BASIC

	def _convert_untyped(self, op: Operand, target: TypeId) -> bool:
		"""Give an untyped operand the type `target`; False if it does not fit."""
		if not self.table.is_untyped(op.type) or self.table.is_invalid(target):
			return True
		kind = self.table.get(op.type).basic
		target_def = self._under_def(target)
		if kind is BasicKind.UNTYPED_NIL:
			if target_def.kind in (TypeKind.POINTER, TypeKind.SLICE, TypeKind.MAP, TypeKind.CHAN, TypeKind.SIGNATURE):
				self._set_operand_type(op, target)
				return True
			return target_def.kind is TypeKind.INTERFACE
		if target_def.kind is TypeKind.INTERFACE:
			default = self.table.default_type(op.type)
			name, _ = missing_method(self.table, default, target)
			if name is not None:
				return False
			self._set_operand_type(op, default)
			return True
		if target_def.kind is not TypeKind.BASIC:
			return False
		tk = target_def.basic
		if self.table.is_untyped(target):
			return kind in NUMERIC_KINDS and tk in NUMERIC_KINDS or kind is tk
		if op.mode == "constant":
			value = constants.representable(op.value, tk)
			if value is None:
				return False
			op.value = value
		elif kind in BOOL_KINDS:
			if tk not in BOOL_KINDS:
				return False
		elif kind in NUMERIC_KINDS:
			if tk not in NUMERIC_KINDS:
				return False
		elif tk not in STRING_KINDS:
			return False
		self._set_operand_type(op, target)
		return True

	def _set_operand_type(self, op: Operand, ty: TypeId) -> None:
		op.type = ty
		self._update_expr_type(op.expr, ty)

	def _update_expr_type(self, expr: Optional[Expr], ty: TypeId) -> None:
		"""Record the final type of an untyped expression tree."""
		if expr is None:
			return
		tv = self.info.types.get(expr)
		if tv is None or not self.table.is_untyped(tv.type):
			return
		value = tv.value
		if tv.mode == "constant":
			kind = self.table.basic_kind(ty)
			if kind is not None:
				converted = constants.representable(value, kind)
				value = converted if converted is not None else value
		self.info.types[expr] = TypeAndValue(ty, tv.mode, value)
		if isinstance(expr, Paren):
			self._update_expr_type(expr.value, ty)
		elif isinstance(expr, Unary):
			self._update_expr_type(expr.operand, ty)
		elif isinstance(expr, Binary):
			if expr.op in _COMPARISONS:
				return
			self._update_expr_type(expr.left, ty)
			if expr.op not in _SHIFTS:
				self._update_expr_type(expr.right, ty)

	# --- helpers ----------------------------------------------------------

	def _value(self, op: Operand) -> Operand:
		"""Require a single value; reports and returns an invalid operand otherwise."""
		if op.invalid:
			return op
		text = expr_string(op.expr) if op.expr is not None else "expression"
		if op.mode == "typexpr":
			self._error(f"{text} (type) is not an expression", op.expr)
			return self._invalid()
		if op.mode == "builtin":
			self._error(f"{text} (built-in function {op.builtin}) must be called", op.expr)
			return self._invalid()
		if op.mode == "novalue":
			self._error(f"{text} (no value) used as value", op.expr)
			return self._invalid()
		if self.table.kind(op.type) is TypeKind.TUPLE:
			self._error(f"multiple-value {text} (value of type {self._tstr(op.type)}) in single-value context", op.expr)
			return self._invalid()
		return op

	def _describe(self, op: Operand) -> str:
		tname = self._tstr(op.type)
		if op.mode == "constant":
			if self.table.is_untyped(op.type):
				return f"{tname} constant"
			return f"constant {constants.format_value(op.value)} of type {tname}"
		if self.table.get(op.type).basic is BasicKind.UNTYPED_NIL:
			return "untyped nil"
		if op.mode == "variable":
			return f"variable of type {tname}"
		return f"value of type {tname}"

	def _tstr(self, ty: TypeId) -> str:
		return self.info.type_string(ty, self._pkg.path if self._pkg is not None else None)

	def _invalid(self) -> Operand:
		return Operand(INVALID, self.table.invalid())

	def _new_object(self, kind: ObjectKind, name: str, **kwargs: Any) -> Object:
		return Object(kind=kind, name=name, pkg=self._pkg.path, external=self._pkg.external, **kwargs)

	def _declare(self, scope: Scope, obj: Object, ident: Optional[Name]) -> None:
		if obj.name == "_":
			return
		if scope.insert(obj) is not None:
			self._error(f"{obj.name} redeclared in this block", ident)

	def _declare_var(self, name: Name, ty: TypeId) -> Object:
		obj = self._new_object(ObjectKind.VARIABLE, name.ident, type=ty, ident=name)
		self.info.defs[name] = obj
		if name.ident != "_" and self._scope.insert(obj) is not None:
			self._error(f"duplicate argument {name.ident}", name)
		return obj

	def _save(self) -> tuple:
		return (self._pkg, self._scope, self._ctx, self._iota)

	def _restore(self, saved: tuple) -> None:
		self._pkg, self._scope, self._ctx, self._iota = saved

	def _error(self, message: str, node: Optional[Node | Span] = None) -> None:
		if isinstance(node, Span):
			span = node
		elif node is not None:
			span = node.span
		else:
			span = Span()
		self.diagnostics.append(Diagnostic(message=message, phase="typecheck", severity="error", span=span))


def _has_named(fields: Sequence[Field]) -> bool:
	return any(f.names for f in fields)


def _has_break(stmts: Sequence[Stmt]) -> bool:
	"""True when a `break` in `stmts` targets the enclosing statement."""
	stack: List[Node] = list(stmts)
	while stack:
		node = stack.pop()
		if isinstance(node, BranchStmt) and node.keyword == "break":
			return True
		if isinstance(node, (ForStmt, RangeStmt, SwitchStmt, TypeSwitchStmt, FuncLit)):
			continue
		stack.extend(iter_child_nodes(node))
	return False


def _contains_call(expr: Expr) -> bool:
	return any(isinstance(n, Call) or (isinstance(n, Unary) and n.op == "<-") for n in walk(expr))


def _closing(block: Block) -> Span:
	span = block.span
	if not span.known:
		return span
	return Span(
		file=span.file,
		start=span.end - 1,
		end=span.end,
		line=span.end_line,
		column=(span.end_column - 1) if span.end_column else None,
	)


def check(units: Sequence[SourceUnit], importer: Optional[Importer] = None) -> TypeInfo:
	"""Type-check `units` as one closed set; raises TypeCheckError."""
	return Checker(importer).check(units)


__all__ = ["Checker", "Operand", "check"]
