# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
lark front end for the Go subset.

The grammar is LALR; Go's automatic semicolons and the `{` that opens an
if/for/switch body are handled by the `GoTerminators` postlexer so the grammar
itself stays free of newline handling. `_TreeBuilder` turns the lark parse tree
into `callscope.parser.ast` nodes, each carrying an exact character Span.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from callscope.core.errors import ParseError
from callscope.core.span import Span

from .ast import (
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
	File,
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
)
from . import printer

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()


class GoTerminators:
	"""
	Postlexer implementing Go's semicolon insertion and body-brace marking.

	A newline (or a block comment spanning lines, or end of input) becomes a
	SEMI when the line's final token is an identifier, a literal, one of the
	keywords break/continue/fallthrough/return, `++`, `--`, or a closing
	bracket.

	`if`/`for`/`switch` push a header marker at the current nesting depth; the
	first `{` back at that depth opens the body and is retyped LBODY. `func`,
	`struct` and `interface` push a shield marker so their own `{` stays a
	plain LBRACE even inside a header. A slice, array or map type (`map`, or a
	`[` that does not follow an operand) pushes a literal marker for the same
	reason; the `(` of a conversion such as `[]byte(s)` drops it again.
	"""

	always_accept = ("NEWLINE", "COMMENT")

	TERMINABLE = {
		"NAME",
		"INT",
		"FLOAT",
		"STRING",
		"RAW_STRING",
		"RUNE",
		"BREAK",
		"CONTINUE",
		"FALLTHROUGH",
		"RETURN",
		"INC",
		"DEC",
		"RPAR",
		"RSQB",
		"RBRACE",
	}

	HEADERS = {"IF", "FOR", "SWITCH"}
	SHIELDS = {"FUNC", "STRUCT", "INTERFACE"}
	OPENERS = {"LPAR", "LSQB", "LBRACE", "LBODY"}
	CLOSERS = {"RPAR", "RSQB", "RBRACE"}

	def __init__(self) -> None:
		self._reset()

	def _reset(self) -> None:
		self.depth = 0
		self.markers: List[tuple[int, str]] = []
		self.can_terminate = False

	def process(self, stream):
		self._reset()
		last: Token | None = None
		for token in stream:
			ttype = token.type
			if ttype == "COMMENT":
				if "\n" not in token.value:
					continue
				ttype = "NEWLINE"
			if ttype == "NEWLINE":
				if self.can_terminate:
					yield self._semicolon(token)
				continue
			if ttype == "SEMI":
				self._end_statement()
			elif ttype == "LBRACE":
				token = self._mark_brace(token)
			yield token
			self._track(token.type)
			self.can_terminate = token.type in self.TERMINABLE
			last = token
		if self.can_terminate and last is not None:
			yield self._semicolon(last)

	def _semicolon(self, borrow: Token) -> Token:
		self._end_statement()
		self.can_terminate = False
		return Token.new_borrow_pos("SEMI", "\n", borrow)

	def _end_statement(self) -> None:
		# A bodiless func (declaration or func type) or a bare slice, array or
		# map type never reaches its `{`.
		while self.markers and self.markers[-1] in ((self.depth, "shield"), (self.depth, "literal")):
			self.markers.pop()

	def _mark_brace(self, token: Token) -> Token:
		if self.markers and self.markers[-1][0] == self.depth:
			_, kind = self.markers.pop()
			if kind == "header":
				return Token.new_borrow_pos("LBODY", token.value, token)
		return token

	def _track(self, ttype: str) -> None:
		# can_terminate still describes the previous token here.
		if ttype == "MAP" or (ttype == "LSQB" and not self.can_terminate):
			if self.markers[-1:] != [(self.depth, "literal")]:
				self.markers.append((self.depth, "literal"))
		elif ttype == "LPAR" and self.can_terminate and self.markers[-1:] == [(self.depth, "literal")]:
			self.markers.pop()
		if ttype in self.HEADERS:
			self.markers.append((self.depth, "header"))
		elif ttype == "FUNC" and self.markers[-1:] == [(self.depth, "literal")]:
			# `[]func() T{...}`: the only `{` belongs to the literal.
			pass
		elif ttype in self.SHIELDS:
			self.markers.append((self.depth, "shield"))
		elif ttype in self.OPENERS:
			self.depth += 1
		elif ttype in self.CLOSERS and self.depth:
			self.depth -= 1
			while self.markers and self.markers[-1][0] > self.depth:
				self.markers.pop()


_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
	postlex=GoTerminators(),
)


@dataclass(eq=False)
class SourceUnit:
	"""
	Mutable handle for one parsed source file.

	The tree is read by every pass; only the rewrite engine mutates call
	subtrees in place, recording each rewritten call in `rewrites`.
	"""

	filename: str
	source: str
	tree: File
	import_path: str
	rewrites: List[Call] = field(default_factory=list)

	@property
	def package_name(self) -> str:
		return self.tree.package.ident

	def render(self) -> bytes:
		return printer.render(self)

	def reload(self) -> "SourceUnit":
		"""Re-parse the rendered text in place so spans match the new source."""
		fresh = parse(self.render(), self.filename, self.import_path)
		self.source = fresh.source
		self.tree = fresh.tree
		self.rewrites = []
		return self


def parse(source: bytes | str, filename: str = "<input>", import_path: str | None = None) -> SourceUnit:
	"""Parse one source file; raises ParseError on malformed input."""
	if isinstance(source, bytes):
		try:
			text = source.decode("utf-8")
		except UnicodeDecodeError as err:
			raise _encoding_error(err, source, filename) from None
	else:
		text = source
	try:
		tree = _PARSER.parse(text)
	except UnexpectedInput as err:
		raise _parse_error(err, text, filename) from None
	file_node = _TreeBuilder(filename).build_file(tree)
	return SourceUnit(
		filename=filename,
		source=text,
		tree=file_node,
		import_path=import_path or file_node.package.ident,
	)


def _parse_error(err: UnexpectedInput, text: str, filename: str) -> ParseError:
	line = getattr(err, "line", None)
	column = getattr(err, "column", None)
	if line is None or line < 1:
		line, column = None, None
	if isinstance(err, UnexpectedToken):
		message = f"unexpected {_describe(err.token)}"
	elif isinstance(err, UnexpectedCharacters):
		message = f"unexpected character {err.char!r}"
	elif isinstance(err, UnexpectedEOF):
		message = "unexpected end of file"
	else:
		message = "syntax error"
	pos = getattr(err, "pos_in_stream", None)
	span = Span(file=filename, start=pos, end=pos, line=line, column=column)
	source_line = text.splitlines()[line - 1] if line and line <= len(text.splitlines()) else None
	return ParseError(message, span=span, text=source_line)


def _encoding_error(err: UnicodeDecodeError, source: bytes, filename: str) -> ParseError:
	prefix = source[: err.start].decode("utf-8")
	line_start = prefix.rfind("\n") + 1
	span = Span(
		file=filename,
		start=len(prefix),
		end=len(prefix),
		line=prefix.count("\n") + 1,
		column=len(prefix) - line_start + 1,
	)
	return ParseError("invalid UTF-8 encoding", span=span)


def _describe(token: Token) -> str:
	if token.type == "$END":
		return "end of file"
	if token.type == "SEMI" and token.value == "\n":
		return "newline"
	return repr(str(token.value))


class _TreeBuilder:
	"""Builds AST nodes from a lark tree; spans carry the unit's filename."""

	def __init__(self, filename: str) -> None:
		self.filename = filename

	def build_file(self, tree: Tree) -> File:
		children = _trees(tree)
		package_token = _token(children[0], "NAME")
		imports: List[ImportSpec] = []
		decls = []
		for child in children[1:]:
			kind = _name(child)
			if kind == "import_decl":
				imports.extend(self._build_import_spec(spec) for spec in _trees(child))
			elif kind == "func_decl":
				decls.append(self._build_func_decl(child))
			else:
				decls.append(self._build_gen_decl(child))
		return File(
			span=self._span(tree),
			package=self._ident(package_token),
			imports=imports,
			decls=decls,
		)

	# --- declarations -----------------------------------------------------

	def _build_import_spec(self, tree: Tree) -> ImportSpec:
		name = None
		for child in tree.children:
			if isinstance(child, Token) and child.type == "DOT":
				raise self._error("dot imports are not supported", child)
			if isinstance(child, Token) and child.type == "NAME":
				name = self._ident(child)
		path = ast.literal_eval(_token(tree, "STRING").value)
		return ImportSpec(span=self._span(tree), name=name, path=path)

	def _build_func_decl(self, tree: Tree) -> FuncDecl:
		recv = None
		body = None
		sig = None
		for child in _trees(tree):
			kind = _name(child)
			if kind == "receiver":
				fields = self._build_params(child.children[0])
				if len(fields) != 1 or len(fields[0].names) > 1:
					raise self._error("method has multiple receivers", child)
				recv = fields[0]
			elif kind == "signature":
				sig = self._build_signature(child, self._span(tree))
			elif kind == "block":
				body = self._build_block(child)
		if sig is None:
			raise self._error("function declaration has no signature", tree)
		return FuncDecl(
			span=self._span(tree),
			recv=recv,
			name=self._ident(_token(tree, "NAME")),
			type=sig,
			body=body,
		)

	def _build_gen_decl(self, tree: Tree) -> GenDecl:
		kind = _name(tree)
		specs = _trees(tree)
		if kind == "type_decl":
			built = [self._build_type_spec(spec) for spec in specs]
			return GenDecl(span=self._span(tree), keyword="type", specs=built)
		if kind == "var_decl":
			built = [self._build_value_spec(spec) for spec in specs]
			return GenDecl(span=self._span(tree), keyword="var", specs=built)
		built = []
		for iota, spec in enumerate(specs):
			value_spec = self._build_value_spec(spec, iota=iota)
			if iota == 0 and not value_spec.values:
				raise self._error("missing init expr for const declaration", spec)
			built.append(value_spec)
		return GenDecl(span=self._span(tree), keyword="const", specs=built)

	def _build_value_spec(self, tree: Tree, iota: int = 0) -> ValueSpec:
		trees = _trees(tree)
		names = [self._ident(tok) for tok in _tokens(trees[0], "NAME")]
		type_expr = None
		values: List[Expr] = []
		for child in trees[1:]:
			if _name(child) == "expr_list":
				values = self._build_expr_list(child)
			else:
				type_expr = self._build_type(child)
		return ValueSpec(span=self._span(tree), names=names, type=type_expr, values=values, iota=iota)

	def _build_type_spec(self, tree: Tree) -> TypeSpec:
		alias = any(isinstance(c, Token) and c.type == "ASSIGN" for c in tree.children)
		return TypeSpec(
			span=self._span(tree),
			name=self._ident(_token(tree, "NAME")),
			type=self._build_type(_trees(tree)[0]),
			alias=alias,
		)

	def _build_signature(self, tree: Tree, span: Span | None = None) -> FuncType:
		children = _trees(tree)
		params = self._build_params(children[0])
		results: List[Field] = []
		if len(children) > 1:
			result = children[1]
			if _name(result) == "params":
				results = self._build_params(result)
				if any(f.variadic for f in results):
					raise self._error("cannot use ... in result list", result)
			else:
				results = [Field(span=self._span(result), names=[], type=self._build_type(result))]
		return FuncType(span=span or self._span(tree), params=params, results=results)

	def _build_params(self, tree: Tree) -> List[Field]:
		"""
		Build a parameter list, applying Go's grouping rule: when any entry is
		named, bare identifiers are names sharing the next entry's type
		(`a, b int`); otherwise every entry is an unnamed type.
		"""
		raw = []
		for decl in _trees(tree):
			name_tok = next((c for c in decl.children if isinstance(c, Token) and c.type == "NAME"), None)
			variadic = any(isinstance(c, Token) and c.type == "ELLIPSIS" for c in decl.children)
			raw.append((decl, name_tok, variadic, _trees(decl)[0]))
		fields: List[Field] = []
		if any(name_tok is not None for _, name_tok, _, _ in raw):
			pending: List[Name] = []
			for decl, name_tok, variadic, type_tree in raw:
				if name_tok is None:
					if variadic or not _is_bare_name(type_tree):
						raise self._error("mixed named and unnamed parameters", decl)
					pending.append(self._ident(_token(type_tree, "NAME")))
					continue
				names = pending + [self._ident(name_tok)]
				pending = []
				fields.append(
					Field(
						span=Span.cover(names[0].span, self._span(decl)),
						names=names,
						type=self._build_type(type_tree),
						variadic=variadic,
					)
				)
			if pending:
				raise self._error("mixed named and unnamed parameters", tree)
		else:
			for decl, _, variadic, type_tree in raw:
				fields.append(Field(span=self._span(decl), names=[], type=self._build_type(type_tree), variadic=variadic))
		for f in fields[:-1]:
			if f.variadic:
				raise self._error("can only use ... with final parameter in list", tree)
		if fields and fields[-1].variadic and len(fields[-1].names) > 1:
			raise self._error("can only use ... with final parameter in list", tree)
		return fields

	# --- types ------------------------------------------------------------

	def _build_type(self, tree: Tree) -> Expr:
		kind = _name(tree)
		span = self._span(tree)
		if kind == "type_name":
			names = _tokens(tree, "NAME")
			if len(names) == 1:
				return self._ident(names[0])
			return Selector(span=span, value=self._ident(names[0]), attr=self._ident(names[1]))
		if kind == "pointer_type":
			return PointerType(span=span, elem=self._build_type(_trees(tree)[0]))
		if kind == "slice_type":
			return SliceType(span=span, elem=self._build_type(_trees(tree)[0]))
		if kind == "array_type":
			trees = _trees(tree)
			if len(trees) == 1:
				return ArrayType(span=span, length=None, elem=self._build_type(trees[0]))
			return ArrayType(span=span, length=self._build_expr(trees[0]), elem=self._build_type(trees[1]))
		if kind == "map_type":
			key, value = _trees(tree)
			return MapType(span=span, key=self._build_type(key), value=self._build_type(value))
		if kind == "chan_type":
			send = any(isinstance(c, Token) and c.type == "ARROW" for c in tree.children)
			return ChanType(span=span, direction="send" if send else "both", elem=self._build_type(_trees(tree)[0]))
		if kind == "recv_chan_type":
			return ChanType(span=span, direction="recv", elem=self._build_type(_trees(tree)[0]))
		if kind == "func_type":
			return self._build_signature(_trees(tree)[0], span)
		if kind == "struct_type":
			return StructType(span=span, fields=[self._build_field(f) for f in _trees(tree)])
		if kind == "interface_type":
			return InterfaceType(span=span, elements=[self._build_iface_elem(e) for e in _trees(tree)])
		# array lengths and type-switch cases reach here with plain expressions
		return self._build_expr(tree)

	def _build_field(self, tree: Tree) -> Field:
		trees = _trees(tree)
		tag = None
		if trees and _name(trees[-1]) == "tag":
			tag = _unquote(trees[-1].children[0])
			trees = trees[:-1]
		if _name(trees[0]) == "ident_list":
			names = [self._ident(tok) for tok in _tokens(trees[0], "NAME")]
			return Field(span=self._span(tree), names=names, type=self._build_type(trees[1]), tag=tag)
		embedded = self._build_type(trees[0])
		if any(isinstance(c, Token) and c.type == "STAR" for c in tree.children):
			embedded = PointerType(span=Span.cover(self._span(tree), embedded.span), elem=embedded)
		return Field(span=self._span(tree), names=[], type=embedded, tag=tag)

	def _build_iface_elem(self, tree: Tree) -> Field:
		if _name(tree) == "iface_method":
			return Field(
				span=self._span(tree),
				names=[self._ident(_token(tree, "NAME"))],
				type=self._build_signature(_trees(tree)[0], self._span(tree)),
			)
		return Field(span=self._span(tree), names=[], type=self._build_type(_trees(tree)[0]))

	# --- statements -------------------------------------------------------

	def _build_block(self, tree: Tree) -> Block:
		return Block(span=self._span(tree), statements=self._build_stmt_list(_trees(tree)[0]))

	def _build_stmt_list(self, tree: Tree) -> List[Stmt]:
		return [self._build_stmt(child) for child in _trees(tree)]

	def _build_stmt(self, tree: Tree) -> Stmt:
		kind = _name(tree)
		span = self._span(tree)
		if kind == "expr_stmt":
			return ExprStmt(span=span, value=self._build_expr(_trees(tree)[0]))
		if kind == "send_stmt":
			chan, value = _trees(tree)
			return SendStmt(span=span, chan=self._build_expr(chan), value=self._build_expr(value))
		if kind == "incdec_stmt":
			op = next(c for c in tree.children if isinstance(c, Token) and c.type in {"INC", "DEC"})
			return IncDecStmt(span=span, target=self._build_expr(_trees(tree)[0]), op=op.value)
		if kind in {"assign_stmt", "short_var_decl"}:
			return self._build_assign(tree)
		if kind == "return_stmt":
			trees = _trees(tree)
			return ReturnStmt(span=span, values=self._build_expr_list(trees[0]) if trees else [])
		if kind == "go_stmt":
			return GoStmt(span=span, call=self._build_expr(_trees(tree)[0]))
		if kind == "defer_stmt":
			return DeferStmt(span=span, call=self._build_expr(_trees(tree)[0]))
		if kind == "branch_stmt":
			return BranchStmt(span=span, keyword=tree.children[0].value)
		if kind == "block":
			return self._build_block(tree)
		if kind == "if_stmt":
			return self._build_if(tree)
		if kind == "switch_stmt":
			return self._build_switch(tree)
		if kind in {"for_forever", "for_cond", "for_clause"}:
			return self._build_for(tree)
		if kind == "for_range":
			return self._build_range(tree)
		if kind in {"const_decl", "var_decl", "type_decl"}:
			return DeclStmt(span=span, decl=self._build_gen_decl(tree))
		raise ValueError(f"Unsupported statement node: {kind}")

	def _build_assign(self, tree: Tree) -> AssignStmt:
		lhs, rhs = _trees(tree)
		op = next(c for c in tree.children if isinstance(c, Token))
		targets = self._build_expr_list(lhs)
		if op.type == "DEFINE":
			for target in targets:
				if not isinstance(target, Name):
					raise self._error("non-name on left side of :=", lhs)
		return AssignStmt(span=self._span(tree), targets=targets, op=op.value, values=self._build_expr_list(rhs))

	def _build_if(self, tree: Tree) -> IfStmt:
		children = list(tree.children)
		body_idx = next(i for i, c in enumerate(children) if isinstance(c, Tree) and _name(c) == "body")
		header = children[1:body_idx]
		init = None
		if any(isinstance(c, Token) and c.type == "SEMI" for c in header):
			init = self._build_stmt(header[0])
		cond = self._build_expr(header[-1])
		else_stmt = None
		tail = [c for c in children[body_idx + 1:] if isinstance(c, Tree)]
		if tail:
			else_stmt = self._build_if(tail[0]) if _name(tail[0]) == "if_stmt" else self._build_block(tail[0])
		return IfStmt(
			span=self._span(tree),
			init=init,
			cond=cond,
			then_block=self._build_body(children[body_idx]),
			else_stmt=else_stmt,
		)

	def _build_body(self, tree: Tree) -> Block:
		# `body` is a block whose opening brace was retyped by the postlexer
		return Block(span=self._span(tree), statements=self._build_stmt_list(_trees(tree)[0]))

	def _build_switch(self, tree: Tree) -> Stmt:
		children = list(tree.children)
		lbody_idx = next(i for i, c in enumerate(children) if isinstance(c, Token) and c.type == "LBODY")
		header = children[1:lbody_idx]
		init = None
		tag_tree = None
		if any(isinstance(c, Token) and c.type == "SEMI" for c in header):
			init = self._build_stmt(header[0])
			if len(header) > 2:
				tag_tree = header[2]
		elif header:
			tag_tree = header[0]
		clauses = [self._build_case(c) for c in children[lbody_idx + 1:] if isinstance(c, Tree)]
		span = self._span(tree)
		if tag_tree is None:
			return SwitchStmt(span=span, init=init, tag=None, clauses=clauses)
		kind = _name(tag_tree)
		if kind == "expr_stmt":
			inner = _trees(tag_tree)[0]
			if _name(inner) == "type_guard":
				subject = self._build_expr(_trees(inner)[0])
				return TypeSwitchStmt(span=span, init=init, binding=None, subject=subject, clauses=clauses)
			return SwitchStmt(span=span, init=init, tag=self._build_expr(inner), clauses=clauses)
		if kind == "short_var_decl":
			lhs, rhs = _trees(tag_tree)
			lhs_items, rhs_items = _trees(lhs), _trees(rhs)
			if (
				len(lhs_items) == 1
				and len(rhs_items) == 1
				and _name(lhs_items[0]) == "name"
				and _name(rhs_items[0]) == "type_guard"
			):
				binding = self._ident(_token(lhs_items[0], "NAME"))
				subject = self._build_expr(_trees(rhs_items[0])[0])
				return TypeSwitchStmt(span=span, init=init, binding=binding, subject=subject, clauses=clauses)
		raise self._error("switch expression must be an expression", tag_tree)

	def _build_case(self, tree: Tree) -> CaseClause:
		trees = _trees(tree)
		if isinstance(tree.children[0], Token) and tree.children[0].type == "DEFAULT":
			return CaseClause(span=self._span(tree), exprs=None, body=self._build_stmt_list(trees[0]))
		return CaseClause(
			span=self._span(tree),
			exprs=self._build_expr_list(trees[0]),
			body=self._build_stmt_list(trees[1]),
		)

	def _build_for(self, tree: Tree) -> ForStmt:
		kind = _name(tree)
		body = self._build_body(tree.children[-1])
		span = self._span(tree)
		if kind == "for_forever":
			return ForStmt(span=span, init=None, cond=None, post=None, body=body)
		if kind == "for_cond":
			return ForStmt(span=span, init=None, cond=self._build_expr(tree.children[1]), post=None, body=body)
		segments: List[List[Tree]] = [[], [], []]
		idx = 0
		for child in tree.children[1:-1]:
			if isinstance(child, Token):
				if child.type == "SEMI":
					idx += 1
				continue
			segments[idx].append(child)
		init = self._build_stmt(segments[0][0]) if segments[0] else None
		cond = self._build_expr(segments[1][0]) if segments[1] else None
		post = self._build_stmt(segments[2][0]) if segments[2] else None
		if isinstance(post, AssignStmt) and post.define:
			raise self._error("cannot declare in post statement of for loop", segments[2][0])
		return ForStmt(span=span, init=init, cond=cond, post=post, body=body)

	def _build_range(self, tree: Tree) -> RangeStmt:
		clause = tree.children[1]
		body = self._build_body(tree.children[-1])
		trees = _trees(clause)
		targets: List[Expr] = []
		define = any(isinstance(c, Token) and c.type == "DEFINE" for c in clause.children)
		if len(trees) == 2:
			targets = self._build_expr_list(trees[0])
			if len(targets) > 2:
				raise self._error("range clause permits at most two iteration variables", trees[0])
			if define and not all(isinstance(t, Name) for t in targets):
				raise self._error("non-name on left side of :=", trees[0])
		return RangeStmt(
			span=self._span(tree),
			key=targets[0] if targets else None,
			value=targets[1] if len(targets) > 1 else None,
			define=define,
			expr=self._build_expr(trees[-1]),
			body=body,
		)

	# --- expressions ------------------------------------------------------

	def _build_expr_list(self, tree: Tree) -> List[Expr]:
		return [self._build_expr(child) for child in _trees(tree)]

	def _build_expr(self, tree: Tree) -> Expr:
		kind = _name(tree)
		span = self._span(tree)
		if kind == "name":
			return self._ident(tree.children[0])
		if kind in {"int_lit", "float_lit", "string_lit", "rune_lit"}:
			return Literal(span=span, kind=kind[: -len("_lit")], raw=tree.children[0].value)
		if kind == "paren":
			return Paren(span=span, value=self._build_expr(_trees(tree)[0]))
		if kind == "func_lit":
			sig, block = _trees(tree)
			return FuncLit(span=span, type=self._build_signature(sig, span), body=self._build_block(block))
		if kind == "binary":
			left, op, right = tree.children
			return Binary(span=span, op=op.value, left=self._build_expr(left), right=self._build_expr(right))
		if kind == "unary":
			op, operand = tree.children
			return Unary(span=span, op=op.value, operand=self._build_expr(operand))
		if kind == "selector":
			return Selector(
				span=span,
				value=self._build_expr(tree.children[0]),
				attr=self._ident(tree.children[-1]),
			)
		if kind == "type_assert":
			value, type_tree = _trees(tree)
			return TypeAssert(span=span, value=self._build_expr(value), type=self._build_type(type_tree))
		if kind == "type_guard":
			raise self._error("use of .(type) outside type switch", tree)
		if kind == "index":
			value, index = _trees(tree)
			return Index(span=span, value=self._build_expr(value), index=self._build_expr(index))
		if kind == "slice_expr":
			return self._build_slice(tree)
		if kind == "call":
			func, *args = _trees(tree)
			ellipsis = any(isinstance(c, Token) and c.type == "ELLIPSIS" for c in tree.children)
			return Call(
				span=span,
				func=self._build_expr(func),
				args=[self._build_expr(arg) for arg in args],
				ellipsis=ellipsis,
			)
		if kind == "composite_lit":
			type_tree, *elements = _trees(tree)
			return CompositeLit(
				span=span,
				type=self._build_type(type_tree),
				elements=[self._build_element(e) for e in elements],
			)
		if kind in {
			"type_name",
			"slice_type",
			"array_type",
			"map_type",
			"chan_type",
			"struct_type",
			"interface_type",
		}:
			return self._build_type(tree)
		raise ValueError(f"Unsupported expression node: {kind}")

	def _build_slice(self, tree: Tree) -> SliceExpr:
		children = list(tree.children)
		value = self._build_expr(children[0])
		parts: List[Optional[Expr]] = [None, None, None]
		idx = 0
		for child in children[2:-1]:
			if isinstance(child, Token):
				if child.type == "COLON":
					idx += 1
				continue
			parts[idx] = self._build_expr(child)
		return SliceExpr(span=self._span(tree), value=value, low=parts[0], high=parts[1], max=parts[2])

	def _build_element(self, tree: Tree) -> Expr:
		trees = _trees(tree)
		if len(trees) == 2:
			key, value = trees
			return KeyValue(span=self._span(tree), key=self._build_elem_value(key), value=self._build_elem_value(value))
		return self._build_elem_value(trees[0])

	def _build_elem_value(self, tree: Tree) -> Expr:
		if _name(tree) == "lit_value":
			return CompositeLit(
				span=self._span(tree),
				type=None,
				elements=[self._build_element(e) for e in _trees(tree)],
			)
		return self._build_expr(tree)

	# --- helpers ----------------------------------------------------------

	def _span(self, node: Tree | Token) -> Span:
		if isinstance(node, Tree):
			return Span.from_loc(node.meta, file=self.filename)
		return Span.from_loc(node, file=self.filename)

	def _ident(self, token: Token) -> Name:
		return Name(span=self._span(token), ident=token.value)

	def _error(self, message: str, node: Tree | Token) -> ParseError:
		return ParseError(message, span=self._span(node))


def _trees(tree: Tree) -> List[Tree]:
	return [child for child in tree.children if isinstance(child, Tree)]


def _tokens(tree: Tree, ttype: str) -> List[Token]:
	return [child for child in tree.children if isinstance(child, Token) and child.type == ttype]


def _token(tree: Tree, ttype: str) -> Token:
	return next(child for child in tree.children if isinstance(child, Token) and child.type == ttype)


def _is_bare_name(tree: Tree) -> bool:
	return _name(tree) == "type_name" and len(_tokens(tree, "NAME")) == 1


def _unquote(token: Token) -> str:
	if token.type == "RAW_STRING":
		return token.value[1:-1].replace("\r", "")
	return ast.literal_eval(token.value)


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)


__all__ = ["GoTerminators", "SourceUnit", "parse"]
