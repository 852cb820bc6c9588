# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Go AST → Go source text.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Output follows gofmt's layout: tab indentation, opening braces on the same
line, `} else {`, one blank line between top-level declarations, grouped
imports. Parentheses are inserted only where Go's operator precedence needs
them; explicit ParenExpr nodes are kept as written.
"""

from __future__ import annotations

from typing import Dict, List

from ll2go.go_nodes import (
	ArrayType,
	AssignStmt,
	BasicLit,
	BinaryExpr,
	BlockStmt,
	BranchStmt,
	CallExpr,
	CompositeLit,
	DeclStmt,
	Ellipsis,
	Expr,
	ExprStmt,
	Field,
	File,
	ForStmt,
	FuncDecl,
	FuncType,
	GenDecl,
	GoNode,
	Ident,
	IfStmt,
	ParenExpr,
	ReturnStmt,
	SelectorExpr,
	StarExpr,
	Stmt,
	StructType,
	TypeSpec,
	UnaryExpr,
	ValueSpec,
)

# Binary operator precedence (go/token).
_PRECEDENCE: Dict[str, int] = {
	"||": 1,
	"&&": 2,
	"==": 3, "!=": 3, "<": 3, "<=": 3, ">": 3, ">=": 3,
	"+": 4, "-": 4, "|": 4, "^": 4,
	"*": 5, "/": 5, "%": 5, "<<": 5, ">>": 5, "&": 5, "&^": 5,
}

_UNARY_PRECEDENCE = 6


def _prec(expr: Expr) -> int:
	if isinstance(expr, BinaryExpr):
		return _PRECEDENCE[expr.op]
	if isinstance(expr, (UnaryExpr, StarExpr)):
		return _UNARY_PRECEDENCE
	return 7


class GoPrinter:
	"""Render Go nodes; statements accumulate in `lines`."""

	def __init__(self) -> None:
		self.lines: List[str] = []

	# ------------------------------------------------------------------
	# Expressions
	# ------------------------------------------------------------------

	def expr(self, node: Expr) -> str:
		if isinstance(node, Ident):
			return node.name
		if isinstance(node, BasicLit):
			return node.value
		if isinstance(node, ParenExpr):
			return f"({self.expr(node.x)})"
		if isinstance(node, SelectorExpr):
			return f"{self._operand(node.x)}.{node.sel}"
		if isinstance(node, StarExpr):
			return "*" + self._operand(node.x, _UNARY_PRECEDENCE)
		if isinstance(node, UnaryExpr):
			return node.op + self._operand(node.x, _UNARY_PRECEDENCE)
		if isinstance(node, BinaryExpr):
			prec = _PRECEDENCE[node.op]
			left = self._operand(node.x, prec)
			# Go binary operators associate left: an equal-precedence right
			# operand needs parentheses.
			right = self._operand(node.y, prec + 1)
			return f"{left} {node.op} {right}"
		if isinstance(node, CallExpr):
			fun = node.fun
			fun_text = self.expr(fun)
			if isinstance(fun, (StarExpr, FuncType, UnaryExpr)):
				fun_text = f"({fun_text})"
			return f"{fun_text}({', '.join(self.expr(arg) for arg in node.args)})"
		if isinstance(node, CompositeLit):
			return f"{self.expr(node.type)}{{{', '.join(self.expr(e) for e in node.elts)}}}"
		if isinstance(node, Ellipsis):
			return "..." + self.expr(node.elt)
		if isinstance(node, ArrayType):
			return f"[{self.expr(node.len)}]{self.expr(node.elt)}"
		if isinstance(node, FuncType):
			return "func" + self._signature(node)
		if isinstance(node, StructType):
			if not node.fields:
				return "struct{}"
			return "struct{ " + "; ".join(self._field(f) for f in node.fields) + " }"
		raise TypeError(f"cannot print expression {type(node).__name__}")

	def _operand(self, node: Expr, prec: int = 7) -> str:
		text = self.expr(node)
		if _prec(node) < prec:
			return f"({text})"
		return text

	def _field(self, field: Field) -> str:
		type_text = self.expr(field.type)
		if field.names:
			return f"{', '.join(field.names)} {type_text}"
		return type_text

	def _signature(self, typ: FuncType) -> str:
		params = ", ".join(self._field(f) for f in typ.params)
		if not typ.results:
			return f"({params})"
		if len(typ.results) == 1 and not typ.results[0].names:
			return f"({params}) {self.expr(typ.results[0].type)}"
		return f"({params}) ({', '.join(self._field(f) for f in typ.results)})"

	# ------------------------------------------------------------------
	# Statements
	# ------------------------------------------------------------------

	def stmt(self, node: Stmt, depth: int) -> None:
		pad = "\t" * depth
		if isinstance(node, AssignStmt):
			lhs = ", ".join(self.expr(e) for e in node.lhs)
			rhs = ", ".join(self.expr(e) for e in node.rhs)
			self.lines.append(f"{pad}{lhs} {node.tok} {rhs}")
		elif isinstance(node, ExprStmt):
			self.lines.append(pad + self.expr(node.x))
		elif isinstance(node, DeclStmt):
			self.lines.append(pad + self._gen_decl_line(node.decl))
		elif isinstance(node, ReturnStmt):
			if node.results:
				self.lines.append(f"{pad}return {', '.join(self.expr(e) for e in node.results)}")
			else:
				self.lines.append(pad + "return")
		elif isinstance(node, BranchStmt):
			self.lines.append(pad + node.tok)
		elif isinstance(node, BlockStmt):
			self.lines.append(pad + "{")
			self.block_body(node, depth + 1)
			self.lines.append(pad + "}")
		elif isinstance(node, IfStmt):
			self._if(node, depth, pad + "if ")
		elif isinstance(node, ForStmt):
			head = "for {" if node.cond is None else f"for {self.expr(node.cond)} {{"
			self.lines.append(pad + head)
			self.block_body(node.body, depth + 1)
			self.lines.append(pad + "}")
		else:
			raise TypeError(f"cannot print statement {type(node).__name__}")

	def _if(self, node: IfStmt, depth: int, prefix: str) -> None:
		pad = "\t" * depth
		self.lines.append(f"{prefix}{self.expr(node.cond)} {{")
		self.block_body(node.body, depth + 1)
		if node.else_ is None:
			self.lines.append(pad + "}")
		elif isinstance(node.else_, IfStmt):
			self._if(node.else_, depth, pad + "} else if ")
		else:
			self.lines.append(pad + "} else {")
			else_body = node.else_ if isinstance(node.else_, BlockStmt) else BlockStmt([node.else_])
			self.block_body(else_body, depth + 1)
			self.lines.append(pad + "}")

	def block_body(self, block: BlockStmt, depth: int) -> None:
		for stmt in block.list:
			self.stmt(stmt, depth)

	# ------------------------------------------------------------------
	# Declarations
	# ------------------------------------------------------------------

	def _spec(self, spec: GoNode) -> str:
		if isinstance(spec, ValueSpec):
			text = ", ".join(spec.names)
			if spec.type is not None:
				text += " " + self.expr(spec.type)
			if spec.values:
				text += " = " + ", ".join(self.expr(v) for v in spec.values)
			return text
		if isinstance(spec, TypeSpec):
			return f"{spec.name} {self._type_decl_body(spec.type)}"
		raise TypeError(f"cannot print spec {type(spec).__name__}")

	def _type_decl_body(self, typ: Expr) -> str:
		if isinstance(typ, StructType) and typ.fields:
			fields = "".join(f"\n\t{self._field(f)}" for f in typ.fields)
			return f"struct {{{fields}\n}}"
		return self.expr(typ)

	def _gen_decl_line(self, decl: GenDecl) -> str:
		if len(decl.specs) == 1:
			return f"{decl.tok} {self._spec(decl.specs[0])}"
		inner = "".join(f"\n\t{self._spec(s)}" for s in decl.specs)
		return f"{decl.tok} ({inner}\n)"

	def func_decl(self, decl: FuncDecl) -> None:
		head = f"func {decl.name.name}{self._signature(decl.type)}"
		if decl.body is None:
			self.lines.append(head)
			return
		self.lines.append(head + " {")
		self.block_body(decl.body, 1)
		self.lines.append("}")

	def file(self, node: File) -> None:
		self.lines.append(f"package {node.package}")
		if node.imports:
			self.lines.append("")
			if len(node.imports) == 1:
				self.lines.append(f'import "{node.imports[0]}"')
			else:
				self.lines.append("import (")
				self.lines.extend(f'\t"{path}"' for path in node.imports)
				self.lines.append(")")
		for decl in node.decls:
			self.lines.append("")
			if isinstance(decl, FuncDecl):
				self.func_decl(decl)
			elif isinstance(decl, GenDecl):
				self.lines.extend(self._gen_decl_line(decl).split("\n"))
			else:
				raise TypeError(f"cannot print declaration {type(decl).__name__}")

	def render(self) -> str:
		return "\n".join(self.lines) + "\n"


def format_file(node: File) -> str:
	"""Render a whole Go source file."""
	printer = GoPrinter()
	printer.file(node)
	return printer.render()


def format_node(node: GoNode) -> str:
	"""Render a single expression, statement or declaration (no trailing newline)."""
	printer = GoPrinter()
	if isinstance(node, Expr):
		return printer.expr(node)
	if isinstance(node, FuncDecl):
		printer.func_decl(node)
	elif isinstance(node, GenDecl):
		return printer._gen_decl_line(node)
	elif isinstance(node, Stmt):
		printer.stmt(node, 0)
	else:
		raise TypeError(f"cannot print {type(node).__name__}")
	return "\n".join(printer.lines)


__all__ = ["GoPrinter", "format_file", "format_node"]
