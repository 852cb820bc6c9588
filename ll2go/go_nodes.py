# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Go syntax tree produced by the decompiler.

Node names follow Go's own `go/ast` package so the printer and the tests read
like Go tooling. Only the subset the decompiler emits is modelled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


# Base node kinds

class GoNode:
	"""Base class for all Go nodes."""
	pass


class Expr(GoNode):
	"""Base class for expressions (type expressions included, as in go/ast)."""
	pass


class Stmt(GoNode):
	"""Base class for statements."""
	pass


class Decl(GoNode):
	"""Base class for top-level declarations."""
	pass


# Expressions

@dataclass
class Ident(Expr):
	name: str


@dataclass
class BasicLit(Expr):
	"""Literal; kind is one of INT, FLOAT, STRING."""
	kind: str
	value: str


@dataclass
class CompositeLit(Expr):
	type: Expr
	elts: List[Expr] = field(default_factory=list)


@dataclass
class ParenExpr(Expr):
	x: Expr


@dataclass
class SelectorExpr(Expr):
	x: Expr
	sel: str


@dataclass
class StarExpr(Expr):
	"""Pointer type (*T) or pointer indirection (*p)."""
	x: Expr


@dataclass
class UnaryExpr(Expr):
	op: str
	x: Expr


@dataclass
class BinaryExpr(Expr):
	x: Expr
	op: str
	y: Expr


@dataclass
class CallExpr(Expr):
	fun: Expr
	args: List[Expr] = field(default_factory=list)


@dataclass
class Ellipsis(Expr):
	"""Variadic parameter type (...T)."""
	elt: Expr


# Type expressions

@dataclass
class Field(GoNode):
	names: List[str]
	type: Expr


@dataclass
class FuncType(Expr):
	params: List[Field] = field(default_factory=list)
	results: List[Field] = field(default_factory=list)


@dataclass
class StructType(Expr):
	fields: List[Field] = field(default_factory=list)


@dataclass
class ArrayType(Expr):
	len: Expr
	elt: Expr


# Statements

@dataclass
class AssignStmt(Stmt):
	lhs: List[Expr]
	tok: str
	rhs: List[Expr]


@dataclass
class ExprStmt(Stmt):
	x: Expr


@dataclass
class BlockStmt(Stmt):
	list: List[Stmt] = field(default_factory=list)


@dataclass
class IfStmt(Stmt):
	cond: Expr
	body: BlockStmt
	else_: Optional[Stmt] = None


@dataclass
class ForStmt(Stmt):
	"""`for cond { body }`; an absent cond is an infinite loop."""
	cond: Optional[Expr]
	body: BlockStmt


@dataclass
class BranchStmt(Stmt):
	tok: str  # "break" | "continue"


@dataclass
class ReturnStmt(Stmt):
	results: List[Expr] = field(default_factory=list)


@dataclass
class ValueSpec(GoNode):
	names: List[str]
	type: Optional[Expr] = None
	values: List[Expr] = field(default_factory=list)


@dataclass
class TypeSpec(GoNode):
	name: str
	type: Expr


@dataclass
class GenDecl(Decl):
	"""Generic declaration: tok is one of type, var."""
	tok: str
	specs: List[GoNode] = field(default_factory=list)


@dataclass
class DeclStmt(Stmt):
	decl: GenDecl


# Declarations

@dataclass
class FuncDecl(Decl):
	name: Ident
	type: FuncType
	body: Optional[BlockStmt] = None


@dataclass
class File(GoNode):
	package: str
	imports: List[str] = field(default_factory=list)
	decls: List[Decl] = field(default_factory=list)


def assign(lhs: Expr, rhs: Expr) -> AssignStmt:
	"""Plain `lhs = rhs` assignment."""
	return AssignStmt(lhs=[lhs], tok="=", rhs=[rhs])


def negate(cond: Expr) -> Expr:
	"""Logical negation of a condition; double negation is folded."""
	if isinstance(cond, UnaryExpr) and cond.op == "!":
		inner = cond.x
		if isinstance(inner, ParenExpr):
			return inner.x
		return inner
	if isinstance(cond, (Ident, CallExpr, ParenExpr, SelectorExpr)):
		return UnaryExpr(op="!", x=cond)
	return UnaryExpr(op="!", x=ParenExpr(cond))


__all__ = [
	"GoNode", "Expr", "Stmt", "Decl",
	"Ident", "BasicLit", "CompositeLit", "ParenExpr", "SelectorExpr",
	"StarExpr", "UnaryExpr", "BinaryExpr", "CallExpr", "Ellipsis",
	"Field", "FuncType", "StructType", "ArrayType",
	"AssignStmt", "ExprStmt", "BlockStmt", "IfStmt", "ForStmt",
	"BranchStmt", "ReturnStmt", "ValueSpec", "TypeSpec",
	"GenDecl", "DeclStmt",
	"FuncDecl", "File",
	"assign", "negate",
]
