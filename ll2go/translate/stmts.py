# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Instruction and terminator → Go statement translation.

Each non-phi instruction becomes one statement, in instruction order:
`binding = expr(operands)` for value-producing instructions, `*p = v` for
stores and an expression statement for void calls. Phi instructions produce
nothing here; their assignments come from the phi resolver.

Terminators are only translated for the block that survives reduction; every
branch absorbed by a primitive contributes no statement.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from llvmlite import ir

from ll2go.errors import MalformedInput, UnsupportedConstruct
from ll2go.go_nodes import (
	BasicLit,
	BinaryExpr,
	BlockStmt,
	CallExpr,
	Expr,
	ExprStmt,
	Ident,
	IfStmt,
	ParenExpr,
	ReturnStmt,
	SelectorExpr,
	Stmt,
	assign,
	negate,
)
from ll2go.ir_nodes import (
	Alloca,
	BasicBlock,
	BinaryOp,
	Br,
	Call,
	Cast,
	CondBr,
	FCmp,
	GetElementPtr,
	ICmp,
	Instr,
	Load,
	Phi,
	Ret,
	Select,
	Store,
	Switch,
	Terminator,
	Unreachable,
	Value,
)
from ll2go.translate.types import is_bool, is_opaque_pointer
from ll2go.translate.values import ValueTranslator

_BINARY_OPS: Dict[str, str] = {
	"add": "+",
	"sub": "-",
	"mul": "*",
	"sdiv": "/",
	"srem": "%",
	"shl": "<<",
	"ashr": ">>",
	"and": "&",
	"or": "|",
	"xor": "^",
	"fadd": "+",
	"fsub": "-",
	"fmul": "*",
	"fdiv": "/",
}

# Signedness lives in the operation: operands are reinterpreted as unsigned.
_UNSIGNED_BINARY_OPS: Dict[str, str] = {
	"udiv": "/",
	"urem": "%",
	"lshr": ">>",
}

_BOOL_BINARY_OPS: Dict[str, str] = {
	"and": "&&",
	"or": "||",
	"xor": "!=",
}

_ICMP_OPS: Dict[str, str] = {
	"eq": "==",
	"ne": "!=",
	"sgt": ">",
	"sge": ">=",
	"slt": "<",
	"sle": "<=",
}

_ICMP_UNSIGNED_OPS: Dict[str, str] = {
	"ugt": ">",
	"uge": ">=",
	"ult": "<",
	"ule": "<=",
}

# Go comparisons are ordered: they are false when either operand is NaN,
# except != which is true.
_FCMP_ORDERED_OPS: Dict[str, str] = {
	"oeq": "==",
	"ogt": ">",
	"oge": ">=",
	"olt": "<",
	"ole": "<=",
}

# Unordered predicates are the negation of the complementary ordered one.
_FCMP_UNORDERED_OPS: Dict[str, str] = {
	"ugt": "<=",
	"uge": "<",
	"ult": ">=",
	"ule": ">",
}


def _call(name: str, *args: Expr) -> CallExpr:
	return CallExpr(fun=Ident(name), args=list(args))


def _convert(typ: Expr, value: Expr) -> CallExpr:
	"""Go conversion T(v); the printer parenthesizes pointer types."""
	return CallExpr(fun=typ, args=[value])


class StatementTranslator:
	"""Translate the instructions and terminators of one function."""

	def __init__(self, values: ValueTranslator) -> None:
		self.values = values
		self.types = values.types
		self._handlers: Dict[type, Callable[[Instr], List[Stmt]]] = {
			BinaryOp: self._binary,
			ICmp: self._icmp,
			FCmp: self._fcmp,
			Alloca: self._alloca,
			Load: self._load,
			Store: self._store,
			Cast: self._cast,
			Call: self._call,
			Select: self._select,
			GetElementPtr: self._gep,
			Phi: self._phi,
		}

	# ------------------------------------------------------------------
	# Public API
	# ------------------------------------------------------------------

	def block(self, block: BasicBlock) -> List[Stmt]:
		"""Statements for a block's instructions, in order (terminator excluded)."""
		stmts: List[Stmt] = []
		for instr in block.instructions:
			stmts.extend(self.instruction(instr))
		return stmts

	def instruction(self, instr: Instr) -> List[Stmt]:
		handler = self._handlers.get(type(instr))
		if handler is None:
			raise UnsupportedConstruct(f"support for instruction {type(instr).__name__} not yet implemented")
		return handler(instr)

	def condition(self, term: CondBr) -> Expr:
		"""Translated test of a conditional branch."""
		return self.values.expr(term.cond)

	def exit_statement(self, term: Terminator | None) -> List[Stmt]:
		"""
		Explicit control statement for a terminator that leaves the function.

		Branches cannot be translated here: if one survives to the end of
		reduction, its target label no longer exists.
		"""
		if isinstance(term, Ret):
			if term.value is None:
				return [ReturnStmt(results=[])]
			return [ReturnStmt(results=[self.values.expr(term.value)])]
		if isinstance(term, Unreachable):
			return [ExprStmt(_call("panic", BasicLit("STRING", '"unreachable"')))]
		if isinstance(term, (Br, CondBr)):
			raise MalformedInput(f"control leaves the function body through a branch ({type(term).__name__})")
		if isinstance(term, Switch):
			raise UnsupportedConstruct("support for terminator Switch not yet implemented")
		if term is None:
			raise MalformedInput("block has no terminator")
		raise UnsupportedConstruct(f"support for terminator {type(term).__name__} not yet implemented")

	# ------------------------------------------------------------------
	# Instruction handlers
	# ------------------------------------------------------------------

	def _dest(self, instr: Instr) -> Ident:
		return self.values.local(instr.dest)

	def _unsigned(self, value: Value, typ: ir.Type) -> Expr:
		return _convert(self.types.go_type(typ, unsigned=True), self.values.expr(value))

	def _binary(self, instr: BinaryOp) -> List[Stmt]:
		left = self.values.expr(instr.left)
		right = self.values.expr(instr.right)
		if is_bool(instr.type) and instr.op in _BOOL_BINARY_OPS:
			rhs: Expr = BinaryExpr(left, _BOOL_BINARY_OPS[instr.op], right)
		elif instr.op in _BINARY_OPS:
			rhs = BinaryExpr(left, _BINARY_OPS[instr.op], right)
		elif instr.op in _UNSIGNED_BINARY_OPS:
			op = _UNSIGNED_BINARY_OPS[instr.op]
			unsigned = BinaryExpr(self._unsigned(instr.left, instr.type), op, self._unsigned(instr.right, instr.type))
			rhs = _convert(self.types.go_type(instr.type), unsigned)
		elif instr.op == "frem":
			self.types.imports.add("math")
			mod = SelectorExpr(Ident("math"), "Mod")
			if isinstance(instr.type, ir.FloatType):
				widened = [_convert(Ident("float64"), left), _convert(Ident("float64"), right)]
				rhs = _convert(Ident("float32"), CallExpr(mod, widened))
			else:
				rhs = CallExpr(mod, [left, right])
		else:
			raise UnsupportedConstruct(f"support for binary operator '{instr.op}' not yet implemented")
		return [assign(self._dest(instr), rhs)]

	def _icmp(self, instr: ICmp) -> List[Stmt]:
		if instr.pred in _ICMP_OPS:
			rhs = BinaryExpr(self.values.expr(instr.left), _ICMP_OPS[instr.pred], self.values.expr(instr.right))
		elif instr.pred in _ICMP_UNSIGNED_OPS:
			rhs = BinaryExpr(
				self._unsigned(instr.left, instr.type),
				_ICMP_UNSIGNED_OPS[instr.pred],
				self._unsigned(instr.right, instr.type),
			)
		else:
			raise UnsupportedConstruct(f"support for icmp predicate '{instr.pred}' not yet implemented")
		return [assign(self._dest(instr), rhs)]

	def _fcmp(self, instr: FCmp) -> List[Stmt]:
		left = self.values.expr(instr.left)
		right = self.values.expr(instr.right)
		pred = instr.pred
		if pred in _FCMP_ORDERED_OPS:
			rhs: Expr = BinaryExpr(left, _FCMP_ORDERED_OPS[pred], right)
		elif pred in _FCMP_UNORDERED_OPS:
			rhs = negate(BinaryExpr(left, _FCMP_UNORDERED_OPS[pred], right))
		elif pred == "une":
			rhs = BinaryExpr(left, "!=", right)
		elif pred == "one":
			rhs = BinaryExpr(BinaryExpr(left, "<", right), "||", BinaryExpr(left, ">", right))
		elif pred == "ueq":
			rhs = negate(BinaryExpr(BinaryExpr(left, "<", right), "||", BinaryExpr(left, ">", right)))
		elif pred == "ord":
			rhs = BinaryExpr(BinaryExpr(left, "==", left), "&&", BinaryExpr(right, "==", right))
		elif pred == "uno":
			rhs = BinaryExpr(BinaryExpr(left, "!=", left), "||", BinaryExpr(right, "!=", right))
		else:
			raise UnsupportedConstruct(f"support for fcmp predicate '{pred}' not yet implemented")
		return [assign(self._dest(instr), rhs)]

	def _alloca(self, instr: Alloca) -> List[Stmt]:
		if instr.count is not None:
			count = instr.count
			if not (isinstance(count, ir.Constant) and count.constant == 1):
				raise UnsupportedConstruct("support for dynamic alloca not yet implemented")
		return [assign(self._dest(instr), _call("new", self.types.go_type(instr.type)))]

	def _load(self, instr: Load) -> List[Stmt]:
		return [assign(self._dest(instr), self.values.deref(instr.ptr, instr.type))]

	def _store(self, instr: Store) -> List[Stmt]:
		return [assign(self.values.deref(instr.ptr, instr.type), self.values.expr(instr.value))]

	def _cast(self, instr: Cast) -> List[Stmt]:
		src_type = self.values.declared_type(instr.value)
		dest = self._dest(instr)
		value = self.values.expr(instr.value)
		to_type = instr.to_type
		op = instr.op

		if op in ("zext", "sext", "uitofp") and is_bool(src_type):
			# Go has no bool → number conversion.
			one = BasicLit("INT", "-1" if op == "sext" else "1")
			if op == "uitofp":
				one = BasicLit("FLOAT", "1.0")
			return [
				assign(dest, self.types.zero_value(to_type)),
				IfStmt(cond=value, body=BlockStmt([assign(self._dest(instr), one)])),
			]
		if op == "trunc" and is_bool(to_type):
			low = BinaryExpr(value, "&", BasicLit("INT", "1"))
			return [assign(dest, BinaryExpr(ParenExpr(low), "!=", BasicLit("INT", "0")))]

		go_to = self.types.go_type(to_type)
		if op in ("zext", "uitofp"):
			rhs: Expr = _convert(go_to, _convert(self.types.go_type(src_type, unsigned=True), value))
		elif op == "fptoui":
			rhs = _convert(go_to, _convert(self.types.go_type(to_type, unsigned=True), value))
		elif op in ("trunc", "sext", "fptrunc", "fpext", "fptosi", "sitofp"):
			rhs = _convert(go_to, value)
		elif op == "bitcast":
			if isinstance(to_type, ir.PointerType) and not is_opaque_pointer(to_type):
				value = self._unsafe_pointer(instr.value, value)
			rhs = _convert(go_to, value)
		elif op == "ptrtoint":
			rhs = _convert(go_to, _call("uintptr", self._unsafe_pointer(instr.value, value)))
		elif op == "inttoptr":
			self.types.imports.add("unsafe")
			ptr: Expr = _convert(SelectorExpr(Ident("unsafe"), "Pointer"), _call("uintptr", value))
			rhs = ptr if is_opaque_pointer(to_type) else _convert(go_to, ptr)
		else:
			raise UnsupportedConstruct(f"support for cast '{op}' not yet implemented")
		return [assign(dest, rhs)]

	def _unsafe_pointer(self, source: Value, value: Expr) -> Expr:
		"""Wrap a typed pointer in unsafe.Pointer (opaque pointers already are one)."""
		self.types.imports.add("unsafe")
		if is_opaque_pointer(self.values.declared_type(source)):
			return value
		return _convert(SelectorExpr(Ident("unsafe"), "Pointer"), value)

	def _call(self, instr: Call) -> List[Stmt]:
		call = CallExpr(fun=self.values.expr(instr.callee), args=[self.values.expr(arg) for arg in instr.args])
		if instr.dest is None:
			return [ExprStmt(call)]
		return [assign(self._dest(instr), call)]

	def _select(self, instr: Select) -> List[Stmt]:
		# Go has no conditional expression.
		return [
			IfStmt(
				cond=self.values.expr(instr.cond),
				body=BlockStmt([assign(self._dest(instr), self.values.expr(instr.if_true))]),
				else_=BlockStmt([assign(self._dest(instr), self.values.expr(instr.if_false))]),
			)
		]

	def _gep(self, instr: GetElementPtr) -> List[Stmt]:
		raise UnsupportedConstruct("support for instruction GetElementPtr not yet implemented")

	def _phi(self, instr: Phi) -> List[Stmt]:
		return []


__all__ = ["StatementTranslator"]
