# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
In-memory LLVM IR.

This is the input side of the decompiler: a typed tree of modules, functions,
basic blocks, instructions and terminators. Types and constants are
`llvmlite.ir` objects so type structure (widths, struct elements, function
signatures) comes from a real LLVM type model rather than strings.

There are **no semantics** baked in here; translation lives in
`ll2go.translate`, control-flow queries in `ll2go.cfg`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from llvmlite import ir


class IRNode:
	"""Base class for IR nodes (instructions and terminators)."""
	pass


class Instr(IRNode):
	"""Base class for instructions (non-terminators)."""

	dest: Optional[str]

	@property
	def result_type(self) -> Optional[ir.Type]:
		"""Type of the value bound to `dest` (None for void instructions)."""
		return None


class Terminator(IRNode):
	"""Base class for terminators (end of a basic block)."""
	pass


# Values

@dataclass(frozen=True)
class LocalRef:
	"""Reference to a function-local binding (instruction result or parameter)."""
	name: str
	type: ir.Type


@dataclass(frozen=True)
class GlobalRef:
	"""Reference to a global variable or function."""
	name: str
	type: ir.Type


# Constants are llvmlite constants: ir.Constant(ir.IntType(32), 5), etc.
Value = Union[LocalRef, GlobalRef, ir.Constant]


# Instructions

@dataclass
class BinaryOp(Instr):
	"""dest = left op right (add, sub, mul, sdiv, udiv, shl, fadd, ...)."""
	dest: str
	op: str
	type: ir.Type
	left: Value
	right: Value

	@property
	def result_type(self) -> ir.Type:
		return self.type


@dataclass
class ICmp(Instr):
	"""dest = icmp pred left, right (result is i1)."""
	dest: str
	pred: str
	type: ir.Type
	left: Value
	right: Value

	@property
	def result_type(self) -> ir.Type:
		return ir.IntType(1)


@dataclass
class FCmp(Instr):
	"""dest = fcmp pred left, right (result is i1)."""
	dest: str
	pred: str
	type: ir.Type
	left: Value
	right: Value

	@property
	def result_type(self) -> ir.Type:
		return ir.IntType(1)


@dataclass
class Alloca(Instr):
	"""dest = alloca type [, count] (dest is a pointer to `type`)."""
	dest: str
	type: ir.Type
	count: Optional[Value] = None

	@property
	def result_type(self) -> ir.Type:
		return self.type.as_pointer()


@dataclass
class Load(Instr):
	"""dest = load type, ptr"""
	dest: str
	type: ir.Type
	ptr: Value

	@property
	def result_type(self) -> ir.Type:
		return self.type


@dataclass
class Store(Instr):
	"""store value, ptr (no result)."""
	type: ir.Type
	value: Value
	ptr: Value
	dest: Optional[str] = None


@dataclass
class Cast(Instr):
	"""dest = op value to to_type (trunc, zext, sext, bitcast, sitofp, ...)."""
	dest: str
	op: str
	value: Value
	to_type: ir.Type

	@property
	def result_type(self) -> ir.Type:
		return self.to_type


@dataclass
class Call(Instr):
	"""dest = callee(args...); dest is None for void calls."""
	dest: Optional[str]
	ret_type: ir.Type
	callee: Value
	args: List[Value] = field(default_factory=list)

	@property
	def result_type(self) -> Optional[ir.Type]:
		if self.dest is None:
			return None
		return self.ret_type


@dataclass
class Select(Instr):
	"""dest = cond ? if_true : if_false"""
	dest: str
	cond: Value
	if_true: Value
	if_false: Value

	@property
	def result_type(self) -> ir.Type:
		return self.if_true.type


@dataclass
class GetElementPtr(Instr):
	"""dest = getelementptr source_type, ptr, indices... (parsed, not translated)."""
	dest: str
	source_type: ir.Type
	ptr: Value
	indices: List[Value] = field(default_factory=list)

	@property
	def result_type(self) -> ir.Type:
		return ir.PointerType()


@dataclass
class Phi(Instr):
	"""
	Phi node: dest takes the incoming value of the edge control arrived along.

	`incoming` is an ordered list of (predecessor label, value) pairs with
	exactly one entry per actual predecessor of the owning block.
	"""
	dest: str
	type: ir.Type
	incoming: List[Tuple[str, Value]] = field(default_factory=list)

	@property
	def result_type(self) -> ir.Type:
		return self.type


# Terminators

@dataclass
class Br(Terminator):
	"""Unconditional branch to another basic block."""
	target: str


@dataclass
class CondBr(Terminator):
	"""Conditional branch on an i1 value."""
	cond: Value
	true_target: str
	false_target: str


@dataclass
class Ret(Terminator):
	"""Function return with optional value."""
	value: Optional[Value] = None


@dataclass
class Switch(Terminator):
	"""Multi-way branch (parsed so the failure stays per function)."""
	value: Value
	default: str
	cases: List[Tuple[Value, str]] = field(default_factory=list)


@dataclass
class Unreachable(Terminator):
	"""Control never reaches the end of this block."""
	pass


# Containers

@dataclass
class BasicBlock:
	"""
	Basic block: a list of instructions followed by a single terminator.

	No control flow leaves this block except via the terminator.
	"""
	name: str
	instructions: List[Instr] = field(default_factory=list)
	terminator: Optional[Terminator] = None


@dataclass
class Param:
	name: str
	type: ir.Type


@dataclass
class Function:
	"""
	IR function. `blocks` is None for declarations; otherwise blocks are kept in
	source order and the first one is the entry block.
	"""
	name: str
	ret_type: ir.Type
	params: List[Param] = field(default_factory=list)
	var_arg: bool = False
	blocks: Optional[List[BasicBlock]] = None

	@property
	def is_declaration(self) -> bool:
		return self.blocks is None


@dataclass
class GlobalVar:
	name: str
	type: ir.Type
	init: Optional[Value] = None
	constant: bool = False


@dataclass
class Module:
	"""IR module: owns its functions, globals and identified struct types."""
	name: str
	functions: List[Function] = field(default_factory=list)
	globals: List[GlobalVar] = field(default_factory=list)
	types: List[ir.IdentifiedStructType] = field(default_factory=list)


__all__ = [
	"IRNode", "Instr", "Terminator",
	"LocalRef", "GlobalRef", "Value",
	"BinaryOp", "ICmp", "FCmp",
	"Alloca", "Load", "Store",
	"Cast", "Call", "Select", "GetElementPtr",
	"Phi",
	"Br", "CondBr", "Ret", "Switch", "Unreachable",
	"BasicBlock", "Param", "Function", "GlobalVar", "Module",
]
