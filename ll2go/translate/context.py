# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-function translation state.

One `FunctionContext` is created for each function body: it owns the name
table, the type translator (import and named-type records) and the list of
bindings the assembled body must declare. Nothing in it is shared between
functions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, List, Tuple

from llvmlite import ir

from ll2go.ir_nodes import Function
from ll2go.translate.names import NameTable
from ll2go.translate.stmts import StatementTranslator
from ll2go.translate.types import TypeTranslator
from ll2go.translate.values import ValueTranslator


@dataclass
class FunctionContext:
	"""
	Translators and declaration bookkeeping for one function.

	`declared` lists (go name, IR type) pairs in first-definition order:
	instruction results (phis included) in block order, followed by phi
	temporaries in allocation order.
	"""

	names: NameTable
	types: TypeTranslator
	values: ValueTranslator
	stmts: StatementTranslator
	params: List[str] = field(default_factory=list)
	declared: List[Tuple[str, ir.Type]] = field(default_factory=list)

	@classmethod
	def for_function(cls, func: Function, global_vars: AbstractSet[str] = frozenset()) -> "FunctionContext":
		"""Reserve every binding of `func` up front so temporaries never collide."""
		names = NameTable()
		types = TypeTranslator()
		bindings: Dict[str, ir.Type] = {}
		params: List[str] = []
		for param in func.params:
			bindings[param.name] = param.type
			params.append(names.local(param.name))
		declared: List[Tuple[str, ir.Type]] = []
		for block in func.blocks or ():
			for instr in block.instructions:
				if instr.dest is None:
					continue
				bindings[instr.dest] = instr.result_type
				declared.append((names.local(instr.dest), instr.result_type))
		values = ValueTranslator(names, types, bindings=bindings, global_vars=global_vars)
		return cls(
			names=names,
			types=types,
			values=values,
			stmts=StatementTranslator(values),
			params=params,
			declared=declared,
		)

	def temp(self, typ: ir.Type, hint: str = "tmp") -> str:
		"""Allocate a fresh temporary of `typ` and declare it."""
		name = self.names.fresh(hint)
		self.declared.append((name, typ))
		return name


__all__ = ["FunctionContext"]
