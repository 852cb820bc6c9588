# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
IR value → Go expression translation.

- local bindings become local identifiers (via the function's NameTable)
- functions become global identifiers; global variables are addressed with
  `&g` because an LLVM global names the address of its storage
- constants become literals that keep the IR-declared width/precision;
  aggregates become composite literals built element by element
"""

from __future__ import annotations

import math
import struct
from typing import AbstractSet, Mapping

from llvmlite import ir

from ll2go.errors import UnsupportedConstruct, UnsupportedType
from ll2go.go_nodes import (
	BasicLit,
	CallExpr,
	CompositeLit,
	Expr,
	Ident,
	SelectorExpr,
	StarExpr,
	UnaryExpr,
	ParenExpr,
)
from ll2go.ir_nodes import GlobalRef, LocalRef, Value
from ll2go.translate.names import NameTable, go_name
from ll2go.translate.types import TypeTranslator, is_opaque_pointer


def _signed(value: int, width: int) -> int:
	"""Reinterpret `value` as a two's-complement integer of `width` bits."""
	mask = (1 << width) - 1
	value &= mask
	if value >= 1 << (width - 1):
		value -= 1 << width
	return value


def _float_literal(value: float) -> str:
	text = repr(value)
	if "e" in text or "E" in text or "." in text:
		return text
	return text + ".0"


class ValueTranslator:
	"""
	Translate IR values of one function.

	`bindings` maps every local binding (parameters and instruction results) to
	its declared IR type; it decides how pointers are dereferenced.
	`global_vars` names the module's global variables (as opposed to functions).
	"""

	def __init__(
		self,
		names: NameTable,
		types: TypeTranslator,
		*,
		bindings: Mapping[str, ir.Type] | None = None,
		global_vars: AbstractSet[str] = frozenset(),
	) -> None:
		self.names = names
		self.types = types
		self.bindings = dict(bindings or {})
		self.global_vars = global_vars

	def local(self, name: str) -> Ident:
		return Ident(self.names.local(name))

	def global_(self, name: str) -> Ident:
		return Ident(go_name(name))

	def expr(self, value: Value) -> Expr:
		"""Go expression for an IR value."""
		if isinstance(value, LocalRef):
			return self.local(value.name)
		if isinstance(value, GlobalRef):
			if value.name in self.global_vars:
				return UnaryExpr(op="&", x=self.global_(value.name))
			return self.global_(value.name)
		if isinstance(value, ir.Constant):
			return self.constant(value)
		raise UnsupportedConstruct(f"support for value {type(value).__name__} not yet implemented")

	def constant(self, const: ir.Constant) -> Expr:
		typ = const.type
		raw = const.constant
		if isinstance(raw, (LocalRef, GlobalRef)):
			return self.expr(raw)
		if raw is None or raw is ir.Undefined:
			return self.types.zero_value(typ)
		if isinstance(typ, ir.IntType):
			if typ.width == 1:
				return Ident("true" if bool(raw) else "false")
			self.types.go_type(typ)
			return BasicLit("INT", str(_signed(int(raw), typ.width)))
		if isinstance(typ, (ir.FloatType, ir.DoubleType)):
			value = float(raw)
			if isinstance(typ, ir.FloatType):
				value = struct.unpack("<f", struct.pack("<f", value))[0]
			return self._float(value)
		if isinstance(typ, (ir.LiteralStructType, ir.IdentifiedStructType, ir.ArrayType)):
			return self._aggregate(typ, raw)
		raise UnsupportedType(f"support for constant of type '{typ}' not yet implemented")

	def _float(self, value: float) -> Expr:
		if math.isnan(value) or math.isinf(value):
			self.types.imports.add("math")
			if math.isnan(value):
				return CallExpr(SelectorExpr(Ident("math"), "NaN"), [])
			sign = "1" if value > 0 else "-1"
			return CallExpr(SelectorExpr(Ident("math"), "Inf"), [BasicLit("INT", sign)])
		return BasicLit("FLOAT", _float_literal(value))

	def _aggregate(self, typ: ir.Type, items) -> CompositeLit:
		if isinstance(typ, ir.ArrayType):
			elem_types = [typ.element] * len(items)
		else:
			elem_types = list(typ.elements or ())
		elts = []
		for elem_type, item in zip(elem_types, items):
			if isinstance(item, ir.Constant):
				elts.append(self.constant(item))
			elif isinstance(item, (LocalRef, GlobalRef)):
				elts.append(self.expr(item))
			else:
				elts.append(self.constant(ir.Constant(elem_type, item)))
		return CompositeLit(type=self.types.go_type(typ), elts=elts)

	def declared_type(self, value: Value) -> ir.Type:
		"""Declared IR type of a value (binding table first, then the operand's own type)."""
		if isinstance(value, LocalRef) and value.name in self.bindings:
			return self.bindings[value.name]
		return value.type

	def deref(self, ptr: Value, elem_type: ir.Type) -> Expr:
		"""
		Go expression reading/writing the `elem_type` value stored at `ptr`.

		A global variable is its own storage (`g`); a typed pointer is
		dereferenced directly (`*p`); an opaque pointer is converted first
		(`*(*T)(p)`).
		"""
		if isinstance(ptr, GlobalRef) and ptr.name in self.global_vars:
			return self.global_(ptr.name)
		target = self.expr(ptr)
		if is_opaque_pointer(self.declared_type(ptr)):
			conv = CallExpr(fun=ParenExpr(StarExpr(self.types.go_type(elem_type))), args=[target])
			return StarExpr(conv)
		return StarExpr(target)


__all__ = ["ValueTranslator"]
