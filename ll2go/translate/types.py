# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
IR type → Go type translation.

Integer types map by bit width (i1 is Go's bool), pointers to `*T` or to
`unsafe.Pointer` when opaque, function types to `func(...) R`, and aggregates
keep field/element order. Any other type raises UnsupportedType.

A `TypeTranslator` also records what the emitted code depends on at file
level: imported packages and identified struct types that need a `type`
declaration. It is created per function, so functions translated in parallel
share nothing; the decompiler merges the records afterwards.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set, Tuple

from llvmlite import ir

from ll2go.errors import UnsupportedType
from ll2go.go_nodes import (
	ArrayType,
	BasicLit,
	CompositeLit,
	Ellipsis,
	Expr,
	Field,
	FuncType,
	Ident,
	SelectorExpr,
	StarExpr,
	StructType,
)
from ll2go.translate.names import go_name

_INT_WIDTHS = (8, 16, 32, 64)


def is_opaque_pointer(typ: ir.Type) -> bool:
	"""True for LLVM's `ptr` (no pointee type recorded)."""
	if not isinstance(typ, ir.PointerType):
		return False
	return bool(getattr(typ, "is_opaque", False)) or not hasattr(typ, "pointee")


def is_bool(typ: ir.Type) -> bool:
	return isinstance(typ, ir.IntType) and typ.width == 1


class TypeTranslator:
	"""Translate llvmlite types to Go type expressions."""

	def __init__(self) -> None:
		self.imports: Set[str] = set()
		self.named_types: Dict[str, ir.IdentifiedStructType] = {}

	def go_type(self, typ: ir.Type, *, unsigned: bool = False) -> Expr:
		"""
		Return the Go type expression for `typ`.

		`unsigned` selects uintN for integer types; it is used where LLVM's
		operation (not the type) carries signedness: udiv, lshr, zext, ...
		"""
		if isinstance(typ, ir.IntType):
			if typ.width == 1:
				return Ident("bool")
			if typ.width not in _INT_WIDTHS:
				raise UnsupportedType(f"integer width {typ.width} has no Go counterpart")
			return Ident(f"{'uint' if unsigned else 'int'}{typ.width}")
		if isinstance(typ, ir.DoubleType):
			return Ident("float64")
		if isinstance(typ, ir.FloatType):
			return Ident("float32")
		if isinstance(typ, ir.PointerType):
			if is_opaque_pointer(typ):
				self.imports.add("unsafe")
				return SelectorExpr(Ident("unsafe"), "Pointer")
			return StarExpr(self.go_type(typ.pointee))
		if isinstance(typ, ir.FunctionType):
			return self.func_type(typ.return_type, [(None, arg) for arg in typ.args], var_arg=typ.var_arg)
		if isinstance(typ, ir.IdentifiedStructType):
			self.named_types.setdefault(typ.name, typ)
			return Ident(go_name(typ.name))
		if isinstance(typ, ir.LiteralStructType):
			return self.struct_type(typ.elements)
		if isinstance(typ, ir.ArrayType):
			return ArrayType(len=BasicLit("INT", str(typ.count)), elt=self.go_type(typ.element))
		raise UnsupportedType(f"type '{typ}' ({type(typ).__name__}) has no Go counterpart")

	def struct_type(self, elements: Optional[Sequence[ir.Type]]) -> StructType:
		"""Struct with positional fields F0, F1, ... (an opaque body is an empty struct)."""
		fields = [Field(names=[f"F{idx}"], type=self.go_type(elem)) for idx, elem in enumerate(elements or ())]
		return StructType(fields=fields)

	def func_type(
		self,
		ret_type: ir.Type,
		params: List[Tuple[Optional[str], ir.Type]],
		*,
		var_arg: bool = False,
	) -> FuncType:
		"""
		Build a Go function type from an ordered (name, type) parameter list.

		Names are optional (function types and declarations without names); a
		variadic tail becomes `args ...interface{}` (or `...interface{}`).
		"""
		named = any(name is not None for name, _ in params)
		fields = [
			Field(names=[name] if name is not None else [], type=self.go_type(typ))
			for name, typ in params
		]
		if var_arg:
			fields.append(Field(names=["args"] if named else [], type=Ellipsis(Ident("interface{}"))))
		results: List[Field] = []
		if not isinstance(ret_type, ir.VoidType):
			results.append(Field(names=[], type=self.go_type(ret_type)))
		return FuncType(params=fields, results=results)

	def zero_value(self, typ: ir.Type) -> Expr:
		"""Go zero value of `typ` (used for undef, poison and zeroinitializer)."""
		if isinstance(typ, ir.IntType):
			if typ.width == 1:
				return Ident("false")
			self.go_type(typ)
			return BasicLit("INT", "0")
		if isinstance(typ, (ir.FloatType, ir.DoubleType)):
			return BasicLit("FLOAT", "0.0")
		if isinstance(typ, (ir.PointerType, ir.FunctionType)):
			return Ident("nil")
		if isinstance(typ, (ir.IdentifiedStructType, ir.LiteralStructType, ir.ArrayType)):
			return CompositeLit(type=self.go_type(typ), elts=[])
		raise UnsupportedType(f"type '{typ}' has no zero value")


__all__ = ["TypeTranslator", "is_opaque_pointer", "is_bool"]
