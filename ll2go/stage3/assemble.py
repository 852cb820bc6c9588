# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 3: function and file assembly.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

The surviving block of a reduced function becomes the function body:

  var <binding> <T>          (one per declared binding, first-definition order)
  <statement buffer>
  <phi-outgoing buffer>
  <terminator statement>     (return / panic("unreachable"))

Declarations without blocks never reach stages 1–2; they become body-less
FuncDecls. `assemble_file` then gathers everything into one Go File.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from llvmlite import ir

from ll2go.go_nodes import (
	BlockStmt,
	Decl,
	DeclStmt,
	File,
	FuncDecl,
	FuncType,
	GenDecl,
	Ident,
	Stmt,
	TypeSpec,
	ValueSpec,
)
from ll2go.ir_nodes import Function, Module
from ll2go.stage2.registry import WorkingBlock
from ll2go.translate.context import FunctionContext
from ll2go.translate.names import NameTable, go_name
from ll2go.translate.types import TypeTranslator
from ll2go.translate.values import ValueTranslator


def signature(func: Function, types: TypeTranslator, param_names: Optional[Sequence[str]] = None) -> FuncType:
	"""Go function type of `func`; parameters stay unnamed unless every one has a name."""
	if param_names is None:
		if func.params and all(p.name for p in func.params):
			table = NameTable()
			param_names = [table.local(p.name) for p in func.params]
		else:
			param_names = []
	if len(param_names) == len(func.params):
		params: List[Tuple[Optional[str], ir.Type]] = [(name, p.type) for name, p in zip(param_names, func.params)]
	else:
		params = [(None, p.type) for p in func.params]
	return types.func_type(func.ret_type, params, var_arg=func.var_arg)


def declaration(func: Function, types: TypeTranslator) -> FuncDecl:
	"""Body-less FuncDecl for an external function."""
	return FuncDecl(name=Ident(go_name(func.name)), type=signature(func, types))


class FunctionAssembler:
	"""Turn the single surviving working block into a FuncDecl."""

	def __init__(self, ctx: FunctionContext) -> None:
		self.ctx = ctx

	def assemble(self, func: Function, block: WorkingBlock) -> FuncDecl:
		types = self.ctx.types
		body: List[Stmt] = [self._var(name, typ) for name, typ in self.ctx.declared]
		body.extend(block.stmts)
		body.extend(block.phi_out)
		if block.terminator is not None:
			body.extend(self.ctx.stmts.exit_statement(block.terminator))
		return FuncDecl(
			name=Ident(go_name(func.name)),
			type=signature(func, types, self.ctx.params),
			body=BlockStmt(body),
		)

	def _var(self, name: str, typ: ir.Type) -> DeclStmt:
		spec = ValueSpec(names=[name], type=self.ctx.types.go_type(typ))
		return DeclStmt(GenDecl(tok="var", specs=[spec]))


def package_name(module_name: str) -> str:
	name = go_name(module_name.rsplit("/", 1)[-1].split(".", 1)[0]).lower()
	return name.strip("_") or "main"


def _type_decls(types: TypeTranslator, seed: Iterable[ir.IdentifiedStructType]) -> List[Decl]:
	"""`type` declarations for identified structs, following nested references."""
	for typ in seed:
		types.named_types.setdefault(typ.name, typ)
	decls: List[Decl] = []
	done: Set[str] = set()
	while True:
		pending = [name for name in types.named_types if name not in done]
		if not pending:
			return decls
		for name in pending:
			done.add(name)
			typ = types.named_types[name]
			spec = TypeSpec(name=go_name(name), type=types.struct_type(typ.elements))
			decls.append(GenDecl(tok="type", specs=[spec]))


def assemble_file(
	module: Module,
	funcs: Sequence[FuncDecl],
	*,
	imports: Iterable[str] = (),
	named_types: Optional[Dict[str, ir.IdentifiedStructType]] = None,
) -> File:
	"""
	Collect function declarations (input order) into a Go File.

	`imports` and `named_types` are the merged records of the per-function
	type translators; module globals are translated here.
	"""
	types = TypeTranslator()
	types.imports.update(imports)
	global_names = {g.name for g in module.globals}
	values = ValueTranslator(NameTable(), types, global_vars=global_names)

	var_decls: List[Decl] = []
	for gvar in module.globals:
		values_list = []
		if gvar.init is not None:
			values_list.append(values.expr(gvar.init))
		spec = ValueSpec(names=[go_name(gvar.name)], type=types.go_type(gvar.type), values=values_list)
		var_decls.append(GenDecl(tok="var", specs=[spec]))

	seed = list(module.types) + list((named_types or {}).values())
	type_decls = _type_decls(types, seed)
	return File(
		package=package_name(module.name),
		imports=sorted(types.imports),
		decls=[*type_decls, *var_decls, *funcs],
	)


__all__ = ["signature", "declaration", "FunctionAssembler", "package_name", "assemble_file"]
