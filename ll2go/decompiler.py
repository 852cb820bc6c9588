# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-function decompilation pipeline and module-level policy.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

For each function with a body:
  phi      stage1.PhiResolver builds phi-outgoing buffers
  translate  instructions become statements while the registry is seeded
  feed     the function's primitive list is fetched
  reduce   stage2.RegionReducer collapses the registry to one block
  assemble stage3.FunctionAssembler emits the FuncDecl

Every error leaving a phase carries the function name and the phase label.
Functions share nothing, so `jobs > 1` runs them on a thread pool; results
are always consumed in input order, which keeps output and the fail-fast
cut-off deterministic.
"""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Union

from llvmlite import ir

from ll2go.errors import DecompileError, InputUnavailable
from ll2go.go_nodes import File, FuncDecl
from ll2go.ir_nodes import Function, Module
from ll2go.prims import Primitive, load_prims
from ll2go.stage1 import PhiResolver
from ll2go.stage2 import BlockRegistry, RegionReducer
from ll2go.stage3 import FunctionAssembler, assemble_file, declaration
from ll2go.translate import FunctionContext, TypeTranslator

logger = logging.getLogger(__name__)

PrimSource = Union[Callable[[str], Sequence[Primitive]], Mapping[str, Sequence[Primitive]]]


@dataclass
class DecompileOptions:
	"""
	Caller-level policy.

	- graphs_dir: directory holding `<function>.json` primitive feeds
	- keep_going: translate the remaining functions after one fails
	- flush_partial: under fail-fast, still emit the functions translated
	  before the failure
	- jobs: worker threads for per-function translation
	- verify: run the LLVM verifier on the IR text before reading it
	"""

	graphs_dir: Optional[Path] = None
	keep_going: bool = False
	flush_partial: bool = False
	jobs: int = 1
	verify: bool = False


@dataclass
class FunctionResult:
	name: str
	decl: Optional[FuncDecl] = None
	error: Optional[DecompileError] = None
	imports: Set[str] = field(default_factory=set)
	named_types: Dict[str, ir.IdentifiedStructType] = field(default_factory=dict)


@dataclass
class ModuleResult:
	"""
	Outcome of a module run.

	`file` is None when nothing may be emitted (fail-fast without
	flush_partial); `errors` lists every failed function in input order.
	"""

	file: Optional[File]
	functions: List[FunctionResult] = field(default_factory=list)
	errors: List[DecompileError] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return not self.errors


@contextmanager
def _phase(func_name: str, phase: str) -> Iterator[None]:
	try:
		yield
	except DecompileError as err:
		raise dataclasses.replace(
			err,
			function=err.function or func_name,
			phase=err.phase or phase,
		) from err


def _prim_lookup(source: PrimSource) -> Callable[[str], Sequence[Primitive]]:
	if not isinstance(source, Mapping):
		return source

	def lookup(name: str) -> Sequence[Primitive]:
		if name not in source:
			raise InputUnavailable(f"no primitive list for function '{name}'")
		return source[name]

	return lookup


def decompile_function(
	func: Function,
	prims: PrimSource,
	*,
	global_vars: AbstractSet[str] = frozenset(),
) -> FunctionResult:
	"""
	Decompile one function; raises DecompileError (function and phase set).

	Declarations skip phi resolution and reduction and never consult the
	primitive source.
	"""
	if func.is_declaration:
		types = TypeTranslator()
		with _phase(func.name, "translate"):
			decl = declaration(func, types)
		return FunctionResult(name=func.name, decl=decl, imports=types.imports, named_types=types.named_types)

	ctx = FunctionContext.for_function(func, global_vars)
	with _phase(func.name, "phi"):
		phi_out = PhiResolver(ctx).run(func)
	with _phase(func.name, "translate"):
		registry = BlockRegistry.seed(func.blocks, ctx.stmts, phi_out)
	with _phase(func.name, "feed"):
		prim_list = list(_prim_lookup(prims)(func.name))
	with _phase(func.name, "reduce"):
		block = RegionReducer(registry, ctx.stmts).run(prim_list)
	with _phase(func.name, "assemble"):
		decl = FunctionAssembler(ctx).assemble(func, block)
	logger.debug("decompiled @%s (%d primitives)", func.name, len(prim_list))
	return FunctionResult(name=func.name, decl=decl, imports=ctx.types.imports, named_types=ctx.types.named_types)


def _run_one(func: Function, prims: PrimSource, global_vars: AbstractSet[str]) -> FunctionResult:
	try:
		return decompile_function(func, prims, global_vars=global_vars)
	except DecompileError as err:
		return FunctionResult(name=func.name, error=err)


def decompile_module(
	module: Module,
	prims: Optional[PrimSource] = None,
	options: Optional[DecompileOptions] = None,
) -> ModuleResult:
	"""
	Decompile every function of `module` under the caller's policy.

	`prims` is either a callable (function name → primitive list) or a
	mapping; by default primitives are read from `options.graphs_dir`.
	"""
	options = options or DecompileOptions()
	if prims is None:
		if options.graphs_dir is None:
			raise ValueError("either prims or options.graphs_dir is required")
		graphs_dir = options.graphs_dir
		prims = lambda name: load_prims(graphs_dir, name)  # noqa: E731
	global_vars = frozenset(g.name for g in module.globals)

	funcs = list(module.functions)
	results: List[FunctionResult] = []
	if options.jobs > 1 and len(funcs) > 1:
		with ThreadPoolExecutor(max_workers=options.jobs) as pool:
			results = list(pool.map(lambda f: _run_one(f, prims, global_vars), funcs))
	else:
		for func in funcs:
			result = _run_one(func, prims, global_vars)
			results.append(result)
			if result.error is not None and not options.keep_going:
				break

	kept: List[FunctionResult] = []
	errors: List[DecompileError] = []
	for result in results:
		if result.error is None:
			kept.append(result)
			continue
		errors.append(result.error)
		if options.keep_going:
			logger.warning("skipping @%s: %s", result.name, result.error.format_human())
			continue
		logger.debug("stopping at @%s (fail-fast)", result.name)
		break

	if errors and not options.keep_going and not options.flush_partial:
		return ModuleResult(file=None, functions=kept, errors=errors)

	imports: Set[str] = set()
	named_types: Dict[str, ir.IdentifiedStructType] = {}
	for result in kept:
		imports.update(result.imports)
		for name, typ in result.named_types.items():
			named_types.setdefault(name, typ)
	with _phase("", "assemble"):
		file = assemble_file(module, [r.decl for r in kept], imports=imports, named_types=named_types)
	return ModuleResult(file=file, functions=kept, errors=errors)


__all__ = [
	"DecompileOptions",
	"FunctionResult",
	"ModuleResult",
	"PrimSource",
	"decompile_function",
	"decompile_module",
]
