# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ll2go: LLVM IR (SSA) → structured Go.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Public API:
  - parse_module / parse_file: read textual IR
  - decompile_module / decompile_function: run the pipeline
  - DecompileOptions: caller-level policy (keep-going, flush-partial, jobs)
  - format_file: render the resulting Go file
"""

from .codegen import format_file
from .decompiler import DecompileOptions, FunctionResult, ModuleResult, decompile_function, decompile_module
from .errors import (
	DecompileError,
	InputUnavailable,
	MalformedInput,
	ReductionIncomplete,
	UnresolvedReference,
	UnsupportedConstruct,
	UnsupportedType,
)
from .stage0 import parse_file, parse_module

__all__ = [
	"DecompileError",
	"DecompileOptions",
	"FunctionResult",
	"InputUnavailable",
	"MalformedInput",
	"ModuleResult",
	"ReductionIncomplete",
	"UnresolvedReference",
	"UnsupportedConstruct",
	"UnsupportedType",
	"decompile_function",
	"decompile_module",
	"format_file",
	"parse_file",
	"parse_module",
]
