# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Translation package: IR values, types, instructions → Go syntax.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Used by every stage from stage1 on; holds no control-flow knowledge.

Public API:
  - FunctionContext: per-function translators + declaration bookkeeping
  - TypeTranslator / ValueTranslator / StatementTranslator
  - NameTable, go_name: identifier mapping
"""

from .names import GO_KEYWORDS, NameTable, go_name
from .types import TypeTranslator, is_bool, is_opaque_pointer
from .values import ValueTranslator
from .stmts import StatementTranslator
from .context import FunctionContext

__all__ = [
	"GO_KEYWORDS",
	"NameTable",
	"go_name",
	"TypeTranslator",
	"is_bool",
	"is_opaque_pointer",
	"ValueTranslator",
	"StatementTranslator",
	"FunctionContext",
]
