# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 0 package: LLVM IR text → ll2go.ir_nodes.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Public API:
  - parse_module / parse_file: read a textual IR module
  - normalize_ir_text: the pre-parse cleanup pass (exposed for tests/tools)
"""

from .parser import normalize_ir_line, normalize_ir_text, parse_file, parse_module

__all__ = ["normalize_ir_line", "normalize_ir_text", "parse_file", "parse_module"]
