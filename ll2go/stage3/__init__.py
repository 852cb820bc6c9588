# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 3 package: reduced block → Go declarations.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Public API:
  - FunctionAssembler: surviving block → FuncDecl with body
  - declaration: body-less FuncDecl for external functions
  - assemble_file: FuncDecls + module globals/types → File
"""

from .assemble import FunctionAssembler, assemble_file, declaration, package_name, signature

__all__ = ["FunctionAssembler", "assemble_file", "declaration", "package_name", "signature"]
