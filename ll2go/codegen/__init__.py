# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Codegen package: Go syntax tree → gofmt-style source text.

Public API:
  - format_file: render a File
  - format_node: render one expression/statement/declaration
"""

from .printer import GoPrinter, format_file, format_node

__all__ = ["GoPrinter", "format_file", "format_node"]
