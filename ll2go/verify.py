# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Optional IR verification through LLVM itself.

The stage0 reader trusts its input beyond what the grammar checks. When the
caller asks for it, the IR text is first handed to `llvmlite.binding`, which
parses it with LLVM's own reader and runs the module verifier.
"""

from __future__ import annotations

import logging

from llvmlite import binding as llvm

from ll2go.errors import MalformedInput

logger = logging.getLogger(__name__)


def verify_ir(text: str, name: str = "module") -> None:
	"""Raise MalformedInput if LLVM rejects `text`."""
	try:
		mod = llvm.parse_assembly(text)
		mod.verify()
	except RuntimeError as err:
		notes = tuple(line for line in str(err).strip().splitlines() if line.strip())
		raise MalformedInput(f"{name}: LLVM rejected the module", notes=notes) from err
	logger.debug("%s: LLVM verifier accepted the module", name)


__all__ = ["verify_ir"]
