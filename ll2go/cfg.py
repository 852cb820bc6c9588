# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Control-flow queries over an IR function.

Used by phi resolution (predecessor sets) and by the reducer (successors of a
surviving terminator).
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from ll2go.errors import MalformedInput
from ll2go.ir_nodes import BasicBlock, Br, CondBr, Ret, Switch, Terminator, Unreachable


def successors(term: Terminator | None) -> List[str]:
	"""Return the successor labels of a terminator, in operand order, without duplicates."""
	if term is None:
		return []
	if isinstance(term, Br):
		targets = [term.target]
	elif isinstance(term, CondBr):
		targets = [term.true_target, term.false_target]
	elif isinstance(term, Switch):
		targets = [term.default, *(label for _, label in term.cases)]
	elif isinstance(term, (Ret, Unreachable)):
		targets = []
	else:
		raise TypeError(f"unknown terminator {type(term).__name__}")
	return list(dict.fromkeys(targets))


def predecessors(blocks: Sequence[BasicBlock]) -> Dict[str, List[str]]:
	"""
	Build the predecessor map of a function body.

	Predecessors are listed in block order. A terminator naming a label that is
	not a block of this function raises MalformedInput.
	"""
	preds: Dict[str, List[str]] = {b.name: [] for b in blocks}
	for block in blocks:
		if block.terminator is None:
			raise MalformedInput(f"block '{block.name}' has no terminator", labels=(block.name,))
		for succ in successors(block.terminator):
			if succ not in preds:
				raise MalformedInput(
					f"terminator of block '{block.name}' references unknown label '{succ}'",
					labels=(block.name, succ),
				)
			preds[succ].append(block.name)
	return preds


__all__ = ["successors", "predecessors"]
