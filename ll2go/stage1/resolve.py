# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 1: phi elimination.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Every phi `d = phi [v0, %p0], [v1, %p1], ...` in block B becomes an assignment
`d = v_i` at the end of predecessor p_i (its *phi-outgoing buffer*), executed
when control leaves p_i towards B.

A predecessor's buffer holds the copies for all of its successors (a loop
latch feeds both the header phis and the exit phis), and all of them read
their incoming values at the end of the predecessor, in parallel. When one
incoming value in a buffer names another copy's destination in that same
buffer (swap/rotation, or an exit phi reading a header phi), sequential
assignment would read an already-overwritten value, so the buffer captures
every incoming value in a temporary first and assigns the destinations
afterwards.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from ll2go.cfg import predecessors
from ll2go.errors import MalformedInput
from ll2go.go_nodes import Ident, Stmt, assign
from ll2go.ir_nodes import Function, LocalRef, Phi, Value
from ll2go.translate.context import FunctionContext

logger = logging.getLogger(__name__)


class PhiResolver:
	"""Compute phi-outgoing buffers for every block of a function."""

	def __init__(self, ctx: FunctionContext) -> None:
		self.ctx = ctx

	def run(self, func: Function) -> Dict[str, List[Stmt]]:
		"""
		Return label → phi-outgoing statements for `func`.

		Nothing is handed back unless the whole function resolved: a phi whose
		predecessor labels differ from the block's actual predecessors raises
		MalformedInput and the caller gets no buffers at all.
		"""
		blocks = func.blocks or []
		preds = predecessors(blocks)
		# predecessor → ordered (phi, incoming value) pairs over all successors
		pending: Dict[str, List[Tuple[Phi, Value]]] = {b.name: [] for b in blocks}

		for block in blocks:
			phis = [instr for instr in block.instructions if isinstance(instr, Phi)]
			actual = preds[block.name]
			for phi in phis:
				self._check_incoming(block.name, phi, actual)
				incoming = dict(phi.incoming)
				for pred in actual:
					pending[pred].append((phi, incoming[pred]))

		return {label: self._buffer(label, pairs) for label, pairs in pending.items()}

	def _check_incoming(self, label: str, phi: Phi, actual: List[str]) -> None:
		labels = [pred for pred, _ in phi.incoming]
		dupes = sorted({pred for pred in labels if labels.count(pred) > 1})
		if dupes:
			raise MalformedInput(
				f"phi '%{phi.dest}' in block '{label}' lists predecessor(s) more than once",
				labels=tuple(dupes),
			)
		if set(labels) != set(actual):
			missing = sorted(set(actual) - set(labels))
			extra = sorted(set(labels) - set(actual))
			notes = []
			if missing:
				notes.append("missing incoming for: " + ", ".join(missing))
			if extra:
				notes.append("not a predecessor: " + ", ".join(extra))
			raise MalformedInput(
				f"phi '%{phi.dest}' in block '{label}' does not match the block's predecessors",
				labels=(label, *missing, *extra),
				notes=tuple(notes),
			)

	def _buffer(self, pred: str, pairs: List[Tuple[Phi, Value]]) -> List[Stmt]:
		values = self.ctx.values
		dests = {phi.dest for phi, _ in pairs}
		conflict = any(
			isinstance(value, LocalRef) and value.name in dests and value.name != phi.dest
			for phi, value in pairs
		)
		if not conflict:
			return [assign(values.local(phi.dest), values.expr(value)) for phi, value in pairs]

		logger.debug("phi copies out of %s need temporaries (%d assignments)", pred, len(pairs))
		captured: List[Tuple[Phi, str]] = []
		stmts: List[Stmt] = []
		for phi, value in pairs:
			tmp = self.ctx.temp(phi.type)
			captured.append((phi, tmp))
			stmts.append(assign(Ident(tmp), values.expr(value)))
		for phi, tmp in captured:
			stmts.append(assign(values.local(phi.dest), Ident(tmp)))
		return stmts


def resolve_phis(ctx: FunctionContext, func: Function) -> Dict[str, List[Stmt]]:
	"""Convenience wrapper around PhiResolver.run."""
	return PhiResolver(ctx).run(func)


__all__ = ["PhiResolver", "resolve_phis"]
