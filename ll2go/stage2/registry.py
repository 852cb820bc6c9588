# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 2: working-block registry.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Blocks live in an append-only arena addressed by integer handles; a
label → handle map answers lookups. Consuming a block deactivates its handle
(storage is never compacted and handles are never reused), so iterating the
live set always follows insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from ll2go.errors import MalformedInput
from ll2go.go_nodes import Stmt
from ll2go.ir_nodes import BasicBlock, Terminator
from ll2go.translate.stmts import StatementTranslator


@dataclass
class WorkingBlock:
	"""
	An original or synthesized block plus its buffers.

	- `stmts`: statement buffer (instruction statements, or the synthesized
	  structured statement)
	- `phi_out`: assignments feeding successor phis, emitted after `stmts`
	- `terminator`: how control leaves the block; synthesized blocks inherit
	  their region's exit terminator (None: control never falls out)
	- `entry`: original label control enters by; branch targets of other
	  blocks keep naming it after the block was folded into a region
	"""

	handle: int
	label: str
	entry: str = ""
	stmts: List[Stmt] = field(default_factory=list)
	phi_out: List[Stmt] = field(default_factory=list)
	terminator: Optional[Terminator] = None
	synthesized: bool = False
	active: bool = True
	consumed_by: Optional[str] = None

	def sequence(self) -> List[Stmt]:
		"""Statement buffer followed by the phi-outgoing buffer."""
		return [*self.stmts, *self.phi_out]


class BlockRegistry:
	"""Arena of working blocks with stable handles."""

	def __init__(self) -> None:
		self._arena: List[WorkingBlock] = []
		self._by_label: Dict[str, int] = {}
		# label → description of the primitive that consumed it
		self._consumed: Dict[str, str] = {}
		self._fresh_counter = 0

	@classmethod
	def seed(
		cls,
		blocks: Iterable[BasicBlock],
		stmts: StatementTranslator,
		phi_out: Mapping[str, List[Stmt]],
	) -> "BlockRegistry":
		"""One working block per original block, in block order."""
		registry = cls()
		for block in blocks:
			registry.insert(
				block.name,
				stmts=stmts.block(block),
				phi_out=list(phi_out.get(block.name, ())),
				terminator=block.terminator,
			)
		return registry

	def insert(
		self,
		label: str,
		*,
		stmts: List[Stmt] | None = None,
		phi_out: List[Stmt] | None = None,
		terminator: Terminator | None = None,
		entry: str | None = None,
		synthesized: bool = False,
	) -> WorkingBlock:
		if label in self._by_label:
			raise MalformedInput(f"duplicate block label '{label}'", labels=(label,))
		block = WorkingBlock(
			handle=len(self._arena),
			label=label,
			entry=entry or label,
			stmts=list(stmts or ()),
			phi_out=list(phi_out or ()),
			terminator=terminator,
			synthesized=synthesized,
		)
		self._arena.append(block)
		self._by_label[label] = block.handle
		self._consumed.pop(label, None)
		return block

	def lookup(self, label: str) -> Optional[WorkingBlock]:
		"""Live block named `label`, or None."""
		handle = self._by_label.get(label)
		if handle is None:
			return None
		return self._arena[handle]

	def __contains__(self, label: str) -> bool:
		return label in self._by_label

	def get(self, handle: int) -> WorkingBlock:
		return self._arena[handle]

	def consume(self, handles: Iterable[int], *, by: str) -> None:
		"""Deactivate the blocks behind `handles`, recording the consumer."""
		for handle in handles:
			block = self._arena[handle]
			block.active = False
			block.consumed_by = by
			del self._by_label[block.label]
			self._consumed[block.label] = by

	def consumed_by(self, label: str) -> Optional[str]:
		"""Description of the primitive that consumed `label` (None if live or unknown)."""
		return self._consumed.get(label)

	def fresh_label(self, hint: str = "prim") -> str:
		"""A label no block (live or consumed) has used."""
		used = {block.label for block in self._arena}
		while True:
			label = f"{hint}_{self._fresh_counter}"
			self._fresh_counter += 1
			if label not in used:
				return label

	def live(self) -> List[WorkingBlock]:
		"""Live blocks in handle (insertion) order."""
		return [block for block in self._arena if block.active]

	def live_labels(self) -> List[str]:
		return [block.label for block in self.live()]

	def __len__(self) -> int:
		return len(self._by_label)


__all__ = ["WorkingBlock", "BlockRegistry"]
