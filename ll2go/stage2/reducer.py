# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 2: region reduction.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Each primitive collapses its member blocks into one synthesized block whose
statement buffer is the structured statement (if/for/sequence) built from the
members' statements. Applying a complete primitive list leaves exactly one
live block: the function body.

Member roles are visited in the kind's canonical order (Primitive.members),
and the registry iterates live blocks in handle order, so the output does not
depend on how a feed happened to order its role map.

Control leaving a region:
  - the *exit carrier* (the `exit` member, or the last member of a sequence)
    lends the synthesized block its terminator
  - otherwise the synthesized block branches to the region's join label, the
    cond member's successor that is not part of the region
  - a non-carrier member that returns (or is unreachable) gets its control
    statement emitted in place
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ll2go.errors import (
	MalformedInput,
	ReductionIncomplete,
	UnresolvedReference,
	UnsupportedConstruct,
)
from ll2go.go_nodes import BlockStmt, BranchStmt, Expr, ForStmt, IfStmt, Stmt, negate
from ll2go.ir_nodes import Br, CondBr, Ret, Switch, Terminator, Unreachable
from ll2go.prims.primitive import (
	COMPOUND,
	IF,
	IF_ELSE,
	IF_RETURN,
	POST_LOOP,
	PRE_LOOP,
	REQUIRED_ROLES,
	SEQ,
	Primitive,
)
from ll2go.stage2.registry import BlockRegistry, WorkingBlock
from ll2go.translate.stmts import StatementTranslator

logger = logging.getLogger(__name__)

# (statements, terminator, region entry label)
Synthesis = Tuple[List[Stmt], Optional[Terminator], str]


def _break_unless(cond: Expr) -> IfStmt:
	return IfStmt(cond=negate(cond), body=BlockStmt([BranchStmt("break")]))


class RegionReducer:
	"""Drive primitive-by-primitive collapse of one function's registry."""

	def __init__(self, registry: BlockRegistry, stmts: StatementTranslator) -> None:
		self.registry = registry
		self.stmts = stmts
		self._synth: Dict[str, Callable[[Primitive, Dict[str, WorkingBlock], List[WorkingBlock]], Synthesis]] = {
			SEQ: self._seq,
			IF: self._if,
			IF_RETURN: self._if_return,
			IF_ELSE: self._if_else,
			PRE_LOOP: self._pre_loop,
			POST_LOOP: self._post_loop,
			COMPOUND: self._compound,
		}

	def run(self, prims: Sequence[Primitive]) -> WorkingBlock:
		"""Apply `prims` in order and return the single surviving block."""
		for prim in prims:
			self.apply(prim)
		live = self.registry.live()
		if len(live) != 1:
			labels = tuple(block.label for block in live)
			raise ReductionIncomplete(
				f"control flow recovery failed: expected 1 block after reduction, got {len(live)}",
				labels=labels,
				remaining=len(live),
			)
		return live[0]

	def apply(self, prim: Primitive) -> WorkingBlock:
		"""Collapse the members of one primitive into a new synthesized block."""
		synth = self._synth.get(prim.kind)
		if synth is None:
			raise UnsupportedConstruct(f"support for primitive kind '{prim.kind}' not yet implemented")
		self._check_roles(prim)
		members = self._resolve(prim)
		roles = {role: block for role, block in members}
		ordered = [block for _, block in members]
		desc = prim.describe()
		label = prim.node
		# a member's own label is freed by this reduction
		if label is not None and label in self.registry and label not in {b.label for b in ordered}:
			raise MalformedInput(
				f"node name '{label}' of primitive {desc} is already a live block",
				labels=(label,),
			)

		stmts, term, entry = synth(prim, roles, ordered)

		self.registry.consume([block.handle for block in ordered], by=desc)
		if label is None:
			label = self.registry.fresh_label(prim.kind)
		block = self.registry.insert(label, stmts=stmts, terminator=term, entry=entry, synthesized=True)
		logger.debug("reduced %s into '%s'", desc, label)
		return block

	# ------------------------------------------------------------------
	# Member resolution
	# ------------------------------------------------------------------

	def _check_roles(self, prim: Primitive) -> None:
		if prim.kind == SEQ and prim.sequence:
			return
		missing = [role for role in REQUIRED_ROLES[prim.kind] if role not in prim.roles]
		if missing:
			raise MalformedInput(
				f"primitive {prim.describe()} is missing role(s): {', '.join(missing)}",
			)

	def _resolve(self, prim: Primitive) -> List[Tuple[str, WorkingBlock]]:
		seen: set[str] = set()
		out: List[Tuple[str, WorkingBlock]] = []
		for role, label in prim.members():
			if label in seen:
				raise UnresolvedReference(
					f"primitive {prim.describe()} references '{label}' more than once",
					labels=(label,),
				)
			seen.add(label)
			block = self.registry.lookup(label)
			if block is None:
				by = self.registry.consumed_by(label)
				why = f"already consumed by {by}" if by else "no such block"
				raise UnresolvedReference(
					f"primitive {prim.describe()} member '{label}' ({role}) is not live: {why}",
					labels=(label,),
				)
			out.append((role, block))
		return out

	# ------------------------------------------------------------------
	# Helpers
	# ------------------------------------------------------------------

	def _member(self, block: WorkingBlock, *, carrier: bool = False) -> List[Stmt]:
		"""A member's statements; a non-carrier leaving the function keeps its exit."""
		seq = block.sequence()
		if not carrier and isinstance(block.terminator, (Ret, Unreachable)):
			seq.extend(self.stmts.exit_statement(block.terminator))
		return seq

	def _cond_branch(self, prim: Primitive, block: WorkingBlock) -> CondBr:
		term = block.terminator
		if isinstance(term, Switch):
			raise UnsupportedConstruct(
				f"support for terminator Switch in {prim.describe()} not yet implemented",
				labels=(block.label,),
			)
		if not isinstance(term, CondBr):
			raise MalformedInput(
				f"cond member '{block.label}' of {prim.describe()} does not end in a conditional branch",
				labels=(block.label,),
			)
		return term

	def _branch_towards(self, prim: Primitive, cond: WorkingBlock, target: WorkingBlock) -> Tuple[Expr, str]:
		"""
		Condition under which `cond` branches to `target`, plus the other
		successor label.
		"""
		term = self._cond_branch(prim, cond)
		test = self.stmts.condition(term)
		if term.true_target == target.entry:
			return test, term.false_target
		if term.false_target == target.entry:
			return negate(test), term.true_target
		raise MalformedInput(
			f"'{target.label}' is not a successor of cond member '{cond.label}' in {prim.describe()}",
			labels=(cond.label, target.label),
		)

	def _close(self, stmts: List[Stmt], exit_block: Optional[WorkingBlock], join: Optional[str]) -> Tuple[List[Stmt], Optional[Terminator]]:
		"""Append the exit member (if any) and pick the region's terminator."""
		if exit_block is not None:
			return stmts + self._member(exit_block, carrier=True), exit_block.terminator
		if join is None:
			return stmts, None
		return stmts, Br(join)

	# ------------------------------------------------------------------
	# Synthesis per kind
	# ------------------------------------------------------------------

	def _seq(self, prim: Primitive, roles: Dict[str, WorkingBlock], ordered: List[WorkingBlock]) -> Synthesis:
		stmts: List[Stmt] = []
		last = ordered[-1]
		for block in ordered:
			stmts.extend(self._member(block, carrier=block is last))
		return stmts, last.terminator, ordered[0].entry

	def _if(self, prim: Primitive, roles: Dict[str, WorkingBlock], ordered: List[WorkingBlock]) -> Synthesis:
		cond, body = roles["cond"], roles["body"]
		test, join = self._branch_towards(prim, cond, body)
		stmts = self._member(cond) + [IfStmt(cond=test, body=BlockStmt(self._member(body)))]
		stmts, term = self._close(stmts, roles.get("exit"), join)
		return stmts, term, cond.entry

	def _if_return(self, prim: Primitive, roles: Dict[str, WorkingBlock], ordered: List[WorkingBlock]) -> Synthesis:
		body = roles["body"]
		if not isinstance(body.terminator, (Ret, Unreachable)):
			raise MalformedInput(
				f"body '{body.label}' of {prim.describe()} does not leave the function",
				labels=(body.label,),
			)
		return self._if(prim, roles, ordered)

	def _if_else(self, prim: Primitive, roles: Dict[str, WorkingBlock], ordered: List[WorkingBlock]) -> Synthesis:
		cond = roles["cond"]
		first, second = roles["body_true"], roles["body_false"]
		term = self._cond_branch(prim, cond)
		arms = {first.entry: first, second.entry: second}
		if term.true_target not in arms or term.false_target not in arms or term.true_target == term.false_target:
			raise MalformedInput(
				f"arms of {prim.describe()} are not the successors of cond member '{cond.label}'",
				labels=(cond.label, first.label, second.label),
			)
		then_arm, else_arm = arms[term.true_target], arms[term.false_target]
		stmt = IfStmt(
			cond=self.stmts.condition(term),
			body=BlockStmt(self._member(then_arm)),
			else_=BlockStmt(self._member(else_arm)),
		)
		join = None
		for arm in (then_arm, else_arm):
			if isinstance(arm.terminator, Br):
				join = arm.terminator.target
				break
		stmts, out_term = self._close(self._member(cond) + [stmt], roles.get("exit"), join)
		return stmts, out_term, cond.entry

	def _pre_loop(self, prim: Primitive, roles: Dict[str, WorkingBlock], ordered: List[WorkingBlock]) -> Synthesis:
		cond, body = roles["cond"], roles["body"]
		test, join = self._branch_towards(prim, cond, body)
		header = self._member(cond)
		if header:
			loop = ForStmt(cond=None, body=BlockStmt([*header, _break_unless(test), *self._member(body)]))
		else:
			loop = ForStmt(cond=test, body=BlockStmt(self._member(body)))
		stmts, term = self._close([loop], roles.get("exit"), join)
		return stmts, term, cond.entry

	def _post_loop(self, prim: Primitive, roles: Dict[str, WorkingBlock], ordered: List[WorkingBlock]) -> Synthesis:
		cond = roles["cond"]
		body = roles.get("body")
		head = body if body is not None else cond
		test, join = self._branch_towards(prim, cond, head)
		inner: List[Stmt] = []
		if body is not None:
			inner.extend(self._member(body))
		inner.extend(self._member(cond))
		inner.append(_break_unless(test))
		stmts, term = self._close([ForStmt(cond=None, body=BlockStmt(inner))], roles.get("exit"), join)
		return stmts, term, head.entry

	def _compound(self, prim: Primitive, roles: Dict[str, WorkingBlock], ordered: List[WorkingBlock]) -> Synthesis:
		body = roles["body"]
		return self._member(body, carrier=True), body.terminator, body.entry


__all__ = ["RegionReducer"]
