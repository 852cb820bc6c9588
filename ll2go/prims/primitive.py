# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Control-flow primitives.

A primitive names the blocks (by role) that collapse into one structured
statement. Roles are stored in a mapping, but members are always visited in
the kind's canonical role order, so the mapping's storage order never affects
output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

SEQ = "seq"
IF = "if"
IF_RETURN = "if_return"
IF_ELSE = "if_else"
PRE_LOOP = "pre_loop"
POST_LOOP = "post_loop"
COMPOUND = "compound"

# kind → canonical role order
KIND_ROLES: Dict[str, Tuple[str, ...]] = {
	SEQ: ("entry", "exit"),
	IF: ("cond", "body", "exit"),
	IF_RETURN: ("cond", "body", "exit"),
	IF_ELSE: ("cond", "body_true", "body_false", "exit"),
	PRE_LOOP: ("cond", "body", "exit"),
	POST_LOOP: ("cond", "body", "exit"),
	COMPOUND: ("body",),
}

REQUIRED_ROLES: Dict[str, Tuple[str, ...]] = {
	SEQ: ("entry", "exit"),
	IF: ("cond", "body"),
	IF_RETURN: ("cond", "body"),
	IF_ELSE: ("cond", "body_true", "body_false"),
	PRE_LOOP: ("cond", "body"),
	POST_LOOP: ("cond",),
	COMPOUND: ("body",),
}

KIND_ALIASES: Dict[str, str] = {
	"sequence": SEQ,
	"conditional": IF,
	"two-armed-conditional": IF_ELSE,
	"pre-test-loop": PRE_LOOP,
	"post-test-loop": POST_LOOP,
}


def canonical_kind(tag: str) -> str:
	"""Map a feed kind tag (short or spelled out) to its canonical short form."""
	return KIND_ALIASES.get(tag, tag)


@dataclass
class Primitive:
	"""
	One record of a function's primitive list.

	- `kind`: canonical kind tag (see KIND_ROLES); unknown kinds are kept so
	  the reducer can report them
	- `roles`: role → block label
	- `sequence`: explicit ordered member list of a sequence (instead of
	  entry/exit)
	- `node`: label for the synthesized block, when the feed names one
	- `entry`: entry label of the region (informational)
	"""

	kind: str
	roles: Dict[str, str] = field(default_factory=dict)
	sequence: List[str] = field(default_factory=list)
	node: Optional[str] = None
	entry: Optional[str] = None

	def members(self) -> List[Tuple[str, str]]:
		"""(role, label) pairs in canonical role order."""
		if self.kind == SEQ and self.sequence:
			return [("member", label) for label in self.sequence]
		order = KIND_ROLES.get(self.kind, ())
		known = [(role, self.roles[role]) for role in order if role in self.roles]
		extra = sorted((role, label) for role, label in self.roles.items() if role not in order)
		return known + extra

	def labels(self) -> List[str]:
		return [label for _, label in self.members()]

	def describe(self) -> str:
		"""Short human-readable form used in diagnostics."""
		name = self.node or "?"
		return f"{self.kind} '{name}' ({', '.join(self.labels())})"


__all__ = [
	"SEQ", "IF", "IF_RETURN", "IF_ELSE", "PRE_LOOP", "POST_LOOP", "COMPOUND",
	"KIND_ROLES", "REQUIRED_ROLES", "KIND_ALIASES",
	"canonical_kind", "Primitive",
]
