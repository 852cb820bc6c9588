# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Error taxonomy for the decompiler.

Every failure is fatal to the function being processed and is surfaced, never
retried: the pipeline is deterministic over fixed input. The decompiler
attaches the function name and phase before handing errors to the caller,
which decides whether the rest of the module still gets translated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


@dataclass(frozen=True)
class DecompileError(Exception):
	"""
	A structured, serializable decompilation error.

	`reason_code` is stable per subclass and is what tooling (and the JSON
	diagnostics of the CLI) should match on; `message` is for humans.
	"""

	reason_code: ClassVar[str] = "decompile-error"

	message: str
	function: str | None = None
	phase: str | None = None
	labels: tuple[str, ...] = ()
	notes: tuple[str, ...] = field(default_factory=tuple)

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"function": self.function,
			"phase": self.phase,
			"labels": list(self.labels),
			"notes": list(self.notes),
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.labels:
			parts.append("labels=(" + ", ".join(self.labels) + ")")
		for note in self.notes:
			parts.append(f"note: {note}")
		return " ".join(parts)


@dataclass(frozen=True)
class MalformedInput(DecompileError):
	"""Input violates an IR invariant (phi/predecessor mismatch, unknown label, bad syntax)."""

	reason_code: ClassVar[str] = "malformed-input"


@dataclass(frozen=True)
class UnresolvedReference(DecompileError):
	"""A primitive names a member that is not live (consumed, duplicated or unknown)."""

	reason_code: ClassVar[str] = "unresolved-reference"


@dataclass(frozen=True)
class ReductionIncomplete(DecompileError):
	"""The primitive list did not reduce the function to a single block."""

	reason_code: ClassVar[str] = "reduction-incomplete"

	remaining: int = 0


@dataclass(frozen=True)
class UnsupportedConstruct(DecompileError):
	"""An instruction, terminator or primitive kind with no translation."""

	reason_code: ClassVar[str] = "unsupported-construct"


@dataclass(frozen=True)
class UnsupportedType(UnsupportedConstruct):
	"""An IR type with no Go counterpart."""

	reason_code: ClassVar[str] = "unsupported-type"


@dataclass(frozen=True)
class InputUnavailable(DecompileError):
	"""The primitive feed for a function is missing or cannot be decoded."""

	reason_code: ClassVar[str] = "input-unavailable"


__all__ = [
	"DecompileError",
	"MalformedInput",
	"UnresolvedReference",
	"ReductionIncomplete",
	"UnsupportedConstruct",
	"UnsupportedType",
	"InputUnavailable",
]
