# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Identifier mapping from LLVM names to Go names.

LLVM allows `.`, `-`, `$` and leading digits in names (`%0`, `%call.i`); Go
does not, and Go reserves 25 keywords. Mapping is deterministic per name, and
a per-function `NameTable` hands out fresh temporaries that cannot collide
with any mapped name.
"""

from __future__ import annotations

import re
from typing import Dict, Set

GO_KEYWORDS = frozenset(
	{
		"break", "case", "chan", "const", "continue", "default", "defer",
		"else", "fallthrough", "for", "func", "go", "goto", "if", "import",
		"interface", "map", "package", "range", "return", "select", "struct",
		"switch", "type", "var",
	}
)

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_]")


def go_name(raw: str) -> str:
	"""
	Map an LLVM identifier (without its `%`/`@` sigil) to a Go identifier.

	- characters outside [A-Za-z0-9_] become `_`
	- a leading digit (numbered values such as `%0`) gets a `_` prefix
	- a Go keyword gets a `_` suffix
	"""
	name = _INVALID_CHARS.sub("_", raw)
	if not name:
		return "_"
	if name[0].isdigit():
		name = "_" + name
	if name in GO_KEYWORDS:
		name = name + "_"
	return name


class NameTable:
	"""
	Per-function identifier table.

	Local bindings are mapped with `go_name`; distinct LLVM names that map to the
	same Go name (`%a.b` and `%a_b`) are told apart with a numeric suffix, in
	first-use order. `fresh` returns temporaries not used by any binding.
	"""

	def __init__(self, reserved: Set[str] | None = None) -> None:
		self._locals: Dict[str, str] = {}
		self._used: Set[str] = set(reserved or ())
		self._temp_counter = 0

	def local(self, raw: str) -> str:
		"""Return the Go identifier of the local binding `raw`."""
		mapped = self._locals.get(raw)
		if mapped is not None:
			return mapped
		base = go_name(raw)
		mapped = base
		suffix = 1
		while mapped in self._used:
			mapped = f"{base}_{suffix}"
			suffix += 1
		self._locals[raw] = mapped
		self._used.add(mapped)
		return mapped

	def reserve(self, raw: str) -> None:
		"""Map `raw` eagerly so later temporaries avoid it."""
		self.local(raw)

	def fresh(self, hint: str = "tmp") -> str:
		"""Return a new identifier that no binding of this function uses."""
		while True:
			candidate = f"{hint}{self._temp_counter}"
			self._temp_counter += 1
			if candidate not in self._used:
				self._used.add(candidate)
				return candidate


__all__ = ["GO_KEYWORDS", "go_name", "NameTable"]
