# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Primitive feed loader.

The structural-analysis collaborator writes one JSON file per function,
`<graphs-dir>/<function>.json`, holding an ordered list of records:

  {"prim": "if", "node": "if0", "entry": "A", "nodes": {"cond": "A", "body": "B", "exit": "C"}}

A sequence may list its members explicitly instead:

  {"prim": "seq", "node": "seq0", "members": ["A", "B", "C"]}

Any problem with the file (missing, unreadable, not JSON, malformed record)
is an InputUnavailable error for that function only.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List

from ll2go.errors import InputUnavailable
from ll2go.prims.primitive import Primitive, canonical_kind


def default_graphs_dir(ir_path: Path) -> Path:
	"""`foo.ll` → `foo_graphs/` beside it."""
	return ir_path.with_name(f"{ir_path.stem}_graphs")


def feed_path(graphs_dir: Path, func_name: str) -> Path:
	return graphs_dir / f"{func_name}.json"


def _record(idx: int, raw: Any) -> Primitive:
	def bad(why: str) -> InputUnavailable:
		return InputUnavailable(f"primitive record #{idx}: {why}")

	if not isinstance(raw, dict):
		raise bad("expected an object")
	tag = raw.get("prim")
	if not isinstance(tag, str) or not tag:
		raise bad("missing or non-string 'prim'")
	nodes = raw.get("nodes", {})
	if not isinstance(nodes, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in nodes.items()):
		raise bad("'nodes' must map role names to block labels")
	members = raw.get("members", [])
	if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
		raise bad("'members' must be a list of block labels")
	node = raw.get("node")
	entry = raw.get("entry")
	for key, val in (("node", node), ("entry", entry)):
		if val is not None and not isinstance(val, str):
			raise bad(f"'{key}' must be a string")
	return Primitive(kind=canonical_kind(tag), roles=dict(nodes), sequence=list(members), node=node, entry=entry)


def parse_prims(text: str, *, source: str = "<feed>") -> List[Primitive]:
	"""Decode a feed document (JSON text) into primitives, in order."""
	try:
		data = json.loads(text)
	except json.JSONDecodeError as err:
		raise InputUnavailable(f"{source}: invalid JSON: {err}") from err
	if not isinstance(data, list):
		raise InputUnavailable(f"{source}: expected a list of primitive records")
	try:
		return [_record(idx, raw) for idx, raw in enumerate(data)]
	except InputUnavailable as err:
		raise InputUnavailable(f"{source}: {err.message}") from err


def load_prims(graphs_dir: Path, func_name: str) -> List[Primitive]:
	"""Read the primitive list of `func_name` from `graphs_dir`."""
	path = feed_path(graphs_dir, func_name)
	try:
		text = path.read_text(encoding="utf-8")
	except OSError as err:
		raise InputUnavailable(f"cannot read primitive feed '{path}': {err.strerror or err}") from err
	except UnicodeDecodeError as err:
		raise InputUnavailable(f"primitive feed '{path}' is not valid UTF-8: {err.reason}") from err
	return parse_prims(text, source=str(path))


__all__ = ["default_graphs_dir", "feed_path", "parse_prims", "load_prims"]
