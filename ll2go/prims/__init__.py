# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Primitive package: control-flow primitive model and the JSON feed loader.

Public API:
  - Primitive, canonical_kind, KIND_ROLES
  - load_prims / parse_prims: per-function feed decoding
  - default_graphs_dir: `<module>_graphs` beside the IR file
"""

from .primitive import (
	COMPOUND,
	IF,
	IF_ELSE,
	IF_RETURN,
	KIND_ALIASES,
	KIND_ROLES,
	POST_LOOP,
	PRE_LOOP,
	REQUIRED_ROLES,
	SEQ,
	Primitive,
	canonical_kind,
)
from .feed import default_graphs_dir, feed_path, load_prims, parse_prims

__all__ = [
	"COMPOUND",
	"IF",
	"IF_ELSE",
	"IF_RETURN",
	"KIND_ALIASES",
	"KIND_ROLES",
	"POST_LOOP",
	"PRE_LOOP",
	"REQUIRED_ROLES",
	"SEQ",
	"Primitive",
	"canonical_kind",
	"default_graphs_dir",
	"feed_path",
	"load_prims",
	"parse_prims",
]
