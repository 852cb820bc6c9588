# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Module-level decompilation tests.

Cases:
  - a predecessor mismatch fails its function with MalformedInput and no
    declaration is emitted for it
  - fail-fast (default), flush-partial and keep-going policies
  - missing primitive list is reported per function
  - declarations never need primitives
  - parallel translation gives the same file as sequential translation
"""

from __future__ import annotations

import logging

import pytest

from ll2go import (
	DecompileOptions,
	InputUnavailable,
	MalformedInput,
	decompile_function,
	decompile_module,
	format_file,
	parse_module,
)
from ll2go.go_nodes import FuncDecl
from ll2go.prims import Primitive

PROGRAM = """\
declare void @sink(i32)

define i32 @first(i32 %a) {
entry:
  ret i32 %a
}

define i32 @bad(i1 %c) {
entry:
  br i1 %c, label %x, label %y
x:
  br label %y
y:
  %r = phi i32 [ 1, %x ], [ 2, %nowhere ]
  ret i32 %r
}

define void @last() {
entry:
  call void @sink(i32 3)
  ret void
}
"""


def _compound() -> list[Primitive]:
	return [Primitive(kind="compound", roles={"body": "entry"})]


PRIMS = {
	"first": _compound(),
	"bad": [
		Primitive(kind="if", roles={"cond": "entry", "body": "x", "exit": "y"}),
	],
	"last": _compound(),
}


def _names(result) -> list[str]:
	return [decl.name.name for decl in result.file.decls if isinstance(decl, FuncDecl)]


def test_fail_fast_emits_nothing():
	result = decompile_module(parse_module(PROGRAM, name="prog"), PRIMS)
	assert result.file is None
	assert not result.ok
	(err,) = result.errors
	assert isinstance(err, MalformedInput)
	assert err.function == "bad"
	assert err.phase == "phi"
	assert "nowhere" in err.labels


def test_flush_partial_keeps_functions_before_the_failure():
	options = DecompileOptions(flush_partial=True)
	result = decompile_module(parse_module(PROGRAM, name="prog"), PRIMS, options)
	assert _names(result) == ["sink", "first"]
	assert len(result.errors) == 1


def test_keep_going_skips_only_the_failing_function(caplog):
	options = DecompileOptions(keep_going=True)
	with caplog.at_level(logging.WARNING, logger="ll2go.decompiler"):
		result = decompile_module(parse_module(PROGRAM, name="prog"), PRIMS, options)
	assert _names(result) == ["sink", "first", "last"]
	assert [e.function for e in result.errors] == ["bad"]
	assert "skipping @bad" in caplog.text
	assert format_file(result.file) == (
		"package prog\n"
		"\n"
		"func sink(int32)\n"
		"\n"
		"func first(a int32) int32 {\n"
		"\treturn a\n"
		"}\n"
		"\n"
		"func last() {\n"
		"\tsink(3)\n"
		"\treturn\n"
		"}\n"
	)


def test_missing_primitive_list_is_reported_per_function():
	prims = {"first": _compound(), "bad": PRIMS["bad"]}
	options = DecompileOptions(keep_going=True)
	result = decompile_module(parse_module(PROGRAM, name="prog"), prims, options)
	assert [(e.function, e.phase, type(e)) for e in result.errors] == [
		("bad", "phi", MalformedInput),
		("last", "feed", InputUnavailable),
	]


def test_declarations_never_consult_primitives():
	module = parse_module(PROGRAM, name="prog")
	result = decompile_function(module.functions[0], {})
	assert result.decl.body is None
	assert result.error is None


def test_function_errors_carry_function_and_phase():
	module = parse_module(PROGRAM, name="prog")
	with pytest.raises(InputUnavailable) as excinfo:
		decompile_function(module.functions[1], {})
	assert excinfo.value.function == "first"
	assert excinfo.value.phase == "feed"


def test_parallel_translation_matches_sequential():
	module = parse_module(PROGRAM, name="prog")
	serial = decompile_module(module, PRIMS, DecompileOptions(keep_going=True))
	parallel = decompile_module(module, PRIMS, DecompileOptions(keep_going=True, jobs=4))
	assert format_file(parallel.file) == format_file(serial.file)
	assert [e.function for e in parallel.errors] == ["bad"]


def test_parallel_fail_fast_stops_at_first_failure_in_input_order():
	module = parse_module(PROGRAM, name="prog")
	result = decompile_module(module, PRIMS, DecompileOptions(jobs=4, flush_partial=True))
	assert _names(result) == ["sink", "first"]


def test_prims_default_to_graphs_dir(tmp_path):
	(tmp_path / "first.json").write_text('[{"prim": "compound", "nodes": {"body": "entry"}}]')
	module = parse_module("define i32 @first(i32 %a) {\nentry:\n  ret i32 %a\n}\n", name="one")
	result = decompile_module(module, options=DecompileOptions(graphs_dir=tmp_path))
	assert result.ok
	assert _names(result) == ["first"]


def test_prims_or_graphs_dir_is_required():
	with pytest.raises(ValueError):
		decompile_module(parse_module(PROGRAM))
