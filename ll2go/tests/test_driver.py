# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Command-line driver tests.

Cases:
  - one IR file with its <stem>_graphs directory prints a Go file
  - a missing feed fails the module (human and JSON diagnostics)
  - --keep-going prints what translated and still exits 1
  - -o to a file and to a directory (one .go per input)
  - argument errors: --graphs-dir with several inputs, unreadable or
    undecodable IR
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ll2go.driver import main

SAMPLE = """\
source_filename = "sample.c"

%struct.Pair = type { i32, double }

@counter = dso_local global i32 0, align 4
@.str = private unnamed_addr constant [4 x i8] c"hi\\0A\\00", align 1

declare i32 @printf(ptr noundef, ...) #1

define dso_local i32 @max(i32 noundef %a, i32 noundef %b) #0 {
entry:
  %cmp = icmp sgt i32 %a, %b
  br i1 %cmp, label %if.then, label %if.end

if.then:
  br label %if.end

if.end:
  %r = phi i32 [ %a, %if.then ], [ %b, %entry ]
  ret i32 %r
}
"""

MAX_FEED = '[{"prim": "if", "node": "if0", "nodes": {"cond": "entry", "body": "if.then", "exit": "if.end"}}]'

MAX_GO = """\
func max(a int32, b int32) int32 {
	var cmp bool
	var r int32
	cmp = a > b
	r = b
	if cmp {
		r = a
	}
	return r
}
"""


def _write_sample(tmp_path: Path, stem: str = "sample", *, feed: bool = True, extra: str = "") -> Path:
	source = tmp_path / f"{stem}.ll"
	source.write_text(SAMPLE + extra)
	graphs = tmp_path / f"{stem}_graphs"
	graphs.mkdir()
	if feed:
		(graphs / "max.json").write_text(MAX_FEED)
	return source


def test_translates_sample_module(tmp_path, capsys):
	source = _write_sample(tmp_path)
	assert main([str(source)]) == 0
	out = capsys.readouterr().out
	assert out.startswith("package sample\n\nimport \"unsafe\"\n")
	assert "type struct_Pair struct {" in out
	assert "var counter int32 = 0\n" in out
	assert "var _str [4]int8 = [4]int8{104, 105, 10, 0}\n" in out
	assert "func printf(unsafe.Pointer, ...interface{}) int32\n" in out
	assert out.endswith(MAX_GO)


def test_missing_feed_fails_module(tmp_path, capsys):
	source = _write_sample(tmp_path, feed=False)
	assert main([str(source)]) == 1
	captured = capsys.readouterr()
	assert captured.out == ""
	assert f"{source}:max: error: [input-unavailable]" in captured.err
	assert "max.json" in captured.err


def test_json_diagnostics(tmp_path, capsys):
	source = _write_sample(tmp_path, feed=False)
	assert main([str(source), "--json"]) == 1
	payload = json.loads(capsys.readouterr().out)
	assert payload["exit_code"] == 1
	assert "sources" not in payload
	(diag,) = payload["diagnostics"]
	assert diag["reason_code"] == "input-unavailable"
	assert diag["phase"] == "feed"
	assert diag["function"] == "max"
	assert diag["file"] == str(source)
	assert diag["severity"] == "error"


def test_json_carries_sources_without_output(tmp_path, capsys):
	source = _write_sample(tmp_path)
	assert main([str(source), "--json"]) == 0
	payload = json.loads(capsys.readouterr().out)
	assert payload["exit_code"] == 0
	assert payload["diagnostics"] == []
	assert list(payload["sources"]) == [str(source)]
	assert payload["sources"][str(source)].endswith(MAX_GO)


def test_keep_going_prints_translated_functions(tmp_path, capsys):
	extra = "\ndefine i32 @id(i32 %x) {\nentry:\n  ret i32 %x\n}\n"
	source = _write_sample(tmp_path, extra=extra)
	assert main([str(source), "--keep-going"]) == 1
	captured = capsys.readouterr()
	assert MAX_GO in captured.out
	assert "func id(" not in captured.out
	assert f"{source}:id: error: [input-unavailable]" in captured.err


def test_output_file(tmp_path, capsys):
	source = _write_sample(tmp_path)
	target = tmp_path / "out.go"
	assert main([str(source), "-o", str(target)]) == 0
	assert capsys.readouterr().out == ""
	assert target.read_text().endswith(MAX_GO)


def test_output_directory_for_several_inputs(tmp_path):
	first = _write_sample(tmp_path, "one")
	second = _write_sample(tmp_path, "two")
	out_dir = tmp_path / "go"
	assert main([str(first), str(second), "-o", str(out_dir)]) == 0
	assert (out_dir / "one.go").read_text().startswith("package one\n")
	assert (out_dir / "two.go").read_text().startswith("package two\n")


def test_explicit_graphs_dir(tmp_path, capsys):
	source = _write_sample(tmp_path, feed=False)
	feeds = tmp_path / "elsewhere"
	feeds.mkdir()
	(feeds / "max.json").write_text(MAX_FEED)
	assert main([str(source), "--graphs-dir", str(feeds)]) == 0
	assert capsys.readouterr().out.endswith(MAX_GO)


def test_graphs_dir_needs_single_input(tmp_path):
	first = _write_sample(tmp_path, "one")
	second = _write_sample(tmp_path, "two")
	with pytest.raises(SystemExit):
		main([str(first), str(second), "--graphs-dir", str(tmp_path)])


def test_unreadable_input(tmp_path, capsys):
	assert main([str(tmp_path / "missing.ll")]) == 1
	assert "cannot read IR file" in capsys.readouterr().err


def test_undecodable_input(tmp_path, capsys):
	source = tmp_path / "latin1.ll"
	source.write_bytes(b"; \xe9t\xe9\ndefine void @f() {\nentry:\n  ret void\n}\n")
	assert main([str(source)]) == 1
	assert "not valid UTF-8" in capsys.readouterr().err


def test_syntax_error_is_reported(tmp_path, capsys):
	source = tmp_path / "broken.ll"
	source.write_text("define i32 @f() {\nentry:\n  bogus\n}\n")
	assert main([str(source), "--json"]) == 1
	(diag,) = json.loads(capsys.readouterr().out)["diagnostics"]
	assert diag["reason_code"] == "malformed-input"
