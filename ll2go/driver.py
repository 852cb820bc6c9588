# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ll2go command-line driver.

Reads one or more textual LLVM IR files, decompiles every function with the
primitive feed found beside each file (or under --graphs-dir), and prints Go
source. Diagnostics go to stderr, or to stdout as one JSON object with --json.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from ll2go.codegen import format_file
from ll2go.decompiler import DecompileOptions, decompile_module
from ll2go.errors import DecompileError, InputUnavailable
from ll2go.prims import default_graphs_dir
from ll2go.stage0 import parse_module

logger = logging.getLogger(__name__)


def _diag_to_json(err: DecompileError, source: Path) -> dict:
	"""Render a DecompileError to a structured JSON-friendly dict."""
	return {
		"phase": err.phase or "reader",
		"reason_code": err.reason_code,
		"message": err.message,
		"severity": "error",
		"file": str(source),
		"function": err.function,
		"labels": list(err.labels),
		"line": None,
		"column": None,
		"notes": list(err.notes),
	}


def _format_human(err: DecompileError, source: Path) -> str:
	return f"{source}:{err.function or '?'}: error: {err.format_human()}"


def _output_path(output: Path | None, source: Path, many: bool) -> Path | None:
	if output is None:
		return None
	if many or output.is_dir():
		output.mkdir(parents=True, exist_ok=True)
		return output / f"{source.stem}.go"
	return output


def _translate(source: Path, options: DecompileOptions) -> tuple[str | None, list[DecompileError]]:
	"""Decompile one IR file; returns (Go text or None, errors)."""
	try:
		text = source.read_text(encoding="utf-8")
	except OSError as err:
		return None, [InputUnavailable(f"cannot read IR file: {err.strerror or err}", phase="reader")]
	except UnicodeDecodeError as err:
		return None, [InputUnavailable(f"IR file is not valid UTF-8: {err.reason}", phase="reader")]
	try:
		if options.verify:
			# Imported lazily: only --verify needs the LLVM shared library.
			from ll2go.verify import verify_ir

			verify_ir(text, source.stem)
		module = parse_module(text, name=source.stem)
	except DecompileError as err:
		return None, [err]

	graphs_dir = options.graphs_dir or default_graphs_dir(source)
	run_opts = DecompileOptions(
		graphs_dir=graphs_dir,
		keep_going=options.keep_going,
		flush_partial=options.flush_partial,
		jobs=options.jobs,
		verify=options.verify,
	)
	try:
		result = decompile_module(module, options=run_opts)
	except DecompileError as err:
		return None, [err]
	if result.file is None:
		return None, result.errors
	return format_file(result.file), result.errors


def main(argv: list[str] | None = None) -> int:
	"""
	Decompile LLVM IR files to Go.

	Exit code 0 when every function of every input translated, 1 otherwise.
	With --json, prints {"exit_code": ..., "diagnostics": [...]} on stdout; Go
	text then only goes to -o (or under "sources" in the payload).
	"""
	parser = argparse.ArgumentParser(prog="ll2go", description="Decompile LLVM IR to structured Go")
	parser.add_argument("source", type=Path, nargs="+", help="Path(s) to textual LLVM IR (.ll) file(s)")
	parser.add_argument(
		"--graphs-dir",
		type=Path,
		help="Directory of <function>.json primitive feeds (default: <module>_graphs beside the input)",
	)
	parser.add_argument(
		"-o",
		"--output",
		type=Path,
		help="Write Go source here (default: stdout); a directory gets one <module>.go per input",
	)
	parser.add_argument("--keep-going", action="store_true", help="Skip failing functions instead of aborting the module")
	parser.add_argument(
		"--flush-partial",
		action="store_true",
		help="Without --keep-going, still emit the functions translated before the first failure",
	)
	parser.add_argument("--verify", action="store_true", help="Verify the IR with LLVM before reading it")
	parser.add_argument("--jobs", type=int, default=1, help="Translate functions on N worker threads")
	parser.add_argument(
		"--json",
		action="store_true",
		help="Emit diagnostics as JSON (phase/reason_code/message/file/function/labels)",
	)
	parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
	args = parser.parse_args(argv)

	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(levelname)s %(name)s: %(message)s",
	)

	source_paths: list[Path] = list(args.source)
	many = len(source_paths) > 1
	if args.graphs_dir is not None and many:
		parser.error("--graphs-dir accepts a single input file")
	if args.jobs < 1:
		parser.error("--jobs must be at least 1")

	options = DecompileOptions(
		graphs_dir=args.graphs_dir,
		keep_going=args.keep_going,
		flush_partial=args.flush_partial,
		jobs=args.jobs,
		verify=args.verify,
	)

	diagnostics: list[dict] = []
	sources: dict[str, str] = {}
	exit_code = 0
	for source_path in source_paths:
		go_text, errors = _translate(source_path, options)
		if errors:
			exit_code = 1
		for err in errors:
			if args.json:
				diagnostics.append(_diag_to_json(err, source_path))
			else:
				print(_format_human(err, source_path), file=sys.stderr)
		if go_text is None:
			continue
		out_path = _output_path(args.output, source_path, many)
		if out_path is not None:
			out_path.write_text(go_text, encoding="utf-8")
			logger.debug("wrote %s", out_path)
		elif args.json:
			sources[str(source_path)] = go_text
		else:
			sys.stdout.write(go_text)

	if args.json:
		payload: dict = {"exit_code": exit_code, "diagnostics": diagnostics}
		if sources:
			payload["sources"] = sources
		print(json.dumps(payload))
	return exit_code


if __name__ == "__main__":  # pragma: no cover
	sys.exit(main())


__all__ = ["main"]
