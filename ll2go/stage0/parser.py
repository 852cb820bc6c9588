# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 0: LLVM IR text → in-memory IR (ll2go.ir_nodes).

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Reading happens in two steps:
  1. `normalize_ir_text` drops what the decompiler never looks at (metadata,
     attribute groups, alignment, linkage/visibility, poison-generating flags,
     parameter attributes). Dropped lines are replaced by empty lines so parse
     errors keep their line numbers; columns refer to the normalized line.
  2. A lark LALR parser (`ll.lark`) builds a tree, which `_build_*` helpers turn
     into IR nodes with llvmlite types and constants.
"""

from __future__ import annotations

import re
import struct
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput
from llvmlite import ir

from ll2go.errors import MalformedInput
from ll2go.ir_nodes import (
	Alloca,
	BasicBlock,
	BinaryOp,
	Br,
	Call,
	Cast,
	CondBr,
	FCmp,
	Function,
	GetElementPtr,
	GlobalRef,
	GlobalVar,
	ICmp,
	Instr,
	Load,
	LocalRef,
	Module,
	Param,
	Phi,
	Ret,
	Select,
	Store,
	Switch,
	Terminator,
	Unreachable,
	Value,
)

_GRAMMAR_PATH = Path(__file__).with_name("ll.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="module",
	propagate_positions=True,
	maybe_placeholders=False,
)

# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

_DROP_LINE_RE = re.compile(
	r"^\s*(?:source_filename\b|target\s+(?:datalayout|triple)\b|attributes\s+#|!|\$|uselistorder)"
)
# llvm.dbg.* intrinsics take metadata operands.
_DEBUG_INTRINSIC_RE = re.compile(r"@llvm\.dbg\.")

_STRIP_RES = [
	re.compile(r",\s*![\w.]+\s+(?:!\d+|!\{[^}]*\})"),
	re.compile(r"![\w.]+\s+!\d+"),
	re.compile(r"#\d+"),
	re.compile(r",\s*align\s+\d+"),
	re.compile(r'\bsection\s+"[^"]*"'),
	re.compile(r",?\s*\bcomdat(?:\(\$[^)]*\))?"),
	re.compile(r"\bpersonality\s+ptr\s+@[-\w.$]+"),
	re.compile(
		r"(?<![%@\w.\"$-])(?:sret|byval|byref|inalloca|preallocated|elementtype|dereferenceable"
		r"|dereferenceable_or_null|nofpclass|range|align|addrspace|allocsize|memory)\([^)]*\)"
	),
	re.compile(r"(?<![%@\w.\"$-])align\s+\d+"),
]

ATTR_WORDS = (
	# poison-generating flags
	"nsw", "nuw", "exact", "inbounds", "nusw", "disjoint", "nneg", "samesign",
	# parameter / return attributes
	"noundef", "nonnull", "nocapture", "nofree", "noalias", "readonly", "readnone",
	"writeonly", "returned", "signext", "zeroext", "inreg", "nest", "immarg",
	# linkage, visibility, preemption
	"dso_local", "dso_preemptable", "local_unnamed_addr", "unnamed_addr",
	"private", "internal", "linkonce_odr", "linkonce", "weak_odr", "weak",
	"common", "appending", "extern_weak", "available_externally",
	"hidden", "protected", "thread_local",
	# call markers and calling conventions
	"tail", "musttail", "notail", "fastcc", "ccc", "coldcc",
	# memory access and fast-math flags
	"volatile", "fast", "nnan", "ninf", "nsz", "arcp", "contract", "afn", "reassoc",
)
_ATTR_WORD_RE = re.compile(r"(?<![%@\w.\"$-])(?:" + "|".join(ATTR_WORDS) + r")(?![\w.])")


def normalize_ir_line(line: str) -> str:
	"""Strip everything the reader does not model from one line of IR."""
	for pattern in _STRIP_RES:
		line = pattern.sub("", line)
	line = _ATTR_WORD_RE.sub("", line)
	return re.sub(r"[ \t]+", " ", line).rstrip()


def normalize_ir_text(text: str) -> str:
	"""Normalize a whole module; line count is preserved."""
	out: List[str] = []
	for line in text.splitlines():
		if _DROP_LINE_RE.match(line) or _DEBUG_INTRINSIC_RE.search(line):
			out.append("")
			continue
		out.append(normalize_ir_line(line))
	return "\n".join(out) + "\n"


# ---------------------------------------------------------------------------
# Tree → IR
# ---------------------------------------------------------------------------

def _strip_sigil(tok: Token) -> str:
	name = str(tok)
	if name[:1] in ("%", "@"):
		name = name[1:]
	if name.endswith(":"):
		name = name[:-1]
	if len(name) >= 2 and name[0] == '"' and name[-1] == '"':
		name = name[1:-1]
	return name


def parse_llvm_string_literal(body: str) -> bytes:
	"""Decode the body of a `c"..."` constant (`\\XX` hex escapes, `\\\\`)."""
	out = bytearray()
	idx = 0
	while idx < len(body):
		ch = body[idx]
		if ch != "\\":
			out.extend(ch.encode("utf-8"))
			idx += 1
			continue
		if body[idx + 1:idx + 2] == "\\":
			out.append(ord("\\"))
			idx += 2
			continue
		hx = body[idx + 1:idx + 3]
		if len(hx) != 2:
			raise MalformedInput(f'bad string escape in c"{body}"')
		out.append(int(hx, 16))
		idx += 3
	return bytes(out)


def _meta_error(tree: Tree, message: str) -> MalformedInput:
	line = getattr(tree.meta, "line", None)
	notes = (f"line {line}",) if line is not None else ()
	return MalformedInput(message, notes=notes)


class _ModuleBuilder:
	"""Walk a parsed module tree; identified types live in one llvmlite context."""

	def __init__(self, name: str) -> None:
		self.name = name
		self.context = ir.Context()
		self.struct_types: Dict[str, ir.IdentifiedStructType] = {}

	# ---------------------------------------------------------------- types

	def named(self, name: str) -> ir.IdentifiedStructType:
		typ = self.struct_types.get(name)
		if typ is None:
			typ = self.context.get_identified_type(name)
			self.struct_types[name] = typ
		return typ

	def type(self, tree: Tree) -> ir.Type:
		kind = tree.data
		kids = tree.children
		if kind == "int_type":
			return ir.IntType(int(str(kids[0])[1:]))
		if kind == "void_type":
			return ir.VoidType()
		if kind == "float_type":
			return ir.FloatType()
		if kind == "double_type":
			return ir.DoubleType()
		if kind == "opaque_ptr_type":
			return ir.PointerType()
		if kind == "ptr_type":
			return ir.PointerType(self.type(kids[0]))
		if kind == "array_type":
			return ir.ArrayType(self.type(kids[1]), int(kids[0]))
		if kind == "struct_type":
			return ir.LiteralStructType([self.type(k) for k in kids])
		if kind == "named_type":
			return self.named(_strip_sigil(kids[0]))
		if kind == "func_type":
			args, var_arg = self._type_list(kids[1] if len(kids) > 1 else None)
			return ir.FunctionType(self.type(kids[0]), args, var_arg=var_arg)
		raise _meta_error(tree, f"unexpected type node '{kind}'")

	def _type_list(self, tree: Optional[Tree]) -> Tuple[List[ir.Type], bool]:
		if tree is None:
			return [], False
		args = [self.type(k) for k in tree.children if isinstance(k, Tree)]
		var_arg = any(isinstance(k, Token) and k.type == "VARARGS" for k in tree.children)
		return args, var_arg

	# ---------------------------------------------------------------- values

	def value(self, tree: Tree, typ: ir.Type) -> Value:
		kind = tree.data
		kids = tree.children
		if kind == "local":
			return LocalRef(_strip_sigil(kids[0]), typ)
		if kind == "global_ref":
			return GlobalRef(_strip_sigil(kids[0]), typ)
		try:
			return self._constant(kind, kids, typ)
		except (TypeError, ValueError) as err:
			raise _meta_error(tree, f"invalid constant of type '{typ}': {err}") from err

	def _constant(self, kind: str, kids: list, typ: ir.Type) -> ir.Constant:
		if kind == "int_lit":
			if isinstance(typ, (ir.FloatType, ir.DoubleType)):
				return ir.Constant(typ, float(int(kids[0])))
			return ir.Constant(typ, int(kids[0]))
		if kind == "float_lit":
			return ir.Constant(typ, float(kids[0]))
		if kind == "hex_float_lit":
			bits = int(str(kids[0])[2:], 16)
			return ir.Constant(typ, struct.unpack(">d", bits.to_bytes(8, "big"))[0])
		if kind == "true_lit":
			return ir.Constant(typ, 1)
		if kind == "false_lit":
			return ir.Constant(typ, 0)
		if kind in ("null_lit", "zero_lit"):
			return ir.Constant(typ, None)
		if kind == "undef_lit":
			return ir.Constant(typ, ir.Undefined)
		if kind == "cstring_lit":
			data = parse_llvm_string_literal(str(kids[0])[2:-1])
			return ir.Constant(typ, list(data))
		if kind in ("struct_lit", "array_lit"):
			return ir.Constant(typ, [self.typed_value(k) for k in kids])
		raise ValueError(f"unexpected value node '{kind}'")

	def typed_value(self, tree: Tree) -> Value:
		typ = self.type(tree.children[0])
		return self.value(tree.children[1], typ)

	# ---------------------------------------------------------------- instructions

	def instruction(self, tree: Tree) -> Instr:
		kind = tree.data
		if kind == "store":
			ty_v, val, ty_p, ptr = tree.children
			typ = self.type(ty_v)
			return Store(type=typ, value=self.value(val, typ), ptr=self.value(ptr, self.type(ty_p)))
		if kind == "void_call":
			return self._call(None, tree.children[0])
		if kind != "assign":
			raise _meta_error(tree, f"unexpected instruction node '{kind}'")

		dest = _strip_sigil(tree.children[0])
		op = tree.children[1]
		kids = op.children
		if op.data == "binop":
			typ = self.type(kids[1])
			return BinaryOp(dest=dest, op=str(kids[0]), type=typ, left=self.value(kids[2], typ), right=self.value(kids[3], typ))
		if op.data in ("icmp", "fcmp"):
			typ = self.type(kids[1])
			cls = ICmp if op.data == "icmp" else FCmp
			return cls(dest=dest, pred=str(kids[0]), type=typ, left=self.value(kids[2], typ), right=self.value(kids[3], typ))
		if op.data == "alloca":
			count = None
			if len(kids) == 3:
				count = self.value(kids[2], self.type(kids[1]))
			return Alloca(dest=dest, type=self.type(kids[0]), count=count)
		if op.data == "load":
			return Load(dest=dest, type=self.type(kids[0]), ptr=self.value(kids[2], self.type(kids[1])))
		if op.data == "cast":
			return Cast(dest=dest, op=str(kids[0]), value=self.value(kids[2], self.type(kids[1])), to_type=self.type(kids[3]))
		if op.data == "select":
			return Select(
				dest=dest,
				cond=self.value(kids[1], self.type(kids[0])),
				if_true=self.value(kids[3], self.type(kids[2])),
				if_false=self.value(kids[5], self.type(kids[4])),
			)
		if op.data == "gep":
			return GetElementPtr(
				dest=dest,
				source_type=self.type(kids[0]),
				ptr=self.value(kids[2], self.type(kids[1])),
				indices=[self.typed_value(k) for k in kids[3:]],
			)
		if op.data == "phi":
			typ = self.type(kids[0])
			incoming = [(_strip_sigil(inc.children[1]), self.value(inc.children[0], typ)) for inc in kids[1:]]
			return Phi(dest=dest, type=typ, incoming=incoming)
		if op.data == "call":
			return self._call(dest, op)
		raise _meta_error(op, f"unexpected instruction node '{op.data}'")

	def _call(self, dest: Optional[str], tree: Tree) -> Call:
		fn_type = self.type(tree.children[0])
		ret_type = fn_type.return_type if isinstance(fn_type, ir.FunctionType) else fn_type
		callee = self.value(tree.children[1], fn_type)
		args = [self.typed_value(k) for k in tree.children[2:]]
		return Call(dest=dest, ret_type=ret_type, callee=callee, args=args)

	def terminator(self, tree: Tree) -> Terminator:
		kind = tree.data
		kids = tree.children
		if kind == "ret":
			typ = self.type(kids[0])
			if len(kids) == 1:
				if not isinstance(typ, ir.VoidType):
					raise _meta_error(tree, f"ret of type '{typ}' needs a value")
				return Ret()
			return Ret(value=self.value(kids[1], typ))
		if kind == "br":
			return Br(target=_strip_sigil(kids[0]))
		if kind == "cond_br":
			cond_type = ir.IntType(int(str(kids[0])[1:]))
			return CondBr(
				cond=self.value(kids[1], cond_type),
				true_target=_strip_sigil(kids[2]),
				false_target=_strip_sigil(kids[3]),
			)
		if kind == "switch":
			typ = self.type(kids[0])
			cases = []
			for case in kids[3:]:
				case_type = self.type(case.children[0])
				cases.append((self.value(case.children[1], case_type), _strip_sigil(case.children[2])))
			return Switch(value=self.value(kids[1], typ), default=_strip_sigil(kids[2]), cases=cases)
		if kind == "unreachable":
			return Unreachable()
		raise _meta_error(tree, f"unexpected terminator node '{kind}'")

	# ---------------------------------------------------------------- blocks / functions

	def block(self, tree: Tree, default_name: Optional[str]) -> BasicBlock:
		kids = list(tree.children)
		name = default_name
		if kids and isinstance(kids[0], Token) and kids[0].type == "LABEL_DEF":
			name = _strip_sigil(kids.pop(0))
		if name is None:
			raise _meta_error(tree, "basic block without a label")
		*instrs, term = kids
		return BasicBlock(
			name=name,
			instructions=[self.instruction(k) for k in instrs],
			terminator=self.terminator(term),
		)

	def params(self, tree: Optional[Tree]) -> Tuple[List[Param], bool]:
		if tree is None:
			return [], False
		params: List[Param] = []
		var_arg = False
		for kid in tree.children:
			if isinstance(kid, Token) and kid.type == "VARARGS":
				var_arg = True
				continue
			name = _strip_sigil(kid.children[1]) if len(kid.children) > 1 else ""
			params.append(Param(name=name, type=self.type(kid.children[0])))
		return params, var_arg

	def function(self, tree: Tree) -> Function:
		kids = list(tree.children)
		ret_type = self.type(kids[0])
		name = _strip_sigil(kids[1])
		rest = kids[2:]
		params_tree = None
		if rest and isinstance(rest[0], Tree) and rest[0].data == "params":
			params_tree = rest.pop(0)
		params, var_arg = self.params(params_tree)
		func = Function(name=name, ret_type=ret_type, params=params, var_arg=var_arg)
		if tree.data == "declare":
			return func
		# An unlabeled entry block takes the next number after unnamed params.
		entry_name = str(sum(1 for p in params if p.name.isdigit()))
		blocks = [self.block(rest[0], entry_name)]
		blocks.extend(self.block(k, None) for k in rest[1:])
		names = [b.name for b in blocks]
		dupes = sorted({n for n in names if names.count(n) > 1})
		if dupes:
			raise _meta_error(tree, f"function '@{name}' defines block label(s) more than once: {', '.join(dupes)}")
		func.blocks = blocks
		return func

	def module(self, tree: Tree) -> Module:
		module = Module(name=self.name)
		for item in tree.children:
			kind = item.data
			kids = item.children
			if kind == "type_def":
				typ = self.named(_strip_sigil(kids[0]))
				body = kids[1]
				if isinstance(body, Tree):
					elements = self.type(body)
					if not isinstance(elements, ir.LiteralStructType):
						raise _meta_error(item, f"type '%{typ.name}' must be a struct")
					typ.set_body(*elements.elements)
				module.types.append(typ)
			elif kind == "global_def":
				typ = self.type(kids[2])
				module.globals.append(
					GlobalVar(
						name=_strip_sigil(kids[0]),
						type=typ,
						init=self.value(kids[3], typ),
						constant=str(kids[1]) == "constant",
					)
				)
			elif kind == "extern_global":
				module.globals.append(
					GlobalVar(name=_strip_sigil(kids[0]), type=self.type(kids[2]), constant=str(kids[1]) == "constant")
				)
			elif kind in ("declare", "define"):
				module.functions.append(self.function(item))
			else:
				raise _meta_error(item, f"unexpected top-level node '{kind}'")
		return module


def parse_module(text: str, name: str = "module") -> Module:
	"""
	Parse LLVM IR text into a Module.

	Syntax errors (and IR the reader does not model) raise MalformedInput with
	the line and column of the offending token.
	"""
	source = normalize_ir_text(text)
	try:
		tree = _PARSER.parse(source)
	except UnexpectedInput as err:
		line = getattr(err, "line", None)
		column = getattr(err, "column", None)
		context = err.get_context(source).rstrip() if line not in (None, -1) else ""
		notes = (context,) if context else ()
		raise MalformedInput(f"{name}:{line}:{column}: cannot parse IR", notes=notes) from err
	return _ModuleBuilder(name).module(tree)


def parse_file(path: Path) -> Module:
	"""Parse an `.ll` file; the module is named after the file stem."""
	return parse_module(Path(path).read_text(encoding="utf-8"), name=Path(path).stem)


__all__ = ["ATTR_WORDS", "normalize_ir_line", "normalize_ir_text", "parse_llvm_string_literal", "parse_module", "parse_file"]
