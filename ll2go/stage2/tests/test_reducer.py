# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Region reduction tests.

Cases:
  - minimal conditional followed by a sequence with the join block
  - pre-test and post-test loops, with phi copies on the back edge; an exit
    phi reading the header phi keeps the last iteration's value
  - a conditional nested in a loop body (branch targets keep original labels)
  - two-armed conditional whose arms both return (no fall-through)
  - conditional with an early return
  - every exact partition reduces to one block; role storage order is irrelevant
  - omission, reuse, unknown labels, bad kinds/roles/conditions and a node
    name that is already live fail loudly
"""

from __future__ import annotations

import pytest
from llvmlite import ir

from ll2go.codegen import format_node
from ll2go.errors import MalformedInput, ReductionIncomplete, UnresolvedReference, UnsupportedConstruct
from ll2go.ir_nodes import (
	BasicBlock,
	BinaryOp,
	Br,
	Call,
	CondBr,
	Function,
	GlobalRef,
	ICmp,
	LocalRef,
	Param,
	Phi,
	Ret,
	Store,
	Switch,
)
from ll2go.prims import Primitive
from ll2go.stage1 import PhiResolver
from ll2go.stage2 import BlockRegistry, RegionReducer
from ll2go.stage3 import FunctionAssembler
from ll2go.translate import FunctionContext

I1 = ir.IntType(1)
I32 = ir.IntType(32)
VOID = ir.VoidType()


def _c(value: int) -> ir.Constant:
	return ir.Constant(I32, value)


def _l(name: str, typ=I32) -> LocalRef:
	return LocalRef(name, typ)


def _setup(func: Function):
	ctx = FunctionContext.for_function(func)
	phi_out = PhiResolver(ctx).run(func)
	registry = BlockRegistry.seed(func.blocks, ctx.stmts, phi_out)
	return ctx, registry, RegionReducer(registry, ctx.stmts)


def _go(func: Function, prims) -> str:
	ctx, _, reducer = _setup(func)
	block = reducer.run(prims)
	return format_node(FunctionAssembler(ctx).assemble(func, block))


# ---------------------------------------------------------------- functions


def _conditional() -> Function:
	"""if x > 0 { *yp = 1 }"""
	yp = ir.PointerType(I32)
	return Function(
		name="f",
		ret_type=VOID,
		params=[Param("x", I32), Param("yp", yp)],
		blocks=[
			BasicBlock("entry", [ICmp("c", "sgt", I32, _l("x"), _c(0))], CondBr(_l("c", I1), "body", "join")),
			BasicBlock("body", [Store(I32, _c(1), _l("yp", yp))], Br("join")),
			BasicBlock("join", [], Ret()),
		],
	)


def _pre_loop() -> Function:
	return Function(
		name="count",
		ret_type=I32,
		params=[Param("n", I32)],
		blocks=[
			BasicBlock("entry", [], Br("head")),
			BasicBlock(
				"head",
				[
					Phi("i", I32, [("entry", _c(0)), ("body", _l("next"))]),
					ICmp("c", "slt", I32, _l("i"), _l("n")),
				],
				CondBr(_l("c", I1), "body", "exit"),
			),
			BasicBlock("body", [BinaryOp("next", "add", I32, _l("i"), _c(1))], Br("head")),
			BasicBlock("exit", [], Ret(_l("i"))),
		],
	)


def _post_loop() -> Function:
	return Function(
		name="count",
		ret_type=I32,
		params=[Param("n", I32)],
		blocks=[
			BasicBlock("entry", [], Br("loop")),
			BasicBlock(
				"loop",
				[
					Phi("i", I32, [("entry", _c(0)), ("loop", _l("next"))]),
					BinaryOp("next", "add", I32, _l("i"), _c(1)),
					ICmp("c", "slt", I32, _l("next"), _l("n")),
				],
				CondBr(_l("c", I1), "loop", "done"),
			),
			BasicBlock("done", [], Ret(_l("next"))),
		],
	)


def _nested() -> Function:
	hit = GlobalRef("hit", ir.PointerType())
	return Function(
		name="scan",
		ret_type=VOID,
		params=[Param("n", I32)],
		blocks=[
			BasicBlock("entry", [], Br("head")),
			BasicBlock(
				"head",
				[
					Phi("i", I32, [("entry", _c(0)), ("latch", _l("next"))]),
					ICmp("c", "slt", I32, _l("i"), _l("n")),
				],
				CondBr(_l("c", I1), "body", "exit"),
			),
			BasicBlock("body", [ICmp("odd", "eq", I32, _l("i"), _c(3))], CondBr(_l("odd", I1), "then", "latch")),
			BasicBlock("then", [Call(None, VOID, hit, [_l("i")])], Br("latch")),
			BasicBlock("latch", [BinaryOp("next", "add", I32, _l("i"), _c(1))], Br("head")),
			BasicBlock("exit", [], Ret()),
		],
	)


def _both_return() -> Function:
	return Function(
		name="pick",
		ret_type=I32,
		params=[Param("c", I1), Param("a", I32)],
		blocks=[
			BasicBlock("entry", [], CondBr(_l("c", I1), "yes", "no")),
			BasicBlock("yes", [], Ret(_l("a"))),
			BasicBlock("no", [], Ret(_c(0))),
		],
	)


def _early_return() -> Function:
	return Function(
		name="f",
		ret_type=I32,
		params=[Param("x", I32)],
		blocks=[
			BasicBlock("entry", [ICmp("neg", "slt", I32, _l("x"), _c(0))], CondBr(_l("neg", I1), "early", "rest")),
			BasicBlock("early", [], Ret(_c(0))),
			BasicBlock("rest", [BinaryOp("y", "mul", I32, _l("x"), _c(2))], Ret(_l("y"))),
		],
	)


CONDITIONAL_PRIMS = [
	Primitive(kind="if", roles={"cond": "entry", "body": "body"}, node="if0"),
	Primitive(kind="seq", roles={"entry": "if0", "exit": "join"}, node="seq0"),
]

PRE_LOOP_PRIMS = [
	Primitive(kind="pre_loop", roles={"cond": "head", "body": "body"}, node="loop0"),
	Primitive(kind="seq", sequence=["entry", "loop0", "exit"], node="seq0"),
]

POST_LOOP_PRIMS = [
	Primitive(kind="post_loop", roles={"cond": "loop"}, node="loop0"),
	Primitive(kind="seq", sequence=["entry", "loop0", "done"], node="seq0"),
]

NESTED_PRIMS = [
	Primitive(kind="if", roles={"cond": "body", "body": "then"}, node="if0"),
	Primitive(kind="seq", roles={"entry": "if0", "exit": "latch"}, node="s0"),
	Primitive(kind="pre_loop", roles={"cond": "head", "body": "s0"}, node="loop0"),
	Primitive(kind="seq", sequence=["entry", "loop0", "exit"], node="s1"),
]

BOTH_RETURN_PRIMS = [
	Primitive(kind="if_else", roles={"cond": "entry", "body_true": "yes", "body_false": "no"}, node="ite0"),
]

EARLY_RETURN_PRIMS = [
	Primitive(kind="if_return", roles={"cond": "entry", "body": "early", "exit": "rest"}, node="ifr0"),
]


# ---------------------------------------------------------------- shapes


def test_minimal_conditional_then_join():
	assert _go(_conditional(), CONDITIONAL_PRIMS) == (
		"func f(x int32, yp *int32) {\n"
		"\tvar c bool\n"
		"\tc = x > 0\n"
		"\tif c {\n"
		"\t\t*yp = 1\n"
		"\t}\n"
		"\treturn\n"
		"}"
	)


def test_pre_test_loop_with_header_statements():
	assert _go(_pre_loop(), PRE_LOOP_PRIMS) == (
		"func count(n int32) int32 {\n"
		"\tvar i int32\n"
		"\tvar c bool\n"
		"\tvar next int32\n"
		"\ti = 0\n"
		"\tfor {\n"
		"\t\tc = i < n\n"
		"\t\tif !c {\n"
		"\t\t\tbreak\n"
		"\t\t}\n"
		"\t\tnext = i + 1\n"
		"\t\ti = next\n"
		"\t}\n"
		"\treturn i\n"
		"}"
	)


def test_pre_test_loop_without_header_statements_uses_for_condition():
	func = Function(
		name="spin",
		ret_type=VOID,
		params=[Param("c", I1)],
		blocks=[
			BasicBlock("head", [], CondBr(_l("c", I1), "body", "exit")),
			BasicBlock("body", [Call(None, VOID, GlobalRef("tick", ir.PointerType()), [])], Br("head")),
			BasicBlock("exit", [], Ret()),
		],
	)
	prims = [
		Primitive(kind="pre_loop", roles={"cond": "head", "body": "body", "exit": "exit"}, node="loop0"),
	]
	assert _go(func, prims) == "func spin(c bool) {\n\tfor c {\n\t\ttick()\n\t}\n\treturn\n}"


def test_post_test_loop():
	assert _go(_post_loop(), POST_LOOP_PRIMS) == (
		"func count(n int32) int32 {\n"
		"\tvar i int32\n"
		"\tvar next int32\n"
		"\tvar c bool\n"
		"\ti = 0\n"
		"\tfor {\n"
		"\t\tnext = i + 1\n"
		"\t\tc = next < n\n"
		"\t\ti = next\n"
		"\t\tif !c {\n"
		"\t\t\tbreak\n"
		"\t\t}\n"
		"\t}\n"
		"\treturn next\n"
		"}"
	)


def _post_loop_with_exit_phi() -> Function:
	return Function(
		name="last",
		ret_type=I32,
		params=[],
		blocks=[
			BasicBlock("entry", [], Br("loop")),
			BasicBlock(
				"loop",
				[
					Phi("i", I32, [("entry", _c(0)), ("loop", _l("n"))]),
					BinaryOp("n", "add", I32, _l("i"), _c(1)),
					ICmp("c", "slt", I32, _l("n"), _c(10)),
				],
				CondBr(_l("c", I1), "loop", "exit"),
			),
			BasicBlock("exit", [Phi("r", I32, [("loop", _l("i"))])], Ret(_l("r"))),
		],
	)


def test_post_test_loop_exit_phi_keeps_the_last_iteration_value():
	prims = [
		Primitive(kind="post_loop", roles={"cond": "loop"}, node="loop0"),
		Primitive(kind="seq", sequence=["entry", "loop0", "exit"], node="seq0"),
	]
	assert _go(_post_loop_with_exit_phi(), prims) == (
		"func last() int32 {\n"
		"\tvar i int32\n"
		"\tvar n int32\n"
		"\tvar c bool\n"
		"\tvar r int32\n"
		"\tvar tmp0 int32\n"
		"\tvar tmp1 int32\n"
		"\ti = 0\n"
		"\tfor {\n"
		"\t\tn = i + 1\n"
		"\t\tc = n < 10\n"
		"\t\ttmp0 = n\n"
		"\t\ttmp1 = i\n"
		"\t\ti = tmp0\n"
		"\t\tr = tmp1\n"
		"\t\tif !c {\n"
		"\t\t\tbreak\n"
		"\t\t}\n"
		"\t}\n"
		"\treturn r\n"
		"}"
	)


def test_conditional_nested_in_loop_body():
	assert _go(_nested(), NESTED_PRIMS) == (
		"func scan(n int32) {\n"
		"\tvar i int32\n"
		"\tvar c bool\n"
		"\tvar odd bool\n"
		"\tvar next int32\n"
		"\ti = 0\n"
		"\tfor {\n"
		"\t\tc = i < n\n"
		"\t\tif !c {\n"
		"\t\t\tbreak\n"
		"\t\t}\n"
		"\t\todd = i == 3\n"
		"\t\tif odd {\n"
		"\t\t\thit(i)\n"
		"\t\t}\n"
		"\t\tnext = i + 1\n"
		"\t\ti = next\n"
		"\t}\n"
		"\treturn\n"
		"}"
	)


def test_two_armed_conditional_where_both_arms_return():
	ctx, _, reducer = _setup(_both_return())
	block = reducer.run(BOTH_RETURN_PRIMS)
	assert block.terminator is None
	text = format_node(FunctionAssembler(ctx).assemble(_both_return(), block))
	assert text == (
		"func pick(c bool, a int32) int32 {\n"
		"\tif c {\n"
		"\t\treturn a\n"
		"\t} else {\n"
		"\t\treturn 0\n"
		"\t}\n"
		"}"
	)


def test_two_armed_conditional_matches_arms_by_branch_target():
	swapped = [Primitive(kind="if_else", roles={"cond": "entry", "body_true": "no", "body_false": "yes"})]
	assert _go(_both_return(), swapped) == _go(_both_return(), BOTH_RETURN_PRIMS)


def test_conditional_with_early_return():
	assert _go(_early_return(), EARLY_RETURN_PRIMS) == (
		"func f(x int32) int32 {\n"
		"\tvar neg bool\n"
		"\tvar y int32\n"
		"\tneg = x < 0\n"
		"\tif neg {\n"
		"\t\treturn 0\n"
		"\t}\n"
		"\ty = x * 2\n"
		"\treturn y\n"
		"}"
	)


def test_early_return_body_must_leave_the_function():
	prims = [Primitive(kind="if_return", roles={"cond": "entry", "body": "body", "exit": "join"})]
	with pytest.raises(MalformedInput):
		_go(_conditional(), prims)


def test_compound_wraps_a_single_block():
	func = Function(name="g", ret_type=VOID, blocks=[BasicBlock("entry", [], Ret())])
	prims = [Primitive(kind="compound", roles={"body": "entry"}, node="c0")]
	assert _go(func, prims) == "func g() {\n\treturn\n}"


# ---------------------------------------------------------------- properties


@pytest.mark.parametrize(
	"build, prims",
	[
		(_conditional, CONDITIONAL_PRIMS),
		(_pre_loop, PRE_LOOP_PRIMS),
		(_post_loop, POST_LOOP_PRIMS),
		(_nested, NESTED_PRIMS),
		(_both_return, BOTH_RETURN_PRIMS),
		(_early_return, EARLY_RETURN_PRIMS),
	],
)
def test_exact_partition_reduces_to_one_block(build, prims):
	_, registry, reducer = _setup(build())
	reducer.run(prims)
	assert len(registry) == 1


def test_role_storage_order_does_not_change_output():
	reordered = [
		Primitive(kind="if", roles={"body": "then", "cond": "body"}, node="if0"),
		Primitive(kind="seq", roles={"exit": "latch", "entry": "if0"}, node="s0"),
		Primitive(kind="pre_loop", roles={"body": "s0", "cond": "head"}, node="loop0"),
		Primitive(kind="seq", sequence=["entry", "loop0", "exit"], node="s1"),
	]
	assert _go(_nested(), reordered) == _go(_nested(), NESTED_PRIMS)


def test_omitted_block_leaves_it_and_one_region():
	_, registry, reducer = _setup(_conditional())
	with pytest.raises(ReductionIncomplete) as excinfo:
		reducer.run(CONDITIONAL_PRIMS[:1])
	err = excinfo.value
	assert err.remaining == 2
	assert set(err.labels) == {"join", "if0"}
	assert registry.live_labels() == ["join", "if0"]


def test_node_name_of_a_live_block_is_malformed():
	_, registry, reducer = _setup(_conditional())
	with pytest.raises(MalformedInput) as excinfo:
		reducer.apply(Primitive(kind="if", roles={"cond": "entry", "body": "body"}, node="join"))
	assert excinfo.value.labels == ("join",)
	assert "already a live block" in excinfo.value.message
	assert registry.live_labels() == ["entry", "body", "join"]


def test_node_name_may_reuse_a_member_label():
	_, registry, reducer = _setup(_conditional())
	block = reducer.apply(Primitive(kind="if", roles={"cond": "entry", "body": "body"}, node="entry"))
	assert block.label == "entry"
	assert registry.live_labels() == ["join", "entry"]


def test_missing_node_name_gets_a_fresh_label():
	_, registry, reducer = _setup(_conditional())
	block = reducer.apply(Primitive(kind="if", roles={"cond": "entry", "body": "body"}))
	assert block.label == "if_0"
	assert block.entry == "entry"


# ---------------------------------------------------------------- failures


def test_consumed_member_is_unresolved():
	_, _, reducer = _setup(_conditional())
	reducer.apply(CONDITIONAL_PRIMS[0])
	with pytest.raises(UnresolvedReference) as excinfo:
		reducer.apply(Primitive(kind="seq", roles={"entry": "body", "exit": "join"}))
	assert excinfo.value.labels == ("body",)
	assert "already consumed by if 'if0'" in excinfo.value.message


def test_unknown_member_is_unresolved():
	_, _, reducer = _setup(_conditional())
	with pytest.raises(UnresolvedReference) as excinfo:
		reducer.apply(Primitive(kind="seq", roles={"entry": "entry", "exit": "ghost"}))
	assert "no such block" in excinfo.value.message


def test_repeated_member_is_unresolved():
	_, _, reducer = _setup(_conditional())
	with pytest.raises(UnresolvedReference):
		reducer.apply(Primitive(kind="seq", sequence=["entry", "body", "entry"]))


def test_failed_primitive_consumes_nothing():
	_, registry, reducer = _setup(_conditional())
	with pytest.raises(UnresolvedReference):
		reducer.apply(Primitive(kind="seq", roles={"entry": "entry", "exit": "ghost"}))
	assert registry.live_labels() == ["entry", "body", "join"]


def test_unknown_kind_is_unsupported():
	_, _, reducer = _setup(_conditional())
	with pytest.raises(UnsupportedConstruct):
		reducer.apply(Primitive(kind="switch", roles={"cond": "entry"}))


def test_missing_role_is_malformed():
	_, _, reducer = _setup(_conditional())
	with pytest.raises(MalformedInput) as excinfo:
		reducer.apply(Primitive(kind="if", roles={"cond": "entry"}))
	assert "body" in excinfo.value.message


def test_cond_member_must_branch_conditionally():
	_, _, reducer = _setup(_conditional())
	with pytest.raises(MalformedInput):
		reducer.apply(Primitive(kind="if", roles={"cond": "body", "body": "join"}))


def test_body_must_be_a_successor_of_cond():
	func = _nested()
	_, _, reducer = _setup(func)
	with pytest.raises(MalformedInput):
		reducer.apply(Primitive(kind="if", roles={"cond": "head", "body": "then"}))


def test_switch_condition_is_unsupported():
	func = Function(
		name="sw",
		ret_type=VOID,
		params=[Param("v", I32)],
		blocks=[
			BasicBlock("entry", [], Switch(_l("v"), "other", [(_c(1), "one")])),
			BasicBlock("one", [], Ret()),
			BasicBlock("other", [], Ret()),
		],
	)
	_, _, reducer = _setup(func)
	with pytest.raises(UnsupportedConstruct):
		reducer.apply(Primitive(kind="if", roles={"cond": "entry", "body": "one"}))
