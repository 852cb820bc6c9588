# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Identifier mapping tests.

Cases:
  - LLVM punctuation and numbered values become valid Go identifiers
  - Go keywords are escaped
  - distinct LLVM names that collide after mapping stay distinct
  - temporaries never reuse a mapped name
"""

from __future__ import annotations

from ll2go.translate import GO_KEYWORDS, NameTable, go_name


def test_go_name_replaces_invalid_characters():
	assert go_name("call.i") == "call_i"
	assert go_name("a-b$c") == "a_b_c"
	assert go_name("x") == "x"


def test_go_name_prefixes_numbered_values():
	assert go_name("0") == "_0"
	assert go_name("12") == "_12"


def test_go_name_escapes_keywords():
	assert "type" in GO_KEYWORDS
	assert go_name("type") == "type_"
	assert go_name("range") == "range_"
	assert go_name("types") == "types"


def test_name_table_disambiguates_collisions_in_first_use_order():
	table = NameTable()
	assert table.local("a.b") == "a_b"
	assert table.local("a_b") == "a_b_1"
	assert table.local("a-b") == "a_b_2"
	# Mapping is stable per name.
	assert table.local("a.b") == "a_b"
	assert table.local("a_b") == "a_b_1"


def test_fresh_skips_names_already_in_use():
	table = NameTable()
	table.reserve("tmp0")
	assert table.fresh() == "tmp1"
	assert table.fresh() == "tmp2"
	# A later binding named like a temporary is suffixed instead.
	assert table.local("tmp2") == "tmp2_1"


def test_reserved_names_are_never_handed_out():
	table = NameTable(reserved={"x"})
	assert table.local("x") == "x_1"
