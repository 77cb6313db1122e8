"""Tests for the Lua formatter (AST pretty-printer)."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from helpers import assert_stable, fmt

import luafmt.formatter
from luafmt import format_source
from luafmt.ast_nodes import Chunk
from luafmt.errors import LiteralRoundTripError, MalformedInputError, UnsupportedNodeError
from luafmt.formatter import LuaFormatter
from luafmt.source import Span


class TestLiterals:
    def test_numbers(self):
        assert fmt("_=1,1000,1000000,0xff") == "_ = 1, 1e3, 1e6, 0xFF"

    def test_atoms_verbatim(self):
        assert fmt("_=true,false,nil,...") == "_ = true, false, nil, ..."

    def test_long_strings_requoted(self):
        assert fmt("_=[['_]], [[\"_\"]]") == "_ = \"'_\", '\"_\"'"

    def test_string_style_option(self):
        assert fmt('x = "a"', string_style="single") == "x = 'a'"

    def test_round_trip_checked(self, monkeypatch):
        monkeypatch.setattr(luafmt.formatter, "normalize_number", lambda raw: "2")
        with pytest.raises(LiteralRoundTripError) as exc_info:
            fmt("x = 1")
        assert exc_info.value.raw == "1"
        assert exc_info.value.normalized == "2"


class TestCalls:
    @pytest.mark.parametrize("source", ["f('_')", 'f("_")', "f[[_]]"])
    def test_string_argument_sugar(self, source):
        assert fmt(source) == 'f"_"'

    def test_table_argument_sugar(self):
        assert fmt("f({_})") == "f{ _ }"

    def test_sugar_as_base(self):
        assert fmt("f({_})._ = _") == "f{ _ }._ = _"

    def test_table_call(self):
        assert fmt("_{_=_}") == "_{ _ = _ }"

    def test_arguments(self):
        assert fmt("print( 'a' , b )") == 'print("a", b)'

    def test_method_call(self):
        assert fmt("obj:m(1,2)") == "obj:m(1, 2)"

    def test_no_arguments(self):
        assert fmt("f ( )") == "f()"

    def test_truncating_parentheses_kept(self):
        assert fmt("x = (f())") == "x = (f())"
        assert fmt("x = (...)") == "x = (...)"

    def test_literal_base_wrapped(self):
        assert fmt("_=('string')._") == '_ = ("string")._'
        assert fmt("_=({})._") == "_ = ({})._"

    def test_function_base_wrapped(self):
        assert fmt("(function() end)()") == "(function() end)()"

    def test_expression_base_wrapped(self):
        assert fmt("x = (a or b).c") == "x = (a or b).c"


class TestOperators:
    def test_tighter_right_operand_bare(self):
        assert fmt("a = 1*1 + 1") == "a = 1 * 1 + 1"

    def test_looser_operands_wrapped(self):
        assert fmt("_=(1+1)*(1+1)") == "_ = (1 + 1) * (1 + 1)"

    def test_associative_chain_regrouped(self):
        assert fmt("a = 1 + (1 + 1) + 1") == "a = (1 + 1 + 1) + 1"

    def test_three_operand_chain(self):
        assert fmt("a = a + b + c") == "a = (a + b) + c"

    def test_left_associative_subtraction(self):
        assert fmt("a = a - b - c") == "a = (a - b) - c"

    def test_right_operand_subtraction(self):
        assert fmt("a = a - (b - c)") == "a = a - (b - c)"

    def test_concat_right_associative(self):
        assert fmt("a = a .. (b .. c)") == "a = a .. b .. c"
        assert fmt("a = (a .. b) .. c") == "a = (a .. b) .. c"

    def test_power(self):
        assert fmt("a = 2^3^2") == "a = 2 ^ 3 ^ 2"
        assert fmt("a = (2^3)^2") == "a = (2 ^ 3) ^ 2"

    def test_unary_left_of_power(self):
        assert fmt("a = (-a)^b") == "a = (-a) ^ b"
        assert fmt("a = -a^b") == "a = -a ^ b"

    def test_unary_right_operand(self):
        assert fmt("a = a^-b") == "a = a ^ -b"

    def test_not_wraps_lower_operand(self):
        assert fmt("_ = not (1 and 1)") == "_ = not(1 and 1)"

    def test_nested_logical(self):
        assert fmt("_ = _ or not ((_ and _) or (_ and _))") == "_ = _ or not(_ and _ or _ and _)"

    def test_double_negation(self):
        assert fmt("_=- -_") == "_ = - -_"
        assert fmt("_=not not _") == "_ = not not _"

    def test_length(self):
        assert fmt("a = #t+1") == "a = #t + 1"

    def test_negated_sum(self):
        assert fmt("a = -(a+b)") == "a = -(a + b)"

    def test_mixed_logic(self):
        assert fmt("a = a and b or c") == "a = a and b or c"
        assert fmt("a = a and (b or c)") == "a = a and (b or c)"


class TestStatements:
    def test_local(self):
        assert fmt("local _") == "local _"
        assert fmt("local a,b=1,2") == "local a, b = 1, 2"

    def test_function_expression(self):
        assert fmt("_ = function() end") == "_ = function() end"

    def test_local_function(self):
        assert fmt("local function f(a,...) return a end") == "local function f(a, ...) return a end"

    def test_method_definition(self):
        assert fmt("function a.b:c() end") == "function a.b:c() end"

    def test_numeric_for(self):
        assert fmt("for i=1,10 do print(i) end") == "for i = 1, 10 do print(i) end"
        assert fmt("for i=10,1,-1 do end") == "for i = 10, 1, -1 do end"

    def test_generic_for(self):
        assert fmt("for k,v in pairs(t) do end") == "for k, v in pairs(t) do end"

    def test_while(self):
        assert fmt("while true do break end") == "while true do break end"

    def test_labels(self):
        assert fmt("::a:: goto a") == "::a::\ngoto a"

    def test_return(self):
        assert fmt("return 1,2") == "return 1, 2"
        assert fmt("return") == "return"

    def test_repeat(self):
        assert fmt("repeat _() until _") == "repeat _() until _"
        assert fmt("repeat _();_() until _") == "repeat\n\t_()\n\t_()\nuntil _"

    def test_empty_source(self):
        assert fmt("") == ""

    def test_shebang_kept(self):
        assert fmt("#!/usr/bin/lua\nprint(1)") == "#!/usr/bin/lua\nprint(1)"

    def test_ambiguous_call_guarded(self):
        assert fmt("a = 1\n(f or g)()") == "a = 1\n;(f or g)()"

    def test_first_statement_not_guarded(self):
        assert fmt("(f or g)()") == "(f or g)()"

    def test_guard_sees_through_comments(self):
        assert fmt("a = 1 --c\n('s'):upper()") == 'a = 1\n-- c\n;("s"):upper()'


class TestBlocks:
    def test_inline_if(self):
        assert fmt("if _ then _()end") == "if _ then _() end"

    def test_inline_blocks_disabled(self):
        assert fmt("if _ then _()end", block=False) == "if _ then\n\t_()\nend"

    def test_if_chain(self):
        source = "if a then a() elseif b then b() else c() end"
        assert fmt(source) == "if a then a()\nelseif b then b()\nelse c() end"

    def test_if_chain_multiline(self):
        source = "if a then a() a() else b() b() end"
        assert fmt(source) == "if a then\n\ta()\n\ta()\nelse\n\tb()\n\tb()\nend"

    def test_empty_if_chain(self):
        assert fmt("if a then elseif b then else end") == "if a then\nelseif b then\nelse end"

    def test_empty_do(self):
        assert fmt("do end") == "do end"

    def test_nested_indentation(self):
        source = "do x() function f() y() z() end end"
        assert fmt(source) == "do\n\tx()\n\n\tfunction f()\n\t\ty()\n\t\tz()\n\tend\nend"

    def test_long_statement_breaks_block(self):
        call = "f(" + ", ".join(["argument"] * 8) + ")"
        assert fmt(f"do {call} end") == f"do\n\t{call}\nend"


class TestTables:
    def test_inline(self):
        assert fmt("t = {[1]=2, a=3}") == "t = { [1] = 2, a = 3 }"

    def test_empty(self):
        assert fmt("t = { }") == "t = {}"

    def test_many_fields(self):
        assert fmt("t={1,2,3,4}") == "t = {\n\t1,\n\t2,\n\t3,\n\t4\n}"

    def test_inline_tables_disabled(self):
        assert fmt("t = {1}", table=False) == "t = {\n\t1\n}"

    def test_comment_in_table_unchanged(self):
        source = "_{\n\t_ = function() end,\n\t-- comment\n\t_ = function() end\n}"
        assert fmt(source) == source

    def test_function_field_indentation(self):
        source = "do t = {function() x() y() end} end"
        assert fmt(source) == (
            "do\n\tt = {\n\t\tfunction()\n\t\t\tx()\n\t\t\ty()\n\t\tend\n\t}\nend"
        )


class TestBlankLines:
    def test_before_function(self):
        assert fmt("_=_\nfunction _()end") == "_ = _\n\nfunction _() end"

    def test_between_functions(self):
        assert fmt("function _()end;function _()end") == "function _() end\n\nfunction _() end"

    def test_comment_travels_with_function(self):
        assert fmt("_()--comment\nfunction _()end") == "_()\n\n-- comment\nfunction _() end"

    def test_disabled(self):
        assert fmt("x = 1\nfunction f() end", extra_newlines=False) == "x = 1\nfunction f() end"


class TestComments:
    def test_comment_in_expression_hoisted(self):
        assert fmt("_=--[[comment]]_") == "-- comment\n_ = _"

    def test_multiline_block_comment(self):
        assert fmt("--[[multi\nline]]") == "--[[\n\tmulti\n\tline\n]]"

    def test_multiline_block_comment_nested(self):
        assert fmt("do --[[a\n b]] end") == "do\n\t--[[\n\t\ta\n\t\tb\n\t]]\nend"

    def test_block_comment_containing_closer(self):
        assert fmt("--[==[a\n]]b]==]") == "--[=[\n\ta\n\t]]b\n]=]"

    def test_single_line_block_comment(self):
        assert fmt("--[==[ x ]==]") == "-- x"

    def test_empty_comment(self):
        assert fmt("--") == "--"
        assert fmt("--[[  ]]") == "--"

    def test_comments_in_if(self):
        source = "if _ then --comment \n do _=_--another comment\n end end"
        assert fmt(source) == (
            "if _ then\n\t-- comment\n\tdo\n\t\t_ = _\n\t\t-- another comment\n\tend\nend"
        )

    def test_comment_in_nested_functions(self):
        source = "function _()function _() if _ then --[[comment]] end end end"
        assert fmt(source) == (
            "function _()\n\tfunction _()\n\t\tif _ then\n\t\t\t-- comment\n\t\tend\n\tend\nend"
        )

    def test_comment_in_nested_do(self):
        source = "do do do --[[comment]] end end end"
        assert fmt(source) == "do\n\tdo\n\t\tdo\n\t\t\t-- comment\n\t\tend\n\tend\nend"

    def test_block_comment_touching_next_statement(self):
        assert fmt("--[[a]]x = 1") == "-- a\nx = 1"
        assert fmt("x = 1 --[[b]]y = 2") == "x = 1\n-- b\ny = 2"

    def test_comment_in_arguments_hoisted(self):
        assert fmt("f(a, --c\nb)") == "-- c\nf(a, b)"


class TestIdempotence:
    @pytest.mark.parametrize("source", [
        "a = 1 + (1 + 1) + 1",
        "a = a - b - c + d",
        "a = (a - b) + c + d",
        "a = a * b * c / d",
        "x = a and b and c or d or e",
        "_ = _ or not ((_ and _) or (_ and _))",
        "x = 'it\\'s' .. \"q\" .. [[long]]",
        "if a then --c\n x() elseif b then else y() z() end",
        "local t = { 1, { 2, { 3 } }, f = function() return 1 end, --tail\n }",
        "--[[\n  block\n    comment\n]]\nfunction f() end\nx = 1",
        "for i = 1, 10 do if i % 2 == 0 then print(i) end end",
        "#!/bin/lua\nreturn",
        "a = 1\n(f or g)()",
    ])
    def test_second_pass_unchanged(self, source):
        assert_stable(source)

    def test_with_options(self):
        assert_stable("if a then b() end t = {1}", block=False, table=False, extra_newlines=False)


class TestErrors:
    def test_malformed_input(self):
        with pytest.raises(MalformedInputError):
            format_source("if then")

    def test_unsupported_node(self):
        @dataclass(frozen=True)
        class Mystery:
            span: Span

        span = Span("<test>", 0, 0, 1, 1, 1, 1)
        chunk = Chunk(body=[Mystery(span)], span=span)
        with pytest.raises(UnsupportedNodeError) as exc_info:
            LuaFormatter().format(chunk)
        assert exc_info.value.kind == "Mystery"

    def test_default_options(self):
        assert format_source("if _ then _()end") == "if _ then _() end"
