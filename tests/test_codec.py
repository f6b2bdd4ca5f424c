"""Tests for cfi.codec — step/terminal encoding and decoding."""
from __future__ import annotations

import pytest

from cfi.codec import (
    component_string,
    encode_step,
    join_steps,
    parse_component,
    parse_step,
    parse_terminal,
)
from cfi.types import Component, Step, Terminal


class TestParseStep:
    def test_even_is_element(self) -> None:
        step = parse_step("6")
        assert step == Step(type="element", index=2)

    def test_odd_is_text(self) -> None:
        step = parse_step("7")
        assert step == Step(type="text", index=3)

    def test_first_positions(self) -> None:
        assert parse_step("2") == Step(type="element", index=0)
        assert parse_step("1") == Step(type="text", index=0)

    def test_id_bracket(self) -> None:
        step = parse_step("10[para05]")
        assert step is not None
        assert step.id == "para05"
        assert step.index == 4

    def test_empty_bracket_has_no_id(self) -> None:
        step = parse_step("4[]")
        assert step is not None
        assert step.id is None

    def test_non_numeric_is_skipped(self) -> None:
        assert parse_step("x") is None
        assert parse_step("") is None

    def test_zero_is_skipped(self) -> None:
        assert parse_step("0") is None

    def test_parsed_steps_have_no_tag_name(self) -> None:
        step = parse_step("4")
        assert step is not None
        assert step.tag_name is None


class TestParseTerminal:
    def test_offset_only(self) -> None:
        assert parse_terminal("3") == Terminal(offset=3)

    def test_offset_and_assertion(self) -> None:
        assert parse_terminal("10[yyy]") == Terminal(offset=10, assertion="yyy")

    def test_assertion_without_offset(self) -> None:
        assert parse_terminal("[yyy]") == Terminal(offset=None, assertion="yyy")

    def test_non_numeric_offset_is_none(self) -> None:
        assert parse_terminal("abc") == Terminal(offset=None)

    def test_empty(self) -> None:
        assert parse_terminal("") == Terminal()


class TestParseComponent:
    def test_steps_and_terminal(self) -> None:
        comp = parse_component("/4[body01]/10[para05]/2/1:3")
        assert [s.type for s in comp.steps] == ["element", "element", "element", "text"]
        assert [s.index for s in comp.steps] == [1, 4, 0, 0]
        assert comp.steps[0].id == "body01"
        assert comp.terminal.offset == 3

    def test_no_terminal(self) -> None:
        comp = parse_component("/6/4[chap01ref]")
        assert len(comp.steps) == 2
        assert comp.terminal == Terminal()

    def test_bad_tokens_are_dropped(self) -> None:
        comp = parse_component("/4/x/2")
        assert [s.index for s in comp.steps] == [1, 0]

    def test_empty(self) -> None:
        assert parse_component("") == Component()
        assert parse_component("/") == Component()


class TestEncoding:
    @pytest.mark.parametrize("token", ["1", "2", "3", "4", "15", "16", "100", "101"])
    def test_parity_bijection(self, token: str) -> None:
        step = parse_step(token)
        assert step is not None
        assert (step.type == "element") == (int(token) % 2 == 0)
        assert encode_step(step) == token

    def test_encode_with_id(self) -> None:
        assert encode_step(Step(type="element", index=1, id="body01")) == "4[body01]"
        assert encode_step(Step(type="text", index=2)) == "5"

    def test_join_steps(self) -> None:
        steps = [Step(type="element", index=1), Step(type="text", index=0)]
        assert join_steps(steps) == "4/1"

    def test_component_string(self) -> None:
        comp = Component(
            steps=(Step(type="element", index=4, id="para05"), Step(type="text", index=0)),
            terminal=Terminal(offset=3),
        )
        assert component_string(comp) == "/10[para05]/1:3"

    def test_component_string_assertion(self) -> None:
        comp = Component(steps=(Step(type="text", index=1),), terminal=Terminal(10, "yyy"))
        assert component_string(comp) == "/3:10[yyy]"

    def test_assertion_without_offset_keeps_colon(self) -> None:
        comp = Component(steps=(Step(type="text", index=1),), terminal=Terminal(None, "yyy"))
        text = component_string(comp)
        assert text == "/3:[yyy]"
        assert parse_component(text) == comp

    def test_empty_component(self) -> None:
        assert component_string(Component()) == "/"
