"""Tests for cfi.addressor — tree positions to CFI steps."""
from __future__ import annotations

from pathlib import Path

import pytest

from cfi.addressor import (
    equal_step,
    filter_node,
    filtered_position,
    filtered_step,
    normalized_map,
    patch_offset,
    path_to,
    position,
    step_for,
    steps_to_query_selector,
    text_nodes,
)
from cfi.codec import component_string
from cfi.tree import NodeFilter, element_children
from cfi.trees import SoupTree
from cfi.types import Step, Terminal

FIXTURES = Path(__file__).parent / "fixtures"
HL = "annotator-hl"


@pytest.fixture
def tree() -> SoupTree:
    return SoupTree.from_file(FIXTURES / "chapter1.xhtml")


@pytest.fixture
def hl_tree() -> SoupTree:
    return SoupTree.from_file(FIXTURES / "chapter1-highlights.xhtml")


@pytest.fixture
def hl_filter(hl_tree: SoupTree) -> NodeFilter:
    return hl_tree.class_filter(HL)


def _children(tree: SoupTree, element_id: str) -> list:
    return list(tree.child_nodes(tree.element_by_id(element_id)))


class TestPosition:
    def test_element_position(self, tree: SoupTree) -> None:
        assert position(tree, tree.element_by_id("para01")) == 1
        assert position(tree, tree.element_by_id("sec2")) == 1
        assert position(tree, tree.element_by_id("body01")) == 1

    def test_text_position_ignores_elements(self, tree: SoupTree) -> None:
        first, br, last = _children(tree, "para03")
        assert position(tree, first) == 0
        assert position(tree, br) == 0
        assert position(tree, last) == 1

    def test_text_after_comment(self, tree: SoupTree) -> None:
        _, text = _children(tree, "para04")
        assert position(tree, text) == 0

    def test_step_for(self, tree: SoupTree) -> None:
        step = step_for(tree, tree.element_by_id("para01"))
        assert step == Step(type="element", index=1, id="para01")
        assert step.tag_name == "p"

    def test_text_nodes(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        para02 = hl_tree.element_by_id("para02")
        assert len(text_nodes(hl_tree, para02)) == 2
        assert len(text_nodes(hl_tree, para02, hl_filter)) == 3


class TestNormalizedMap:
    def test_text_runs_merge(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        children = _children(hl_tree, "para02")
        assert normalized_map(hl_tree, children, "text", hl_filter) == {0: 0, 1: 0, 2: 0}

    def test_element_breaks_run(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        children = _children(hl_tree, "para03")
        assert normalized_map(hl_tree, children, "text", hl_filter) == {0: 0, 1: 0, 3: 1}

    def test_filtered_elements_not_counted(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        children = element_children(hl_tree, hl_tree.element_by_id("para03"))
        assert normalized_map(hl_tree, children, "element", hl_filter) == {1: 0}

    def test_without_filter(self, tree: SoupTree) -> None:
        children = _children(tree, "para03")
        assert normalized_map(tree, children, "text", None) == {0: 0, 2: 1}

    def test_comment_is_not_counted(self, tree: SoupTree) -> None:
        children = _children(tree, "para04")
        assert normalized_map(tree, children, "text", None) == {1: 0}


class TestFilterNode:
    def test_text_in_wrapper_joins_previous(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        (inner,) = _children(hl_tree, "hl-1")
        before = _children(hl_tree, "para02")[0]
        assert filter_node(hl_tree, inner, hl_filter) is before

    def test_text_in_wrapper_joins_next(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        (inner,) = _children(hl_tree, "hl-0")
        after = _children(hl_tree, "para01")[1]
        assert filter_node(hl_tree, inner, hl_filter) is after

    def test_lone_wrapper_keeps_node(self) -> None:
        tree = SoupTree.from_markup('<html><body><div><span class="hl">x</span></div></body></html>')
        span = tree.soup.find("span")
        inner = tree.child_nodes(span)[0]
        assert filter_node(tree, inner, tree.class_filter("hl")) is inner

    def test_wrapper_is_skipped(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        assert filter_node(hl_tree, hl_tree.element_by_id("hl-1"), hl_filter) is None
        assert filtered_step(hl_tree, hl_tree.element_by_id("hl-1"), hl_filter) is None

    def test_plain_nodes_pass_through(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        para02 = hl_tree.element_by_id("para02")
        assert filter_node(hl_tree, para02, hl_filter) is para02
        text = _children(hl_tree, "para02")[2]
        assert filter_node(hl_tree, text, hl_filter) is text


class TestFilteredPosition:
    def test_text_runs(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        before, _, after = _children(hl_tree, "para02")
        assert filtered_position(hl_tree, before, hl_filter) == 0
        assert filtered_position(hl_tree, after, hl_filter) == 0

    def test_text_inside_wrapper(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        (inner,) = _children(hl_tree, "hl-2")
        assert filtered_position(hl_tree, inner, hl_filter) == 0

    def test_element_after_wrapper(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        _, _, br, last = _children(hl_tree, "para03")
        assert filtered_position(hl_tree, br, hl_filter) == 0
        assert filtered_position(hl_tree, last, hl_filter) == 1
        # Plain enumeration counts the wrapper
        assert position(hl_tree, br) == 1


class TestPathTo:
    def test_text_with_offset(self, tree: SoupTree) -> None:
        (text,) = _children(tree, "para01")
        comp = path_to(tree, text, 5)
        assert component_string(comp) == "/4[body01]/2[sec1]/4[para01]/1:5"

    def test_element_without_offset(self, tree: SoupTree) -> None:
        comp = path_to(tree, tree.element_by_id("para02"), None)
        assert component_string(comp) == "/4[body01]/2[sec1]/6[para02]"
        assert comp.terminal == Terminal()

    def test_offset_appends_text_step(self, tree: SoupTree) -> None:
        comp = path_to(tree, tree.element_by_id("para02"), 0)
        assert component_string(comp) == "/4[body01]/2[sec1]/6[para02]/1:0"

    def test_second_text_run(self, tree: SoupTree) -> None:
        last = _children(tree, "para03")[2]
        assert component_string(path_to(tree, last, 3)) == "/4[body01]/2[sec1]/8[para03]/3:3"

    def test_filtered_text_in_wrapper(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        (inner,) = _children(hl_tree, "hl-1")
        comp = path_to(hl_tree, inner, 22, hl_filter)
        assert component_string(comp) == "/4[body01]/2[sec1]/6[para02]/1:22"

    def test_filtered_wrapper_element(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        comp = path_to(hl_tree, hl_tree.element_by_id("hl-1"), None, hl_filter)
        assert component_string(comp) == "/4[body01]/2[sec1]/6[para02]"

    def test_filtered_element_matches_clean_tree(
        self, tree: SoupTree, hl_tree: SoupTree, hl_filter: NodeFilter,
    ) -> None:
        hl_br = _children(hl_tree, "para03")[2]
        clean_br = _children(tree, "para03")[1]
        assert path_to(hl_tree, hl_br, None, hl_filter) == path_to(tree, clean_br, None)

    def test_unfiltered_counts_wrapper(self, hl_tree: SoupTree) -> None:
        hl_br = _children(hl_tree, "para03")[2]
        assert component_string(path_to(hl_tree, hl_br, None)) == "/4[body01]/2[sec1]/8[para03]/4"


class TestPatchOffset:
    def test_inside_wrapper(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        (inner,) = _children(hl_tree, "hl-1")
        assert patch_offset(hl_tree, inner, 6, hl_filter) == 22

    def test_after_wrapper(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        after = _children(hl_tree, "para02")[2]
        assert patch_offset(hl_tree, after, 3, hl_filter) == 38

    def test_wrapper_first(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        (inner,) = _children(hl_tree, "hl-0")
        assert patch_offset(hl_tree, inner, 2, hl_filter) == 2
        after = _children(hl_tree, "para01")[1]
        assert patch_offset(hl_tree, after, 1, hl_filter) == 8

    def test_stops_at_plain_element(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        last = _children(hl_tree, "para03")[3]
        assert patch_offset(hl_tree, last, 3, hl_filter) == 3
        middle = _children(hl_tree, "para03")[1]
        assert patch_offset(hl_tree, middle, 1, hl_filter) == 6

    def test_stops_at_comment(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        _, text = _children(hl_tree, "para04")
        assert patch_offset(hl_tree, text, 3, hl_filter) == 3

    def test_rejects_elements(self, hl_tree: SoupTree, hl_filter: NodeFilter) -> None:
        with pytest.raises(ValueError):
            patch_offset(hl_tree, hl_tree.element_by_id("para02"), 0, hl_filter)


class TestStepHelpers:
    def test_equal_step(self) -> None:
        a = Step(type="element", index=1, id="x", tag_name="p")
        assert equal_step(a, Step(type="element", index=1, id="x"))
        assert not equal_step(a, Step(type="element", index=1))
        assert not equal_step(a, Step(type="text", index=1, id="x"))
        assert not equal_step(a, None)

    def test_steps_to_query_selector(self) -> None:
        steps = [Step(type="element", index=1, id="body01"), Step(type="element", index=3)]
        assert steps_to_query_selector(steps) == ':scope > *:nth-child(2)[id="body01"] > *:nth-child(4)'

    def test_query_selector_escapes_ids(self) -> None:
        steps = [Step(type="element", index=0, id='a"b\\c')]
        assert steps_to_query_selector(steps) == ':scope > *:nth-child(1)[id="a\\"b\\\\c"]'

    def test_query_selector_rejects_text_steps(self) -> None:
        with pytest.raises(ValueError):
            steps_to_query_selector([Step(type="element", index=1), Step(type="text", index=0)])
