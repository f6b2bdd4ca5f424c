"""BeautifulSoup-backed addressable tree.

Wraps a parsed HTML/XHTML content document so CFIs can be computed from,
and resolved against, bs4 ``Tag``/``NavigableString`` nodes.

bs4 nodes compare by content (two ``"a"`` strings are ``==``), so every
lookup here goes through identity.
"""
from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from cfi.addressor import steps_to_query_selector
from cfi.tree import NodeFilter, NodeKind
from cfi.types import Step


def read_markup(fpath: Path) -> str:
    """Read a content document with encoding fallback: UTF-8 -> CP1252 -> replace.

    Unlike a bulk corpus reader, a missing file is an error here: the
    caller asked for one specific document.
    """
    try:
        return fpath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        try:
            return fpath.read_text(encoding="cp1252")
        except UnicodeDecodeError:
            with open(fpath, errors="replace") as f:
                return f.read()


class SoupTree:
    """``AddressableTree`` over a ``BeautifulSoup`` document."""

    supports_structural_query = True

    def __init__(self, soup: BeautifulSoup) -> None:
        if not isinstance(soup, BeautifulSoup):
            raise TypeError(f"expected BeautifulSoup, got {type(soup).__name__}")
        self.soup = soup

    @classmethod
    def from_markup(cls, markup: str | bytes, features: str = "html.parser") -> SoupTree:
        return cls(BeautifulSoup(markup, features))

    @classmethod
    def from_file(cls, fpath: Path, features: str = "html.parser") -> SoupTree:
        return cls.from_markup(read_markup(fpath), features)

    # -- AddressableTree --------------------------------------------------

    def document_element(self) -> Tag:
        for child in self.soup.contents:
            if isinstance(child, Tag):
                return child
        raise ValueError("document has no root element")

    def parent(self, node: Any) -> Tag | None:
        parent = node.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return parent

    def child_nodes(self, node: Any) -> Sequence[PageElement]:
        if isinstance(node, Tag):
            return node.contents
        return ()

    def node_kind(self, node: Any) -> NodeKind:
        if isinstance(node, Tag):
            return "element"
        # Comment, CData, Doctype, ProcessingInstruction, Declaration
        if isinstance(node, PreformattedString):
            return "other"
        if isinstance(node, NavigableString):
            return "text"
        return "other"

    def node_id(self, node: Any) -> str | None:
        if not isinstance(node, Tag):
            return None
        value = node.get("id")
        if isinstance(value, list):
            value = " ".join(value)
        return value or None

    def tag_name(self, node: Any) -> str | None:
        if isinstance(node, Tag):
            return node.name
        return None

    def text_length(self, node: Any) -> int:
        if isinstance(node, Tag):
            return sum(
                len(d) for d in node.descendants if self.node_kind(d) == "text"
            )
        return len(node)

    def element_by_id(self, element_id: str) -> Tag | None:
        found = self.soup.find(id=element_id)
        return found if isinstance(found, Tag) else None

    def iter_nodes(self) -> Iterator[PageElement]:
        return iter(self.soup.descendants)

    def structural_query(self, steps: Sequence[Step]) -> PageElement | None:
        """Resolve *steps* with one CSS query from the document element.

        Element steps become ``:nth-child`` (plus ``[id=...]``) selectors; a
        trailing text step picks the n-th text child of the match. Returns
        None when nothing matches.
        """
        element_steps = list(steps)
        text_step: Step | None = None
        if element_steps and element_steps[-1].type == "text":
            text_step = element_steps.pop()
        if any(step.type == "text" for step in element_steps):
            return None

        container: Tag | None = self.document_element()
        if element_steps:
            container = container.select_one(steps_to_query_selector(element_steps))
        if container is None:
            return None
        if text_step is None:
            return container

        texts = [c for c in container.contents if self.node_kind(c) == "text"]
        if text_step.index >= len(texts):
            return None
        return texts[text_step.index]

    # -- Filters ----------------------------------------------------------

    def has_class(self, node: Any, class_name: str) -> bool:
        if not isinstance(node, Tag):
            return False
        classes = node.get("class")
        if classes is None:
            return False
        if isinstance(classes, str):
            classes = classes.split()
        return class_name in classes

    def class_filter(self, class_name: str) -> NodeFilter:
        """Filter marking elements carrying *class_name* as transparent."""
        return lambda node: self.has_class(node, class_name)
