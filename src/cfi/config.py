"""Resolver configuration loaded from JSON.

Example ``cfi_config.json``::

    {
      "ignore_class": "annotator-hl",
      "use_structural_query": true,
      "features": "html.parser"
    }
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from cfi.io_utils import load_json
from cfi.tree import NodeFilter
from cfi.trees.soup import SoupTree


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    """How content documents are parsed and which nodes are transparent."""
    ignore_class: str | None = None   # class of overlay elements (highlights)
    use_structural_query: bool = True
    features: str = "html.parser"     # BeautifulSoup parser name

    def __post_init__(self) -> None:
        if self.ignore_class is not None and not self.ignore_class.strip():
            raise ValueError("ignore_class cannot be blank")

    @classmethod
    def from_json(cls, path: Path) -> ResolverConfig:
        """Load from a JSON config file; missing keys keep their defaults."""
        data = load_json(path)
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object")
        return cls(
            ignore_class=data.get("ignore_class"),
            use_structural_query=bool(data.get("use_structural_query", True)),
            features=data.get("features", "html.parser"),
        )

    def load_tree(self, fpath: Path) -> SoupTree:
        """Parse a content document with the configured parser."""
        tree = SoupTree.from_file(fpath, self.features)
        if not self.use_structural_query:
            tree.supports_structural_query = False
        return tree

    def build_filter(self, tree: SoupTree) -> NodeFilter | None:
        if self.ignore_class is None:
            return None
        return tree.class_filter(self.ignore_class)
