#!/usr/bin/env python3
"""Inspect, order and resolve CFIs from the command line.

Sub-commands:
    parse    CFI...                     structural view of each CFI
    compare  CFI_A CFI_B                -1 / 0 / 1
    sort     CFI...                     CFIs in reading order
    resolve  --doc FILE CFI             span the CFI points at in FILE
    locate   --doc FILE --id ID         CFI for a text position in FILE

Outputs structured JSON to stdout (or ``--output``); diagnostics go to
stderr.

Usage:
    python3 scripts/cfi_tool.py parse "epubcfi(/6/4[chap01ref]!/4/2/1:3)"
    python3 scripts/cfi_tool.py resolve --doc chapter1.xhtml \
      --config cfi_config.json "epubcfi(/6/4[chap01ref]!/4/2/1:3)"
    python3 scripts/cfi_tool.py locate --doc chapter1.xhtml --base /6/4[chap01ref] \
      --id para05 --text-index 0 --offset 12
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from cfi.compare import compare, sort_cfis
from cfi.config import ResolverConfig
from cfi.grammar import parse, parse_or_raise
from cfi.io_utils import dump_json_bytes, save_json
from cfi.resolver import from_position, to_span
from cfi.serializer import cfi_to_dict, to_string
from cfi.trees.soup import SoupTree
from cfi.types import Err, InvalidCfiError, TreePosition

log = logging.getLogger("cfi_tool")


def _position_to_dict(tree: SoupTree, pos: TreePosition) -> dict[str, Any]:
    node = pos.container
    kind = tree.node_kind(node)
    row: dict[str, Any] = {"kind": kind, "offset": pos.offset}
    if kind == "text":
        text = str(node)
        row["text"] = text
        row["char"] = text[pos.offset:pos.offset + 1]
        row["parent_id"] = tree.node_id(tree.parent(node)) if tree.parent(node) is not None else None
    else:
        row["tag_name"] = tree.tag_name(node)
        row["id"] = tree.node_id(node)
    return row


def _load_config(args: argparse.Namespace) -> ResolverConfig:
    if args.config is not None:
        config = ResolverConfig.from_json(args.config)
    else:
        config = ResolverConfig()
    if args.ignore_class:
        config = ResolverConfig(
            ignore_class=args.ignore_class,
            use_structural_query=config.use_structural_query,
            features=config.features,
        )
    return config


def cmd_parse(args: argparse.Namespace) -> Any:
    rows: list[dict[str, Any]] = []
    for text in args.cfi:
        result = parse(text)
        if isinstance(result, Err):
            log.warning("Unparseable CFI %r: %s", text, result.error.reason)
            rows.append({"input": text, "error": result.error.reason, "message": result.error.message})
        else:
            rows.append({"input": text, **cfi_to_dict(result.value)})
    return rows


def cmd_compare(args: argparse.Namespace) -> Any:
    return {"a": args.a, "b": args.b, "result": compare(args.a, args.b)}


def cmd_sort(args: argparse.Namespace) -> Any:
    cfis = [parse_or_raise(text) for text in args.cfi]
    return [to_string(c) for c in sort_cfis(cfis)]


def cmd_resolve(args: argparse.Namespace) -> Any:
    config = _load_config(args)
    tree = config.load_tree(args.doc)
    cfi = parse_or_raise(args.cfi)
    span = to_span(cfi, tree, config.build_filter(tree))
    if span is None:
        return {"cfi": args.cfi, "resolved": False}
    return {
        "cfi": args.cfi,
        "resolved": True,
        "collapsed": span.collapsed,
        "start": _position_to_dict(tree, span.start),
        "end": _position_to_dict(tree, span.end),
    }


def cmd_locate(args: argparse.Namespace) -> Any:
    config = _load_config(args)
    tree = config.load_tree(args.doc)
    element = tree.element_by_id(args.id)
    if element is None:
        raise SystemExit(f"Error: no element with id {args.id!r} in {args.doc}")

    node: Any = element
    offset = None
    if args.text_index is not None:
        texts = [c for c in tree.child_nodes(element) if tree.node_kind(c) == "text"]
        if args.text_index >= len(texts):
            raise SystemExit(f"Error: element {args.id!r} has {len(texts)} text children")
        node = texts[args.text_index]
        offset = args.offset
    cfi = from_position(tree, node, offset, args.base, config.build_filter(tree))
    return cfi_to_dict(cfi)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect, order and resolve CFIs.")
    parser.add_argument("--verbose", action="store_true", help="Debug logging on stderr")
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Write JSON to this file instead of stdout",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Structural view of CFIs")
    p_parse.add_argument("cfi", nargs="+")
    p_parse.set_defaults(func=cmd_parse)

    p_compare = sub.add_parser("compare", help="Compare two CFIs")
    p_compare.add_argument("a")
    p_compare.add_argument("b")
    p_compare.set_defaults(func=cmd_compare)

    p_sort = sub.add_parser("sort", help="Sort CFIs in reading order")
    p_sort.add_argument("cfi", nargs="+")
    p_sort.set_defaults(func=cmd_sort)

    for name, func, help_text in (
        ("resolve", cmd_resolve, "Resolve a CFI against a content document"),
        ("locate", cmd_locate, "Build a CFI for a position in a content document"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--doc", required=True, type=Path, help="XHTML/HTML content document")
        p.add_argument("--config", type=Path, default=None, help="Resolver config JSON")
        p.add_argument("--ignore-class", default=None, help="Class of transparent overlay elements")
        p.set_defaults(func=func)
        if name == "resolve":
            p.add_argument("cfi")
        else:
            p.add_argument("--base", required=True, help="Base component, e.g. /6/4[chap01ref]")
            p.add_argument("--id", required=True, help="Element id to start from")
            p.add_argument("--text-index", type=int, default=None, help="Text child of the element")
            p.add_argument("--offset", type=int, default=0, help="Character offset in the text child")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if getattr(args, "doc", None) is not None and not args.doc.exists():
        print(f"Error: document not found: {args.doc}", file=sys.stderr)
        return 1

    try:
        payload = args.func(args)
    except InvalidCfiError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if args.output is not None:
        save_json(payload, args.output)
        log.info("Wrote %s", args.output)
    else:
        sys.stdout.buffer.write(dump_json_bytes(payload))
        sys.stdout.buffer.write(b"\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
