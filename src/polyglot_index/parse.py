"""Tree-sitter parsing, tree walking and content hashing."""

import hashlib
import logging
from collections.abc import Iterator, Sequence
from typing import Protocol

from tree_sitter import Tree

from .errors import ParseFailure, UnsupportedLanguage
from .grammars import GrammarRegistry

log = logging.getLogger(__name__)


class SyntaxNode(Protocol):
    """The part of a tree-sitter Node the extractor relies on."""

    @property
    def type(self) -> str: ...

    @property
    def children(self) -> Sequence["SyntaxNode"]: ...

    @property
    def start_byte(self) -> int: ...

    @property
    def end_byte(self) -> int: ...

    @property
    def start_point(self) -> tuple[int, int]: ...

    @property
    def end_point(self) -> tuple[int, int]: ...

    def child_by_field_name(self, name: str) -> "SyntaxNode | None": ...


def content_hash(source: bytes) -> str:
    return hashlib.sha256(source).hexdigest()


def parse_tree(
    source: bytes,
    language: str,
    registry: GrammarRegistry,
    strict: bool = False,
) -> Tree:
    """
    Parse source bytes with the grammar registered for language.

    Raises UnsupportedLanguage when no grammar is registered and ParseFailure
    when the parser gives up. tree-sitter recovers from most syntax errors by
    inserting ERROR nodes; with strict=True such a tree is rejected too.
    """
    parser = registry.get_parser(language)
    if parser is None:
        raise UnsupportedLanguage(language)

    try:
        tree = parser.parse(source)
    except Exception as e:
        raise ParseFailure(language, str(e)) from e

    if tree is None:
        raise ParseFailure(language, "parser returned no tree")
    if strict and tree.root_node.has_error:
        raise ParseFailure(language, "source contains syntax errors")
    return tree


def walk_tree(node: SyntaxNode) -> Iterator[SyntaxNode]:
    """Pre-order generator over a node and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def node_text(node: SyntaxNode | None, source: bytes) -> str:
    if node is None:
        return ""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
