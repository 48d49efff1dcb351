from __future__ import annotations

import threading
from functools import lru_cache
from typing import Protocol, cast

import tree_sitter_java
from tree_sitter import Language
from tree_sitter import Parser as _TreeSitterParser

from annolint.engine.context import SyntaxTree


class _ParserLike(Protocol):
    def parse(self, source: bytes) -> object: ...


def _java_language() -> object:
    return Language(tree_sitter_java.language())


# Exposed for tests and for light monkeypatching in downstream tooling.
Parser: type[_ParserLike] = cast(type[_ParserLike], _TreeSitterParser)
get_language = _java_language


class TreeSitterError(RuntimeError):
    """Raised when tree-sitter cannot load the Java grammar or parse source."""


@lru_cache(maxsize=1)
def _get_language() -> object:
    try:
        return get_language()
    except (AttributeError, TypeError, ValueError, RuntimeError) as exc:  # pragma: no cover (depends on installed grammar)
        raise TreeSitterError("tree-sitter Java grammar is not available") from exc


_PARSER_LOCAL = threading.local()


def _get_parser() -> _ParserLike:
    """
    Return a per-thread Parser instance for Java.

    tree-sitter Parser objects are not thread-safe; sharing a single cached
    Parser across threads can lead to crashes or corrupted parse output.
    """

    parser: _ParserLike | None = getattr(_PARSER_LOCAL, "parser", None)
    if parser is not None:
        return parser

    lang = _get_language()
    parser = cast(_ParserLike, Parser(lang))  # type: ignore[call-arg]
    _PARSER_LOCAL.parser = parser
    return parser


def parse(source: str | bytes) -> SyntaxTree | None:
    """
    Parse Java source code with tree-sitter.

    Returns a Tree or None if parsing fails unexpectedly. Syntax errors do not
    fail the parse; they show up as ERROR nodes inside the tree. A missing
    grammar is a setup problem and raises `TreeSitterError`.
    """

    data = source.encode("utf-8", errors="replace") if isinstance(source, str) else source
    parser = _get_parser()
    try:
        tree = parser.parse(data)
    except (ValueError, TypeError, RuntimeError):
        return None
    return cast(SyntaxTree, tree)
