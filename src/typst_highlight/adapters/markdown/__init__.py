"""Markdown tokenisation and serialisation used by the preprocessing passes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdformat.renderer import MDRenderer
import mdformat_footnote

from typst_highlight.core.exceptions import MarkdownSerializationError


__all__ = [
    "MarkdownDocument",
    "html_block",
    "html_inline",
    "parse_markdown",
    "serialize_markdown",
]


@dataclass(slots=True)
class MarkdownDocument:
    """Token stream of one chapter plus the parser environment it was built with."""

    tokens: list[Token]
    env: dict[str, Any] = field(default_factory=dict)


_PARSER: MarkdownIt | None = None
_PARSER_LOCK = Lock()


def _build_parser() -> MarkdownIt:
    parser = MarkdownIt("commonmark", renderer_cls=MDRenderer)
    # mdBook parses footnotes; they must survive a round trip.
    mdformat_footnote.update_mdit(parser)
    # Options consumed by mdformat's renderers.
    parser.options["mdformat"] = {}
    parser.options["store_labels"] = True
    parser.options["parser_extension"] = [mdformat_footnote]
    parser.options["codeformatters"] = {}
    return parser


def _parser() -> MarkdownIt:
    global _PARSER
    if _PARSER is None:
        with _PARSER_LOCK:
            if _PARSER is None:
                _PARSER = _build_parser()
    return _PARSER


def parse_markdown(text: str) -> MarkdownDocument:
    """Tokenise Markdown into a flat markdown-it token stream."""
    env: dict[str, Any] = {"used_refs": set()}
    tokens = _parser().parse(text, env)
    return MarkdownDocument(tokens=tokens, env=env)


def serialize_markdown(tokens: Sequence[Token], env: dict[str, Any]) -> str:
    """Render a token stream back into Markdown text."""
    parser = _parser()
    try:
        return parser.renderer.render(list(tokens), parser.options, env)
    except Exception as exc:
        raise MarkdownSerializationError(f"Markdown serialization failed: {exc}") from exc


def html_block(content: str, *, like: Token | None = None) -> Token:
    """Return a raw HTML block token positioned like ``like``."""
    return Token(
        "html_block",
        "",
        0,
        content=content if content.endswith("\n") else content + "\n",
        block=True,
        level=like.level if like is not None else 0,
        map=like.map if like is not None else None,
    )


def html_inline(content: str, *, like: Token | None = None) -> Token:
    """Return a raw inline HTML token positioned like ``like``."""
    return Token(
        "html_inline",
        "",
        0,
        content=content,
        level=like.level if like is not None else 0,
    )
