"""Pygments integration producing highlighted HTML for Typst sources."""

from __future__ import annotations

import re
from threading import Lock

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import ClassNotFound, TextLexer, get_lexer_by_name
from pygments.token import Token


DEFAULT_STYLE = "solarized-dark"
DEFAULT_FOREGROUND = "var(--fg)"
TYPST_LANGUAGE = "typst"

_BLANK_LINE_FILLER = "<span></span>"


class _ForegroundHtmlFormatter(HtmlFormatter):
    """Inline-style formatter mapping the theme foreground onto a symbolic colour."""

    def __init__(self, *, foreground: str, **options: object) -> None:
        super().__init__(**options)
        self.foreground = foreground
        base_color = self.style.style_for_token(Token)["color"]
        if base_color:
            self._remap_color(base_color, foreground)

    def _remap_color(self, color: str, replacement: str) -> None:
        pattern = re.compile(rf"(?<![\w-])color: #{re.escape(color)}\b", re.IGNORECASE)
        for name, (css, ttype, level) in list(self.class2style.items()):
            self.class2style[name] = (pattern.sub(f"color: {replacement}", css), ttype, level)


class TypstHtmlHighlighter:
    """Convert Typst source to inline-styled HTML using Pygments."""

    def __init__(
        self,
        *,
        style: str = DEFAULT_STYLE,
        foreground: str = DEFAULT_FOREGROUND,
    ) -> None:
        self.style = style
        self.foreground = foreground
        self.lexer = _load_lexer()
        self._formatter = _ForegroundHtmlFormatter(
            foreground=foreground,
            style=style,
            noclasses=True,
            nowrap=True,
        )

    def highlight_inline(self, code: str) -> str:
        """Return a single highlighted line wrapped in an inline ``<code>`` element."""
        html = self._format(code.removesuffix("\n"))
        return f'<code class="hljs" style="color: {self.foreground}">{html}</code>'

    def highlight_block(self, code: str) -> str:
        """Return highlighted source wrapped in a ``<pre><code>`` block."""
        html = self._format(code.removesuffix("\n"))
        # Blank lines would end the raw HTML block when the Markdown is parsed again.
        lines = [line + _BLANK_LINE_FILLER if not line.strip() else line for line in html.split("\n")]
        body = "\n".join(lines)
        return (
            '<pre style="margin: 0">'
            f'<code class="language-typ hljs" style="color: {self.foreground}">{body}</code>'
            "</pre>"
        )

    def _format(self, code: str) -> str:
        if not code:
            return ""
        return highlight(code, self.lexer, self._formatter).removesuffix("\n")


def _load_lexer() -> Lexer:
    try:
        return get_lexer_by_name(TYPST_LANGUAGE, stripnl=False, ensurenl=True)
    except ClassNotFound:
        return TextLexer(stripnl=False, ensurenl=True)


_HIGHLIGHTER: TypstHtmlHighlighter | None = None
_LOCK = Lock()


def get_highlighter() -> TypstHtmlHighlighter:
    """Return the process-wide highlighter, creating it on first use."""
    global _HIGHLIGHTER
    if _HIGHLIGHTER is None:
        with _LOCK:
            if _HIGHLIGHTER is None:
                _HIGHLIGHTER = TypstHtmlHighlighter()
    return _HIGHLIGHTER


__all__ = [
    "DEFAULT_FOREGROUND",
    "DEFAULT_STYLE",
    "TypstHtmlHighlighter",
    "get_highlighter",
]
