from __future__ import annotations

from pygments.token import Token

from typst_highlight.adapters.pygments import (
    DEFAULT_FOREGROUND,
    TypstHtmlHighlighter,
    get_highlighter,
)


def test_block_is_wrapped_in_pre_code() -> None:
    html = TypstHtmlHighlighter().highlight_block("#set page(width: 10cm)\n")

    assert html.startswith(
        '<pre style="margin: 0"><code class="language-typ hljs" style="color: var(--fg)">'
    )
    assert html.endswith("</code></pre>")
    assert "\n</code>" not in html


def test_block_preserves_inner_line_terminators() -> None:
    html = TypstHtmlHighlighter().highlight_block("= Title\nSome *strong* text\n#pagebreak()\n")

    assert html.count("\n") == 2


def test_block_keeps_blank_lines_non_empty() -> None:
    html = TypstHtmlHighlighter().highlight_block("= Title\n\n   \nBody\n")

    lines = html.split("\n")
    assert len(lines) == 4
    assert all(line.strip() for line in lines)


def test_block_escapes_html() -> None:
    html = TypstHtmlHighlighter().highlight_block("<b> & </b>")

    assert "<b>" not in html
    assert "&lt;" in html
    assert "&amp;" in html


def test_inline_is_single_line_code_element() -> None:
    html = TypstHtmlHighlighter().highlight_inline("#set text(red)\n")

    assert html.startswith('<code class="hljs" style="color: var(--fg)">')
    assert html.endswith("</code>")
    assert "\n" not in html
    assert "<pre" not in html


def test_custom_foreground_is_threaded_through_wrapper() -> None:
    highlighter = TypstHtmlHighlighter(foreground="var(--custom-fg)")

    assert 'style="color: var(--custom-fg)"' in highlighter.highlight_inline("#x")
    assert 'style="color: var(--custom-fg)"' in highlighter.highlight_block("#x")


def test_theme_foreground_is_replaced_by_symbolic_colour() -> None:
    highlighter = TypstHtmlHighlighter()
    formatter = highlighter._formatter
    base_color = formatter.style.style_for_token(Token)["color"]

    assert base_color
    styles = [css for css, _ttype, _level in formatter.class2style.values()]
    assert not any(f"color: #{base_color}" in css.lower() for css in styles)


def test_malformed_input_degrades_gracefully() -> None:
    html = TypstHtmlHighlighter().highlight_block('#let x = ("unterminated\n#{{{\n')

    assert html.startswith("<pre")
    assert html.endswith("</code></pre>")


def test_get_highlighter_returns_shared_instance() -> None:
    first = get_highlighter()

    assert first is get_highlighter()
    assert first.foreground == DEFAULT_FOREGROUND
