from __future__ import annotations

import io
import json
from pathlib import Path
import sys
from typing import Any

import pytest
import typer
from typer.testing import CliRunner

from typst_highlight.core.hashing import content_hash
from typst_highlight.ui.cli import app, main


def _payload(root: Path, content: str, **settings: Any) -> str:
    context = {
        "root": str(root),
        "config": {"book": {"src": "src"}, "preprocessor": {"typst-highlight": settings}},
        "renderer": "html",
        "mdbook_version": "0.4.40",
    }
    book = {
        "sections": [
            {
                "Chapter": {
                    "name": "Intro",
                    "content": content,
                    "number": [1],
                    "path": "intro.md",
                    "source_path": "intro.md",
                    "parent_names": [],
                    "sub_items": [],
                }
            }
        ],
        "__non_exhaustive": None,
    }
    return json.dumps([context, book])


def test_supports_html() -> None:
    result = CliRunner().invoke(app, ["supports", "html"])

    assert result.exit_code == 0


@pytest.mark.parametrize("renderer", ["latex", "epub", "markdown"])
def test_rejects_other_renderers(renderer: str) -> None:
    result = CliRunner().invoke(app, ["supports", renderer])

    assert result.exit_code == 1


def test_preprocess_writes_book_to_stdout(tmp_path: Path) -> None:
    content = "# Intro\n\n```typ\n#set text(red)\n```\n"

    result = CliRunner().invoke(app, [], input=_payload(tmp_path, content))

    assert result.exit_code == 0, result.output
    book = json.loads(result.stdout)
    chapter = book["sections"][0]["Chapter"]
    assert chapter["number"] == [1]
    assert chapter["content"].startswith("# Intro\n\n<div")
    assert "__non_exhaustive" in book


def test_preprocess_renders_with_stub_compiler(tmp_path: Path, fake_typst: Any) -> None:
    content = "```typ\n#circle()\n```\n"

    result = CliRunner().invoke(app, [], input=_payload(tmp_path, content, render=True))

    assert result.exit_code == 0, result.output
    chapter = json.loads(result.stdout)["sections"][0]["Chapter"]
    digest = content_hash("#circle()\n")
    assert f"typst-img/{digest}-1.svg" in chapter["content"]
    assert len(fake_typst.calls) == 1


def test_main_reports_invalid_input(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(sys, "argv", ["typst-highlight"])
    monkeypatch.setattr(sys, "stdin", io.StringIO("not json"))

    with pytest.raises(typer.Exit) as excinfo:
        main()

    assert excinfo.value.exit_code == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Unable to decode preprocessor input" in captured.err
