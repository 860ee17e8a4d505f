from __future__ import annotations

from pathlib import Path, PurePosixPath
import sys
from typing import Any

import pytest

from typst_highlight.core.book import Book, Chapter, PreprocessorContext
from typst_highlight.core.hashing import content_hash
from typst_highlight.preprocessor import TypstHighlight


pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell")

STUB_COMPILER = """#!/bin/sh
# Mimics `typst compile <src> --root <root> <out-{n}.svg>` producing two pages.
out="$5"
echo "$@" >> "$(dirname "$0")/calls.log"
for page in 1 2; do
    printf '<svg xmlns="http://www.w3.org/2000/svg"/>' > "$(echo "$out" | sed "s/{n}/$page/")"
done
echo "warning: unused variable" >&2
exit 1
"""


def _stub(tmp_path: Path) -> Path:
    binary = tmp_path / "bin" / "typst"
    binary.parent.mkdir()
    binary.write_text(STUB_COMPILER, encoding="utf-8")
    binary.chmod(0o755)
    return binary


def test_render_with_real_subprocess(tmp_path: Path, emitter: Any) -> None:
    binary = _stub(tmp_path)
    chapter = Chapter(
        name="Shapes",
        content="# Shapes\n\n```typ\n#circle()\n```\n",
        path=PurePosixPath("shapes/index.md"),
    )
    context = PreprocessorContext(
        root=tmp_path,
        config={"preprocessor": {"typst-highlight": {"render": True, "compiler": str(binary)}}},
    )

    TypstHighlight(emitter=emitter).run(context, Book(items=[chapter]))

    digest = content_hash("#circle()\n")
    image_dir = tmp_path / "src" / "shapes" / "typst-img"
    assert sorted(path.name for path in image_dir.iterdir()) == [
        f"{digest}-1.svg",
        f"{digest}-2.svg",
    ]
    assert f'src="typst-img/{digest}-1.svg"' in chapter.content
    assert f'src="typst-img/{digest}-2.svg"' in chapter.content
    assert emitter.warnings == ['Error at chapter "Shapes"\nwarning: unused variable']
    assert emitter.errors == []

    # A second build reuses the pages on disk.
    chapter.content = "```typ\n#circle()\n```\n"
    TypstHighlight(emitter=emitter).run(context, Book(items=[chapter]))

    calls = (binary.parent / "calls.log").read_text(encoding="utf-8").splitlines()
    assert len(calls) == 1
    assert f'src="typst-img/{digest}-2.svg"' in chapter.content
