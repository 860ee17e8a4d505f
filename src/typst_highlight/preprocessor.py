"""Two-pass transformation highlighting and rendering Typst code blocks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from pathlib import Path
import re

from markdown_it.token import Token

from typst_highlight.adapters.markdown import (
    html_block,
    html_inline,
    parse_markdown,
    serialize_markdown,
)
from typst_highlight.adapters.pygments import TypstHtmlHighlighter, get_highlighter
from typst_highlight.adapters.typst import TYPST_IMAGE_DIR, RenderJob, TypstCompiler, run_jobs
from typst_highlight.core.artifacts import ArtifactIndex, ArtifactLocation, FilesystemArtifactIndex
from typst_highlight.core.book import Book, Chapter, PreprocessorContext
from typst_highlight.core.config import PreprocessSettings
from typst_highlight.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from typst_highlight.core.exceptions import PreprocessingError, TypstHighlightError
from typst_highlight.core.hashing import content_hash


PREPROCESSOR_NAME = "typst-highlight"
TYPST_LANGUAGES = frozenset({"typ", "typst"})
DEFAULT_LANGUAGE = "typ"
NO_RENDER = "norender"
NO_PREAMBLE = "nopreamble"

_INFO_SEPARATORS = re.compile(r"[\s,]+")
_BLOCK_TEMPLATE = '<div style="margin-bottom: 0.5em">{html}</div>'
_IMAGE_TEMPLATE = (
    '<div style="text-align: center; padding: 0.5em; background: var(--quote-bg);">\n'
    '<img align="middle" src="{directory}/{name}" alt="Rendered image" '
    'style="background: white; max-width: 500pt; width: 100%;">\n'
    "</div>"
)
_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CodeBlock:
    """Typst code block collected from the token stream."""

    language: str
    source: str
    modifiers: frozenset[str] = frozenset()

    @property
    def renders(self) -> bool:
        return NO_RENDER not in self.modifiers

    @property
    def injects_preamble(self) -> bool:
        return NO_PREAMBLE not in self.modifiers


@dataclass(slots=True, eq=False)
class PendingArtifact:
    """Highlighted block waiting for its rendered images."""

    highlighted: str
    location: ArtifactLocation
    token: Token


@dataclass(slots=True)
class _FirstPassResult:
    items: list[Token | PendingArtifact] = field(default_factory=list)
    jobs: dict[str, RenderJob] = field(default_factory=dict)
    changed: bool = False


def classify_block(info: str | None, source: str) -> CodeBlock | None:
    """Return a Typst code block when ``info`` names the Typst language."""
    words = [word for word in _INFO_SEPARATORS.split(info or "") if word]
    if not words or words[0].lower() not in TYPST_LANGUAGES:
        return None
    return CodeBlock(
        language=words[0],
        source=source,
        modifiers=frozenset(word.lower() for word in words[1:]),
    )


class TypstHighlight:
    """mdBook preprocessor highlighting Typst blocks and embedding their renders."""

    name = PREPROCESSOR_NAME

    def __init__(
        self,
        *,
        highlighter: TypstHtmlHighlighter | None = None,
        artifact_index: ArtifactIndex | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.highlighter = highlighter or get_highlighter()
        self.artifact_index = artifact_index or FilesystemArtifactIndex()
        self.emitter = emitter or LoggingEmitter()

    def supports_renderer(self, renderer: str) -> bool:
        return renderer == "html"

    def run(self, context: PreprocessorContext, book: Book) -> Book:
        """Process every chapter of ``book``, aggregating chapter failures."""
        if not self.supports_renderer(context.renderer):
            _log.debug("renderer %s is not supported, leaving the book untouched", context.renderer)
            return book

        settings = context.settings(self.name)
        build_dir = context.build_dir

        failures: list[tuple[str, BaseException]] = []
        for chapter in book.iter_chapters():
            try:
                self.process_chapter(chapter, settings, build_dir)
            except TypstHighlightError as exc:
                failures.append((chapter.name, exc))

        if failures:
            raise PreprocessingError(failures)
        return book

    def process_chapter(
        self, chapter: Chapter, settings: PreprocessSettings, build_dir: Path
    ) -> None:
        """Rewrite the content of a single chapter in place."""
        compiler = TypstCompiler(build_dir, executable=settings.compiler)
        document = parse_markdown(chapter.content)
        result = self._first_pass(
            document.tokens,
            chapter=chapter,
            settings=settings,
            compiler=compiler,
            source_dir=chapter.source_dir(build_dir),
        )
        if not result.changed:
            return

        if result.jobs:
            asyncio.run(run_jobs(list(result.jobs.values()), self.emitter))

        tokens = self._second_pass(result.items)
        chapter.content = serialize_markdown(tokens, document.env)

    # ------------------------------------------------------------------ passes

    def _first_pass(
        self,
        tokens: list[Token],
        *,
        chapter: Chapter,
        settings: PreprocessSettings,
        compiler: TypstCompiler,
        source_dir: Path,
    ) -> _FirstPassResult:
        result = _FirstPassResult()
        for token in tokens:
            if token.type in ("fence", "code_block"):
                block = classify_block(
                    self._codeblock_language(token, settings, chapter.name), token.content
                )
                if block is None:
                    result.items.append(token)
                    continue
                result.items.append(
                    self._transform_block(
                        block,
                        token,
                        chapter=chapter,
                        settings=settings,
                        compiler=compiler,
                        source_dir=source_dir,
                        jobs=result.jobs,
                    )
                )
                result.changed = True
                continue

            if token.type == "inline" and token.children and settings.highlight_inline:
                if any(child.type == "code_inline" for child in token.children):
                    token.children = [self._transform_inline(child) for child in token.children]
                    result.changed = True
            result.items.append(token)
        return result

    def _second_pass(self, items: list[Token | PendingArtifact]) -> list[Token]:
        return [
            self._resolve(item) if isinstance(item, PendingArtifact) else item for item in items
        ]

    # ----------------------------------------------------------------- helpers

    def _codeblock_language(
        self, token: Token, settings: PreprocessSettings, chapter_label: str
    ) -> str | None:
        default = DEFAULT_LANGUAGE if settings.typst_default else None
        if token.type == "code_block":
            return default
        info = token.info.strip()
        if info:
            return info
        if settings.warn_not_specified:
            self.emitter.warning(f"Codeblock language not specified in {chapter_label}")
        return default

    def _transform_block(
        self,
        block: CodeBlock,
        token: Token,
        *,
        chapter: Chapter,
        settings: PreprocessSettings,
        compiler: TypstCompiler,
        source_dir: Path,
        jobs: dict[str, RenderJob],
    ) -> Token | PendingArtifact:
        highlighted = self.highlighter.highlight_block(block.source)
        if not settings.render or not block.renders:
            return html_block(_BLOCK_TEMPLATE.format(html=highlighted), like=token)

        digest = content_hash(block.source)
        if digest in jobs:
            location = compiler.location(digest, source_dir)
        else:
            location, job = compiler.probe_and_maybe_render(
                digest,
                block.source,
                source_dir=source_dir,
                chapter_label=chapter.name,
                inject_preamble=block.injects_preamble,
            )
            if job is not None:
                jobs[digest] = job
        return PendingArtifact(highlighted=highlighted, location=location, token=token)

    def _transform_inline(self, child: Token) -> Token:
        if child.type != "code_inline":
            return child
        return html_inline(self.highlighter.highlight_inline(child.content), like=child)

    def _resolve(self, pending: PendingArtifact) -> Token:
        images = "".join(
            _IMAGE_TEMPLATE.format(directory=TYPST_IMAGE_DIR, name=name)
            for name in self.artifact_index.artifacts(pending.location)
        )
        return html_block(
            _BLOCK_TEMPLATE.format(html=pending.highlighted + images), like=pending.token
        )


__all__ = [
    "DEFAULT_LANGUAGE",
    "NO_PREAMBLE",
    "NO_RENDER",
    "PREPROCESSOR_NAME",
    "TYPST_LANGUAGES",
    "CodeBlock",
    "PendingArtifact",
    "TypstHighlight",
    "classify_block",
]
