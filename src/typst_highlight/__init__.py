"""Typst syntax highlighting and rendering for mdBook chapters."""

from __future__ import annotations

from typst_highlight.adapters.pygments import TypstHtmlHighlighter, get_highlighter
from typst_highlight.adapters.typst import PREAMBLE, RenderJob, TypstCompiler
from typst_highlight.core.artifacts import (
    ArtifactIndex,
    ArtifactLocation,
    FilesystemArtifactIndex,
)
from typst_highlight.core.book import Book, Chapter, PreprocessorContext
from typst_highlight.core.config import PreprocessSettings
from typst_highlight.core.exceptions import (
    ConfigurationError,
    MarkdownSerializationError,
    PreprocessingError,
    RenderJobError,
    RenderSetupError,
    TypstHighlightError,
)
from typst_highlight.core.hashing import content_hash
from typst_highlight.preprocessor import CodeBlock, PendingArtifact, TypstHighlight
from typst_highlight.version import get_version


__version__ = get_version()

__all__ = [
    "PREAMBLE",
    "ArtifactIndex",
    "ArtifactLocation",
    "Book",
    "Chapter",
    "CodeBlock",
    "ConfigurationError",
    "FilesystemArtifactIndex",
    "MarkdownSerializationError",
    "PendingArtifact",
    "PreprocessSettings",
    "PreprocessingError",
    "PreprocessorContext",
    "RenderJob",
    "RenderJobError",
    "RenderSetupError",
    "TypstCompiler",
    "TypstHighlight",
    "TypstHighlightError",
    "TypstHtmlHighlighter",
    "__version__",
    "content_hash",
    "get_highlighter",
]
