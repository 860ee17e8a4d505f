"""Custom exception hierarchy for the Typst preprocessing pipeline."""

from __future__ import annotations

from collections.abc import Sequence


class TypstHighlightError(RuntimeError):
    """Base exception for preprocessing failures."""


class ConfigurationError(TypstHighlightError):
    """Raised when the preprocessor settings cannot be validated."""


class RenderSetupError(TypstHighlightError):
    """Raised when the render cache directories or sources cannot be written."""


class MarkdownSerializationError(TypstHighlightError):
    """Raised when transformed tokens cannot be turned back into Markdown."""


class RenderJobError(TypstHighlightError):
    """Raised when a compiler job fails outside of the compiler itself."""


class PreprocessingError(TypstHighlightError):
    """Aggregate failure listing every chapter that could not be processed."""

    def __init__(self, failures: Sequence[tuple[str, BaseException]]) -> None:
        self.failures = list(failures)
        lines = ["Errors occurred during preprocessing:"]
        for chapter, exc in self.failures:
            lines.append(f'  - chapter "{chapter}": {exc}')
        super().__init__("\n".join(lines))


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "ConfigurationError",
    "MarkdownSerializationError",
    "PreprocessingError",
    "RenderJobError",
    "RenderSetupError",
    "TypstHighlightError",
    "exception_hint",
    "exception_messages",
]
