"""In-memory model of the book exchanged with mdBook over the preprocessor protocol."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
import json
from pathlib import Path, PurePosixPath
from typing import Any

from typst_highlight.core.config import PreprocessSettings
from typst_highlight.core.exceptions import ConfigurationError


DEFAULT_SOURCE_DIR = "src"
_ITEM_KEYS = ("sections", "items")


@dataclass(slots=True)
class Chapter:
    """Single chapter carrying the Markdown content processed by the pipeline."""

    name: str
    content: str
    path: PurePosixPath | None = None
    sub_items: list[Any] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> Chapter:
        data = dict(payload)
        raw_path = data.pop("path", None)
        return cls(
            name=str(data.pop("name", "")),
            content=str(data.pop("content", "")),
            path=PurePosixPath(raw_path) if raw_path else None,
            sub_items=[_item_from_json(item) for item in data.pop("sub_items", None) or []],
            extra=data,
        )

    def to_json(self) -> dict[str, Any]:
        payload = dict(self.extra)
        payload["name"] = self.name
        payload["content"] = self.content
        payload["path"] = self.path.as_posix() if self.path is not None else None
        payload["sub_items"] = [_item_to_json(item) for item in self.sub_items]
        return payload

    def source_dir(self, build_dir: Path) -> Path:
        """Return the directory holding the chapter source inside ``build_dir``."""
        if self.path is None:
            return build_dir
        return build_dir.joinpath(*self.path.parent.parts)


@dataclass(slots=True)
class Book:
    """Ordered collection of book items (chapters, separators, part titles)."""

    items: list[Any] = field(default_factory=list)
    items_key: str = "sections"
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> Book:
        data = dict(payload)
        items_key = next((key for key in _ITEM_KEYS if key in data), "sections")
        raw_items = data.pop(items_key, None) or []
        return cls(
            items=[_item_from_json(item) for item in raw_items],
            items_key=items_key,
            extra=data,
        )

    def to_json(self) -> dict[str, Any]:
        payload = {self.items_key: [_item_to_json(item) for item in self.items]}
        payload.update(self.extra)
        return payload

    def iter_chapters(self) -> Iterator[Chapter]:
        """Yield every chapter depth-first, in reading order."""
        yield from _walk(self.items)


def _walk(items: list[Any]) -> Iterator[Chapter]:
    for item in items:
        if isinstance(item, Chapter):
            yield item
            yield from _walk(item.sub_items)


def _item_from_json(raw: Any) -> Any:
    if isinstance(raw, Mapping) and isinstance(raw.get("Chapter"), Mapping):
        return Chapter.from_json(raw["Chapter"])
    return raw


def _item_to_json(item: Any) -> Any:
    if isinstance(item, Chapter):
        return {"Chapter": item.to_json()}
    return item


@dataclass(slots=True)
class PreprocessorContext:
    """Build context handed over by mdBook next to the book."""

    root: Path
    config: dict[str, Any] = field(default_factory=dict)
    renderer: str = "html"
    mdbook_version: str | None = None

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> PreprocessorContext:
        config = payload.get("config") or {}
        if not isinstance(config, Mapping):
            raise ConfigurationError("The preprocessor context 'config' must be a mapping.")
        return cls(
            root=Path(payload.get("root") or "."),
            config=dict(config),
            renderer=str(payload.get("renderer") or "html"),
            mdbook_version=payload.get("mdbook_version"),
        )

    @property
    def build_dir(self) -> Path:
        """Return the book source root (``<root>/<book.src>``)."""
        book_section = self.config.get("book") or {}
        source = book_section.get("src") if isinstance(book_section, Mapping) else None
        return self.root / (source or DEFAULT_SOURCE_DIR)

    def settings(self, name: str) -> PreprocessSettings:
        """Return the validated settings stored under ``preprocessor.<name>``."""
        section = self.config.get("preprocessor") or {}
        raw = section.get(name) if isinstance(section, Mapping) else None
        if raw is not None and not isinstance(raw, Mapping):
            raise ConfigurationError(f"The 'preprocessor.{name}' table must be a mapping.")
        return PreprocessSettings.from_mapping(raw)


def parse_preprocessor_input(raw: str) -> tuple[PreprocessorContext, Book]:
    """Decode the ``[context, book]`` JSON document written by mdBook on stdin."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Unable to decode preprocessor input: {exc}") from exc

    if not isinstance(payload, list) or len(payload) != 2:
        raise ConfigurationError("Preprocessor input must be a JSON array [context, book].")
    context_payload, book_payload = payload
    if not isinstance(context_payload, Mapping) or not isinstance(book_payload, Mapping):
        raise ConfigurationError("Preprocessor input must contain two JSON objects.")
    return PreprocessorContext.from_json(context_payload), Book.from_json(book_payload)


__all__ = [
    "DEFAULT_SOURCE_DIR",
    "Book",
    "Chapter",
    "PreprocessorContext",
    "parse_preprocessor_input",
]
