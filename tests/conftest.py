from __future__ import annotations

import asyncio
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from typst_highlight.adapters import typst as typst_mod
from typst_highlight.ui.cli import state as cli_state


@dataclass
class RecordingEmitter:
    """Emitter capturing diagnostics for assertions."""

    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


class _FakeProcess:
    def __init__(self, compiler: FakeTypst, argv: list[str]) -> None:
        self._compiler = compiler
        self._argv = argv
        self.returncode: int | None = None

    async def communicate(self) -> tuple[bytes, bytes]:
        compiler = self._compiler
        digest = Path(self._argv[2]).stem
        delay = compiler.delays.get(digest, 0.0)
        if delay:
            await asyncio.sleep(delay)
        template = self._argv[5]
        for page in range(1, compiler.pages + 1):
            Path(template.replace("{n}", str(page))).write_text("<svg/>", encoding="utf-8")
        compiler.completed.append(digest)
        self.returncode = 0
        return b"", compiler.stderr


@dataclass
class FakeTypst:
    """Stand-in for ``asyncio.create_subprocess_exec`` mimicking ``typst compile``."""

    pages: int = 1
    stderr: bytes = b""
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[list[str]] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)

    async def __call__(self, *argv: str, **kwargs: Any) -> _FakeProcess:
        assert kwargs["stderr"] is asyncio.subprocess.PIPE
        self.calls.append(list(argv))
        return _FakeProcess(self, list(argv))


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def fake_typst(monkeypatch: pytest.MonkeyPatch) -> FakeTypst:
    compiler = FakeTypst()
    monkeypatch.setattr(typst_mod.asyncio, "create_subprocess_exec", compiler)
    return compiler


@pytest.fixture(autouse=True)
def _reset_cli_state() -> Iterator[None]:
    cli_state._STATE_VAR.set(None)
    yield
    cli_state._STATE_VAR.set(None)
