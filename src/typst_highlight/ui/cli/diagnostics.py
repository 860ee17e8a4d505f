"""Diagnostic emitter bridging the preprocessor with CLI rendering utilities."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from typst_highlight.core.diagnostics import DiagnosticEmitter, format_event_message

from .state import CLIState, get_cli_state, render_message


class CliEmitter(DiagnosticEmitter):
    """Emit diagnostics using the rich-enabled CLI helpers."""

    def __init__(self, state: CLIState | None = None) -> None:
        self._state = state or get_cli_state()

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        render_message("warning", message, exception=exc, state=self._state)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        render_message("error", message, exception=exc, state=self._state)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            # Events are progress notes, shown with --verbose only.
            render_message("info", message, state=self._state)


__all__ = ["CliEmitter"]
