"""Typer application speaking the mdBook preprocessor protocol."""

from __future__ import annotations

import json
import sys
from typing import Annotated

import typer

from typst_highlight.core.book import parse_preprocessor_input
from typst_highlight.core.exceptions import TypstHighlightError, exception_hint
from typst_highlight.preprocessor import TypstHighlight

from .diagnostics import CliEmitter
from .state import debug_enabled, emit_error, get_cli_state, set_cli_state


DIAGNOSTICS_PANEL = "Diagnostics"

VerbosityOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase diagnostic output (repeat for more detail).",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks when preprocessing fails.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]


app = typer.Typer(
    help="Highlight Typst code blocks of an mdBook and embed their rendered previews.",
    context_settings={"help_option_names": ["--help"]},
    invoke_without_command=True,
    no_args_is_help=False,
)


@app.callback()
def preprocess(
    ctx: typer.Context,
    verbose: VerbosityOption = 0,
    debug: DebugOption = False,
) -> None:
    """Read ``[context, book]`` JSON from stdin and write the processed book to stdout."""
    state = set_cli_state(ctx=ctx, verbosity=verbose, debug=debug)
    if ctx.invoked_subcommand is not None:
        return

    context, book = parse_preprocessor_input(sys.stdin.read())
    processed = TypstHighlight(emitter=CliEmitter(state)).run(context, book)
    sys.stdout.write(json.dumps(processed.to_json()))
    sys.stdout.flush()


@app.command()
def supports(
    renderer: Annotated[str, typer.Argument(help="Name of the mdBook renderer.")],
) -> None:
    """Exit with status 0 when the renderer is supported, 1 otherwise."""
    if not TypstHighlight().supports_renderer(renderer):
        raise typer.Exit(code=1)


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except SystemExit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except TypstHighlightError as exc:
        if debug_enabled():
            raise
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc
    except Exception as exc:  # pragma: no cover - defensive catch-all
        state = get_cli_state()
        if state.show_tracebacks:
            from rich.traceback import Traceback

            tb = Traceback.from_exception(
                type(exc),
                exc,
                exc.__traceback__,
                show_locals=state.verbosity >= 2,
            )
            state.err_console.print(tb)
        else:
            emit_error(exception_hint(exc) or str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
