"""Configuration model read from the ``[preprocessor.typst-highlight]`` table.

PreprocessSettings

`disable_inline` (`bool`)
: Leave inline code spans untouched instead of highlighting them as Typst.

`typst_default` (`bool`)
: Treat code blocks without a language tag as Typst blocks.

`render` (`bool`)
: Compile every Typst block with the `typst` binary and embed the resulting
  SVG images below the highlighted source. Blocks tagged `norender` are only
  highlighted.

`warn_not_specified` (`bool`)
: Emit a warning for each fenced code block that does not declare a language.

`compiler` (`str`)
: Executable used to compile Typst blocks. Provide an absolute path when the
  binary is not on `PATH`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from typst_highlight.core.exceptions import ConfigurationError


class PreprocessSettings(BaseModel):
    """Options recognised by the Typst preprocessor."""

    # mdBook stores its own keys (command, renderers, before, after) in the same table.
    model_config = ConfigDict(extra="ignore", frozen=True)

    disable_inline: bool = False
    typst_default: bool = False
    render: bool = False
    warn_not_specified: bool = False
    compiler: str = "typst"

    @property
    def highlight_inline(self) -> bool:
        """Return True when inline code spans should be highlighted."""
        return not self.disable_inline

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> PreprocessSettings:
        """Validate a raw settings table, raising a configuration error on failure."""
        try:
            return cls.model_validate(dict(payload or {}))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid typst-highlight settings: {exc}") from exc


__all__ = ["PreprocessSettings"]
