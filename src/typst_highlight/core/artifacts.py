"""Discovery of rendered artifacts produced for a content hash."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True, slots=True)
class ArtifactLocation:
    """Directory and digest naming the numbered artifacts of one block."""

    directory: Path
    digest: str
    extension: str = "svg"

    def artifact_name(self, index: int) -> str:
        return f"{self.digest}-{index}.{self.extension}"

    def artifact_path(self, index: int) -> Path:
        return self.directory / self.artifact_name(index)


class ArtifactIndex(Protocol):
    """Lookup returning the artifact file names available for a location."""

    def artifacts(self, location: ArtifactLocation) -> Iterator[str]: ...


class FilesystemArtifactIndex:
    """Index backed by the files present on disk.

    Artifacts are numbered from 1 and assumed contiguous: iteration stops at the
    first missing index even when later ones exist. Each iteration probes the
    filesystem as it goes, so results reflect the state at consumption time.
    """

    def artifacts(self, location: ArtifactLocation) -> Iterator[str]:
        index = 1
        while location.artifact_path(index).exists():
            yield location.artifact_name(index)
            index += 1


__all__ = ["ArtifactIndex", "ArtifactLocation", "FilesystemArtifactIndex"]
