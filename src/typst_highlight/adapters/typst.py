"""Render cache probing and asynchronous invocation of the Typst compiler."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
import logging
from pathlib import Path

from typst_highlight.core.artifacts import ArtifactLocation
from typst_highlight.core.diagnostics import DiagnosticEmitter
from typst_highlight.core.exceptions import RenderJobError, RenderSetupError


TYPST_SOURCE_DIR = "typst-src"
TYPST_IMAGE_DIR = "typst-img"
FONTS_DIR = "fonts"
PREAMBLE = "#set page(height: auto, width: 400pt, margin: 0.5cm)\n"
_log = logging.getLogger(__name__)


@dataclass(slots=True)
class RenderJob:
    """Deferred compilation of one archived Typst source."""

    digest: str
    source_path: Path
    output_dir: Path
    chapter_label: str
    argv: Sequence[str]

    async def run(self, emitter: DiagnosticEmitter) -> None:
        """Spawn the compiler, wait for it, and report anything written to stderr."""
        _log.debug("running %s", " ".join(self.argv))
        emitter.event("typst_render", {"digest": self.digest, "chapter": self.chapter_label})
        try:
            process = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            emitter.error(
                f'Unable to launch "{self.argv[0]}" for chapter "{self.chapter_label}": {exc}',
                exc,
            )
            return

        # Only stderr is inspected; the exit status is ignored.
        _, stderr = await process.communicate()
        if stderr:
            emitter.warning(
                f'Error at chapter "{self.chapter_label}"\n'
                f"{stderr.decode('utf-8', errors='replace').rstrip()}"
            )
            emitter.event(
                "typst_diagnostics",
                {"digest": self.digest, "chapter": self.chapter_label, "stderr": stderr},
            )


class TypstCompiler:
    """Probe the artifact cache and prepare compiler runs on misses."""

    def __init__(
        self,
        build_root: Path,
        *,
        executable: str = "typst",
        image_format: str = "svg",
        page_placeholder: str = "{n}",
        preamble: str = PREAMBLE,
    ) -> None:
        self.build_root = Path(build_root)
        self.executable = executable
        self.image_format = image_format
        self.page_placeholder = page_placeholder
        self.preamble = preamble

    def location(self, digest: str, source_dir: Path) -> ArtifactLocation:
        """Return where the artifacts of ``digest`` live for a chapter directory."""
        return ArtifactLocation(
            directory=Path(source_dir) / TYPST_IMAGE_DIR,
            digest=digest,
            extension=self.image_format,
        )

    def probe_and_maybe_render(
        self,
        digest: str,
        source: str,
        *,
        source_dir: Path,
        chapter_label: str,
        inject_preamble: bool = True,
    ) -> tuple[ArtifactLocation, RenderJob | None]:
        """Return the artifact location and, on a cache miss, the job producing it."""
        source_dir = Path(source_dir)
        location = self.location(digest, source_dir)
        if location.artifact_path(1).exists():
            return location, None

        archive_dir = source_dir / TYPST_SOURCE_DIR
        archive_path = archive_dir / f"{digest}.typ"
        try:
            location.directory.mkdir(parents=True, exist_ok=True)
            archive_dir.mkdir(parents=True, exist_ok=True)
            payload = f"{self.preamble}\n{source}" if inject_preamble else source
            archive_path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise RenderSetupError(
                f"Unable to prepare Typst sources for '{digest}' in '{source_dir}': {exc}"
            ) from exc

        argv = self.build_command(archive_path, location, root=source_dir)
        job = RenderJob(
            digest=digest,
            source_path=archive_path,
            output_dir=location.directory,
            chapter_label=chapter_label,
            argv=argv,
        )
        return location, job

    def build_command(self, source_path: Path, location: ArtifactLocation, *, root: Path) -> list[str]:
        """Return the argv compiling ``source_path`` into numbered artifacts."""
        output_template = location.directory / (
            f"{location.digest}-{self.page_placeholder}.{location.extension}"
        )
        command = [
            self.executable,
            "compile",
            str(source_path),
            "--root",
            str(root),
            str(output_template),
        ]
        fonts_dir = self.build_root / FONTS_DIR
        if fonts_dir.is_dir():
            command.extend(["--font-path", str(fonts_dir)])
        return command


async def run_jobs(jobs: Sequence[RenderJob], emitter: DiagnosticEmitter) -> None:
    """Run every job concurrently and return once all of them have finished.

    A job failing unexpectedly does not cancel its siblings; the failures are
    raised together as a single :class:`RenderJobError` once every job is done.
    """
    failures: list[tuple[RenderJob, Exception]] = []

    async def _guarded(job: RenderJob) -> None:
        try:
            await job.run(emitter)
        except Exception as exc:
            _log.debug("job for %s failed", job.digest, exc_info=exc)
            failures.append((job, exc))

    async with asyncio.TaskGroup() as group:
        for job in jobs:
            group.create_task(_guarded(job))

    if failures:
        details = "; ".join(f"{job.digest[:10]}: {exc}" for job, exc in failures)
        raise RenderJobError(
            f"{len(failures)} Typst job(s) failed in chapter "
            f'"{failures[0][0].chapter_label}": {details}'
        ) from failures[0][1]


__all__ = [
    "FONTS_DIR",
    "PREAMBLE",
    "TYPST_IMAGE_DIR",
    "TYPST_SOURCE_DIR",
    "RenderJob",
    "TypstCompiler",
    "run_jobs",
]
