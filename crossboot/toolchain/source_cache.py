import os
import pathlib
import shutil
from typing import Callable, Iterable, Mapping

from ..log import CrossbootLogger
from .errors import BootstrapError, ExtractError, FetchError
from .fetcher import BaseFetcher
from .runner import StageRunner
from .spec import Component, SourceArtifact
from .unpack import extract_tarball

FetcherFactory = Callable[[CrossbootLogger, list[str], str], BaseFetcher]

PREREQUISITES_SCRIPT = "contrib/download_prerequisites"

# log name used by a standalone fetch outside of any pipeline run
FETCH_LOG_NAME = "fetch"


class SourceCache:
    """Idempotent fetch and extraction of the component source archives.

    An archive already on disk is never re-fetched, and a tree already
    extracted is never re-extracted. Nothing is verified beyond existence;
    a corrupt cache is fixed by deleting it and running again.
    """

    def __init__(
        self,
        logger: CrossbootLogger,
        src_dir: pathlib.Path,
        runner: StageRunner,
        *,
        stage: str = "init",
        env: Mapping[str, str] | None = None,
        fetcher_factory: FetcherFactory = BaseFetcher.new,
    ) -> None:
        self._logger = logger
        self.src_dir = src_dir
        self._runner = runner
        self._stage = stage
        self._env = dict(os.environ if env is None else env)
        self._fetcher_factory = fetcher_factory

    def archive_path(self, artifact: SourceArtifact) -> pathlib.Path:
        return self.src_dir / artifact.archive_name

    def extracted_path(self, artifact: SourceArtifact) -> pathlib.Path:
        return self.src_dir / artifact.extracted_dir

    def ensure(self, artifact: SourceArtifact) -> pathlib.Path:
        if not artifact.archive_name:
            raise ValueError(f"{artifact.name}: empty archive name")
        if not artifact.url:
            raise ValueError(f"{artifact.name}: empty source URL")
        if not artifact.version:
            raise ValueError(f"{artifact.name}: empty version")

        self.src_dir.mkdir(parents=True, exist_ok=True)

        archive = self.archive_path(artifact)
        if archive.exists():
            self._logger.D(f"{archive} already present, not fetching")
        else:
            self._fetch(artifact, archive)

        extracted = self.extracted_path(artifact)
        if extracted.is_dir():
            self._logger.D(f"{extracted} already extracted")
            return extracted

        self._logger.I(f"extracting [yellow]{artifact.archive_name}[/]")
        extract_tarball(self._logger, archive, self.src_dir)
        if not extracted.is_dir():
            raise ExtractError(
                archive, f"the archive did not contain the directory {artifact.extracted_dir}"
            )

        if artifact.needs_prerequisites:
            self._fetch_prerequisites(artifact, extracted)

        return extracted

    def ensure_all(
        self,
        artifacts: Iterable[SourceArtifact],
    ) -> dict[Component, pathlib.Path]:
        return {a.component: self.ensure(a) for a in artifacts}

    def _fetch(self, artifact: SourceArtifact, archive: pathlib.Path) -> None:
        # download under a temporary name so an interrupted transfer never
        # looks like a cached archive
        partial = archive.with_name(f"{archive.name}.part")
        try:
            fetcher = self._fetcher_factory(self._logger, [artifact.url], str(partial))
            fetcher.fetch()
        except BootstrapError:
            partial.unlink(missing_ok=True)
            raise
        except (RuntimeError, OSError) as e:
            partial.unlink(missing_ok=True)
            raise FetchError(archive, str(e)) from e

        if not partial.exists():
            raise FetchError(archive, "the fetcher reported success but wrote nothing")
        partial.rename(archive)

    def _fetch_prerequisites(
        self,
        artifact: SourceArtifact,
        extracted: pathlib.Path,
    ) -> None:
        self._logger.I(
            f"fetching in-tree prerequisites for [yellow]{artifact}[/]"
        )
        try:
            self._runner.run(
                self._stage,
                [f"./{PREREQUISITES_SCRIPT}"],
                cwd=extracted,
                env=self._env,
            )
        except BootstrapError:
            # the extracted tree is only considered complete with its
            # prerequisites, so make the next run start over
            shutil.rmtree(extracted, ignore_errors=True)
            raise
