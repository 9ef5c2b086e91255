"""Build-or-fetch resolution pipeline — the central coordinator.

Flow::

    classify -> cache lookup -> [compile session -> verify] -> teardown -> publish
        -> reconcile + write lock (once)

Any fatal error aborts the run before the lock file is written, so a
failed run leaves the lock exactly as it was. The lock is written once, at
the end, covering releases resolved from cache and from compilation.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from stemforge.core.cache_resolver import CacheResolver
from stemforge.core.classifier import classify, find_build_candidates, source_ref
from stemforge.core.compilation_session import BaseImageReader, CompilationSession
from stemforge.core.errors import ConfigurationError, TransportError
from stemforge.core.publisher import Publisher
from stemforge.core.reconciler import ManifestReconciler, ManifestWriter
from stemforge.core.verifier import verify_artifact
from stemforge.models.lock import LockEntry, LockManifest
from stemforge.models.releases import (
    BaseImageTarget,
    LocalArtifact,
    Requirement,
    ResolvedRelease,
)
from stemforge.remote.base_image import BaseImageManifestError, read_base_image_manifest
from stemforge.remote.platform import PlatformFactory
from stemforge.sources.base import ReleaseUploader
from stemforge.sources.registry import ReleaseSourceRegistry

logger = logging.getLogger(__name__)


class ResolutionReport(BaseModel):
    """Outcome of one successful ``Resolver.resolve`` run."""

    model_config = ConfigDict(frozen=True)

    manifest: LockManifest
    already_publishable: list[LockEntry] = []
    from_cache: list[ResolvedRelease] = []
    built: list[ResolvedRelease] = []
    session_name: str | None = None
    lock_written: bool = False


class Resolver:
    """Resolves every built-only release in a lock manifest.

    Parameters
    ----------
    registry:
        All configured release sources.
    writer:
        Persists the updated lock manifest.
    releases_dir:
        Local working directory for downloads and exports.
    uploader:
        Destination store for compiled releases. Only needed when a
        compilation happens.
    platform_factory:
        Connects to the remote platform. Only called when a compilation
        happens.
    download_threads:
        Passed through to source downloads.
    base_image_reader:
        Parses stemcell metadata.
    """

    def __init__(
        self,
        registry: ReleaseSourceRegistry,
        writer: ManifestWriter,
        releases_dir: Path,
        *,
        uploader: ReleaseUploader | None = None,
        platform_factory: PlatformFactory | None = None,
        download_threads: int = 0,
        base_image_reader: BaseImageReader = read_base_image_manifest,
    ) -> None:
        self.registry = registry
        self.releases_dir = Path(releases_dir)
        self._reconciler = ManifestReconciler(writer)
        self._uploader = uploader
        self._platform_factory = platform_factory
        self._threads = download_threads
        self._read_base_image = base_image_reader

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def find_build_candidates(
        self, manifest: LockManifest, target: BaseImageTarget | None = None
    ) -> list[Requirement]:
        """Requirements that need resolving; no side effects."""
        return find_build_candidates(manifest, self.registry, target)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _target_for(
        self,
        manifest: LockManifest,
        base_image_path: Path | None,
        target: BaseImageTarget | None,
    ) -> BaseImageTarget:
        if target is not None:
            return target
        if manifest.base_image is not None:
            return manifest.base_image
        if base_image_path is not None:
            try:
                return self._read_base_image(Path(base_image_path))
            except BaseImageManifestError as exc:
                raise ConfigurationError(f"couldn't parse manifest of stemcell: {exc}") from exc
        raise ConfigurationError(
            "no base image target: the lock file has no base_image and no stemcell was given"
        )

    def resolve(
        self,
        manifest: LockManifest,
        base_image_path: Path | None = None,
        *,
        target: BaseImageTarget | None = None,
    ) -> ResolutionReport:
        """Resolve every release whose source is not publishable.

        Returns a report with the updated manifest. Raises a
        ``ResolutionError`` subclass on any fatal failure, in which case the
        lock file has not been written.
        """
        publishable, pending = classify(manifest, self.registry)
        if not pending:
            logger.info("All releases are compiled. Exiting early")
            return ResolutionReport(manifest=manifest, already_publishable=publishable)

        resolved_target = self._target_for(manifest, base_image_path, target)
        requirements = [
            Requirement(identity=entry.identity, target=resolved_target) for entry in pending
        ]

        cache = CacheResolver(
            self.registry.publishable_sources(),
            self.releases_dir,
            download_threads=self._threads,
        )
        from_cache, remaining = cache.resolve(requirements)

        built: list[ResolvedRelease] = []
        session_name: str | None = None
        if remaining:
            logger.info("need to compile %d built releases", len(remaining))
            if base_image_path is None:
                raise ConfigurationError(
                    f"{len(remaining)} releases need compiling but no stemcell file was given"
                )
            entries = {entry.name: entry for entry in pending}
            built, session_name = self._compile(
                [entries[r.name] for r in remaining],
                resolved_target,
                Path(base_image_path),
            )
        else:
            logger.info("nothing left to compile")

        updated = self._reconciler.apply(manifest, [*from_cache, *built])
        logger.info("Updated lock file. DONE")
        return ResolutionReport(
            manifest=updated,
            already_publishable=publishable,
            from_cache=from_cache,
            built=built,
            session_name=session_name,
            lock_written=True,
        )

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def _download_built(self, entries: list[LockEntry]) -> list[LocalArtifact]:
        artifacts: list[LocalArtifact] = []
        for entry in entries:
            source = self.registry.find_by_id(entry.source_id)
            try:
                artifacts.append(
                    source.download(source_ref(entry), self.releases_dir, self._threads)
                )
            except Exception as exc:
                raise TransportError(
                    f"failure downloading built release: {exc}", release=entry.identity
                ) from exc
        return artifacts

    def _compile(
        self,
        entries: list[LockEntry],
        target: BaseImageTarget,
        base_image_path: Path,
    ) -> tuple[list[ResolvedRelease], str]:
        if self._uploader is None:
            raise ConfigurationError("releases need compiling but no upload target is configured")
        if self._platform_factory is None:
            raise ConfigurationError("releases need compiling but no platform is configured")
        publisher = Publisher(self._uploader)

        raw = self._download_built(entries)

        logger.info("connecting to the bosh director")
        try:
            platform = self._platform_factory()
        except Exception as exc:
            raise TransportError(f"unable to connect to bosh director: {exc}") from exc

        with CompilationSession(
            platform, self.releases_dir, base_image_reader=self._read_base_image
        ) as session:
            session.upload_releases(raw)
            stemcell_target = session.upload_base_image(base_image_path)
            if stemcell_target != target:
                raise ConfigurationError(
                    f"stemcell {stemcell_target} does not match the locked base image {target}"
                )
            session.deploy()
            exported = session.export()

            # Verify the whole batch before anything is published.
            for release in exported:
                verify_artifact(release.artifact, release.declared_digest)

        # The workload is deleted by now; publishing reads only local exports.
        built = [publisher.publish(r.artifact, r.requirement) for r in exported]
        return built, session.name
