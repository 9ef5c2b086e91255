"""Cache resolution — find already-compiled releases in publishable sources.

Publishable sources are asked in registration order and the first match
wins. Requirements are resolved one at a time. A declared match that then
fails to download is fatal: it is never demoted to "needs build".
"""

from __future__ import annotations

import logging
from pathlib import Path

from stemforge.core.errors import TransportError
from stemforge.models.releases import ArtifactRef, Requirement, ResolvedRelease
from stemforge.sources.base import ReleaseSource

logger = logging.getLogger(__name__)


class CacheResolver:
    """Resolves requirements against an ordered list of publishable sources.

    Parameters
    ----------
    sources:
        Publishable sources, in lookup precedence order.
    releases_dir:
        Where matched releases are downloaded to.
    download_threads:
        Passed through to each source's ``download``.
    """

    def __init__(
        self,
        sources: list[ReleaseSource],
        releases_dir: Path,
        *,
        download_threads: int = 0,
    ) -> None:
        self._sources = list(sources)
        self._releases_dir = Path(releases_dir)
        self._threads = download_threads

    def find(self, requirement: Requirement) -> tuple[ReleaseSource, ArtifactRef] | None:
        """Return the first (source, ref) matching *requirement*, or None."""
        for source in self._sources:
            try:
                ref = source.find_matching(requirement)
            except Exception as exc:
                raise TransportError(
                    f"error searching source {source.source_id!r} for pre-compiled release: {exc}",
                    release=requirement.identity,
                ) from exc
            if ref is not None:
                return source, ref
        return None

    def resolve(
        self, requirements: list[Requirement]
    ) -> tuple[list[ResolvedRelease], list[Requirement]]:
        """Split *requirements* into (resolved from cache, still needing a build)."""
        logger.info("searching for pre-compiled releases")
        resolved: list[ResolvedRelease] = []
        remaining: list[Requirement] = []

        for requirement in requirements:
            match = self.find(requirement)
            if match is None:
                remaining.append(requirement)
                continue

            source, ref = match
            try:
                local = source.download(ref, self._releases_dir, self._threads)
            except Exception as exc:
                raise TransportError(
                    f"error downloading pre-compiled release from {source.source_id!r}: {exc}",
                    release=requirement.identity,
                ) from exc

            logger.info(
                "found pre-compiled %s in %s (sha1 %s)",
                requirement.identity, ref.source_id, local.digest,
            )
            resolved.append(ResolvedRelease(ref=ref, digest=local.digest, from_cache=True))

        logger.info("found %d pre-compiled releases", len(resolved))
        return resolved, remaining
