"""Lock manifest reconciliation.

Merges resolved releases into the lock manifest and persists it once, as a
whole. Entries with no resolved counterpart are carried over unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from stemforge.core.errors import ConfigurationError, TransportError
from stemforge.models.lock import LockEntry, LockManifest
from stemforge.models.releases import ResolvedRelease

logger = logging.getLogger(__name__)

ManifestWriter = Callable[[LockManifest], None]


def reconcile(manifest: LockManifest, resolved: list[ResolvedRelease]) -> LockManifest:
    """Return a new manifest with each resolved release's entry replaced.

    Raises ``ConfigurationError`` if a resolved release has no entry, has
    its version disagree with its entry, or appears twice.
    """
    updates: dict[str, ResolvedRelease] = {}
    for release in resolved:
        name = release.identity.name
        if name in updates:
            raise ConfigurationError(
                "release resolved more than once in a single run", release=release.identity
            )
        entry = manifest.find(name)
        if entry is None:
            raise ConfigurationError(
                f"no release named {name!r} exists in the lock file", release=release.identity
            )
        if entry.version != release.identity.version:
            raise ConfigurationError(
                f"resolved version {release.identity.version!r} does not match locked "
                f"version {entry.version!r}",
                release=release.identity,
            )
        updates[name] = release

    releases: list[LockEntry] = []
    for entry in manifest.releases:
        release = updates.get(entry.name)
        if release is None:
            releases.append(entry)
            continue
        releases.append(
            entry.model_copy(
                update={
                    "source_id": release.ref.source_id,
                    "path": release.ref.path,
                    "digest": release.digest,
                }
            )
        )
    return manifest.model_copy(update={"releases": releases})


class ManifestReconciler:
    """Applies resolved releases to a manifest and writes it through *writer*."""

    def __init__(self, writer: ManifestWriter) -> None:
        self._writer = writer

    def apply(self, manifest: LockManifest, resolved: list[ResolvedRelease]) -> LockManifest:
        updated = reconcile(manifest, resolved)
        try:
            self._writer(updated)
        except OSError as exc:
            raise TransportError(f"couldn't write lock file: {exc}") from exc
        logger.info("updated lock file with %d releases", len(resolved))
        return updated
