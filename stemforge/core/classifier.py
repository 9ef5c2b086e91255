"""Requirement classification — which lock entries still need compiling.

An entry is satisfied when its current source is publishable. Every other
entry is a build candidate. Classification has no side effects.
"""

from __future__ import annotations

from stemforge.core.errors import ConfigurationError
from stemforge.models.lock import LockEntry, LockManifest
from stemforge.models.releases import ArtifactRef, BaseImageTarget, Requirement
from stemforge.sources.registry import ReleaseSourceRegistry


def classify(
    manifest: LockManifest, registry: ReleaseSourceRegistry
) -> tuple[list[LockEntry], list[LockEntry]]:
    """Split lock entries into (publishable, needs_resolution).

    Both lists keep manifest order. Raises ``ConfigurationError`` if an
    entry references a source id that is not registered.
    """
    publishable: list[LockEntry] = []
    pending: list[LockEntry] = []
    for entry in manifest.releases:
        source = registry.find_by_id(entry.source_id)
        if source.publishable():
            publishable.append(entry)
        else:
            pending.append(entry)
    return publishable, pending


def find_build_candidates(
    manifest: LockManifest,
    registry: ReleaseSourceRegistry,
    target: BaseImageTarget | None = None,
) -> list[Requirement]:
    """Return the requirements that need resolving, in manifest order.

    *target* defaults to the manifest's own base image.
    """
    target = target or manifest.base_image
    if target is None:
        raise ConfigurationError("lock manifest has no base_image and none was given")
    _, pending = classify(manifest, registry)
    return [Requirement(identity=entry.identity, target=target) for entry in pending]


def source_ref(entry: LockEntry) -> ArtifactRef:
    """The locator for an entry's current (raw) artifact."""
    return ArtifactRef(identity=entry.identity, source_id=entry.source_id, path=entry.path)
