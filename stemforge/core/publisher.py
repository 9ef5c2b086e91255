"""Publishing verified compiled releases to the destination store."""

from __future__ import annotations

import logging

from stemforge.core.errors import TransportError
from stemforge.models.releases import (
    LocalArtifact,
    Requirement,
    ResolvedRelease,
)
from stemforge.sources.base import ReleaseUploader

logger = logging.getLogger(__name__)


class Publisher:
    """Uploads compiled releases, exactly one attempt per artifact.

    Overwrite semantics belong to the store.
    """

    def __init__(self, uploader: ReleaseUploader) -> None:
        self._uploader = uploader

    @property
    def target_id(self) -> str:
        return self._uploader.source_id

    def publish(self, artifact: LocalArtifact, requirement: Requirement) -> ResolvedRelease:
        """Upload *artifact* and return its new locator with its digest."""
        logger.info("uploading compiled release %s to %s", artifact.local_path, self.target_id)
        try:
            with open(artifact.local_path, "rb") as fh:
                ref = self._uploader.upload(requirement, fh)
        except Exception as exc:
            raise TransportError(
                f"uploading compiled release {str(artifact.local_path)!r} failed: {exc}",
                release=requirement.identity,
            ) from exc
        return ResolvedRelease(ref=ref, digest=artifact.digest)
