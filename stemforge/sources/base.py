"""Release source and uploader Protocols.

The pipeline is written only against these contracts. Any object with the
right methods satisfies them; ``DirectoryReleaseSource`` is the bundled
default implementation.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from stemforge.models.releases import ArtifactRef, LocalArtifact, Requirement


@runtime_checkable
class ReleaseSource(Protocol):
    """A named place releases can be found and downloaded from."""

    @property
    def source_id(self) -> str:
        ...

    def publishable(self) -> bool:
        """Return ``True`` if this source holds already-compiled releases."""
        ...

    def find_matching(self, requirement: Requirement) -> ArtifactRef | None:
        """Return a ref for an exact match on name, version and target, or None."""
        ...

    def download(
        self, ref: ArtifactRef, dest_dir: Path, threads: int = 0
    ) -> LocalArtifact:
        """Download *ref* into *dest_dir* and return it with its SHA-1 digest.

        *threads* bounds concurrent chunk transfer; 0 lets the source decide.
        """
        ...


@runtime_checkable
class ReleaseUploader(Protocol):
    """A destination store for compiled releases."""

    @property
    def source_id(self) -> str:
        ...

    def upload(self, requirement: Requirement, stream: BinaryIO) -> ArtifactRef:
        """Store the bytes of *stream* under a key derived from *requirement*."""
        ...
