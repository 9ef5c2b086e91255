"""Local-directory release source and store.

Storage layout
--------------
Publishable (compiled) sources hold ``{name}-{version}-{os}-{os_version}.tgz``.
Built-only sources hold ``{name}-{version}.tgz``.

A directory source is also a ``ReleaseUploader``: uploading writes the
compiled tarball into the directory under the compiled-release name and
overwrites any previous file with that name.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import BinaryIO

import yaml
from pydantic import BaseModel, ConfigDict

from stemforge.core.hasher import file_digest
from stemforge.models.lock import LockManifest
from stemforge.models.releases import (
    ArtifactRef,
    LocalArtifact,
    ReleaseIdentity,
    Requirement,
)

logger = logging.getLogger(__name__)

_RELEASE_MANIFEST = "release.MF"


class LocalRelease(BaseModel):
    """A release tarball found on local disk."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    digest: str
    local_path: Path


class DirectoryReleaseSource:
    """Release source (and store) backed by a local directory.

    Parameters
    ----------
    source_id:
        The id this source is registered under.
    path:
        Directory holding the release tarballs. Created on first upload.
    publishable:
        Whether the directory holds compiled releases.
    """

    def __init__(self, source_id: str, path: Path, *, publishable: bool = False) -> None:
        self._id = source_id
        self._path = Path(path)
        self._publishable = publishable

    @property
    def source_id(self) -> str:
        return self._id

    @property
    def path(self) -> Path:
        return self._path

    def publishable(self) -> bool:
        return self._publishable

    def __repr__(self) -> str:
        return (
            f"DirectoryReleaseSource(id={self._id!r}, path={str(self._path)!r}, "
            f"publishable={self._publishable})"
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _filename_for(self, requirement: Requirement) -> str:
        if self._publishable:
            return requirement.compiled_filename()
        return f"{requirement.name}-{requirement.version}.tgz"

    def find_matching(self, requirement: Requirement) -> ArtifactRef | None:
        """Exact-match lookup by file name."""
        filename = self._filename_for(requirement)
        if not (self._path / filename).is_file():
            return None
        return ArtifactRef(
            identity=requirement.identity,
            source_id=self._id,
            path=filename,
        )

    # ------------------------------------------------------------------
    # Transfer
    # ------------------------------------------------------------------

    def download(
        self, ref: ArtifactRef, dest_dir: Path, threads: int = 0
    ) -> LocalArtifact:
        """Copy the referenced tarball into *dest_dir*.

        A local copy has no chunking, so *threads* is accepted and ignored.
        """
        src = self._path / ref.path
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / Path(ref.path).name
        if src.resolve() != dest.resolve():
            shutil.copyfile(src, dest)
        logger.debug("Copied %s from source %s to %s", ref.path, self._id, dest)
        return LocalArtifact(
            identity=ref.identity,
            local_path=dest,
            digest=file_digest(dest),
        )

    def upload(self, requirement: Requirement, stream: BinaryIO) -> ArtifactRef:
        """Write *stream* to ``{dir}/{compiled filename}``.

        The bytes land in a temp file first and are moved into place, so
        *stream* may be reading the very file being replaced.
        """
        filename = requirement.compiled_filename()
        self._path.mkdir(parents=True, exist_ok=True)
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=self._path, prefix=filename + ".", suffix=".tmp", delete=False
            ) as out:
                temp_path = Path(out.name)
                shutil.copyfileobj(stream, out)
            os.replace(temp_path, self._path / filename)
        except Exception:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise
        logger.info("Uploaded %s to %s", filename, self._id)
        return ArtifactRef(
            identity=requirement.identity,
            source_id=self._id,
            path=filename,
        )


# ---------------------------------------------------------------------------
# Local release listing
# ---------------------------------------------------------------------------


def read_release_identity(tarball: Path) -> ReleaseIdentity:
    """Read ``name`` and ``version`` from the ``release.MF`` in *tarball*.

    Raises ``ValueError`` if the tarball is unreadable or its manifest is
    missing or incomplete.
    """
    data = None
    try:
        with tarfile.open(tarball, "r:*") as tar:
            for member in tar.getmembers():
                if Path(member.name).name == _RELEASE_MANIFEST and member.isfile():
                    fh = tar.extractfile(member)
                    if fh is not None:
                        data = yaml.safe_load(fh) or {}
                    break
    except (OSError, tarfile.TarError, yaml.YAMLError) as exc:
        raise ValueError(f"couldn't read release {tarball}: {exc}") from exc

    if data is None:
        raise ValueError(f"{tarball} does not contain a {_RELEASE_MANIFEST}")
    try:
        return ReleaseIdentity(name=str(data["name"]), version=str(data["version"]))
    except (KeyError, TypeError) as exc:
        raise ValueError(f"{_RELEASE_MANIFEST} in {tarball} is missing name or version") from exc


def list_local_releases(releases_dir: Path) -> list[LocalRelease]:
    """Return every ``*.tgz`` release in *releases_dir*, sorted by path.

    Raises ``FileNotFoundError`` naming the directory if it does not exist.
    """
    releases_dir = Path(releases_dir)
    if not releases_dir.is_dir():
        raise FileNotFoundError(f"releases directory {releases_dir} does not exist")

    releases: list[LocalRelease] = []
    for tarball in sorted(releases_dir.glob("*.tgz")):
        identity = read_release_identity(tarball)
        releases.append(
            LocalRelease(
                name=identity.name,
                version=identity.version,
                digest=file_digest(tarball),
                local_path=tarball,
            )
        )
    return releases


def find_extra_releases(releases: list[LocalRelease], manifest: LockManifest) -> list[LocalRelease]:
    """Releases whose name and version are not locked in *manifest*."""
    extra: list[LocalRelease] = []
    for release in releases:
        entry = manifest.find(release.name)
        if entry is None or entry.version != release.version:
            extra.append(release)
    return extra


class ReleaseDeletionError(OSError):
    """Raised when a local release file cannot be removed."""


def delete_extra_releases(releases: list[LocalRelease]) -> None:
    """Remove each release file, logging the sorted list of paths first.

    Stops at the first file that cannot be removed.
    """
    if not releases:
        return
    ordered = sorted(releases, key=lambda r: str(r.local_path))
    logger.info(
        "Deleting %d extra releases:\n%s",
        len(ordered),
        "\n".join(f"- {r.local_path}" for r in ordered),
    )
    for release in ordered:
        try:
            release.local_path.unlink()
        except OSError as exc:
            raise ReleaseDeletionError(f"failed to delete release {release.name}") from exc
