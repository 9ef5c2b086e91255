"""Shared test fixtures and fakes for stemforge."""

from __future__ import annotations

import hashlib
import io
import tarfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, BinaryIO

import pytest

from stemforge.models.lock import LockEntry, LockManifest
from stemforge.models.releases import (
    ArtifactRef,
    BaseImageTarget,
    LocalArtifact,
    ReleaseIdentity,
    Requirement,
)
from stemforge.models.session import ExportResult
from stemforge.sources.directory import DirectoryReleaseSource
from stemforge.sources.registry import ReleaseSourceRegistry

TARGET = BaseImageTarget(operating_system="ubuntu-jammy", version="1.234")


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def write_tarball(path: Path, members: dict[str, bytes]) -> Path:
    """Write a gzipped tarball holding *members* (name -> bytes)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


def write_stemcell(path: Path, target: BaseImageTarget = TARGET) -> Path:
    manifest = (
        f"name: bosh-stemcell\n"
        f"operating_system: {target.operating_system}\n"
        f"version: '{target.version}'\n"
    ).encode()
    return write_tarball(path, {"stemcell.MF": manifest, "image": b"disk"})


def write_release(path: Path, name: str, version: str) -> Path:
    manifest = f"name: {name}\nversion: '{version}'\n".encode()
    return write_tarball(path, {"./release.MF": manifest})


# ---------------------------------------------------------------------------
# Fake remote platform
# ---------------------------------------------------------------------------


class FakeWorkload:
    """Workload handle that records calls and can fail on demand."""

    def __init__(self, platform: FakePlatform, name: str) -> None:
        self._platform = platform
        self._name = name
        self.applied: list[str] = []
        self.deleted = 0

    @property
    def name(self) -> str:
        return self._name

    def apply(self, description: str) -> None:
        self._platform.calls.append(("apply", self._name))
        self._platform.maybe_fail("apply")
        self.applied.append(description)

    def export_release(self, release: ReleaseIdentity, target: BaseImageTarget) -> ExportResult:
        self._platform.calls.append(("export_release", release.name))
        self._platform.maybe_fail("export_release")
        blob_id = f"blob-{release.name}"
        content = self._platform.compiled_content(release, target)
        declared = self._platform.declared_digests.get(release.name, sha1(content))
        self._platform.blobs[blob_id] = content
        return ExportResult(blob_id=blob_id, declared_digest=declared)

    def delete(self) -> None:
        self._platform.calls.append(("delete", self._name))
        self.deleted += 1
        self._platform.maybe_fail("delete")


class FakePlatform:
    """In-memory orchestration platform.

    ``fail_on`` names a method that raises; ``declared_digests`` overrides
    the digest reported for a release's export.
    """

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[tuple[str, str]] = []
        self.workloads: list[FakeWorkload] = []
        self.uploaded_releases: list[str] = []
        self.uploaded_base_images: list[str] = []
        self.blobs: dict[str, bytes] = {}
        self.declared_digests: dict[str, str] = {}
        self.cleanups = 0

    def maybe_fail(self, method: str) -> None:
        if self.fail_on == method:
            raise RuntimeError(f"injected {method} failure")

    @staticmethod
    def compiled_content(release: ReleaseIdentity, target: BaseImageTarget) -> bytes:
        return f"compiled {release.name} {release.version} on {target}".encode()

    def upload_release(self, path: Path) -> None:
        self.calls.append(("upload_release", Path(path).name))
        self.maybe_fail("upload_release")
        self.uploaded_releases.append(Path(path).name)

    def upload_base_image(self, path: Path) -> None:
        self.calls.append(("upload_base_image", Path(path).name))
        self.maybe_fail("upload_base_image")
        self.uploaded_base_images.append(Path(path).name)

    def workload(self, name: str) -> FakeWorkload:
        self.calls.append(("workload", name))
        self.maybe_fail("workload")
        workload = FakeWorkload(self, name)
        self.workloads.append(workload)
        return workload

    def download_resource(self, blob_id: str, out: BinaryIO) -> None:
        self.calls.append(("download_resource", blob_id))
        self.maybe_fail("download_resource")
        out.write(self.blobs[blob_id])

    def clean_up(self) -> None:
        self.calls.append(("clean_up", ""))
        self.cleanups += 1
        self.maybe_fail("clean_up")


class RecordingUploader:
    """Release uploader that keeps uploaded bytes in memory."""

    def __init__(self, source_id: str = "store", fail: bool = False) -> None:
        self._id = source_id
        self.fail = fail
        self.uploads: dict[str, bytes] = {}

    @property
    def source_id(self) -> str:
        return self._id

    def upload(self, requirement: Requirement, stream: BinaryIO) -> ArtifactRef:
        if self.fail:
            raise RuntimeError("store unavailable")
        path = f"compiled/{requirement.compiled_filename()}"
        self.uploads[path] = stream.read()
        return ArtifactRef(identity=requirement.identity, source_id=self._id, path=path)


class RecordingWriter:
    """Manifest writer that records every manifest it is given."""

    def __init__(self) -> None:
        self.written: list[LockManifest] = []

    def __call__(self, manifest: LockManifest) -> None:
        self.written.append(manifest)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def target() -> BaseImageTarget:
    return TARGET


@pytest.fixture
def stemcell(tmp_path: Path) -> Path:
    """A stemcell tarball for ``TARGET``."""
    return write_stemcell(tmp_path / "stemcell.tgz")


@pytest.fixture
def built_dir(tmp_path: Path) -> Path:
    """Built-only release directory holding raw release B."""
    d = tmp_path / "built"
    write_release(d / "b-release-2.0.0.tgz", "b-release", "2.0.0")
    return d


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    d = tmp_path / "cache"
    d.mkdir()
    return d


@pytest.fixture
def registry(built_dir: Path, cache_dir: Path, tmp_path: Path) -> ReleaseSourceRegistry:
    """Registry with a publishable 'compiled' source, a 'cache' source, and 'built'."""
    compiled = tmp_path / "compiled"
    compiled.mkdir()
    return ReleaseSourceRegistry([
        DirectoryReleaseSource("compiled", compiled, publishable=True),
        DirectoryReleaseSource("cache", cache_dir, publishable=True),
        DirectoryReleaseSource("built", built_dir, publishable=False),
    ])


@pytest.fixture
def make_manifest() -> Callable[..., LockManifest]:
    """Factory: manifest with A (publishable) and B (built-only) by default."""

    def _factory(*entries: dict[str, Any], base_image: BaseImageTarget | None = TARGET) -> LockManifest:
        if not entries:
            entries = (
                {
                    "name": "a-release",
                    "version": "1.0.0",
                    "source_id": "compiled",
                    "path": "a-release-1.0.0-ubuntu-jammy-1.234.tgz",
                    "digest": "a" * 40,
                },
                {
                    "name": "b-release",
                    "version": "2.0.0",
                    "source_id": "built",
                    "path": "b-release-2.0.0.tgz",
                    "digest": "",
                },
            )
        return LockManifest(
            releases=[LockEntry(**e) for e in entries],
            base_image=base_image,
        )

    return _factory


@pytest.fixture
def manifest(make_manifest: Callable[..., LockManifest]) -> LockManifest:
    return make_manifest()


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def uploader() -> RecordingUploader:
    return RecordingUploader()


@pytest.fixture
def writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def local_artifact(tmp_path: Path) -> Callable[..., LocalArtifact]:
    """Factory: write bytes to disk and return a LocalArtifact for them."""

    def _factory(data: bytes = b"compiled bytes", name: str = "b-release") -> LocalArtifact:
        path = tmp_path / f"{name}.tgz"
        path.write_bytes(data)
        return LocalArtifact(
            identity=ReleaseIdentity(name=name, version="2.0.0"),
            local_path=path,
            digest=sha1(data),
        )

    return _factory


@pytest.fixture
def make_platform() -> Callable[..., FakePlatform]:
    """Factory: a FakePlatform, optionally failing in one method."""

    def _factory(fail_on: str | None = None) -> FakePlatform:
        return FakePlatform(fail_on=fail_on)

    return _factory


@pytest.fixture
def make_uploader() -> Callable[..., RecordingUploader]:
    def _factory(source_id: str = "store", fail: bool = False) -> RecordingUploader:
        return RecordingUploader(source_id, fail=fail)

    return _factory


@pytest.fixture
def release_tarball() -> Callable[[Path, str, str], Path]:
    """Factory: write a release tarball with a release.MF."""
    return write_release


@pytest.fixture
def stemcell_tarball() -> Callable[..., Path]:
    """Factory: write a stemcell tarball with a stemcell.MF."""
    return write_stemcell


@pytest.fixture
def tarball() -> Callable[[Path, dict[str, bytes]], Path]:
    return write_tarball
