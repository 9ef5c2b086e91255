"""Tests for the local directory release source."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from stemforge.models.releases import ReleaseIdentity, Requirement
from stemforge.sources.base import ReleaseSource, ReleaseUploader
from stemforge.sources.directory import (
    DirectoryReleaseSource,
    LocalRelease,
    ReleaseDeletionError,
    delete_extra_releases,
    find_extra_releases,
    list_local_releases,
    read_release_identity,
)


@pytest.fixture
def requirement(target) -> Requirement:
    return Requirement(identity=ReleaseIdentity(name="b-release", version="2.0.0"), target=target)


class TestDirectoryReleaseSource:
    def test_satisfies_protocols(self, tmp_path: Path):
        source = DirectoryReleaseSource("d", tmp_path)
        assert isinstance(source, ReleaseSource)
        assert isinstance(source, ReleaseUploader)

    def test_built_only_matches_raw_name(self, built_dir: Path, requirement):
        source = DirectoryReleaseSource("built", built_dir)
        ref = source.find_matching(requirement)
        assert ref is not None
        assert ref.path == "b-release-2.0.0.tgz"
        assert ref.source_id == "built"

    def test_publishable_matches_compiled_name(self, built_dir: Path, requirement):
        # The raw tarball is not a compiled release.
        assert DirectoryReleaseSource("c", built_dir, publishable=True).find_matching(
            requirement
        ) is None

    def test_download_copies_and_hashes(self, built_dir: Path, requirement, tmp_path: Path):
        source = DirectoryReleaseSource("built", built_dir)
        ref = source.find_matching(requirement)
        artifact = source.download(ref, tmp_path / "dl")
        assert artifact.local_path == tmp_path / "dl" / "b-release-2.0.0.tgz"
        assert artifact.local_path.read_bytes() == (built_dir / ref.path).read_bytes()
        assert len(artifact.digest) == 40

    def test_upload_writes_compiled_name(self, tmp_path: Path, requirement):
        source = DirectoryReleaseSource("store", tmp_path / "store", publishable=True)
        ref = source.upload(requirement, io.BytesIO(b"compiled"))
        assert ref.path == "b-release-2.0.0-ubuntu-jammy-1.234.tgz"
        assert (tmp_path / "store" / ref.path).read_bytes() == b"compiled"
        assert source.find_matching(requirement) == ref

    def test_upload_from_the_file_being_replaced(self, tmp_path: Path, requirement):
        """Uploading an export that already sits at the compiled name keeps its bytes."""
        source = DirectoryReleaseSource("store", tmp_path, publishable=True)
        exported = tmp_path / requirement.compiled_filename()
        exported.write_bytes(b"compiled bytes")

        with exported.open("rb") as stream:
            source.upload(requirement, stream)

        assert exported.read_bytes() == b"compiled bytes"
        assert [p.name for p in tmp_path.iterdir()] == [exported.name]

    def test_failed_upload_leaves_no_temp_file(self, tmp_path: Path, requirement):
        class Broken(io.BytesIO):
            def read(self, *args):
                raise OSError("stream closed")

        source = DirectoryReleaseSource("store", tmp_path / "store", publishable=True)
        with pytest.raises(OSError, match="stream closed"):
            source.upload(requirement, Broken())
        assert list((tmp_path / "store").iterdir()) == []


class TestLocalReleases:
    def test_lists_sorted(self, tmp_path: Path, release_tarball):
        release_tarball(tmp_path / "z-1.tgz", "zeta", "1")
        release_tarball(tmp_path / "a-2.tgz", "alpha", "2")
        (tmp_path / "notes.txt").write_text("ignored")

        releases = list_local_releases(tmp_path)
        assert [(r.name, r.version) for r in releases] == [("alpha", "2"), ("zeta", "1")]

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="does not exist"):
            list_local_releases(tmp_path / "nope")

    def test_tarball_without_manifest(self, tmp_path: Path, tarball):
        path = tarball(tmp_path / "x.tgz", {"readme": b"hi"})
        with pytest.raises(ValueError, match="release.MF"):
            read_release_identity(path)

    def test_not_a_tarball(self, tmp_path: Path):
        (tmp_path / "broken.tgz").write_bytes(b"not gzip at all")
        with pytest.raises(ValueError, match="couldn't read release"):
            list_local_releases(tmp_path)

    def test_manifest_without_version(self, tmp_path: Path, tarball):
        path = tarball(tmp_path / "x.tgz", {"release.MF": b"name: uaa\n"})
        with pytest.raises(ValueError, match="missing name or version"):
            read_release_identity(path)


def _local(path: Path, name: str, version: str = "1") -> LocalRelease:
    return LocalRelease(name=name, version=version, digest="a" * 40, local_path=path)


class TestExtraReleases:
    def test_find_extra_by_name_and_version(self, tmp_path: Path, manifest):
        locked = _local(tmp_path / "a.tgz", "a-release", "1.0.0")
        old = _local(tmp_path / "b-old.tgz", "b-release", "1.9.0")
        unknown = _local(tmp_path / "c.tgz", "c-release")

        assert find_extra_releases([locked, old, unknown], manifest) == [old, unknown]

    def test_delete_removes_files(self, tmp_path: Path, release_tarball):
        keep = release_tarball(tmp_path / "keep-1.tgz", "keep", "1")
        drop = release_tarball(tmp_path / "drop-1.tgz", "drop", "1")

        delete_extra_releases([_local(drop, "drop")])

        assert keep.exists()
        assert not drop.exists()

    def test_delete_logs_sorted_paths(self, tmp_path: Path, caplog):
        z = tmp_path / "z-1.tgz"
        a = tmp_path / "a-1.tgz"
        z.write_bytes(b"z")
        a.write_bytes(b"a")

        with caplog.at_level("INFO", logger="stemforge"):
            delete_extra_releases([_local(z, "z"), _local(a, "a")])

        assert "Deleting 2 extra releases:" in caplog.text
        assert f"- {a}\n- {z}" in caplog.text

    def test_delete_nothing(self, caplog):
        with caplog.at_level("INFO", logger="stemforge"):
            delete_extra_releases([])
        assert "Deleting" not in caplog.text

    def test_delete_failure_names_release(self, tmp_path: Path):
        with pytest.raises(ReleaseDeletionError, match="failed to delete release ghost"):
            delete_extra_releases([_local(tmp_path / "ghost-1.tgz", "ghost")])
