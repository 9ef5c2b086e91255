"""Tests for pre-compiled release lookup."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from stemforge.core.cache_resolver import CacheResolver
from stemforge.core.errors import TransportError
from stemforge.models.releases import ReleaseIdentity, Requirement
from stemforge.sources.directory import DirectoryReleaseSource

COMPILED_B = "b-release-2.0.0-ubuntu-jammy-1.234.tgz"


@pytest.fixture
def requirement(target) -> Requirement:
    return Requirement(identity=ReleaseIdentity(name="b-release", version="2.0.0"), target=target)


class BrokenDownloadSource(DirectoryReleaseSource):
    def download(self, ref, dest_dir, threads=0):
        raise OSError("connection reset")


class BrokenSearchSource(DirectoryReleaseSource):
    def find_matching(self, requirement):
        raise OSError("listing failed")


class TestFind:
    def test_first_registered_source_wins(self, registry, tmp_path: Path, cache_dir: Path,
                                           requirement, tarball):
        tarball(tmp_path / "compiled" / COMPILED_B, {"x": b"from compiled"})
        tarball(cache_dir / COMPILED_B, {"x": b"from cache"})
        resolver = CacheResolver(registry.publishable_sources(), tmp_path / "releases")
        source, ref = resolver.find(requirement)
        assert source.source_id == "compiled"
        assert ref.path == COMPILED_B

    def test_falls_through_to_later_source(self, registry, tmp_path: Path, cache_dir: Path,
                                           requirement, tarball):
        tarball(cache_dir / COMPILED_B, {"x": b"from cache"})
        resolver = CacheResolver(registry.publishable_sources(), tmp_path / "releases")
        source, _ = resolver.find(requirement)
        assert source.source_id == "cache"

    def test_no_match(self, registry, tmp_path: Path, requirement):
        resolver = CacheResolver(registry.publishable_sources(), tmp_path / "releases")
        assert resolver.find(requirement) is None

    def test_search_failure_is_transport_error(self, tmp_path: Path, requirement):
        source = BrokenSearchSource("flaky", tmp_path, publishable=True)
        resolver = CacheResolver([source], tmp_path / "releases")
        with pytest.raises(TransportError, match="flaky"):
            resolver.find(requirement)


class TestResolve:
    def test_splits_hits_and_misses(self, registry, tmp_path: Path, cache_dir: Path,
                                    requirement, target, tarball):
        path = tarball(cache_dir / COMPILED_B, {"x": b"compiled b"})
        miss = Requirement(identity=ReleaseIdentity(name="c-release", version="1"), target=target)
        resolver = CacheResolver(registry.publishable_sources(), tmp_path / "releases")

        resolved, remaining = resolver.resolve([requirement, miss])

        assert remaining == [miss]
        assert len(resolved) == 1
        hit = resolved[0]
        assert hit.from_cache is True
        assert hit.ref.source_id == "cache"
        assert hit.digest == hashlib.sha1(path.read_bytes()).hexdigest()
        assert (tmp_path / "releases" / COMPILED_B).is_file()

    def test_download_failure_is_fatal_not_a_miss(self, tmp_path: Path, requirement, tarball):
        store = tmp_path / "store"
        tarball(store / COMPILED_B, {"x": b"compiled b"})
        source = BrokenDownloadSource("store", store, publishable=True)
        resolver = CacheResolver([source], tmp_path / "releases")

        with pytest.raises(TransportError) as info:
            resolver.resolve([requirement])
        assert info.value.release == requirement.identity

    def test_logs_search(self, registry, tmp_path: Path, requirement, caplog):
        resolver = CacheResolver(registry.publishable_sources(), tmp_path / "releases")
        with caplog.at_level("INFO", logger="stemforge"):
            resolver.resolve([requirement])
        assert "found 0 pre-compiled releases" in caplog.text
