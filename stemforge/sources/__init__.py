"""Release sources and stores."""

from stemforge.sources.base import ReleaseSource, ReleaseUploader
from stemforge.sources.directory import (
    DirectoryReleaseSource,
    ReleaseDeletionError,
    delete_extra_releases,
    find_extra_releases,
    list_local_releases,
)
from stemforge.sources.registry import ReleaseSourceRegistry

__all__ = [
    "ReleaseSource",
    "ReleaseUploader",
    "DirectoryReleaseSource",
    "ReleaseSourceRegistry",
    "list_local_releases",
    "find_extra_releases",
    "delete_extra_releases",
    "ReleaseDeletionError",
]
