"""Lock manifest models.

The lock manifest is a flat list of release records plus the base image
they are locked against. Release names are unique within a manifest.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from stemforge.models.releases import BaseImageTarget, ReleaseIdentity


class LockEntry(BaseModel):
    """One persisted record per distinct release name."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    source_id: str
    path: str
    digest: str = ""

    @property
    def identity(self) -> ReleaseIdentity:
        return ReleaseIdentity(name=self.name, version=self.version)


class LockManifest(BaseModel):
    """The full lock manifest: releases in file order plus the base image."""

    model_config = ConfigDict(frozen=True)

    releases: list[LockEntry] = []
    base_image: BaseImageTarget | None = None

    @field_validator("releases")
    @classmethod
    def _names_unique(cls, releases: list[LockEntry]) -> list[LockEntry]:
        seen: set[str] = set()
        for entry in releases:
            if entry.name in seen:
                raise ValueError(f"duplicate release {entry.name!r} in lock manifest")
            seen.add(entry.name)
        return releases

    def find(self, name: str) -> LockEntry | None:
        """Return the entry named *name*, or None."""
        for entry in self.releases:
            if entry.name == name:
                return entry
        return None
