"""Release identity, base-image target, and artifact locator models.

All models are frozen: a requirement or locator never changes once built.
Equality is structural, so two requirements are equivalent exactly when
their identity and target are equal.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ReleaseIdentity(BaseModel):
    """Globally unique key for a release, independent of build target."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}/{self.version}"


class BaseImageTarget(BaseModel):
    """The stemcell a compiled release is built against."""

    model_config = ConfigDict(frozen=True)

    operating_system: str
    version: str

    def __str__(self) -> str:
        return f"{self.operating_system}/{self.version}"


class Requirement(BaseModel):
    """A release that must be satisfied for a given base-image target.

    This is the cache lookup and publish key.
    """

    model_config = ConfigDict(frozen=True)

    identity: ReleaseIdentity
    target: BaseImageTarget

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> str:
        return self.identity.version

    def compiled_filename(self) -> str:
        """File name for the compiled tarball of this requirement.

        Layout: ``{name}-{version}-{os}-{os_version}.tgz``
        """
        return (
            f"{self.identity.name}-{self.identity.version}-"
            f"{self.target.operating_system}-{self.target.version}.tgz"
        )


class ArtifactRef(BaseModel):
    """Locates an artifact inside a named release source or store."""

    model_config = ConfigDict(frozen=True)

    identity: ReleaseIdentity
    source_id: str
    path: str


class LocalArtifact(BaseModel):
    """An artifact on local disk together with its content digest (hex)."""

    model_config = ConfigDict(frozen=True)

    identity: ReleaseIdentity
    local_path: Path
    digest: str


class ResolvedRelease(BaseModel):
    """A release that has a new locator and a verified digest.

    Produced by cache hits and by successful build-and-publish.
    """

    model_config = ConfigDict(frozen=True)

    ref: ArtifactRef
    digest: str
    from_cache: bool = False

    @property
    def identity(self) -> ReleaseIdentity:
        return self.ref.identity
