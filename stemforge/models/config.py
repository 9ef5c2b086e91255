"""Release source configuration models (the ``Stemfile``)."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReleaseSourceConfig(BaseModel):
    """Declares one release source.

    ``publishable`` marks a source trusted to hold already-compiled
    releases. Built-only sources hold raw releases awaiting compilation.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: str = "directory"
    path: Path = Path(".")
    publishable: bool = False


class SourcesConfig(BaseModel):
    """All configured release sources, in declaration order.

    Declaration order is the cache lookup precedence: the first publishable
    source holding a match wins.
    """

    model_config = ConfigDict(frozen=True)

    release_sources: list[ReleaseSourceConfig] = Field(default_factory=list)

    @field_validator("release_sources")
    @classmethod
    def _ids_unique(cls, sources: list[ReleaseSourceConfig]) -> list[ReleaseSourceConfig]:
        seen: set[str] = set()
        for source in sources:
            if source.id in seen:
                raise ValueError(f"duplicate release source id {source.id!r}")
            seen.add(source.id)
        return sources
