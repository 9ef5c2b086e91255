"""Ordered registry of configured release sources.

Registration order is significant: ``publishable_sources()`` yields sources
in the order they were registered, and the cache resolver takes the first
match. For sources built from a ``Stemfile`` this is declaration order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

from stemforge.core.errors import ConfigurationError
from stemforge.models.config import ReleaseSourceConfig, SourcesConfig
from stemforge.sources.base import ReleaseSource, ReleaseUploader
from stemforge.sources.directory import DirectoryReleaseSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[ReleaseSourceConfig, Path], ReleaseSource]


def _directory_factory(cfg: ReleaseSourceConfig, base_dir: Path) -> ReleaseSource:
    path = cfg.path if cfg.path.is_absolute() else base_dir / cfg.path
    return DirectoryReleaseSource(cfg.id, path, publishable=cfg.publishable)


SOURCE_TYPES: dict[str, SourceFactory] = {
    "directory": _directory_factory,
}


class ReleaseSourceRegistry:
    """Holds release sources keyed by id, preserving registration order."""

    def __init__(self, sources: list[ReleaseSource] | None = None) -> None:
        self._sources: dict[str, ReleaseSource] = {}
        for source in sources or []:
            self.register(source)

    @classmethod
    def from_config(
        cls, config: SourcesConfig, base_dir: Path = Path(".")
    ) -> ReleaseSourceRegistry:
        """Build sources from a ``SourcesConfig``.

        Relative paths are resolved against *base_dir* (normally the
        directory holding the ``Stemfile``).
        """
        registry = cls()
        for cfg in config.release_sources:
            factory = SOURCE_TYPES.get(cfg.type)
            if factory is None:
                raise ConfigurationError(
                    f"release source {cfg.id!r} has unknown type {cfg.type!r}; "
                    f"known types: {sorted(SOURCE_TYPES)}"
                )
            registry.register(factory(cfg, Path(base_dir)))
        return registry

    def register(self, source: ReleaseSource) -> None:
        if source.source_id in self._sources:
            raise ConfigurationError(f"release source {source.source_id!r} registered twice")
        self._sources[source.source_id] = source
        logger.debug("Registered release source: %s", source.source_id)

    def __iter__(self) -> Iterator[ReleaseSource]:
        return iter(self._sources.values())

    def __len__(self) -> int:
        return len(self._sources)

    def find_by_id(self, source_id: str) -> ReleaseSource:
        """Return the source registered as *source_id*.

        Raises ``ConfigurationError`` if no such source exists.
        """
        try:
            return self._sources[source_id]
        except KeyError:
            raise ConfigurationError(
                f"couldn't find a release source with ID {source_id!r}; "
                f"available: {list(self._sources)}"
            ) from None

    def publishable_sources(self) -> list[ReleaseSource]:
        """Publishable sources in registration order."""
        return [s for s in self._sources.values() if s.publishable()]

    def find_uploader(self, source_id: str) -> ReleaseUploader:
        """Return the source *source_id* as an upload target."""
        source = self.find_by_id(source_id)
        if not isinstance(source, ReleaseUploader):
            raise ConfigurationError(
                f"release source {source_id!r} does not support uploading"
            )
        return source
