"""Shared loading for CLI commands: settings, sources, lock file."""

from __future__ import annotations

from pathlib import Path

from stemforge.manifest.lockfile import load_lock, load_sources, load_variables
from stemforge.models.lock import LockManifest
from stemforge.sources.registry import ReleaseSourceRegistry


def load_inputs(
    lock_path: Path,
    sources_path: Path,
    variables_files: list[Path] | None = None,
    variables: list[str] | None = None,
) -> tuple[LockManifest, ReleaseSourceRegistry]:
    """Load the lock file and build the source registry from the sources file."""
    config = load_sources(sources_path, load_variables(variables_files, variables))
    registry = ReleaseSourceRegistry.from_config(config, base_dir=sources_path.parent)
    return load_lock(lock_path), registry
