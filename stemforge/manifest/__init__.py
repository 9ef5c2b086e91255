"""Lock manifest and sources file persistence."""

from stemforge.manifest.lockfile import (
    load_lock,
    load_sources,
    load_variables,
    render_lock,
    save_lock,
)

__all__ = ["load_lock", "save_lock", "render_lock", "load_sources", "load_variables"]
