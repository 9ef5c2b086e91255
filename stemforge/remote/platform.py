"""Remote orchestration platform Protocols.

The platform (a BOSH director, or anything that behaves like one) compiles
releases against a stemcell inside an ephemeral workload. stemforge does not
ship a concrete client: one is supplied by the caller, or loaded from the
``module:callable`` path configured as ``platform_factory``.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from stemforge.core.errors import ConfigurationError
from stemforge.models.releases import BaseImageTarget, ReleaseIdentity
from stemforge.models.session import ExportResult


@runtime_checkable
class Workload(Protocol):
    """Handle to a named deployment on the platform."""

    @property
    def name(self) -> str:
        ...

    def apply(self, description: str) -> None:
        """Submit and apply the workload description (the build trigger)."""
        ...

    def export_release(
        self, release: ReleaseIdentity, target: BaseImageTarget
    ) -> ExportResult:
        """Export the compiled *release*; returns blob id and declared digest."""
        ...

    def delete(self) -> None:
        """Remove the workload from the platform."""
        ...


@runtime_checkable
class OrchestrationPlatform(Protocol):
    """Client for the remote compilation platform."""

    def upload_release(self, path: Path) -> None:
        ...

    def upload_base_image(self, path: Path) -> None:
        ...

    def workload(self, name: str) -> Workload:
        """Return a handle to the workload called *name*, creating it lazily."""
        ...

    def download_resource(self, blob_id: str, out: BinaryIO) -> None:
        """Stream the blob *blob_id* into *out*, without verification."""
        ...

    def clean_up(self) -> None:
        """Remove releases and stemcells no longer referenced by any workload."""
        ...


PlatformFactory = Callable[[], OrchestrationPlatform]


def load_platform_factory(spec: str) -> PlatformFactory:
    """Resolve a ``"package.module:callable"`` string to a platform factory."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(
            f"platform factory {spec!r} must look like 'package.module:callable'"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"cannot import platform module {module_name!r}: {exc}") from exc
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ConfigurationError(f"{spec!r} does not name a callable")
    return factory
