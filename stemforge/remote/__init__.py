"""Remote compilation platform contracts and helpers."""

from stemforge.remote.base_image import BaseImageManifestError, read_base_image_manifest
from stemforge.remote.platform import (
    OrchestrationPlatform,
    PlatformFactory,
    Workload,
    load_platform_factory,
)
from stemforge.remote.workload import render_workload

__all__ = [
    "OrchestrationPlatform",
    "PlatformFactory",
    "Workload",
    "load_platform_factory",
    "read_base_image_manifest",
    "BaseImageManifestError",
    "render_workload",
]
