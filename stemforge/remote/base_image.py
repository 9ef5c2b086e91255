"""Reads the target descriptor out of a stemcell tarball's ``stemcell.MF``."""

from __future__ import annotations

import tarfile
from pathlib import Path

import yaml

from stemforge.models.releases import BaseImageTarget

_STEMCELL_MANIFEST = "stemcell.MF"


class BaseImageManifestError(ValueError):
    """Raised when a stemcell tarball has no usable ``stemcell.MF``."""


def read_base_image_manifest(path: Path) -> BaseImageTarget:
    """Return the ``operating_system``/``version`` declared by the stemcell."""
    data = None
    try:
        with tarfile.open(path, "r:*") as tar:
            for member in tar.getmembers():
                if Path(member.name).name == _STEMCELL_MANIFEST and member.isfile():
                    fh = tar.extractfile(member)
                    if fh is not None:
                        data = yaml.safe_load(fh) or {}
                    break
    except (OSError, tarfile.TarError) as exc:
        raise BaseImageManifestError(f"couldn't read stemcell {path}: {exc}") from exc

    if data is None:
        raise BaseImageManifestError(f"{path} does not contain {_STEMCELL_MANIFEST}")
    try:
        return BaseImageTarget(
            operating_system=str(data["operating_system"]),
            version=str(data["version"]),
        )
    except (KeyError, TypeError) as exc:
        raise BaseImageManifestError(
            f"{_STEMCELL_MANIFEST} in {path} is missing operating_system or version"
        ) from exc
