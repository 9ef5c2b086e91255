"""Lock file and sources file codecs (YAML).

The lock file is rewritten atomically: the new document is rendered fully
in memory, written to a temp file beside the target, then moved over it
with ``os.replace``. A failed render or write leaves the old file intact.
"""

from __future__ import annotations

import logging
import os
import string
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from stemforge.core.errors import ConfigurationError
from stemforge.models.config import SourcesConfig
from stemforge.models.lock import LockManifest

logger = logging.getLogger(__name__)

# Field order of a release record in the lock file.
_RELEASE_FIELDS = ("name", "version", "source_id", "path", "digest")


def _read_yaml(path: Path, text: str | None = None) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8") if text is None else text
        data = yaml.safe_load(raw)
    except OSError as exc:
        raise ConfigurationError(f"couldn't read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"couldn't parse {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a YAML mapping")
    return data


# ---------------------------------------------------------------------------
# Lock file
# ---------------------------------------------------------------------------


def load_lock(path: Path) -> LockManifest:
    """Load and validate the lock manifest at *path*."""
    path = Path(path)
    data = _read_yaml(path)
    try:
        return LockManifest.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid lock file {path}: {exc}") from exc


def render_lock(manifest: LockManifest) -> str:
    """Render *manifest* as YAML with a stable field order."""
    doc: dict[str, Any] = {
        "releases": [
            {field: getattr(entry, field) for field in _RELEASE_FIELDS}
            for entry in manifest.releases
        ],
    }
    if manifest.base_image is not None:
        doc["base_image"] = manifest.base_image.model_dump()
    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        prefix=path.name + ".",
        suffix=".tmp",
        delete=False,
    ) as handle:
        handle.write(content)
        temp_path = Path(handle.name)
    try:
        os.replace(temp_path, path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


def save_lock(path: Path, manifest: LockManifest) -> None:
    """Atomically replace the lock file at *path* with *manifest*."""
    content = render_lock(manifest)
    _atomic_write_text(Path(path), content)
    logger.debug("wrote lock file %s (%d releases)", path, len(manifest.releases))


# ---------------------------------------------------------------------------
# Sources file
# ---------------------------------------------------------------------------


def load_variables(
    files: list[Path] | None = None, pairs: list[str] | None = None
) -> dict[str, str]:
    """Collect interpolation variables.

    Values from *files* (YAML mappings) are applied in order, then
    ``key=value`` *pairs*, so later values win.
    """
    variables: dict[str, str] = {}
    for file in files or []:
        for key, value in _read_yaml(Path(file)).items():
            variables[str(key)] = str(value)
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ConfigurationError(f"variable {pair!r} must be in key=value format")
        variables[key] = value
    return variables


def load_sources(path: Path, variables: Mapping[str, str] | None = None) -> SourcesConfig:
    """Load the sources file, substituting ``${name}`` variables first."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"couldn't read {path}: {exc}") from exc
    try:
        text = string.Template(text).substitute(variables or {})
    except KeyError as exc:
        raise ConfigurationError(f"{path} references undefined variable {exc.args[0]!r}") from None
    except ValueError as exc:
        raise ConfigurationError(f"{path} has a malformed variable reference: {exc}") from exc
    data = _read_yaml(path, text)
    try:
        return SourcesConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid sources file {path}: {exc}") from exc
