"""stemforge data models — all Pydantic v2, all frozen (immutable)."""

from stemforge.models.config import ReleaseSourceConfig, SourcesConfig
from stemforge.models.lock import LockEntry, LockManifest
from stemforge.models.releases import (
    ArtifactRef,
    BaseImageTarget,
    LocalArtifact,
    ReleaseIdentity,
    Requirement,
    ResolvedRelease,
)
from stemforge.models.session import (
    VALID_TRANSITIONS,
    ExportResult,
    SessionState,
    SessionTransition,
)

__all__ = [
    # releases
    "ReleaseIdentity",
    "BaseImageTarget",
    "Requirement",
    "ArtifactRef",
    "LocalArtifact",
    "ResolvedRelease",
    # lock
    "LockEntry",
    "LockManifest",
    # session
    "SessionState",
    "SessionTransition",
    "ExportResult",
    "VALID_TRANSITIONS",
    # config
    "ReleaseSourceConfig",
    "SourcesConfig",
]
