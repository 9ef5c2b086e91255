"""Artifact integrity verification.

Compares the digest the platform declared for an exported release against
the digest computed locally from the downloaded bytes. A mismatch is never
retried and never downgraded.
"""

from __future__ import annotations

import logging

from stemforge.core.errors import IntegrityError
from stemforge.core.hasher import (
    LOCK_DIGEST_ALGORITHM,
    DigestParseError,
    file_digest,
    parse_multiple_digest,
    strongest,
)
from stemforge.models.releases import LocalArtifact

logger = logging.getLogger(__name__)


def verify_artifact(artifact: LocalArtifact, declared_digest: str) -> None:
    """Raise ``IntegrityError`` unless *artifact* matches *declared_digest*.

    The strongest algorithm in the declared digest is checked. For SHA-1
    the artifact's recorded digest is the comparison operand; any other
    algorithm is recomputed from the file on disk.
    """
    try:
        expected = strongest(parse_multiple_digest(declared_digest))
    except DigestParseError as exc:
        raise IntegrityError(
            f"couldn't parse declared digest {declared_digest!r}: {exc}",
            release=artifact.identity,
        ) from exc

    if expected.algorithm == LOCK_DIGEST_ALGORITHM:
        actual = artifact.digest.lower()
    else:
        actual = file_digest(artifact.local_path, expected.algorithm)

    if actual != expected.hex:
        raise IntegrityError(
            f"compiled release {artifact.local_path.name} has an incorrect "
            f"{expected.algorithm}: expected {expected.hex}, got {actual}",
            release=artifact.identity,
        )
    logger.debug("verified %s %s:%s", artifact.identity, expected.algorithm, actual)
