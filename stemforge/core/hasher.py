"""Digest helpers for release tarballs.

Lock entries record the SHA-1 hex digest of a tarball. Digests declared by
the remote platform may use the multi-digest form
``sha1:<hex>;sha256:<hex>``; a bare hex string is a SHA-1.
"""

from __future__ import annotations

import hashlib
import string
from pathlib import Path

from pydantic import BaseModel, ConfigDict

LOCK_DIGEST_ALGORITHM = "sha1"

# Weakest to strongest.
_ALGORITHM_STRENGTH: dict[str, int] = {"sha1": 1, "sha256": 2, "sha512": 3}

_HEX_LENGTH: dict[str, int] = {"sha1": 40, "sha256": 64, "sha512": 128}

_CHUNK_SIZE = 1024 * 1024


class DigestParseError(ValueError):
    """Raised when a declared digest string cannot be parsed."""


class Digest(BaseModel):
    """One algorithm/hex pair, hex normalized to lower case."""

    model_config = ConfigDict(frozen=True)

    algorithm: str
    hex: str

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.hex}"


def sha1_hex(data: bytes) -> str:
    """Return the SHA-1 hex digest of raw bytes."""
    return hashlib.sha1(data).hexdigest()


def file_digest(path: Path, algorithm: str = LOCK_DIGEST_ALGORITHM) -> str:
    """Stream *path* through *algorithm* and return the hex digest."""
    h = hashlib.new(algorithm)
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def parse_digest(text: str) -> Digest:
    """Parse ``algo:hex`` or bare hex (SHA-1) into a ``Digest``."""
    raw = text.strip()
    if not raw:
        raise DigestParseError("empty digest")
    if ":" in raw:
        algorithm, _, value = raw.partition(":")
        algorithm = algorithm.strip().lower()
    else:
        algorithm, value = LOCK_DIGEST_ALGORITHM, raw
    value = value.strip().lower()

    if algorithm not in _ALGORITHM_STRENGTH:
        raise DigestParseError(f"unsupported digest algorithm {algorithm!r}")
    if len(value) != _HEX_LENGTH[algorithm]:
        raise DigestParseError(
            f"{algorithm} digest must be {_HEX_LENGTH[algorithm]} hex characters, got {len(value)}"
        )
    if not all(c in string.hexdigits for c in value):
        raise DigestParseError(f"digest {value!r} is not hex")
    return Digest(algorithm=algorithm, hex=value)


def parse_multiple_digest(text: str) -> list[Digest]:
    """Parse a ``;``-separated multi-digest into its components."""
    parts = [p for p in text.split(";") if p.strip()]
    if not parts:
        raise DigestParseError("empty digest")
    return [parse_digest(p) for p in parts]


def strongest(digests: list[Digest]) -> Digest:
    """Return the digest using the strongest algorithm."""
    return max(digests, key=lambda d: _ALGORITHM_STRENGTH[d.algorithm])
