"""Typed error hierarchy for the resolution pipeline.

Every error carries an ``ErrorKind`` and, where one applies, the identity of
the release it concerns, so callers can tell an integrity failure from a
transport failure without parsing messages.
"""

from __future__ import annotations

from enum import Enum

from stemforge.models.releases import ReleaseIdentity


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    INTEGRITY = "integrity"
    TEARDOWN = "teardown"


class ResolutionError(RuntimeError):
    """Base class for all fatal pipeline errors.

    Parameters
    ----------
    message:
        Human-readable description.
    release:
        The release this error concerns, if any.
    """

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, *, release: ReleaseIdentity | None = None) -> None:
        super().__init__(message)
        self.release = release

    def __str__(self) -> str:
        base = super().__str__()
        if self.release is None:
            return base
        return f"{base} (release {self.release})"


class ConfigurationError(ResolutionError):
    """Unknown source, duplicate or missing lock entry, version mismatch."""

    kind = ErrorKind.CONFIGURATION


class TransportError(ResolutionError):
    """An upload, download, or remote platform call failed."""

    kind = ErrorKind.TRANSPORT


class IntegrityError(ResolutionError):
    """A declared digest does not match the recomputed digest."""

    kind = ErrorKind.INTEGRITY


class TeardownError(ResolutionError):
    """The ephemeral compilation workload could not be removed."""

    kind = ErrorKind.TEARDOWN
