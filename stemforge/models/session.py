"""Compilation session state models (linear lifecycle, universal teardown)."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SessionState(str, Enum):
    """Lifecycle states of an ephemeral compilation session."""

    CREATED = "created"
    ARTIFACTS_UPLOADED = "artifacts_uploaded"
    BASE_IMAGE_UPLOADED = "base_image_uploaded"
    DEPLOYED = "deployed"
    EXPORTED = "exported"
    TORN_DOWN = "torn_down"


# Valid state transitions, enforced by CompilationSession.
# Every non-terminal state may drop straight to TORN_DOWN on error.
VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.CREATED: {SessionState.ARTIFACTS_UPLOADED, SessionState.TORN_DOWN},
    SessionState.ARTIFACTS_UPLOADED: {SessionState.BASE_IMAGE_UPLOADED, SessionState.TORN_DOWN},
    SessionState.BASE_IMAGE_UPLOADED: {SessionState.DEPLOYED, SessionState.TORN_DOWN},
    SessionState.DEPLOYED: {SessionState.EXPORTED, SessionState.TORN_DOWN},
    SessionState.EXPORTED: {SessionState.TORN_DOWN},
    SessionState.TORN_DOWN: set(),  # terminal
}


class ExportResult(BaseModel):
    """What the remote platform reports for an exported compiled release."""

    model_config = ConfigDict(frozen=True)

    blob_id: str
    declared_digest: str


class SessionTransition(BaseModel):
    """Records a single session state change, kept for inspection."""

    model_config = ConfigDict(frozen=True)

    from_state: SessionState
    to_state: SessionState
