"""Ephemeral compilation session on the remote platform.

Lifecycle (enforced by ``VALID_TRANSITIONS``)::

    CREATED -> ARTIFACTS_UPLOADED -> BASE_IMAGE_UPLOADED -> DEPLOYED
        -> EXPORTED -> TORN_DOWN

Every state may drop straight to TORN_DOWN. The session is a context
manager and ``__exit__`` always tears it down, so a session that was
created is torn down exactly once on every exit path.

Teardown deletes the workload, then asks the platform for a best-effort
clean-up of unreferenced releases and stemcells. A failed delete is fatal
(``TeardownError``); a failed clean-up is only logged. If the session is
already unwinding because of another error, that error keeps propagating
and the delete failure is attached to it as a note.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from pathlib import Path
from types import TracebackType

from pydantic import BaseModel, ConfigDict

from stemforge.core.errors import ConfigurationError, TeardownError, TransportError
from stemforge.core.hasher import file_digest
from stemforge.models.releases import (
    BaseImageTarget,
    LocalArtifact,
    ReleaseIdentity,
    Requirement,
)
from stemforge.models.session import (
    VALID_TRANSITIONS,
    SessionState,
    SessionTransition,
)
from stemforge.remote.base_image import BaseImageManifestError, read_base_image_manifest
from stemforge.remote.platform import OrchestrationPlatform, Workload
from stemforge.remote.workload import render_workload

logger = logging.getLogger(__name__)

WORKLOAD_PREFIX = "compile-built-releases"

BaseImageReader = Callable[[Path], BaseImageTarget]


class InvalidTransitionError(RuntimeError):
    """Raised when a session step is called out of order."""


class ExportedRelease(BaseModel):
    """A compiled release streamed to local disk, not yet verified."""

    model_config = ConfigDict(frozen=True)

    requirement: Requirement
    artifact: LocalArtifact
    declared_digest: str


def new_workload_name() -> str:
    return f"{WORKLOAD_PREFIX}-{uuid.uuid4()}"


class CompilationSession:
    """Owns one uniquely named workload on the remote platform.

    Parameters
    ----------
    platform:
        The remote orchestration platform client.
    releases_dir:
        Where exported compiled releases are written.
    base_image_reader:
        Parses the stemcell tarball's metadata into a target.
    name:
        Workload name. Generated from a random UUID when omitted.
    """

    def __init__(
        self,
        platform: OrchestrationPlatform,
        releases_dir: Path,
        *,
        base_image_reader: BaseImageReader = read_base_image_manifest,
        name: str | None = None,
    ) -> None:
        self.name = name or new_workload_name()
        self._platform = platform
        self._releases_dir = Path(releases_dir)
        self._read_base_image = base_image_reader

        self.state = SessionState.CREATED
        self.transitions: list[SessionTransition] = []
        self.releases: list[ReleaseIdentity] = []
        self.target: BaseImageTarget | None = None

        try:
            self._workload: Workload = platform.workload(self.name)
        except Exception as exc:
            raise TransportError(f"couldn't create deployment {self.name!r}: {exc}") from exc
        logger.debug("created compilation session %s", self.name)

    # ------------------------------------------------------------------
    # Scoped acquisition
    # ------------------------------------------------------------------

    def __enter__(self) -> CompilationSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.teardown(exc)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _advance(self, target_state: SessionState) -> None:
        allowed = VALID_TRANSITIONS[self.state]
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot move session {self.name} from {self.state.value} to "
                f"{target_state.value}. Allowed: {sorted(s.value for s in allowed)}"
            )
        self.transitions.append(SessionTransition(from_state=self.state, to_state=target_state))
        self.state = target_state

    def _require(self, state: SessionState) -> None:
        if self.state != state:
            raise InvalidTransitionError(
                f"session {self.name} is {self.state.value}, expected {state.value}"
            )

    def _bound_target(self) -> BaseImageTarget:
        if self.target is None:
            raise InvalidTransitionError(f"session {self.name} has no base image target")
        return self.target

    @property
    def is_torn_down(self) -> bool:
        return self.state == SessionState.TORN_DOWN

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def upload_releases(self, artifacts: list[LocalArtifact]) -> None:
        """Upload each raw release, one at a time, in the given order."""
        self._require(SessionState.CREATED)
        for artifact in artifacts:
            logger.info("uploading release %s to director", artifact.local_path)
            try:
                self._platform.upload_release(artifact.local_path)
            except Exception as exc:
                raise TransportError(
                    f"failure uploading release {str(artifact.local_path)!r} to bosh director: {exc}",
                    release=artifact.identity,
                ) from exc
            self.releases.append(artifact.identity)
        self._advance(SessionState.ARTIFACTS_UPLOADED)

    def upload_base_image(self, path: Path) -> BaseImageTarget:
        """Upload the stemcell once and parse its target from its metadata."""
        self._require(SessionState.ARTIFACTS_UPLOADED)
        path = Path(path)
        logger.info("uploading stemcell %s to director", path)
        try:
            self._platform.upload_base_image(path)
        except Exception as exc:
            raise TransportError(f"failure uploading stemcell to bosh director: {exc}") from exc
        try:
            self.target = self._read_base_image(path)
        except BaseImageManifestError as exc:
            raise ConfigurationError(f"couldn't parse manifest of stemcell: {exc}") from exc
        self._advance(SessionState.BASE_IMAGE_UPLOADED)
        return self.target

    def deploy(self) -> str:
        """Render the workload description and apply it; returns the YAML."""
        self._require(SessionState.BASE_IMAGE_UPLOADED)
        description = render_workload(self.name, self.releases, self._bound_target())
        logger.info("deploying compilation deployment %r", self.name)
        try:
            self._workload.apply(description)
        except Exception as exc:
            raise TransportError(f"updating the bosh deployment {self.name!r}: {exc}") from exc
        self._advance(SessionState.DEPLOYED)
        return description

    def export(self) -> list[ExportedRelease]:
        """Export every bound release and stream it to local disk.

        The digest of each file is computed here from the bytes written;
        the platform's declared digest is carried alongside, unchecked.
        """
        self._require(SessionState.DEPLOYED)
        target = self._bound_target()
        self._releases_dir.mkdir(parents=True, exist_ok=True)

        exported: list[ExportedRelease] = []
        for identity in self.releases:
            requirement = Requirement(identity=identity, target=target)
            path = self._releases_dir / requirement.compiled_filename()
            logger.info("exporting release %s", path)
            try:
                result = self._workload.export_release(identity, target)
            except Exception as exc:
                raise TransportError(f"exporting release: {exc}", release=identity) from exc

            logger.info("downloading release %s from director", identity.name)
            try:
                with open(path, "wb") as fh:
                    self._platform.download_resource(result.blob_id, fh)
            except Exception as exc:
                raise TransportError(
                    f"downloading exported release: {exc}", release=identity
                ) from exc

            exported.append(
                ExportedRelease(
                    requirement=requirement,
                    artifact=LocalArtifact(
                        identity=identity, local_path=path, digest=file_digest(path)
                    ),
                    declared_digest=result.declared_digest,
                )
            )
        self._advance(SessionState.EXPORTED)
        return exported

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def teardown(self, error: BaseException | None = None) -> None:
        """Delete the workload and clean up the platform. Runs at most once.

        *error* is the exception the session is unwinding from, if any.
        """
        if self.is_torn_down:
            return
        self._advance(SessionState.TORN_DOWN)

        failure: TeardownError | None = None
        logger.info("deleting compilation deployment %r", self.name)
        try:
            self._workload.delete()
        except Exception as exc:
            failure = TeardownError(f"error deleting the deployment {self.name!r}: {exc}")
            failure.__cause__ = exc

        logger.info("cleaning up unused releases and stemcells")
        try:
            self._platform.clean_up()
        except Exception as exc:
            logger.warning("bosh director failed cleanup with the following error: %s", exc)

        if failure is None:
            return
        if error is None:
            raise failure
        logger.error("%s", failure)
        error.add_note(f"teardown also failed: {failure}")
