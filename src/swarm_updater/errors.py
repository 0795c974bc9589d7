"""Exception hierarchy for swarm-updater.

Per-service failures (``ServiceUpdateError`` and subclasses) are caught by
the sweep and recorded; ``ServiceListError`` and ``SelfUpdateError`` end
the sweep and reach the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from swarm_updater.models import SweepReport


class SwarmUpdaterError(Exception):
    """Base class for all swarm-updater errors."""


# ------------------------------------------------------------------
# Image references
# ------------------------------------------------------------------


class ImageReferenceError(SwarmUpdaterError):
    """An image reference cannot be used for digest resolution."""


class InvalidReferenceError(ImageReferenceError):
    """The image reference does not parse."""


class AlreadyQualifiedError(ImageReferenceError):
    """The image reference already pins a digest."""


# ------------------------------------------------------------------
# Collaborators
# ------------------------------------------------------------------


class ControlPlaneError(SwarmUpdaterError):
    """A call to the orchestrator API failed."""


class RegistryError(SwarmUpdaterError):
    """The registry could not be reached or refused the inspection."""


# ------------------------------------------------------------------
# Per-service failures
# ------------------------------------------------------------------


class ServiceUpdateError(SwarmUpdaterError):
    """Updating a single service failed at ``stage``."""

    stage = "update"

    def __init__(self, service_name: str, detail: str) -> None:
        self.service_name = service_name
        self.detail = detail
        super().__init__(f"service {service_name}: {self.stage} failed: {detail}")


class AuthResolutionError(ServiceUpdateError):
    stage = "auth"


class DigestResolutionError(ServiceUpdateError):
    stage = "resolve"


class UpdateRejectedError(ServiceUpdateError):
    stage = "update"


class PostUpdateInspectError(ServiceUpdateError):
    stage = "inspect"


# ------------------------------------------------------------------
# Sweep-level failures
# ------------------------------------------------------------------


class ServiceListError(SwarmUpdaterError):
    """The service list could not be fetched; nothing was processed."""


class SelfUpdateError(SwarmUpdaterError):
    """The updater's own service could not be refreshed or updated."""

    def __init__(self, service_id: str, detail: str, report: SweepReport | None = None) -> None:
        self.service_id = service_id
        self.report = report
        super().__init__(f"failed to update own service {service_id}: {detail}")
