"""Single-service update.

Lifecycle for one service:
1. Strip any pinned digest from the running image
2. Fetch registry credentials from the orchestrator's credential store
3. Resolve the tag to its current digest
4. Stop if the pinned image is unchanged
5. Zero the replica count for ``update-only`` replicated services
6. Submit the new spec against the service's current version
7. Re-inspect the service to see whether the orchestrator changed it
"""

from __future__ import annotations

from swarm_updater.clients import ControlPlane
from swarm_updater.constants import EMPTY_REGISTRY_AUTH, ServiceLabels, is_true
from swarm_updater.errors import (
    AuthResolutionError,
    ControlPlaneError,
    DigestResolutionError,
    ImageReferenceError,
    PostUpdateInspectError,
    RegistryError,
    UpdateRejectedError,
)
from swarm_updater.logging import get_logger
from swarm_updater.models import Service, ServiceOutcome, ServiceResult
from swarm_updater.reference import strip_digest
from swarm_updater.resolver import DigestResolver

log = get_logger("swarm_updater.updater")


class ServiceUpdater:
    """Roll one swarm service onto the newest digest of its image tag."""

    def __init__(
        self,
        control_plane: ControlPlane,
        resolver: DigestResolver,
        labels: ServiceLabels | None = None,
    ) -> None:
        self._control_plane = control_plane
        self._resolver = resolver
        self._labels = labels or ServiceLabels()

    async def update(self, service: Service) -> ServiceResult:
        """Update ``service`` if its image tag points at a new digest.

        Raises:
            ServiceUpdateError: a subclass naming the failed stage.
        """
        name = service.name
        image = service.image

        try:
            encoded_auth: str | None = await self._control_plane.retrieve_registry_auth(image)
        except ControlPlaneError as exc:
            raise AuthResolutionError(
                name, f"cannot retrieve auth token from service's image: {exc}"
            ) from exc

        # do not forward an empty json object
        if encoded_auth == EMPTY_REGISTRY_AUTH:
            encoded_auth = None

        try:
            new_image = await self._resolver.resolve(strip_digest(image), encoded_auth)
        except (ImageReferenceError, RegistryError) as exc:
            raise DigestResolutionError(name, f"failed to get new image digest: {exc}") from exc

        if new_image == image:
            log.debug("service_up_to_date", service=name, image=image)
            return ServiceResult(service.id, name, ServiceOutcome.ALREADY_CURRENT, image=image)

        spec = service.copy_spec()
        spec["TaskTemplate"]["ContainerSpec"]["Image"] = new_image

        if is_true(service.labels.get(self._labels.update_only)) and service.replicas is not None:
            spec["Mode"]["Replicated"]["Replicas"] = 0

        log.debug("service_updating", service=name, image=new_image)
        try:
            response = await self._control_plane.update_service(service.id, service.version, spec)
        except ControlPlaneError as exc:
            raise UpdateRejectedError(name, f"failed to update service: {exc}") from exc

        for warning in response.warnings:
            log.debug("service_update_warning", service=name, warning=warning)

        try:
            refreshed = await self._control_plane.inspect_service(service.id)
        except ControlPlaneError as exc:
            raise PostUpdateInspectError(
                name, f"cannot inspect service to check update status: {exc}"
            ) from exc

        current = refreshed.image
        if refreshed.previous_image != current:
            log.info("service_updated", service=name, image=current)
            return ServiceResult(service.id, name, ServiceOutcome.UPDATED, image=current)

        log.debug("service_up_to_date", service=name, image=current)
        return ServiceResult(service.id, name, ServiceOutcome.ALREADY_CURRENT, image=current)
