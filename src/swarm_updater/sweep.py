"""Sweep over every swarm service.

States: listing -> iterating -> (deferred self-update) -> done.

Per-service failures are recorded and the sweep moves on. Only a failed
listing or a failed self-update ends the sweep with an error. The
updater's own service is held back until everything else has been
attempted, since rolling it restarts this process.
"""

from __future__ import annotations

import asyncio

from swarm_updater.clients import ControlPlane
from swarm_updater.constants import ServiceLabels
from swarm_updater.errors import (
    ControlPlaneError,
    SelfUpdateError,
    ServiceListError,
    ServiceUpdateError,
)
from swarm_updater.logging import get_logger
from swarm_updater.models import Service, ServiceOutcome, ServiceResult, SweepReport
from swarm_updater.policy import EligibilityPolicy
from swarm_updater.updater import ServiceUpdater

log = get_logger("swarm_updater.sweep")


class SwarmSweeper:
    """Apply available image updates across the swarm, one service at a time.

    Not re-entrant: callers must not start a sweep while another one is
    running on the same instance.
    """

    def __init__(
        self,
        control_plane: ControlPlane,
        updater: ServiceUpdater,
        policy: EligibilityPolicy,
    ) -> None:
        self._control_plane = control_plane
        self._updater = updater
        self._policy = policy

    @property
    def labels(self) -> ServiceLabels:
        return self._policy.labels

    def is_self(self, service: Service) -> bool:
        """Whether ``service`` runs this updater."""
        return self.labels.self_id in service.labels

    async def run(self, cancel: asyncio.Event | None = None) -> SweepReport:
        """Run one sweep.

        ``cancel`` is checked before every service; once set, the sweep
        stops and the report is flagged as canceled. An update call that
        has already started always runs to completion.

        Raises:
            ServiceListError: the service list could not be fetched.
            SelfUpdateError: the updater's own service could not be
                refreshed or updated.
        """
        report = SweepReport()

        try:
            services = await self._control_plane.list_services()
        except ControlPlaneError as exc:
            log.error("sweep_list_failed", error=str(exc))
            raise ServiceListError(f"failed to get service list: {exc}") from exc

        self_service_id: str | None = None

        for service in services:
            if _canceled(cancel):
                return self._cancel(report)

            if not self._policy.is_eligible(service):
                log.debug("service_ignored", service=service.name, mode=self._policy.mode.value)
                report.add(ServiceResult(service.id, service.name, ServiceOutcome.SKIPPED))
                continue

            if self.is_self(service):
                log.debug("service_self_deferred", service=service.name)
                self_service_id = service.id
                continue

            await self._update_one(service, report)

        if self_service_id is not None:
            if _canceled(cancel):
                return self._cancel(report)
            await self._update_self(self_service_id, report)

        report.finish()
        log.info("sweep_complete", **report.summary())
        return report

    async def _update_one(self, service: Service, report: SweepReport) -> None:
        try:
            result = await self._updater.update(service)
        except ServiceUpdateError as exc:
            log.warning(
                "service_update_failed",
                service=exc.service_name,
                stage=exc.stage,
                error=str(exc),
            )
            report.add(
                ServiceResult(
                    service.id,
                    service.name,
                    ServiceOutcome.FAILED,
                    image=service.image,
                    error=str(exc),
                )
            )
            return
        report.add(result)

    async def _update_self(self, service_id: str, report: SweepReport) -> None:
        try:
            service = await self._control_plane.inspect_service(service_id)
        except ControlPlaneError as exc:
            report.finish()
            raise SelfUpdateError(
                service_id, f"cannot inspect the service: {exc}", report=report
            ) from exc

        try:
            result = await self._updater.update(service)
        except ServiceUpdateError as exc:
            report.add(
                ServiceResult(
                    service.id,
                    service.name,
                    ServiceOutcome.FAILED,
                    image=service.image,
                    error=str(exc),
                )
            )
            report.finish()
            raise SelfUpdateError(service_id, str(exc), report=report) from exc
        report.add(result)

    @staticmethod
    def _cancel(report: SweepReport) -> SweepReport:
        report.canceled = True
        report.finish()
        log.info("sweep_canceled", processed=len(report.results))
        return report


def _canceled(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()
