"""Orchestrator and registry collaborators.

The sweep and the service updater only see the ``ControlPlane`` and
``RegistryInspector`` protocols. ``DockerSwarmClient`` implements both
against a Docker engine in swarm mode. The Docker SDK is blocking, so
every call is pushed to a worker thread.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
from typing import Any, Protocol

import docker
import requests
from docker import auth
from docker.errors import DockerException

from swarm_updater.errors import ControlPlaneError, RegistryError
from swarm_updater.logging import get_logger
from swarm_updater.models import Service, UpdateResponse

log = get_logger("swarm_updater.clients")

_TRANSPORT_ERRORS = (DockerException, requests.exceptions.RequestException)


class ControlPlane(Protocol):
    """Protocol for the swarm orchestration API."""

    async def list_services(self) -> list[Service]: ...

    async def inspect_service(self, service_id: str) -> Service: ...

    async def update_service(
        self, service_id: str, version: int, spec: dict[str, Any]
    ) -> UpdateResponse: ...

    async def retrieve_registry_auth(self, image: str) -> str: ...


class RegistryInspector(Protocol):
    """Protocol for resolving a manifest digest from a registry."""

    async def inspect_distribution(self, image: str, encoded_auth: str | None) -> str: ...


def decode_registry_auth(encoded_auth: str) -> dict[str, Any]:
    """Decode an ``X-Registry-Auth`` payload back into an auth config."""
    try:
        padded = encoded_auth + "=" * (-len(encoded_auth) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise RegistryError(f"malformed registry auth payload: {exc}") from exc
    if not isinstance(data, dict):
        raise RegistryError("malformed registry auth payload: not an object")
    return data


class DockerSwarmClient:
    """``ControlPlane`` and ``RegistryInspector`` over the Docker SDK."""

    def __init__(
        self,
        api: docker.APIClient,
        auth_config: auth.AuthConfig | None = None,
    ) -> None:
        self._api = api
        self._auth_config = auth_config

    @classmethod
    def from_settings(
        cls,
        docker_host: str | None = None,
        tls_verify: bool = False,
        cert_path: str | None = None,
    ) -> DockerSwarmClient:
        """Build a client from explicit settings or the DOCKER_* environment."""
        try:
            if docker_host is None:
                client = docker.from_env()
            else:
                tls: docker.tls.TLSConfig | bool = False
                if tls_verify or cert_path:
                    tls = _tls_config(cert_path, tls_verify)
                client = docker.DockerClient(base_url=docker_host, tls=tls)
        except _TRANSPORT_ERRORS as exc:
            raise ControlPlaneError(f"failed to initialize docker client: {exc}") from exc
        return cls(client.api)

    # ------------------------------------------------------------------
    # ControlPlane
    # ------------------------------------------------------------------

    async def list_services(self) -> list[Service]:
        raw = await self._call(self._api.services, op="service list")
        return [Service.from_dict(item) for item in raw]

    async def inspect_service(self, service_id: str) -> Service:
        raw = await self._call(self._api.inspect_service, service_id, op="service inspect")
        return Service.from_dict(raw)

    async def update_service(
        self, service_id: str, version: int, spec: dict[str, Any]
    ) -> UpdateResponse:
        """Submit ``spec`` as the service's new definition.

        The SDK only serializes the fields it is handed, so every top-level
        ServiceSpec field is passed through. Networks attached via the legacy
        top-level ``Networks`` key are carried over unless the task template
        already lists its own.
        """
        task_template = spec.get("TaskTemplate")
        networks = None
        if task_template is not None and not task_template.get("Networks"):
            networks = spec.get("Networks")
        response = await self._call(
            self._api.update_service,
            service_id,
            version,
            task_template=task_template,
            name=spec.get("Name"),
            labels=spec.get("Labels"),
            mode=spec.get("Mode"),
            update_config=spec.get("UpdateConfig"),
            rollback_config=spec.get("RollbackConfig"),
            endpoint_spec=spec.get("EndpointSpec"),
            networks=networks,
            op="service update",
        )
        warnings = (response or {}).get("Warnings") or []
        return UpdateResponse(warnings=list(warnings))

    async def retrieve_registry_auth(self, image: str) -> str:
        """Return the base64 auth payload for the registry hosting ``image``."""
        return await asyncio.to_thread(self._encoded_auth_for, image)

    # ------------------------------------------------------------------
    # RegistryInspector
    # ------------------------------------------------------------------

    async def inspect_distribution(self, image: str, encoded_auth: str | None) -> str:
        auth_config = decode_registry_auth(encoded_auth) if encoded_auth else None
        try:
            data = await asyncio.to_thread(
                self._api.inspect_distribution, image, auth_config=auth_config
            )
        except _TRANSPORT_ERRORS as exc:
            raise RegistryError(f"distribution inspect failed for {image}: {exc}") from exc

        digest = (data.get("Descriptor") or {}).get("Digest")
        if not digest:
            raise RegistryError(f"registry returned no digest for {image}")
        return str(digest)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _encoded_auth_for(self, image: str) -> str:
        try:
            registry, _ = auth.resolve_repository_name(image)
            if self._auth_config is None:
                self._auth_config = auth.load_config()
            auth_config = self._auth_config.resolve_authconfig(registry)
        except _TRANSPORT_ERRORS as exc:
            raise ControlPlaneError(f"cannot retrieve registry auth for {image}: {exc}") from exc
        return auth.encode_header(auth_config or {}).decode("ascii")

    async def _call(self, func: Any, *args: Any, op: str, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except _TRANSPORT_ERRORS as exc:
            log.debug("docker_call_failed", op=op, error=str(exc))
            raise ControlPlaneError(f"{op} failed: {exc}") from exc


def _tls_config(cert_path: str | None, verify: bool) -> docker.tls.TLSConfig:
    if cert_path is None:
        return docker.tls.TLSConfig(verify=verify)
    return docker.tls.TLSConfig(
        client_cert=(f"{cert_path}/cert.pem", f"{cert_path}/key.pem"),
        ca_cert=f"{cert_path}/ca.pem" if verify else None,
        verify=verify,
    )
