"""Shared fixtures for swarm-updater tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from swarm_updater.config import get_settings
from swarm_updater.constants import EMPTY_REGISTRY_AUTH
from swarm_updater.models import Service, UpdateResponse

DIGEST_A = "sha256:" + "a" * 64
DIGEST_B = "sha256:" + "b" * 64

ServiceFactory = Callable[..., Service]


def _spec(name: str, image: str, labels: dict[str, str], replicas: int | None) -> dict[str, Any]:
    mode: dict[str, Any] = (
        {"Replicated": {"Replicas": replicas}} if replicas is not None else {"Global": {}}
    )
    return {
        "Name": name,
        "Labels": labels,
        "TaskTemplate": {"ContainerSpec": {"Image": image}},
        "Mode": mode,
    }


@pytest.fixture()
def make_service() -> ServiceFactory:
    """Return a factory building ``Service`` objects from a few knobs."""

    def _make(
        name: str = "web",
        image: str = "registry.example.com/app:latest",
        labels: dict[str, str] | None = None,
        replicas: int | None = 3,
        service_id: str | None = None,
        version: int = 10,
        previous_image: str | None = None,
    ) -> Service:
        previous = (
            _spec(name, previous_image, labels or {}, replicas)
            if previous_image is not None
            else None
        )
        return Service(
            id=service_id or f"id-{name}",
            version=version,
            spec=_spec(name, image, labels or {}, replicas),
            previous_spec=previous,
        )

    return _make


@pytest.fixture()
def control_plane() -> AsyncMock:
    """Return a mock ControlPlane with no credentials and no warnings."""
    cp = AsyncMock()
    cp.list_services = AsyncMock(return_value=[])
    cp.retrieve_registry_auth = AsyncMock(return_value=EMPTY_REGISTRY_AUTH)
    cp.update_service = AsyncMock(return_value=UpdateResponse())
    cp.inspect_service = AsyncMock()
    return cp


@pytest.fixture()
def registry() -> AsyncMock:
    """Return a mock RegistryInspector that always serves DIGEST_B."""
    reg = AsyncMock()
    reg.inspect_distribution = AsyncMock(return_value=DIGEST_B)
    return reg


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
