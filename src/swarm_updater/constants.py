"""Centralized constants for swarm-updater."""

from __future__ import annotations

from dataclasses import dataclass

# Label namespace recognized on services
DEFAULT_LABEL_NAMESPACE = "xyz.megpoid.swarm-updater"

# base64("{}"), what the credential store hands back when it has nothing
EMPTY_REGISTRY_AUTH = "e30="

# Separator between an image name and a pinned digest
DIGEST_DELIMITER = "@sha"

# Scheduling
DEFAULT_SCHEDULE_INTERVAL_SECONDS = 300


@dataclass(frozen=True)
class ServiceLabels:
    """Label keys derived from a namespace.

    ``self_id`` marks the updater's own service (presence only),
    ``enable`` opts a service in when label-gating is active and
    ``update_only`` scales replicated services to zero on update.
    """

    namespace: str = DEFAULT_LABEL_NAMESPACE

    @property
    def self_id(self) -> str:
        return self.namespace

    @property
    def enable(self) -> str:
        return f"{self.namespace}.enable"

    @property
    def update_only(self) -> str:
        return f"{self.namespace}.update-only"


def is_true(value: str | None) -> bool:
    """Return True for a case-insensitive ``"true"`` label value."""
    return value is not None and value.lower() == "true"
