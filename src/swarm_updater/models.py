"""Data models for services and sweep outcomes.

``Service`` wraps the orchestrator's JSON representation of a swarm
service. Sweep outcomes are plain dataclasses with ``to_dict`` for log
output; nothing here is persisted between sweeps.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def _container_image(spec: dict[str, Any] | None) -> str | None:
    if not spec:
        return None
    task_template = spec.get("TaskTemplate") or {}
    container_spec = task_template.get("ContainerSpec") or {}
    return container_spec.get("Image")


@dataclass
class Service:
    """A swarm service as reported by the orchestrator."""

    id: str
    version: int
    spec: dict[str, Any]
    previous_spec: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Service:
        return cls(
            id=data["ID"],
            version=int((data.get("Version") or {}).get("Index", 0)),
            spec=data.get("Spec") or {},
            previous_spec=data.get("PreviousSpec"),
        )

    @property
    def name(self) -> str:
        return str(self.spec.get("Name") or self.id)

    @property
    def labels(self) -> dict[str, str]:
        return self.spec.get("Labels") or {}

    @property
    def image(self) -> str:
        return _container_image(self.spec) or ""

    @property
    def previous_image(self) -> str | None:
        return _container_image(self.previous_spec)

    @property
    def replicas(self) -> int | None:
        """Desired replica count, or None for global/unset modes."""
        replicated = (self.spec.get("Mode") or {}).get("Replicated")
        if replicated is None:
            return None
        return replicated.get("Replicas")

    def copy_spec(self) -> dict[str, Any]:
        """Return a deep copy of the spec, safe to edit and submit."""
        return copy.deepcopy(self.spec)


@dataclass
class UpdateResponse:
    """Result of an orchestrator update call."""

    warnings: list[str] = field(default_factory=list)


class ServiceOutcome(Enum):
    """Terminal state of one service within a sweep."""

    UPDATED = "updated"
    ALREADY_CURRENT = "already_current"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ServiceResult:
    """Outcome of processing one service."""

    service_id: str
    name: str
    outcome: ServiceOutcome
    image: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "name": self.name,
            "outcome": self.outcome.value,
            "image": self.image,
            "error": self.error,
        }


@dataclass
class SweepReport:
    """Per-service results of one sweep, built fresh every time."""

    results: list[ServiceResult] = field(default_factory=list)
    canceled: bool = False
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None

    def add(self, result: ServiceResult) -> None:
        self.results.append(result)

    def count(self, outcome: ServiceOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def updated(self) -> list[ServiceResult]:
        return [r for r in self.results if r.outcome is ServiceOutcome.UPDATED]

    @property
    def failed(self) -> list[ServiceResult]:
        return [r for r in self.results if r.outcome is ServiceOutcome.FAILED]

    def finish(self) -> None:
        self.completed_at = datetime.now(UTC).isoformat()

    def summary(self) -> dict[str, int]:
        return {outcome.value: self.count(outcome) for outcome in ServiceOutcome}

    def to_dict(self) -> dict[str, Any]:
        return {
            "canceled": self.canceled,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "summary": self.summary(),
            "results": [r.to_dict() for r in self.results],
        }
