"""Service eligibility for automatic updates.

Two mutually exclusive modes:

- label-gated: only services labelled ``<ns>.enable=true`` are updated.
- blacklist: every service is updated unless its name matches one of the
  configured regular expressions.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from swarm_updater.constants import ServiceLabels, is_true

if TYPE_CHECKING:
    from swarm_updater.models import Service


class PolicyMode(Enum):
    LABEL_GATED = "label-gated"
    BLACKLIST = "blacklist"


@dataclass(frozen=True)
class EligibilityPolicy:
    """Read-only eligibility configuration, fixed for the process lifetime."""

    mode: PolicyMode
    blacklist: tuple[re.Pattern[str], ...] = ()
    labels: ServiceLabels = field(default_factory=ServiceLabels)

    @classmethod
    def label_gated(cls, labels: ServiceLabels | None = None) -> EligibilityPolicy:
        return cls(mode=PolicyMode.LABEL_GATED, labels=labels or ServiceLabels())

    @classmethod
    def from_patterns(
        cls, patterns: Iterable[str], labels: ServiceLabels | None = None
    ) -> EligibilityPolicy:
        """Blacklist mode; patterns keep their order and are searched, not anchored."""
        compiled = tuple(re.compile(p) for p in patterns)
        return cls(mode=PolicyMode.BLACKLIST, blacklist=compiled, labels=labels or ServiceLabels())

    def is_eligible(self, service: Service) -> bool:
        return is_eligible(service, self)


def is_eligible(service: Service, policy: EligibilityPolicy) -> bool:
    """Return True if ``service`` may be updated under ``policy``."""
    if policy.mode is PolicyMode.LABEL_GATED:
        return is_true(service.labels.get(policy.labels.enable))

    return not any(pattern.search(service.name) for pattern in policy.blacklist)
