"""Configuration management for swarm-updater."""

from __future__ import annotations

import json
import re
from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from swarm_updater.constants import (
    DEFAULT_LABEL_NAMESPACE,
    DEFAULT_SCHEDULE_INTERVAL_SECONDS,
    ServiceLabels,
)
from swarm_updater.policy import EligibilityPolicy

_OPENERS = "([{"
_CLOSERS = ")]}"


def split_patterns(text: str) -> list[str]:
    """Split a comma-separated pattern list.

    Commas inside a group, character class or quantifier (``^svc{1,3}$``)
    and backslash-escaped commas belong to the pattern.
    """
    patterns: list[str] = []
    current: list[str] = []
    depth = 0
    escaped = False
    for ch in text:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS and depth:
            depth -= 1
        elif ch == "," and not depth:
            patterns.append("".join(current))
            current = []
            continue
        current.append(ch)
    patterns.append("".join(current))
    return [p.strip() for p in patterns if p.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Docker engine
    docker_host: str | None = Field(
        default=None, description="Docker engine URL; DOCKER_* environment when unset"
    )
    docker_tls_verify: bool = Field(default=False, description="Verify the engine's TLS cert")
    docker_cert_path: str | None = Field(
        default=None, description="Directory holding ca.pem, cert.pem and key.pem"
    )

    # Eligibility
    label_enable: bool = Field(
        default=False, description="Only update services carrying the enable label"
    )
    blacklist: Annotated[
        list[str],
        NoDecode,
        Field(
            default_factory=list,
            description="Regexes of service names to leave alone; comma-separated or a JSON list",
        ),
    ]
    label_namespace: str = Field(
        default=DEFAULT_LABEL_NAMESPACE, description="Prefix of the recognized service labels"
    )

    # Scheduling
    schedule_interval_seconds: int = Field(
        default=DEFAULT_SCHEDULE_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between sweeps",
    )
    sweep_timeout_seconds: int | None = Field(
        default=None, gt=0, description="Cancel a sweep at the next service after this long"
    )
    run_once: bool = Field(default=False, description="Run a single sweep and exit")

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("blacklist", mode="before")
    @classmethod
    def _split_blacklist(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    return json.loads(stripped)
                except ValueError:
                    pass
            return split_patterns(stripped)
        return value

    @field_validator("blacklist")
    @classmethod
    def _check_patterns(cls, value: list[str]) -> list[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid blacklist pattern {pattern!r}: {exc}") from exc
        return value

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def labels(self) -> ServiceLabels:
        return ServiceLabels(self.label_namespace)

    def eligibility_policy(self) -> EligibilityPolicy:
        """Build the eligibility policy selected by these settings."""
        if self.label_enable:
            return EligibilityPolicy.label_gated(self.labels)
        return EligibilityPolicy.from_patterns(self.blacklist, self.labels)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
