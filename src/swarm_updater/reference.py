"""Container image reference parsing.

Implements the normalized reference grammar used by the Docker engine:

    [domain/]path[:tag][@algorithm:hex]

Bare names are normalized onto Docker Hub (``nginx`` becomes
``docker.io/library/nginx``) and rendered back in their familiar,
shortest form for logging and comparison.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from swarm_updater.constants import DIGEST_DELIMITER
from swarm_updater.errors import AlreadyQualifiedError, InvalidReferenceError

DEFAULT_DOMAIN = "docker.io"
LEGACY_DEFAULT_DOMAIN = "index.docker.io"
OFFICIAL_REPO_PREFIX = "library"

NAME_TOTAL_LENGTH_MAX = 255

_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_DOMAIN = rf"{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*(?::[0-9]+)?"
_PATH_COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|[-]+)[a-z0-9]+)*"
_NAME = rf"(?:{_DOMAIN}/)?{_PATH_COMPONENT}(?:/{_PATH_COMPONENT})*"
_TAG = r"[\w][\w.-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"

_REFERENCE_RE = re.compile(
    rf"(?P<name>{_NAME})(?::(?P<tag>{_TAG}))?(?:@(?P<digest>{_DIGEST}))?", re.ASCII
)
_DIGEST_RE = re.compile(_DIGEST, re.ASCII)
_IDENTIFIER_RE = re.compile(r"[a-f0-9]{64}")


@dataclass(frozen=True)
class ImageReference:
    """A normalized image reference."""

    domain: str
    path: str
    tag: str | None = None
    digest: str | None = None

    @property
    def name(self) -> str:
        """Fully-qualified repository name, e.g. ``docker.io/library/nginx``."""
        return f"{self.domain}/{self.path}"

    @property
    def familiar_name(self) -> str:
        """Repository name with the Docker Hub defaults stripped."""
        if self.domain != DEFAULT_DOMAIN:
            return self.name
        parts = self.path.split("/")
        if len(parts) == 2 and parts[0] == OFFICIAL_REPO_PREFIX:
            return parts[1]
        return self.path

    @property
    def is_canonical(self) -> bool:
        return self.digest is not None

    def with_digest(self, digest: str) -> ImageReference:
        """Return a copy pinned to ``digest``; an existing tag is kept."""
        if not _DIGEST_RE.fullmatch(digest):
            raise InvalidReferenceError(f"invalid digest format: {digest!r}")
        return replace(self, digest=digest)

    def familiar(self) -> str:
        """Render the shortest string that parses back to this reference."""
        return self._render(self.familiar_name)

    def _render(self, name: str) -> str:
        text = name
        if self.tag is not None:
            text += f":{self.tag}"
        if self.digest is not None:
            text += f"@{self.digest}"
        return text

    def __str__(self) -> str:
        return self._render(self.name)


def _split_domain(text: str) -> tuple[str, str]:
    """Split the registry domain off ``text`` using Docker Hub defaults."""
    head, sep, rest = text.partition("/")
    if not sep or (
        not any(ch in head for ch in ".:") and head != "localhost" and head.lower() == head
    ):
        domain, remainder = DEFAULT_DOMAIN, text
    else:
        domain, remainder = head, rest

    if domain == LEGACY_DEFAULT_DOMAIN:
        domain = DEFAULT_DOMAIN
    if domain == DEFAULT_DOMAIN and "/" not in remainder.split("@", 1)[0]:
        remainder = f"{OFFICIAL_REPO_PREFIX}/{remainder}"
    return domain, remainder


def parse_normalized(text: str) -> ImageReference:
    """Parse a (possibly familiar) image reference into normalized form.

    Raises:
        InvalidReferenceError: if ``text`` is not a valid reference.
    """
    if not text:
        raise InvalidReferenceError("invalid reference format: empty reference")
    if _IDENTIFIER_RE.fullmatch(text):
        raise InvalidReferenceError(
            f"invalid repository name ({text}), cannot specify 64-byte hexadecimal strings"
        )

    domain, remainder = _split_domain(text)
    remote_name = remainder.split("@", 1)[0].split(":", 1)[0]
    if remote_name.lower() != remote_name:
        raise InvalidReferenceError(
            f"invalid reference format: repository name must be lowercase: {text!r}"
        )

    match = _REFERENCE_RE.fullmatch(f"{domain}/{remainder}")
    if match is None:
        raise InvalidReferenceError(f"invalid reference format: {text!r}")

    name = match.group("name")
    if len(name) > NAME_TOTAL_LENGTH_MAX:
        raise InvalidReferenceError(
            f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters"
        )

    return ImageReference(
        domain=domain,
        path=name[len(domain) + 1 :],
        tag=match.group("tag"),
        digest=match.group("digest"),
    )


def parse_unqualified(text: str) -> ImageReference:
    """Parse a reference that must not pin a digest yet.

    Raises:
        InvalidReferenceError: if ``text`` does not parse.
        AlreadyQualifiedError: if ``text`` already carries a digest.
    """
    ref = parse_normalized(text)
    if ref.is_canonical:
        raise AlreadyQualifiedError(f"the image name already has a digest: {text}")
    return ref


def strip_digest(image: str) -> str:
    """Drop a pinned ``@sha...`` digest suffix from an image string."""
    return image.split(DIGEST_DELIMITER, 1)[0]
