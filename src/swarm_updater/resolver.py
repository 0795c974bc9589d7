"""Digest resolution for image references."""

from __future__ import annotations

from swarm_updater.clients import RegistryInspector
from swarm_updater.errors import InvalidReferenceError
from swarm_updater.logging import get_logger
from swarm_updater.reference import parse_unqualified

log = get_logger("swarm_updater.resolver")


class DigestResolver:
    """Pin a tagged image reference to the digest the registry serves for it."""

    def __init__(self, registry: RegistryInspector) -> None:
        self._registry = registry

    async def resolve(self, image: str, encoded_auth: str | None = None) -> str:
        """Return ``image`` pinned to its current manifest digest.

        The result is rendered in familiar form and keeps the tag, e.g.
        ``nginx:1.25`` becomes ``nginx:1.25@sha256:...``.

        Raises:
            InvalidReferenceError: ``image`` does not parse, or the registry
                returned a malformed digest.
            AlreadyQualifiedError: ``image`` already pins a digest. No
                registry call is made.
            RegistryError: the registry inspection failed.
        """
        ref = parse_unqualified(image)

        digest = await self._registry.inspect_distribution(image, encoded_auth)
        try:
            pinned = ref.with_digest(digest)
        except InvalidReferenceError as exc:
            raise InvalidReferenceError(f"the image name has an invalid format: {exc}") from exc

        resolved = pinned.familiar()
        log.debug("digest_resolved", image=image, resolved=resolved)
        return resolved
