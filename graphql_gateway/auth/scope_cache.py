"""
Authorization scope cache.

Caches, per caller credential, the set of resource paths the caller may
read, so the authorization service is asked at most once per credential and
TTL window.

Invariants:
    - One lock guards every entry, across graphs and credentials
    - Failed fetches are never cached; the caller gets an empty scope
    - An empty credential never reaches the authorization service
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..errors import AuthorizationFetchError
from .client import DEFAULT_SERVICE_NAME, AuthorizationClient, readable_resources

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0


@dataclass(frozen=True)
class AuthScopeEntry:
    """Cached scope of one credential."""

    credential: str
    resources: frozenset[str]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class AuthScopeCache:
    """Credential to readable-resource cache with a fixed TTL.

    Thread safety:
        The lock is held across the fetch, so concurrent lookups wait for an
        in-flight refresh instead of fetching again.

    Example:
        >>> cache = AuthScopeCache(AuthorizationClient(transport=mock))
        >>> cache.lookup("Bearer abc")
        frozenset({'/programs/P1'})
    """

    def __init__(
        self,
        client: AuthorizationClient,
        service: str = DEFAULT_SERVICE_NAME,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._service = service
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, AuthScopeEntry] = {}
        self._lock = threading.Lock()

    def lookup(self, credential: str | None) -> frozenset[str]:
        """Return the resource paths a credential may read."""
        if not credential:
            return frozenset()

        with self._lock:
            now = self._clock()
            entry = self._entries.get(credential)
            if entry is not None and not entry.is_expired(now):
                return entry.resources

            try:
                mapping = self._client.get_resource_mapping(credential)
            except AuthorizationFetchError as e:
                self._entries.pop(credential, None)
                logger.error(
                    f"Failed to fetch resource mapping: {e.message}",
                    extra={"error_code": e.code, "url": e.url},
                )
                return frozenset()

            resources = frozenset(readable_resources(mapping, self._service))
            self._entries[credential] = AuthScopeEntry(
                credential=credential,
                resources=resources,
                expires_at=now + self._ttl,
            )
            logger.debug(f"Cached scope of {len(resources)} resources")
            return resources

    def __len__(self) -> int:
        return len(self._entries)
