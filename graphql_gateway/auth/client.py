"""
Client for the external authorization service.

The authorization service answers, for a caller credential, which resource
paths the caller holds permissions on:

    {
        "/programs/P1/projects/A": [{"service": "*", "method": "read"}],
        "/programs/P2": [{"service": "indexd", "method": "*"}]
    }

Only paths with a read permission for this gateway's service name make up
the caller's scope.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from ..errors import AuthorizationFetchError

logger = logging.getLogger(__name__)

DEFAULT_MAPPING_URL = "http://arborist-service/auth/mapping"
DEFAULT_SERVICE_NAME = "peregrine"

WILDCARD = "*"
READ_METHOD = "read"

ResourceMapping = Mapping[str, list[Mapping[str, Any]]]


def readable_resources(mapping: ResourceMapping, service: str = DEFAULT_SERVICE_NAME) -> set[str]:
    """Return the resource paths a mapping grants read access to.

    Example:
        >>> readable_resources({"/a": [{"service": "*", "method": "read"}], "/b": []})
        {'/a'}
    """
    resources: set[str] = set()
    for path, permissions in mapping.items():
        for permission in permissions or ():
            if not isinstance(permission, Mapping):
                continue
            if permission.get("service") not in (WILDCARD, service):
                continue
            if permission.get("method") not in (WILDCARD, READ_METHOD):
                continue
            resources.add(path)
            break
    return resources


class AuthorizationClient:
    """Fetches resource mappings from the authorization service.

    Args:
        mapping_url: URL of the mapping endpoint
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass a MockTransport)
    """

    def __init__(
        self,
        mapping_url: str = DEFAULT_MAPPING_URL,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.mapping_url = mapping_url
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def get_resource_mapping(self, credential: str) -> dict[str, Any]:
        """Fetch the resource mapping of a credential.

        Raises:
            AuthorizationFetchError: On transport errors, non-200 responses
                or a body that is not a JSON object of permission lists
        """
        try:
            response = self._client.get(
                self.mapping_url,
                headers={"Authorization": credential, "Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise AuthorizationFetchError(
                f"authorization service unreachable: {e}", self.mapping_url
            ) from e

        if response.status_code != 200:
            raise AuthorizationFetchError(
                f"authorization service returned HTTP {response.status_code}",
                self.mapping_url,
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as e:
            raise AuthorizationFetchError(
                f"invalid mapping response: {e}", self.mapping_url, status_code=200
            ) from e
        if not isinstance(body, dict):
            raise AuthorizationFetchError(
                "mapping response is not a JSON object", self.mapping_url, status_code=200
            )
        malformed = sorted(path for path, perms in body.items() if not isinstance(perms, list))
        if malformed:
            raise AuthorizationFetchError(
                f"mapping permissions are not lists for {malformed}",
                self.mapping_url,
                status_code=200,
            )
        return body

    def close(self) -> None:
        self._client.close()
