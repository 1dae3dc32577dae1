"""
Caller authorization for the GraphQL gateway.

- AuthorizationClient: Fetches resource mappings over HTTP
- AuthScopeCache: Per-credential cache of readable resource paths
"""

from .client import AuthorizationClient, readable_resources
from .scope_cache import AuthScopeCache, AuthScopeEntry

__all__ = [
    "AuthorizationClient",
    "readable_resources",
    "AuthScopeCache",
    "AuthScopeEntry",
]
