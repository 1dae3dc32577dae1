"""
HTTP surface of the GraphQL gateway.
"""

from .http_server import GraphQLRequest, create_app
from .settings import Settings

__all__ = ["GraphQLRequest", "create_app", "Settings"]
