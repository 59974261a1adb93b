"""GraphQL transport over a persistent websocket."""

from .client import GraphQLWSClient

__all__ = ["GraphQLWSClient"]
