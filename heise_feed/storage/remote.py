"""Remote link store reached through GraphQL."""

from typing import Any, List, Optional

import structlog

from .queries import TRIGGER_EVENT_MUTATION, create_link_mutation, latest_link_query
from ..config.log import traced
from ..errors import RemoteError
from ..ingestion.interfaces import FeedEntry, StorageInterface, to_iso
from ..transport.client import GraphQLWSClient

logger = structlog.get_logger()


class RemoteStore(StorageInterface):
    """GraphQL-backed store. Nothing is cached; every call hits the server."""

    def __init__(self, client: GraphQLWSClient):
        self.client = client

    async def query(self, document: str, variables: Optional[dict] = None) -> dict:
        """Run a query, tolerating partial results.

        GraphQL errors next to usable data are logged and the partial data is
        returned; callers must treat missing fields as absent.

        Raises:
            RemoteError: If the server returned no data at all.
        """
        result = await self.client.execute(document, variables)
        errors = result.get("errors")
        data = result.get("data")
        if errors:
            if data is None:
                raise RemoteError(f"Query failed: {errors}", errors=errors)
            logger.warning("query_partial_result", errors=errors)
        return data or {}

    async def mutate(self, document: str, variables: Optional[dict] = None) -> dict:
        """Run a mutation.

        Raises:
            RemoteError: On any GraphQL error in the result.
        """
        result = await self.client.execute(document, variables)
        errors = result.get("errors")
        if errors:
            raise RemoteError(f"Mutation failed: {errors}", errors=errors)
        return result.get("data") or {}

    async def get_watermark(self, tag: str, default: str) -> str:
        data = await self.query(latest_link_query(tag))
        link = data.get("link") or {}
        return link.get("datetime") or default

    async def create_link(self, entry: FeedEntry, tags: List[str]) -> dict:
        data = await self.mutate(
            create_link_mutation(tags),
            {"title": entry.title, "url": entry.url, "date": to_iso(entry.published_at)},
        )
        created = data.get("createLink") or {}
        logger.debug("link_created", id=created.get("id"), url=entry.url[:50])
        return created

    @traced("trigger_event")
    async def trigger_event(self, name: str, data: Any = None, info: Optional[str] = None) -> dict:
        return await self.mutate(
            TRIGGER_EVENT_MUTATION,
            {"event": name, "data": data, "info": info},
        )
