"""Event bus adapter over GraphQL ``eventListener`` subscriptions."""

import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import structlog

from .stream import EventStream
from ..transport.client import GraphQLWSClient

logger = structlog.get_logger()

EVENT_LISTENER_SUBSCRIPTION = """subscription {
  event: eventListener(name: %s) { name data info }
}"""

WILDCARD = "*"


@dataclass(frozen=True)
class Event:
    """An event received from or published to the bus."""
    name: str
    data: Any = None
    info: Optional[str] = None


class EventBus:
    """Turns subscription results into a stream of Events."""

    def __init__(self, client: GraphQLWSClient):
        self.client = client

    def subscribe(self, name: str = WILDCARD) -> EventStream[Event]:
        """Listen for events by exact name, or every event with ``*``."""
        document = EVENT_LISTENER_SUBSCRIPTION % json.dumps(name)
        return EventStream(self._events(document, name))

    async def _events(self, document: str, name: str) -> AsyncIterator[Event]:
        logger.info("event_listener_started", listen=name)
        async for data in self.client.subscribe(document):
            event = data.get("event") or {}
            yield Event(
                name=event.get("name") or "",
                data=event.get("data"),
                info=event.get("info"),
            )
