"""Best-effort publishing of results and errors onto the event bus."""

from typing import Any, Optional

import structlog

from ..config.settings import settings
from ..ingestion.interfaces import StorageInterface

logger = structlog.get_logger()

ERROR_INFO = "Heise-Feed reports an error"


class Reporter:
    """Publishes events and never raises."""

    def __init__(self, store: StorageInterface, namespace: str = None):
        self.store = store
        self.namespace = namespace or settings.namespace

    async def trigger_event(self, name: str, data: Any = None, info: Optional[str] = None) -> bool:
        """Publish an event. Returns False if delivery failed."""
        try:
            await self.store.trigger_event(name, data, info)
        except Exception as e:
            logger.error("event_trigger_failed", event_name=name, error=str(e), exc_info=True)
            return False
        logger.info("event_triggered", event_name=name, info=info)
        return True

    async def trigger_error(self, message: str, data: Any = None) -> bool:
        return await self.trigger_event(
            f"{self.namespace}:error",
            {"error": message, "data": data},
            ERROR_INFO,
        )
