"""Long-running worker: listens on the bus and syncs the feed on demand.

Usage:
    heise-feed
    python -m heise_feed

Environment Variables:
    HF_GRAPHQL_URL: websocket endpoint of the GraphQL server
    HF_FEED_URL: feed to mirror
    HF_FILTER_BY_WATERMARK: only store entries newer than the newest link
    HF_LOG_LEVEL / HF_LOG_JSON: logging output
"""

import asyncio
import signal
from typing import Optional

import structlog

from .config.log import setup_logging
from .config.settings import settings
from .events.bus import EventBus
from .ingestion.fetcher import RSSFetcher
from .pipeline.reporting import Reporter
from .pipeline.router import EventRouter
from .pipeline.sync import SyncEngine
from .storage.remote import RemoteStore
from .transport.client import GraphQLWSClient

logger = structlog.get_logger()


class FeedWorker:
    """Wires the transport, store, engine and router together."""

    def __init__(self, client: GraphQLWSClient = None, fetcher: RSSFetcher = None):
        self.client = client or GraphQLWSClient()
        self.fetcher = fetcher or RSSFetcher()
        self.store = RemoteStore(self.client)
        self.reporter = Reporter(self.store)
        self.engine = SyncEngine(self.store, self.fetcher, self.reporter)
        self.router = EventRouter(EventBus(self.client), self.engine, self.reporter)
        self._router_task: Optional[asyncio.Task] = None

    async def run(self) -> None:
        """Connect and route events until stopped or both listeners end."""
        async with self.fetcher:
            await self.client.connect()
            logger.info(
                "worker_started",
                graphql_url=self.client.url,
                feed_url=self.engine.feed_url,
                filter_by_watermark=self.engine.filter_by_watermark,
            )
            self._router_task = asyncio.create_task(self.router.run())
            try:
                await self._router_task
            except asyncio.CancelledError:
                logger.info("worker_stopping")
            finally:
                await self.router.drain()
                await self.client.close()
        logger.info("worker_stopped")

    def stop(self) -> None:
        """Stop listening; in-flight cycles are allowed to finish."""
        if self._router_task and not self._router_task.done():
            self._router_task.cancel()


async def main() -> None:
    """Main entry point."""
    setup_logging(settings.log_level, settings.log_json)
    worker = FeedWorker()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    await worker.run()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
