"""Run-guarded fetch/store cycle."""

import asyncio
import time
from typing import List, Optional

import structlog

from .reporting import Reporter
from .run_guard import RunGuard, RunState
from ..config.settings import settings
from ..errors import FeedFetchError
from ..ingestion.interfaces import FeedEntry, FetcherInterface, StorageInterface

logger = structlog.get_logger()


def describe_count(count: int) -> str:
    """Human readable summary of how many articles a cycle stored."""
    if count == 1:
        return "There is a new article"
    return f"There are {count} new articles"


class SyncEngine:
    """Fetches the feed and stores its entries as tagged links.

    A cycle reads the watermark (datetime of the newest stored link), fetches
    the feed, creates one link per entry concurrently and reports the outcome.
    Only one cycle runs at a time.
    """

    def __init__(
        self,
        store: StorageInterface,
        fetcher: FetcherInterface,
        reporter: Reporter,
        guard: RunGuard = None,
        feed_url: str = None,
        link_tag: str = None,
        default_watermark: str = None,
        filter_by_watermark: bool = None,
        namespace: str = None,
    ):
        self.store = store
        self.fetcher = fetcher
        self.reporter = reporter
        self.guard = guard or RunGuard()
        self.feed_url = feed_url or settings.feed_url
        self.link_tag = link_tag or settings.link_tag
        self.default_watermark = default_watermark or settings.default_watermark
        self.filter_by_watermark = (
            settings.filter_by_watermark if filter_by_watermark is None else filter_by_watermark
        )
        self.namespace = namespace or settings.namespace

    async def check_for_new_items(self) -> Optional[dict]:
        """Entry point of a cycle. Returns cycle stats, or None if one is already running.

        Raises:
            RemoteError: If the watermark query fails. The guard stays held
                (stalled) until the process is restarted.
        """
        if not self.guard.try_acquire():
            data = None
            if self.guard.state is RunState.STALLED:
                data = {"state": RunState.STALLED.value, "reason": self.guard.stalled_reason}
            logger.warning("sync_already_running", state=self.guard.state.value)
            await self.reporter.trigger_error("Already running", data)
            return None

        logger.info("checking_for_new_items")
        try:
            watermark = await self.store.get_watermark(self.link_tag, self.default_watermark)
        except Exception as e:
            self.guard.mark_stalled(str(e))
            await self.reporter.trigger_error(
                "Watermark query failed, sync is stalled until restart",
                {"reason": str(e)},
            )
            raise
        logger.info("watermark_loaded", watermark=watermark)
        return await self.store_items(watermark)

    async def store_items(self, watermark: str) -> dict:
        """Fetch the feed and create a link per entry. Always releases the guard."""
        start_time = time.time()
        stats = {"items": 0, "from": watermark, "stored": 0, "failed": 0}
        try:
            try:
                entries = await self.fetcher.fetch_entries(self.feed_url)
            except FeedFetchError as e:
                await self.reporter.trigger_error(str(e), {"url": self.feed_url, "from": watermark})
                return stats

            entries = self._select_entries(entries, watermark)
            results = await asyncio.gather(*(self._create_link(entry) for entry in entries))

            stats["items"] = len(entries)
            stats["stored"] = sum(1 for r in results if r is not None)
            stats["failed"] = stats["items"] - stats["stored"]

            if entries:
                await self.reporter.trigger_event(
                    f"{self.namespace}:result",
                    {"items": len(entries), "from": watermark},
                    describe_count(len(entries)),
                )

            logger.info(
                "sync_completed",
                elapsed_seconds=time.time() - start_time,
                **stats
            )
            return stats
        finally:
            self.guard.release()

    def _select_entries(self, entries: List[FeedEntry], watermark: str) -> List[FeedEntry]:
        if not self.filter_by_watermark:
            # Every fetched entry is stored again each cycle
            return entries
        newer = [entry for entry in entries if entry.is_after(watermark)]
        logger.debug("entries_filtered", fetched=len(entries), newer=len(newer))
        return newer

    async def _create_link(self, entry: FeedEntry) -> Optional[dict]:
        try:
            return await self.store.create_link(entry, [self.link_tag])
        except Exception as e:
            logger.warning("link_create_failed", url=entry.url, error=str(e))
            await self.reporter.trigger_error(str(e), {"item": entry.to_dict()})
            return None
