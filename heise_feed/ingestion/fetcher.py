"""RSS feed fetcher with async support and retries."""

import asyncio
import time
from datetime import datetime, timezone
from typing import List, Optional

import aiohttp
import feedparser
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
import structlog

from .interfaces import FeedEntry, FetcherInterface
from ..config.log import traced
from ..config.settings import settings
from ..errors import FeedFetchError

logger = structlog.get_logger()


class RSSFetcher(FetcherInterface):
    """Async RSS/RDF feed fetcher with retries."""

    def __init__(self, timeout_seconds: int = None, user_agent: str = None):
        self.session: Optional[aiohttp.ClientSession] = None
        self.timeout_seconds = timeout_seconds or settings.fetch_timeout_seconds
        self.user_agent = user_agent or settings.user_agent

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={"User-Agent": self.user_agent}
        )
        return self

    async def __aexit__(self, *args):
        if self.session:
            await self.session.close()
            self.session = None

    @traced("fetch_entries")
    async def fetch_entries(self, url: str) -> List[FeedEntry]:
        """Fetch and parse every entry currently in the feed."""
        if self.session is None:
            raise FeedFetchError("Fetcher used outside of its async context")

        start_time = time.time()
        try:
            content = await self._download(url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("feed_fetch_failed", url=url, error=str(e))
            raise FeedFetchError(f"Could not fetch {url}: {e}") from e

        entries = self.parse_entries(content)
        logger.info(
            "feed_fetched",
            url=url,
            entries=len(entries),
            time_ms=int((time.time() - start_time) * 1000)
        )
        return entries

    @retry(
        stop=stop_after_attempt(settings.fetch_max_retries),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError)),
        reraise=True,
    )
    async def _download(self, url: str) -> str:
        async with self.session.get(url) as response:
            response.raise_for_status()
            return await response.text()

    def parse_entries(self, content: str, fetched_at: datetime = None) -> List[FeedEntry]:
        """Parse raw feed XML into entries, skipping entries without a link."""
        feed = feedparser.parse(content)
        if feed.bozo and not feed.entries:
            raise FeedFetchError(f"Unparseable feed: {feed.get('bozo_exception')}")

        fetched_at = fetched_at or datetime.now(timezone.utc)
        entries = []
        for entry in feed.entries:
            parsed = self._parse_entry(entry, fetched_at)
            if parsed:
                entries.append(parsed)
        return entries

    def _parse_entry(self, entry, fetched_at: datetime) -> Optional[FeedEntry]:
        """Parse a feedparser entry into a FeedEntry."""
        url = getattr(entry, 'link', None)
        if not url:
            logger.debug("feed_entry_skipped", reason="no_link")
            return None

        title = getattr(entry, 'title', '')
        content = getattr(entry, 'summary', None)
        if hasattr(entry, 'content') and entry.content:
            content = entry.content[0].get('value', content)

        # feedparser normalises dates to UTC struct_time
        published_at = fetched_at
        for attr in ['published_parsed', 'updated_parsed']:
            parsed = getattr(entry, attr, None)
            if parsed:
                try:
                    published_at = datetime(*parsed[:6], tzinfo=timezone.utc)
                    break
                except (TypeError, ValueError):
                    pass

        return FeedEntry(
            url=url,
            title=title,
            content=content,
            published_at=published_at,
        )
