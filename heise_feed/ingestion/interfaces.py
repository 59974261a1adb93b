"""Interface definitions for feed ingestion."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, List


def to_iso(value: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as returned by the store into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class FeedEntry:
    """An entry fetched from the feed, valid for a single sync cycle."""
    url: str
    title: str
    published_at: datetime
    content: Optional[str] = None

    def is_after(self, watermark: str) -> bool:
        """Whether the entry was published strictly after the watermark."""
        published_at = self.published_at
        if published_at.tzinfo is None:
            published_at = published_at.replace(tzinfo=timezone.utc)
        return published_at > parse_iso(watermark)

    def to_dict(self) -> dict:
        """Convert to a JSON-safe dictionary."""
        return {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "datetime": to_iso(self.published_at),
        }


class FetcherInterface:
    """Interface for feed fetching."""

    async def fetch_entries(self, url: str) -> List[FeedEntry]:
        """Fetch all entries currently published at the feed address."""
        raise NotImplementedError


class StorageInterface:
    """Interface for the remote link store."""

    async def get_watermark(self, tag: str, default: str) -> str:
        """Return the datetime of the newest link carrying ``tag``."""
        raise NotImplementedError

    async def create_link(self, entry: FeedEntry, tags: List[str]) -> dict:
        """Persist an entry as a tagged link, return ``{id, createdAt}``."""
        raise NotImplementedError

    async def trigger_event(self, name: str, data: Any = None, info: Optional[str] = None) -> dict:
        """Publish a named event on the bus."""
        raise NotImplementedError
