"""Feed ingestion - fetching and parsing the RSS feed."""

from .interfaces import FeedEntry, FetcherInterface, StorageInterface
from .fetcher import RSSFetcher

__all__ = ["FeedEntry", "FetcherInterface", "StorageInterface", "RSSFetcher"]
