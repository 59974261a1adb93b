"""Exception types shared across the feed worker."""

from typing import Any, List, Optional


class HeiseFeedError(Exception):
    """Base class for all heise-feed errors."""


class RemoteError(HeiseFeedError):
    """A query or mutation against the remote store failed."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class TransportError(RemoteError):
    """The websocket connection or a live subscription broke."""


class FeedFetchError(HeiseFeedError):
    """The feed source could not be fetched or parsed."""
