"""Pytest configuration and shared fixtures."""

import asyncio
import json
from datetime import datetime, timezone

import pytest

# Add project root to path
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from websockets.exceptions import ConnectionClosedOK

from heise_feed.errors import RemoteError
from heise_feed.events.bus import Event
from heise_feed.ingestion.interfaces import FeedEntry, FetcherInterface, StorageInterface


class FakeStore(StorageInterface):
    """In-memory stand-in for the remote store."""

    def __init__(self, watermark=None, failing_urls=(), watermark_error=None, event_error=None):
        self.watermark = watermark
        self.failing_urls = set(failing_urls)
        self.watermark_error = watermark_error
        self.event_error = event_error
        self.watermark_calls = 0
        self.created = []
        self.events = []

    async def get_watermark(self, tag, default):
        self.watermark_calls += 1
        await asyncio.sleep(0)
        if self.watermark_error:
            raise self.watermark_error
        return self.watermark or default

    async def create_link(self, entry, tags):
        self.created.append((entry, tags))
        await asyncio.sleep(0)
        if entry.url in self.failing_urls:
            raise RemoteError(f"createLink rejected {entry.url}")
        return {"id": f"link-{len(self.created)}", "createdAt": "2024-03-01T12:00:00.000Z"}

    async def trigger_event(self, name, data=None, info=None):
        if self.event_error:
            raise self.event_error
        self.events.append(Event(name=name, data=data, info=info))
        return {"triggerEvent": True}

    def events_named(self, name):
        return [e for e in self.events if e.name == name]


class FakeFetcher(FetcherInterface):
    """Returns a fixed list of entries."""

    def __init__(self, entries=None, error=None):
        self.entries = entries or []
        self.error = error
        self.calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass

    async def fetch_entries(self, url):
        self.calls.append(url)
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return list(self.entries)


_CLOSE = object()


class FakeWebSocket:
    """Scriptable websocket speaking to GraphQLWSClient.

    Every message the client sends is recorded in ``sent`` and handed to
    ``on_message`` so a test can push replies with ``push``.
    """

    def __init__(self, on_message=None, ack=True):
        self.sent = []
        self.incoming = asyncio.Queue()
        self.closed = False
        self.ack = ack
        self.on_message = on_message

    async def send(self, raw):
        if self.closed:
            raise ConnectionClosedOK(None, None)
        message = json.loads(raw)
        self.sent.append(message)
        if message["type"] == "connection_init":
            if self.ack:
                self.push({"type": "connection_ack"})
            else:
                self.push({"type": "connection_error", "payload": {"message": "denied"}})
        elif self.on_message:
            self.on_message(self, message)

    async def recv(self):
        item = await self.incoming.get()
        if item is _CLOSE:
            raise ConnectionClosedOK(None, None)
        return item

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        return item

    async def close(self):
        if not self.closed:
            self.closed = True
            self.incoming.put_nowait(_CLOSE)

    def push(self, message):
        self.incoming.put_nowait(json.dumps(message))

    def push_raw(self, raw):
        """Queue a frame exactly as given, without JSON encoding."""
        self.incoming.put_nowait(raw)

    def drop(self):
        """Simulate the server going away."""
        self.closed = True
        self.incoming.put_nowait(_CLOSE)

    def sent_of_type(self, message_type):
        return [m for m in self.sent if m["type"] == message_type]


async def wait_until(condition, timeout=2.0):
    """Poll until ``condition()`` is truthy."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def make_entry(i: int, day: int = 1) -> FeedEntry:
    return FeedEntry(
        url=f"https://www.heise.de/news/artikel-{i}.html",
        title=f"Artikel {i}",
        content=f"Inhalt {i}",
        published_at=datetime(2024, 3, day, 10, i % 60, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_entry():
    """Provide a sample FeedEntry."""
    return FeedEntry(
        url="https://www.heise.de/news/Test-Artikel-1234567.html",
        title="Test-Artikel",
        content="<p>Volltext</p>",
        published_at=datetime(2024, 3, 1, 9, 15, 0, 250000, tzinfo=timezone.utc),
    )


@pytest.fixture
def entries():
    """Three entries published on consecutive days."""
    return [make_entry(i, day=i) for i in (1, 2, 3)]


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_fetcher(entries):
    return FakeFetcher(entries)


@pytest.fixture
def sample_rdf():
    """An RSS 1.0 document shaped like the heise feed."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/"
         xmlns:dc="http://purl.org/dc/elements/1.1/"
         xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel rdf:about="https://www.heise.de/">
    <title>heise online News</title>
    <link>https://www.heise.de/</link>
    <description>Nachrichten nicht nur aus der Welt der Computer</description>
    <items>
      <rdf:Seq>
        <rdf:li rdf:resource="https://www.heise.de/news/eins.html"/>
        <rdf:li rdf:resource="https://www.heise.de/news/zwei.html"/>
      </rdf:Seq>
    </items>
  </channel>
  <item rdf:about="https://www.heise.de/news/eins.html">
    <title>Erster Artikel</title>
    <link>https://www.heise.de/news/eins.html</link>
    <description>Kurzfassung eins</description>
    <content:encoded><![CDATA[<p>Volltext eins</p>]]></content:encoded>
    <dc:date>2024-03-01T10:15:00+01:00</dc:date>
  </item>
  <item rdf:about="https://www.heise.de/news/zwei.html">
    <title>Zweiter Artikel</title>
    <link>https://www.heise.de/news/zwei.html</link>
    <description>Kurzfassung zwei</description>
  </item>
</rdf:RDF>
"""
