"""Unit tests for the remote store."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from heise_feed.errors import RemoteError, TransportError
from heise_feed.storage.remote import RemoteStore

DEFAULT = "2000-01-01T00:00:00.000Z"


def make_store(result=None, error=None):
    client = MagicMock()
    client.execute = AsyncMock(return_value=result, side_effect=error)
    return RemoteStore(client), client


@pytest.mark.asyncio
class TestRemoteStore:
    """Tests for RemoteStore against a mocked client."""

    async def test_watermark_defaults_without_prior_link(self):
        store, client = make_store({"data": {"link": None}})
        assert await store.get_watermark("Heise", DEFAULT) == DEFAULT

        document = client.execute.call_args.args[0]
        assert 'tags_contains: "Heise"' in document
        assert "order: datetime_DESC" in document

    async def test_watermark_from_newest_link(self):
        store, _ = make_store({"data": {"link": {"datetime": "2024-03-01T09:15:00.000Z"}}})
        assert await store.get_watermark("Heise", DEFAULT) == "2024-03-01T09:15:00.000Z"

    async def test_watermark_tolerates_missing_field(self):
        store, _ = make_store({"data": {"link": {}}})
        assert await store.get_watermark("Heise", DEFAULT) == DEFAULT

    async def test_query_returns_partial_data_with_errors(self):
        store, _ = make_store({"data": {"link": None}, "errors": [{"message": "partial"}]})
        assert await store.query("query { link { datetime } }") == {"link": None}

    async def test_query_without_data_raises(self):
        store, _ = make_store({"data": None, "errors": [{"message": "broken"}]})
        with pytest.raises(RemoteError) as exc_info:
            await store.query("query { link { datetime } }")
        assert exc_info.value.errors == [{"message": "broken"}]

    async def test_transport_error_propagates_from_query(self):
        store, _ = make_store(error=TransportError("socket closed"))
        with pytest.raises(RemoteError):
            await store.get_watermark("Heise", DEFAULT)

    async def test_mutation_errors_raise(self):
        store, _ = make_store({"data": None, "errors": [{"message": "duplicate url"}]})
        with pytest.raises(RemoteError):
            await store.mutate("mutation { x }")

    async def test_create_link_sends_entry_fields(self, sample_entry):
        created = {"id": "ck1", "createdAt": "2024-03-01T12:00:00.000Z"}
        store, client = make_store({"data": {"createLink": created}})

        assert await store.create_link(sample_entry, ["Heise"]) == created

        document, variables = client.execute.call_args.args
        assert 'tags: ["Heise"]' in document
        assert variables == {
            "title": "Test-Artikel",
            "url": sample_entry.url,
            "date": "2024-03-01T09:15:00.250Z",
        }

    async def test_trigger_event_variables(self):
        store, client = make_store({"data": {"triggerEvent": True}})
        await store.trigger_event("heise-feed:result", {"items": 2}, "There are 2 new articles")

        document, variables = client.execute.call_args.args
        assert "triggerEvent(name: $event, data: $data, info: $info)" in document
        assert variables == {
            "event": "heise-feed:result",
            "data": {"items": 2},
            "info": "There are 2 new articles",
        }
