"""Composable view over a live async event source."""

import inspect
from typing import AsyncIterable, AsyncIterator, Callable, Generic, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")
U = TypeVar("U")


class EventStream(Generic[T]):
    """Push-driven, single-consumer stream with filter/map/for_each/catch.

    Every operator returns a new view over the same underlying source, so a
    chain like ``stream.filter(...).map(...)`` still consumes the source
    exactly once, in arrival order, one item at a time. Nothing buffers,
    retries or reorders.
    """

    def __init__(self, source: AsyncIterable[T]):
        self._source = source

    def __aiter__(self) -> AsyncIterator[T]:
        return self._source.__aiter__()

    def filter(self, predicate: Callable[[T], bool]) -> "EventStream[T]":
        async def _filtered():
            async for item in self:
                if predicate(item):
                    yield item

        return EventStream(_filtered())

    def map(self, transform: Callable[[T], U]) -> "EventStream[U]":
        async def _mapped():
            async for item in self:
                yield transform(item)

        return EventStream(_mapped())

    def catch(self, handler: Callable[[Exception], object]) -> "EventStream[T]":
        """End the stream through ``handler`` instead of raising."""

        async def _caught():
            try:
                async for item in self:
                    yield item
            except Exception as e:
                result = handler(e)
                if inspect.isawaitable(result):
                    await result

        return EventStream(_caught())

    async def for_each(self, handler: Callable[[T], object]) -> None:
        """Consume the stream, awaiting the handler for each item in turn."""
        async for item in self:
            result = handler(item)
            if inspect.isawaitable(result):
                await result
