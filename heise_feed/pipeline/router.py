"""Dispatches bus events to the sync engine and answers liveness pings."""

import asyncio
from dataclasses import replace
from typing import Set

import structlog

from .reporting import Reporter
from .sync import SyncEngine
from ..config.settings import settings
from ..events.bus import Event, EventBus, WILDCARD
from ..events.stream import EventStream

logger = structlog.get_logger()

PING = "ping"
PONG = "pong"


class EventRouter:
    """Runs the control channel and the liveness channel side by side."""

    def __init__(
        self,
        bus: EventBus,
        engine: SyncEngine,
        reporter: Reporter,
        namespace: str = None,
    ):
        self.bus = bus
        self.engine = engine
        self.reporter = reporter
        self.namespace = namespace or settings.namespace
        self.prefix = f"{self.namespace}:"
        self._tasks: Set[asyncio.Task] = set()

    async def run(self) -> None:
        """Listen on both channels until each of them ends."""
        await asyncio.gather(self.run_control_channel(), self.run_liveness_channel())

    # Control channel

    def control_stream(self) -> EventStream[Event]:
        return (
            self.bus.subscribe(WILDCARD)
            .filter(lambda event: event.name.startswith(self.prefix))
            .map(lambda event: replace(event, name=event.name[len(self.prefix):]))
            .catch(self._listener_failed("control"))
        )

    async def run_control_channel(self) -> None:
        await self.control_stream().for_each(self.handle_control_event)

    def handle_control_event(self, event: Event) -> None:
        logger.info("control_event", event_name=event.name, data=event.data)
        if event.name == "start":
            self._spawn(self.engine.check_for_new_items(), "sync_cycle")
        # other namespaced events are observed only

    # Liveness channel

    def is_own_ping(self, event: Event) -> bool:
        data = event.data
        return (
            isinstance(data, dict)
            and isinstance(data.get("name"), str)
            and isinstance(data.get("state"), str)
            and data["name"] == self.namespace
        )

    def liveness_stream(self) -> EventStream[Event]:
        return (
            self.bus.subscribe(PING)
            .filter(self.is_own_ping)
            .catch(self._listener_failed("liveness"))
        )

    async def run_liveness_channel(self) -> None:
        await self.liveness_stream().for_each(self.handle_ping)

    async def handle_ping(self, event: Event) -> None:
        logger.info("ping", data=event.data)
        await self.reporter.trigger_event(PONG, event.data)

    # Background work

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("background_task_cancelled", task=task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "background_task_failed",
                task=task.get_name(),
                error=str(error),
                exc_info=error,
            )

    async def drain(self) -> None:
        """Wait for in-flight sync cycles to finish."""
        if self._tasks:
            logger.info("draining_background_tasks", count=len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _listener_failed(self, channel: str):
        def handler(error: Exception) -> None:
            logger.error("listener_failed", channel=channel, error=str(error), exc_info=error)

        return handler
