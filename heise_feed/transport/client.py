"""GraphQL client speaking the ``graphql-ws`` protocol over a websocket.

One persistent connection carries queries, mutations and live
subscriptions. When the connection drops, pending one-shot operations fail
with TransportError and, if reconnecting is enabled, the client reconnects
with exponential backoff and restarts every live subscription.
"""

import asyncio
import json
import itertools
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException
from tenacity import AsyncRetrying, retry_if_exception_type, wait_exponential

from . import protocol
from ..config.settings import settings
from ..errors import RemoteError, TransportError

logger = structlog.get_logger()

Connector = Callable[[], Awaitable[Any]]


class GraphQLWSClient:
    """Single-connection GraphQL client with reconnect."""

    def __init__(
        self,
        url: str = None,
        reconnect: bool = None,
        max_reconnect_delay: float = None,
        connector: Optional[Connector] = None,
    ):
        self.url = url or settings.graphql_url
        self.reconnect = settings.reconnect if reconnect is None else reconnect
        self.max_reconnect_delay = (
            max_reconnect_delay or settings.reconnect_max_delay_seconds
        )
        self._connector = connector or self._open_websocket

        self._ws = None
        self._reader_task: Optional[asyncio.Task] = None
        self._connected = asyncio.Event()
        self._started = False
        self._closing = False

        # op id -> queue of (message type, payload)
        self._operations: Dict[str, asyncio.Queue] = {}
        # op id -> start payload, restarted after a reconnect
        self._subscriptions: Dict[str, dict] = {}
        self._ids = itertools.count(1)

    async def _open_websocket(self):
        return await websockets.connect(
            self.url, subprotocols=[protocol.GRAPHQL_WS]
        )

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    async def connect(self) -> None:
        """Open the connection and start dispatching server messages."""
        self._started = True
        self._closing = False
        await self._handshake()
        self._reader_task = asyncio.create_task(self._read_loop())

    async def close(self) -> None:
        """Terminate the connection; live subscriptions complete normally."""
        self._closing = True
        self._connected.clear()
        if self._ws is not None:
            try:
                await self._ws.send(protocol.encode(protocol.GQL_CONNECTION_TERMINATE))
            except ConnectionClosed:
                pass
            await self._ws.close()
        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        self._fail_operations(TransportError("Client closed"), include_subscriptions=False)
        for op_id in list(self._subscriptions):
            self._operations[op_id].put_nowait((protocol.GQL_COMPLETE, None))
        logger.info("graphql_disconnected", url=self.url)

    async def _handshake(self) -> None:
        ws = await self._connector()
        await ws.send(protocol.encode(protocol.GQL_CONNECTION_INIT, payload={}))
        while True:
            message = json.loads(await ws.recv())
            message_type = message.get("type")
            if message_type == protocol.GQL_CONNECTION_ACK:
                break
            if message_type == protocol.GQL_CONNECTION_KEEP_ALIVE:
                continue
            await ws.close()
            raise TransportError(f"Connection rejected: {message.get('payload')}")

        self._ws = ws
        self._connected.set()
        logger.info("graphql_connected", url=self.url)

        for op_id, payload in list(self._subscriptions.items()):
            await ws.send(protocol.encode(protocol.GQL_START, op_id, payload))
            logger.info("subscription_restarted", op_id=op_id)

    async def _read_loop(self) -> None:
        while True:
            try:
                async for raw in self._ws:
                    self._handle_frame(raw)
                logger.warning("graphql_connection_closed", url=self.url)
            except ConnectionClosed as e:
                logger.warning("graphql_connection_lost", url=self.url, error=str(e))
            except Exception as e:
                # the socket state is unknown after a reader failure, start over
                logger.error("graphql_reader_failed", url=self.url, error=str(e), exc_info=True)
                await self._ws.close()

            self._connected.clear()
            if self._closing:
                return

            lost = TransportError("Connection to the remote store was lost")
            self._fail_operations(lost, include_subscriptions=not self.reconnect)
            if not self.reconnect:
                return
            await self._reconnect()

    async def _reconnect(self) -> None:
        async for attempt in AsyncRetrying(
            wait=wait_exponential(multiplier=1, min=1, max=self.max_reconnect_delay),
            retry=retry_if_exception_type(
                (OSError, WebSocketException, TransportError, asyncio.TimeoutError)
            ),
        ):
            with attempt:
                logger.info(
                    "graphql_reconnecting",
                    url=self.url,
                    attempt=attempt.retry_state.attempt_number,
                )
                await self._handshake()

    def _handle_frame(self, raw) -> None:
        """Decode one frame and route it; malformed frames are logged and skipped."""
        try:
            message = json.loads(raw)
        except ValueError as e:
            logger.error("graphql_frame_invalid", error=str(e), frame=str(raw)[:100])
            return
        if not isinstance(message, dict):
            logger.error("graphql_frame_invalid", error="not an object", frame=str(raw)[:100])
            return
        self._dispatch(message)

    def _dispatch(self, message: dict) -> None:
        message_type = message.get("type")
        if message_type == protocol.GQL_CONNECTION_KEEP_ALIVE:
            return
        if message_type == protocol.GQL_CONNECTION_ERROR:
            logger.error("graphql_connection_error", payload=message.get("payload"))
            return

        queue = self._operations.get(message.get("id"))
        if queue is None:
            logger.debug("graphql_message_unrouted", type=message_type, op_id=message.get("id"))
            return
        queue.put_nowait((message_type, message.get("payload")))

    def _fail_operations(self, error: TransportError, include_subscriptions: bool) -> None:
        for op_id, queue in list(self._operations.items()):
            if op_id in self._subscriptions and not include_subscriptions:
                continue
            queue.put_nowait((protocol.TRANSPORT_ERROR, error))

    async def _send(self, message_type: str, op_id: str, payload: Any = None) -> None:
        if not self._started or self._closing:
            raise TransportError("Client is not connected")
        await self._connected.wait()
        try:
            await self._ws.send(protocol.encode(message_type, op_id, payload))
        except ConnectionClosed as e:
            raise TransportError(f"Send failed: {e}") from e

    def _register(self) -> tuple:
        op_id = str(next(self._ids))
        queue: asyncio.Queue = asyncio.Queue()
        self._operations[op_id] = queue
        return op_id, queue

    async def execute(self, document: str, variables: Optional[dict] = None) -> dict:
        """Run a query or mutation and return the raw result payload.

        The payload is a dict with ``data`` and possibly ``errors``; deciding
        whether GraphQL errors are fatal is left to the caller.

        Raises:
            TransportError: If the connection is down or drops mid-operation.
            RemoteError: If the server rejects the operation outright.
        """
        op_id, queue = self._register()
        try:
            await self._send(protocol.GQL_START, op_id, protocol.operation(document, variables))
            message_type, payload = await queue.get()
        finally:
            self._operations.pop(op_id, None)

        if message_type == protocol.GQL_DATA:
            return payload or {}
        if message_type == protocol.TRANSPORT_ERROR:
            raise payload
        if message_type == protocol.GQL_ERROR:
            errors = payload if isinstance(payload, list) else [payload]
            raise RemoteError(f"Operation failed: {errors}", errors=errors)
        raise RemoteError("Operation completed without a result")

    async def subscribe(
        self, document: str, variables: Optional[dict] = None
    ) -> AsyncIterator[dict]:
        """Yield the ``data`` of every result pushed for a subscription."""
        op_id, queue = self._register()
        payload = protocol.operation(document, variables)
        try:
            await self._send(protocol.GQL_START, op_id, payload)
            self._subscriptions[op_id] = payload
            logger.info("subscription_started", op_id=op_id)

            while True:
                message_type, message = await queue.get()
                if message_type == protocol.GQL_DATA:
                    if not isinstance(message, dict):
                        logger.warning("subscription_payload_invalid", op_id=op_id, payload=message)
                        continue
                    if message.get("errors"):
                        logger.warning("subscription_errors", op_id=op_id, errors=message["errors"])
                    yield message.get("data") or {}
                elif message_type == protocol.GQL_COMPLETE:
                    logger.info("subscription_completed", op_id=op_id)
                    return
                elif message_type == protocol.TRANSPORT_ERROR:
                    raise message
                else:
                    raise TransportError(f"Subscription {op_id} failed: {message}")
        finally:
            self._operations.pop(op_id, None)
            self._subscriptions.pop(op_id, None)
            if self.is_connected and not self._closing:
                try:
                    await self._ws.send(protocol.encode(protocol.GQL_STOP, op_id))
                except ConnectionClosed:
                    pass
