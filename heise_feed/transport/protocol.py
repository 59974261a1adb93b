"""Message types of the ``graphql-ws`` (subscriptions-transport-ws) protocol."""

import json
from typing import Any, Optional

GRAPHQL_WS = "graphql-ws"

# Client -> server
GQL_CONNECTION_INIT = "connection_init"
GQL_START = "start"
GQL_STOP = "stop"
GQL_CONNECTION_TERMINATE = "connection_terminate"

# Server -> client
GQL_CONNECTION_ACK = "connection_ack"
GQL_CONNECTION_ERROR = "connection_error"
GQL_CONNECTION_KEEP_ALIVE = "ka"
GQL_DATA = "data"
GQL_ERROR = "error"
GQL_COMPLETE = "complete"

# Local only, never on the wire
TRANSPORT_ERROR = "transport_error"


def encode(message_type: str, op_id: Optional[str] = None, payload: Any = None) -> str:
    """Serialize a protocol message."""
    message = {"type": message_type}
    if op_id is not None:
        message["id"] = op_id
    if payload is not None:
        message["payload"] = payload
    return json.dumps(message)


def operation(document: str, variables: Optional[dict] = None) -> dict:
    """Build the payload of a ``start`` message."""
    payload = {"query": document}
    if variables:
        payload["variables"] = variables
    return payload
