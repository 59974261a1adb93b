"""Event bus - live GraphQL subscriptions as composable streams."""

from .bus import Event, EventBus
from .stream import EventStream

__all__ = ["Event", "EventBus", "EventStream"]
