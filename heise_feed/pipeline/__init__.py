"""Pipeline orchestration - sync cycles, reporting and event routing."""

from .reporting import Reporter
from .router import EventRouter
from .run_guard import RunGuard, RunState
from .sync import SyncEngine

__all__ = ["Reporter", "EventRouter", "RunGuard", "RunState", "SyncEngine"]
