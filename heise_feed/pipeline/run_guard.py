"""Single-flight guard for sync cycles."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import structlog

logger = structlog.get_logger()


class RunState(Enum):
    """Lifecycle of the guard."""
    IDLE = "idle"
    RUNNING = "running"
    STALLED = "stalled"  # held after a failed watermark query, needs a restart


class RunGuard:
    """Allows at most one sync cycle at a time.

    ``try_acquire`` checks and sets without awaiting anything, which makes it
    atomic on a single event loop.
    """

    def __init__(self):
        self._state = RunState.IDLE
        self.acquired_at: Optional[datetime] = None
        self.stalled_reason: Optional[str] = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_held(self) -> bool:
        return self._state is not RunState.IDLE

    def try_acquire(self) -> bool:
        if self.is_held:
            return False
        self._state = RunState.RUNNING
        self.acquired_at = datetime.now(timezone.utc)
        return True

    def release(self) -> None:
        self._state = RunState.IDLE
        self.acquired_at = None
        self.stalled_reason = None

    def mark_stalled(self, reason: str) -> None:
        """Keep the guard held and record why it can no longer be released."""
        self._state = RunState.STALLED
        self.stalled_reason = reason
        logger.error(
            "run_guard_stalled",
            reason=reason,
            acquired_at=self.acquired_at.isoformat() if self.acquired_at else None,
        )
