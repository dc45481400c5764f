"""
MODULE OVERVIEW:
The state behind the development long poll server.

WHAT IS HAPPENING HERE:
This single object plays the part of the real API's long poll backend: it owns
the current key, a monotonically increasing event counter used as `ts`, a
bounded history of recent updates, and the asyncio.Events of every long poll
request that is currently being held open.

The three recovery signals a client must handle are produced here:
  - failed=1: the client's ts fell out of the retained history.
  - failed=2: the client presented a key that is no longer current.
  - failed=3: the client's ts predates a history loss.
"""

import asyncio
import secrets
import uuid
from collections import deque
from datetime import datetime, timezone

from loguru import logger

from longpoll_bot.shared.models import GroupEvent, PollResponse


class LongPollState:
    def __init__(self, group_id: int, history_size: int = 200):
        if history_size < 1:
            raise ValueError(f"history_size must be at least 1, got {history_size}")
        self.group_id = group_id
        self.key = secrets.token_hex(16)
        self.ts = 1
        # Cursors below this value belong to a history that no longer exists.
        self.lost_before = 0
        self.history: deque[tuple[int, GroupEvent]] = deque(maxlen=history_size)
        self.waiters: set[asyncio.Event] = set()

        self.total_events_pushed = 0
        self.completed_long_polls = 0
        self.longest_hold_ms = 0.0
        self.startup_time = datetime.now(timezone.utc)

    # ==========================
    # SESSION MANAGEMENT
    # ==========================
    def issue(self) -> dict:
        return {"key": self.key, "ts": str(self.ts)}

    def expire_key(self) -> str:
        self.key = secrets.token_hex(16)
        logger.info(f"group_id={self.group_id} event=expire_key reason=requested")
        return self.key

    def lose_history(self) -> int:
        self.history.clear()
        self.ts += 1
        self.lost_before = self.ts
        logger.info(f"group_id={self.group_id} event=lose_history ts={self.ts}")
        return self.ts

    # ==========================
    # EVENTS
    # ==========================
    def push_event(self, event_type: str, obj: dict) -> GroupEvent:
        self.ts += 1
        event = GroupEvent(
            type=event_type,
            object=obj,
            group_id=self.group_id,
            event_id=uuid.uuid4().hex,
        )
        self.history.append((self.ts, event))
        self.total_events_pushed += 1

        for waiter in self.waiters:
            waiter.set()
        return event

    def events_after(self, ts: int) -> list[GroupEvent]:
        return [event for event_ts, event in self.history if event_ts > ts]

    def _oldest_reachable_ts(self) -> int:
        if len(self.history) < (self.history.maxlen or 0):
            return self.lost_before
        # The buffer is full: anything before its first entry may be gone.
        return self.history[0][0] - 1

    def check(self, key: str, ts: str) -> PollResponse | None:
        """
        Validates a poll request. Returns a failure answer, or None when the
        request may wait for events.
        """
        if key != self.key:
            return PollResponse(failed=2)
        try:
            cursor = int(ts)
        except ValueError:
            return PollResponse(failed=1, ts=str(self.ts))
        if cursor < self.lost_before:
            return PollResponse(failed=3)
        if cursor < self._oldest_reachable_ts() or cursor > self.ts:
            return PollResponse(failed=1, ts=str(self.ts))
        return None

    async def wait_for_events(self, ts: int, timeout_s: float) -> PollResponse:
        updates = self.events_after(ts)
        if not updates and timeout_s > 0:
            waiter = asyncio.Event()
            self.waiters.add(waiter)
            try:
                await asyncio.wait_for(waiter.wait(), timeout=timeout_s)
            except asyncio.TimeoutError:
                pass
            finally:
                self.waiters.discard(waiter)
            updates = self.events_after(ts)
        return PollResponse(ts=str(self.ts), updates=updates)

    def record_poll(self, held_ms: float) -> None:
        self.completed_long_polls += 1
        self.longest_hold_ms = max(self.longest_hold_ms, held_ms)

    def get_stats(self) -> dict:
        return {
            "group_id": self.group_id,
            "ts": str(self.ts),
            "pending_long_polls": len(self.waiters),
            "history": len(self.history),
            "total_events_pushed": self.total_events_pushed,
            "completed_long_polls": self.completed_long_polls,
            "longest_hold_ms": round(self.longest_hold_ms, 2),
            "uptime_s": (datetime.now(timezone.utc) - self.startup_time).total_seconds(),
        }
