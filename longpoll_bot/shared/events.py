"""
MODULE OVERVIEW:
Routing of long poll updates to user handlers.

WHAT IS HAPPENING HERE:
The router keeps an ordered list of handlers per event type plus catch-all
handlers. The poll loop hands it every update together with a context that
carries the cursor of the batch the update arrived in. Unlike a fire-and-forget
bus, a handler that raises is NOT swallowed: the exception propagates so the
loop can stop.
"""
import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable

from loguru import logger
from .models import GroupEvent

Handler = Callable[["LongpollContext", GroupEvent], Awaitable[None] | None]


@dataclass(frozen=True)
class LongpollContext:
    ts: str | None
    group_id: int


class EventRouter:
    def __init__(self):
        self._handlers: dict[str, list[Handler]] = {}
        self._catch_all: list[Handler] = []

    def on(self, event_type: str | None = None) -> Callable[[Handler], Handler]:
        """
        Decorator registering a handler for one event type, or for every
        event when `event_type` is None.
        """
        def register(func: Handler) -> Handler:
            self.add(func, event_type)
            return func
        return register

    def add(self, func: Handler, event_type: str | None = None) -> None:
        if event_type is None:
            self._catch_all.append(func)
        else:
            self._handlers.setdefault(event_type, []).append(func)

    def handlers_for(self, event_type: str) -> list[Handler]:
        return [*self._handlers.get(event_type, []), *self._catch_all]

    async def dispatch(self, ctx: LongpollContext, event: GroupEvent) -> int:
        """Runs every matching handler in registration order; returns how many ran."""
        handlers = self.handlers_for(event.type)
        if not handlers:
            logger.debug(f"group_id={ctx.group_id} event={event.type} reason=no_handler")
            return 0
        for handler in handlers:
            result = handler(ctx, event)
            if inspect.isawaitable(result):
                await result
        return len(handlers)
