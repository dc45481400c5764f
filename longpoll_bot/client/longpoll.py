"""
MODULE OVERVIEW:
The long poll loop.

WHAT IS HAPPENING HERE:
One iteration is: hold a GET open against the session's server for up to
`wait` seconds, let the SessionManager react to the `failed` code, hand every
update to the router, then give the whole answer to the full response
observers. Nothing runs in parallel; a slow handler or observer simply delays
the next poll.

Shutdown is cooperative. `stop()` only sets a flag that is checked between
iterations, so a request that is already in flight finishes (bounded by
`wait`) and its updates are still dispatched before `start()` returns.
The flag is a `threading.Event` so `stop()` may come from a signal handler
thread as well as from inside a handler on the loop itself.
"""
import inspect
import threading
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger
from pydantic import ValidationError

from longpoll_bot.client.session import Action, LongPollServerSource, SessionManager
from longpoll_bot.shared.config import settings
from longpoll_bot.shared.errors import DispatchError, LongpollError, UpstreamError
from longpoll_bot.shared.events import EventRouter, LongpollContext
from longpoll_bot.shared.models import PollResponse

FullResponseObserver = Callable[[PollResponse], Awaitable[None] | None]


class Longpoll:
    def __init__(
        self,
        api: LongPollServerSource,
        group_id: int,
        *,
        wait: int = settings.LONGPOLL_WAIT_S,
        router: EventRouter | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.sessions = SessionManager(api, group_id, wait=wait)
        self.router = router or EventRouter()

        # The read timeout must outlive the server side wait or every quiet
        # poll would end in a client timeout.
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=wait + settings.HTTP_TIMEOUT_MARGIN_S)
        )

        self._full_response_observers: list[FullResponseObserver] = []
        self._in_shutdown = threading.Event()
        self._running = False

        self.polls = 0
        self.events_dispatched = 0
        self.session_refreshes = 0

    @classmethod
    async def create(cls, api: LongPollServerSource, group_id: int, **kwargs: Any) -> "Longpoll":
        """Builds a loop for an explicit group and performs the initial bootstrap."""
        lp = cls(api, group_id, **kwargs)
        try:
            await lp.sessions.bootstrap(reset_cursor=True)
        except LongpollError:
            await lp.aclose()
            raise
        return lp

    @classmethod
    async def for_community(cls, api: Any, **kwargs: Any) -> "Longpoll":
        """
        Builds a loop for the community that owns the API token. The group id
        is resolved with groups.getById before bootstrapping.
        """
        groups = await api.groups_get_by_id()
        if not groups:
            raise UpstreamError("groups.getById returned no group for this token")
        return await cls.create(api, groups[0].id, **kwargs)

    @property
    def session(self):
        return self.sessions.session

    @property
    def group_id(self) -> int:
        return self.sessions.group_id

    @property
    def running(self) -> bool:
        return self._running

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "Longpoll":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def full_response(self, f: FullResponseObserver) -> FullResponseObserver:
        """
        Registers an observer called once per poll with the decoded answer.
        Register before `start()`; the list is not guarded against mutation
        while the loop is iterating it.
        """
        self._full_response_observers.append(f)
        return f

    async def _poll(self) -> PollResponse:
        try:
            response = await self.client.get(self.session.server, params=self.sessions.poll_params())
            response.raise_for_status()
            return PollResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:  # ValueError: bad JSON or non UTF-8 body
            raise UpstreamError(f"long poll request failed: {e}") from e

    async def check(self) -> PollResponse:
        """One round trip: poll, then let the session react to the answer."""
        resp = await self._poll()
        self.polls += 1
        logger.debug(
            f"group_id={self.group_id} event=poll ts={resp.ts} "
            f"updates={len(resp.updates)} failed={resp.failed}"
        )
        action = await self.sessions.apply(resp)
        if action is Action.REFRESH_FULL_SESSION:
            self.session_refreshes += 1
        return resp

    async def _dispatch(self, resp: PollResponse) -> None:
        ctx = LongpollContext(ts=resp.ts, group_id=self.group_id)
        for event in resp.updates:
            try:
                await self.router.dispatch(ctx, event)
            except Exception as e:
                raise DispatchError(event, f"handler for {event.type} failed: {e}") from e
            self.events_dispatched += 1

        for f in self._full_response_observers:
            try:
                result = f(resp)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                raise DispatchError(resp, f"full response observer failed: {e}") from e

    async def start(self) -> None:
        """
        Runs until `stop()` is observed or an unrecoverable error is raised
        (UpstreamError, UnknownFailureCode, DispatchError). There is no retry:
        the caller decides whether to call `start()` again.
        """
        if self._running:
            raise RuntimeError("long poll loop is already running")

        self._in_shutdown.clear()
        self._running = True
        logger.info(f"group_id={self.group_id} event=start ts={self.session.ts} wait={self.session.wait}")
        try:
            while not self._in_shutdown.is_set():
                resp = await self.check()
                await self._dispatch(resp)
        except LongpollError as e:
            logger.error(f"group_id={self.group_id} event=failed reason='{e}'")
            raise
        finally:
            self._running = False

        logger.info(f"group_id={self.group_id} event=stopped ts={self.session.ts}")

    def stop(self) -> None:
        """Asks the loop to exit after the current iteration. Never blocks."""
        self._in_shutdown.set()
