"""
MODULE OVERVIEW:
Ownership of the (server, key, ts) session and the policy that keeps it alive.

WHAT IS HAPPENING HERE:
Every poll answer carries an optional `failed` code. Codes 0 and 1 already
contain a trustworthy cursor, so the session simply moves to it. Codes 2 and 3
mean the server side session is gone: a new bootstrap call replaces server and
key, and only code 3 also throws the cursor away. Anything else is fatal.

`classify` is pure; `apply` is the only place the session is mutated after
construction, and it never mutates on a fatal code.
"""
import enum
from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from longpoll_bot.shared.errors import UnknownFailureCode, UpstreamError
from longpoll_bot.shared.models import LongPollServer, PollResponse


class Action(enum.Enum):
    ADVANCE_CURSOR = "advance_cursor"
    REFRESH_CURSOR_ONLY = "refresh_cursor_only"
    REFRESH_FULL_SESSION = "refresh_full_session"
    FATAL = "fatal"


class LongPollServerSource(Protocol):
    async def groups_get_long_poll_server(self, group_id: int) -> LongPollServer: ...


@dataclass
class Session:
    server: str = ""
    key: str = ""
    ts: str = ""
    wait: int = 25


class SessionManager:
    def __init__(self, api: LongPollServerSource, group_id: int, wait: int = 25):
        self.api = api
        self.group_id = group_id
        self.session = Session(wait=wait)

    async def bootstrap(self, reset_cursor: bool) -> None:
        """
        Fetches a fresh server and key. The cursor is only replaced when
        `reset_cursor` is set; otherwise the caller's position is kept.
        """
        try:
            server = await self.api.groups_get_long_poll_server(self.group_id)
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"bootstrap failed: {e}") from e

        self.session.server = server.server
        self.session.key = server.key
        if reset_cursor:
            self.session.ts = server.ts
        logger.info(
            f"group_id={self.group_id} event=bootstrap server={server.server} "
            f"reset_cursor={reset_cursor} ts={self.session.ts}"
        )

    @staticmethod
    def classify(failed: int | None) -> Action:
        if failed is None or failed in (0, 1):
            return Action.ADVANCE_CURSOR
        if failed in (2, 3):
            return Action.REFRESH_FULL_SESSION
        return Action.FATAL

    async def apply(self, response: PollResponse) -> Action:
        action = self.classify(response.failed)

        if action is Action.FATAL:
            raise UnknownFailureCode(response.failed)

        if action is Action.ADVANCE_CURSOR:
            if response.ts is None:
                raise UpstreamError(f"poll answer with failed={response.failed} carried no ts")
            self.session.ts = response.ts
        elif action is Action.REFRESH_FULL_SESSION:
            reset_cursor = response.failed == 3
            logger.warning(
                f"group_id={self.group_id} event=refresh failed={response.failed} "
                f"reset_cursor={reset_cursor}"
            )
            await self.bootstrap(reset_cursor)

        return action

    def poll_params(self) -> dict[str, str | int]:
        return {
            "act": "a_check",
            "key": self.session.key,
            "ts": self.session.ts,
            "wait": self.session.wait,
        }
