"""
longpoll-bot: a Bots Long Poll client.

Fetches a server/key/ts triple, holds long-poll requests open against that
server, and feeds every returned update to registered handlers.
"""

from longpoll_bot.client.api import VkApi
from longpoll_bot.client.longpoll import Longpoll
from longpoll_bot.client.session import Action, Session, SessionManager
from longpoll_bot.shared.errors import (
    ApiError,
    DispatchError,
    LongpollError,
    UnknownFailureCode,
    UpstreamError,
)
from longpoll_bot.shared.events import EventRouter, LongpollContext
from longpoll_bot.shared.models import GroupEvent, LongPollServer, PollResponse

__all__ = [
    "Action",
    "ApiError",
    "DispatchError",
    "EventRouter",
    "GroupEvent",
    "LongPollServer",
    "Longpoll",
    "LongpollContext",
    "LongpollError",
    "PollResponse",
    "Session",
    "SessionManager",
    "UnknownFailureCode",
    "UpstreamError",
    "VkApi",
]
