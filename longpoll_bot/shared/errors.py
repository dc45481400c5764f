"""Exceptions raised by the long poll client."""
from typing import Any


class LongpollError(Exception):
    """Base class for everything that terminates the poll loop."""


class UpstreamError(LongpollError):
    """A bootstrap or poll call failed: transport, HTTP status or undecodable body."""


class ApiError(UpstreamError):
    """The API answered with an error object instead of a response."""

    def __init__(self, code: int, message: str, method: str | None = None):
        self.code = code
        self.message = message
        self.method = method
        where = f" in {method}" if method else ""
        super().__init__(f"api error {code}{where}: {message}")


class UnknownFailureCode(LongpollError):
    def __init__(self, code: int):
        self.code = code
        super().__init__(f"long poll failed with unknown code {code}")


class DispatchError(LongpollError):
    """
    A handler raised while processing an update, or a full response observer
    raised. `event` is the update, or the whole response for observers.
    """

    def __init__(self, event: Any, reason: str):
        self.event = event
        super().__init__(reason)
