"""
MODULE OVERVIEW:
Accounting of long poll requests held by the development server.

WHAT IS HAPPENING HERE:
Every request to the long poll endpoint is timed from arrival to answer. The
time is the hold duration the client experienced, and it is recorded on the
server state so `/debug/stats` can show how many polls completed and the
longest hold so far. Other requests are only logged.
"""

import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from loguru import logger

class PollAccountingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        held_ms = (time.perf_counter() - started) * 1000

        if request.url.path.startswith("/longpoll/") and response.status_code == 200:
            request.app.state.longpoll.record_poll(held_ms)
        else:
            logger.debug(f"{request.method} {request.url.path} status={response.status_code} took={held_ms:.2f}ms")

        return response
