"""
MODULE OVERVIEW:
The FastAPI application factory for the development long poll server.

WHAT IS HAPPENING HERE:
The server emulates just enough of the remote API to run a bot locally:
the bootstrap method, the long poll endpoint and a few debug controls. The
`lifespan` context manager starts the optional demo traffic generator as a
background task and cancels it on shutdown.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from longpoll_bot.server.dummy_data import message_generator
from longpoll_bot.server.middleware import PollAccountingMiddleware
from longpoll_bot.server.routes import api_methods, debug, long_polling
from longpoll_bot.server.state import LongPollState
from longpoll_bot.shared.config import settings

DEFAULT_GROUP_ID = 1

async def generator_runner(generator):
    """Drains a demo generator; each iteration has already pushed its event."""
    try:
        async for event in generator:
            logger.debug(f"Demo event pushed: {event.type} {event.event_id}")
    except asyncio.CancelledError:
        logger.debug("Demo generator cancelled")

def create_app(
    group_id: int | None = None,
    *,
    history_size: int = settings.HISTORY_SIZE,
    demo_interval_s: float = settings.DEMO_EVENT_INTERVAL_S,
) -> FastAPI:
    state = LongPollState(group_id or settings.GROUP_ID or DEFAULT_GROUP_ID, history_size=history_size)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Development long poll server starting for group {state.group_id}...")
        task = None
        if demo_interval_s > 0:
            task = asyncio.create_task(generator_runner(message_generator(state, demo_interval_s)))
            logger.info(f"Demo traffic every {demo_interval_s}s.")

        yield

        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        logger.info("Shutdown complete.")

    app = FastAPI(
        title="longpoll-bot development server",
        description="Local emulation of the Bots Long Poll API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.longpoll = state
    app.add_middleware(PollAccountingMiddleware)

    app.include_router(api_methods.router, tags=["API"])
    app.include_router(long_polling.router, tags=["Long Poll"])
    app.include_router(debug.router, tags=["Debug"])
    return app
