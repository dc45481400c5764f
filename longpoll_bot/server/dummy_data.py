"""
MODULE OVERVIEW:
Background traffic for the development server.

WHAT IS HAPPENING HERE:
When demo traffic is enabled the server pushes a fake `message_new` update at a
fixed interval, so a client can be watched end to end without posting events
by hand.
"""

import asyncio
import random

from longpoll_bot.server.state import LongPollState

GREETINGS = ["hello", "ping", "is anyone there?", "/start", "how do I reset my password?"]

async def message_generator(state: LongPollState, interval_s: float):
    """Pushes a fake incoming message every `interval_s` seconds, forever."""
    message_id = 0
    while True:
        await asyncio.sleep(interval_s)
        message_id += 1
        event = state.push_event("message_new", {
            "message": {
                "id": message_id,
                "from_id": random.randint(1, 10_000),
                "peer_id": random.randint(1, 10_000),
                "text": random.choice(GREETINGS),
            },
            "client_info": {"keyboard": True},
        })
        yield event
