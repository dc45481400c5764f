"""The client against the development server, mounted in-process."""
import asyncio

import httpx
import pytest

from longpoll_bot.client.api import VkApi
from longpoll_bot.client.longpoll import Longpoll
from longpoll_bot.server.main import create_app
from longpoll_bot.server.state import LongPollState
from longpoll_bot.shared.errors import ApiError

GROUP_ID = 5


def stack(history_size=200, token="dev-token"):
    app = create_app(GROUP_ID, history_size=history_size, demo_interval_s=0)
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    api = VkApi(token, base_url="http://testserver/method", client=http)
    return app.state.longpoll, http, api


def run_until(lp: Longpoll, predicate):
    observed = []

    def observer(resp):
        observed.append(resp)
        if predicate(resp):
            lp.stop()

    lp.full_response(observer)
    return observed


def test_events_flow_to_handlers():
    async def scenario():
        state, http, api = stack()
        lp = await Longpoll.create(api, GROUP_ID, wait=1, client=http)
        state.push_event("message_new", {"message": {"text": "one"}})
        state.push_event("message_new", {"message": {"text": "two"}})
        texts = []
        lp.router.add(lambda ctx, ev: texts.append(ev.object["message"]["text"]), "message_new")
        run_until(lp, lambda resp: bool(resp.updates))
        await lp.start()
        await http.aclose()
        return lp, texts

    lp, texts = asyncio.run(scenario())
    assert texts == ["one", "two"]
    assert lp.session.ts == "3"
    assert lp.session.server == f"http://testserver/longpoll/{GROUP_ID}"


def test_community_lookup_against_server():
    async def scenario():
        state, http, api = stack()
        lp = await Longpoll.for_community(api, wait=1, client=http)
        await http.aclose()
        return lp

    assert asyncio.run(scenario()).group_id == GROUP_ID


def test_expired_key_is_recovered_without_losing_events():
    async def scenario():
        state, http, api = stack()
        lp = await Longpoll.create(api, GROUP_ID, wait=1, client=http)
        old_key = lp.session.key
        state.expire_key()
        state.push_event("message_new", {"message": {"text": "after expiry"}})
        handled = []
        lp.router.add(lambda ctx, ev: handled.append(ev.object["message"]["text"]))
        observed = run_until(lp, lambda resp: bool(resp.updates))
        await lp.start()
        await http.aclose()
        return lp, old_key, handled, observed

    lp, old_key, handled, observed = asyncio.run(scenario())
    assert [resp.failed for resp in observed] == [2, None]
    assert lp.session.key != old_key
    assert handled == ["after expiry"]
    assert lp.session_refreshes == 1


def test_lost_history_resets_cursor():
    async def scenario():
        state, http, api = stack()
        lp = await Longpoll.create(api, GROUP_ID, wait=1, client=http)
        state.push_event("message_new", {})
        state.lose_history()
        state.push_event("message_new", {})
        handled = []
        lp.router.add(lambda ctx, ev: handled.append(ev))
        observed = run_until(lp, lambda resp: True)
        await lp.start()
        await http.aclose()
        return lp, state, handled, observed

    lp, state, handled, observed = asyncio.run(scenario())
    assert observed[0].failed == 3
    assert lp.session.ts == str(state.ts)
    assert handled == []


def test_outdated_cursor_is_corrected():
    async def scenario():
        state, http, api = stack(history_size=2)
        lp = await Longpoll.create(api, GROUP_ID, wait=1, client=http)
        for n in range(3):
            state.push_event("message_new", {"n": n})
        observed = run_until(lp, lambda resp: True)
        await lp.start()
        await http.aclose()
        return lp, observed

    lp, observed = asyncio.run(scenario())
    assert observed[0].failed == 1
    assert lp.session.ts == "4"


def test_quiet_poll_returns_after_wait():
    async def scenario():
        state, http, api = stack()
        lp = await Longpoll.create(api, GROUP_ID, wait=0, client=http)
        observed = run_until(lp, lambda resp: True)
        await lp.start()
        await http.aclose()
        return lp, observed

    lp, observed = asyncio.run(scenario())
    assert observed[0].updates == []
    assert lp.session.ts == "1"


def test_missing_token_is_rejected():
    async def scenario():
        state, http, api = stack(token="")
        try:
            await Longpoll.create(api, GROUP_ID, client=http)
        finally:
            await http.aclose()

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.code == 5


def test_debug_routes_drive_the_server():
    async def scenario():
        state, http, api = stack()
        pushed = (await http.post("/debug/events", json={"type": "wall_post_new", "object": {"id": 1}})).json()
        await http.post("/debug/expire-key")
        lost = (await http.post("/debug/lose-history")).json()
        stats = (await http.get("/debug/stats")).json()
        await http.aclose()
        return pushed, lost, stats

    pushed, lost, stats = asyncio.run(scenario())
    assert pushed["ts"] == "2"
    assert lost == {"ts": "3"}
    assert stats["total_events_pushed"] == 1
    assert stats["history"] == 0


def test_completed_polls_are_accounted_in_stats():
    async def scenario():
        state, http, api = stack()
        lp = await Longpoll.create(api, GROUP_ID, wait=0, client=http)
        run_until(lp, lambda resp: True)
        await lp.start()
        stats = (await http.get("/debug/stats")).json()
        await http.aclose()
        return stats

    stats = asyncio.run(scenario())
    assert stats["completed_long_polls"] == 1
    assert stats["longest_hold_ms"] >= 0


@pytest.mark.parametrize("history_size", [0, -3])
def test_history_size_below_one_is_rejected(history_size):
    with pytest.raises(ValueError):
        LongPollState(GROUP_ID, history_size=history_size)
    with pytest.raises(ValueError):
        create_app(GROUP_ID, history_size=history_size, demo_interval_s=0)
