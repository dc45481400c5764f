import asyncio

from longpoll_bot.shared.events import EventRouter, LongpollContext
from longpoll_bot.shared.models import GroupEvent, PollResponse

CTX = LongpollContext(ts="5", group_id=1)


def test_typed_handlers_run_before_catch_all_in_registration_order():
    router = EventRouter()
    calls = []

    @router.on()
    def everything(ctx, event):
        calls.append("any")

    @router.on("message_new")
    def first(ctx, event):
        calls.append("first")

    @router.on("message_new")
    async def second(ctx, event):
        calls.append("second")

    ran = asyncio.run(router.dispatch(CTX, GroupEvent(type="message_new")))

    assert ran == 3
    assert calls == ["first", "second", "any"]


def test_unhandled_event_type_is_ignored():
    router = EventRouter()
    router.add(lambda ctx, event: None, "message_new")
    assert asyncio.run(router.dispatch(CTX, GroupEvent(type="group_join"))) == 0


def test_handler_receives_context_cursor():
    router = EventRouter()
    seen = []
    router.add(lambda ctx, event: seen.append((ctx.ts, ctx.group_id, event.object["x"])))
    asyncio.run(router.dispatch(CTX, GroupEvent(type="x", object={"x": 1})))
    assert seen == [("5", 1, 1)]


def test_poll_response_decoding():
    resp = PollResponse.model_validate({
        "ts": 31,
        "updates": [{"type": "message_new", "object": {"message": {}}, "group_id": 1, "event_id": "e", "v": "5.199", "extra": 1}],
    })
    assert resp.ts == "31"
    assert resp.failed is None
    assert resp.updates[0].type == "message_new"
    assert resp.updates[0].model_extra == {"extra": 1}
    assert PollResponse.model_validate({"failed": 2}).updates == []
