import asyncio

import pytest
from typer.testing import CliRunner

from fakes import FakeApi, ScriptedPolls, event, server
from longpoll_bot import runner
from longpoll_bot.client.longpoll import Longpoll
from longpoll_bot.client.visualizer import Visualizer
from longpoll_bot.shared.config import settings


def test_listen_requires_a_token(monkeypatch):
    monkeypatch.setattr(settings, "VK_TOKEN", "")
    result = CliRunner().invoke(runner.app, ["listen"])
    assert result.exit_code == 2
    assert "VK_TOKEN" in result.output


def test_dashboard_tracks_events_and_recoveries():
    polls = ScriptedPolls(
        {"ts": "2", "updates": [event("message_new", text="hi")]},
        {"failed": 2},
    )
    api = FakeApi(server(), server(key="K2"))

    async def scenario():
        lp = await Longpoll.create(api, 42, client=polls.client())
        view = Visualizer(lp)
        lp.full_response(lambda resp: lp.stop() if resp.failed else None)
        await lp.start()
        return lp, view

    lp, view = asyncio.run(scenario())
    assert len(view.recent_events) == 1
    assert view.recent_events[0][1] == "message_new"
    assert "failed=2" in view.timeline[0]
    assert lp.session_refreshes == 1
    assert view.generate_layout() is not None


def test_dashboard_reports_cancelled_loop():
    async def scenario():
        lp = await Longpoll.create(FakeApi(server()), 42, client=ScriptedPolls().client())
        view = Visualizer(lp)

        async def cancelled_start():
            raise asyncio.CancelledError()

        lp.start = cancelled_start
        with pytest.raises(asyncio.CancelledError):
            await view.run()
        return view

    assert asyncio.run(scenario()).status == "CANCELLED"
