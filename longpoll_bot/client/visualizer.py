"""
MODULE OVERVIEW:
The Rich Terminal Dashboard for a running long poll loop.

WHAT IS HAPPENING HERE:
The dashboard plugs into the loop through its public hooks only: a catch-all
router handler records each update and a full response observer records the
cursor movement of every poll. The loop runs as a task while `Live` redraws
the layout; when the task ends (stop or error) the dashboard returns and the
task's exception, if any, is re-raised to the caller.
"""

import asyncio
from collections import deque
from datetime import datetime

from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from longpoll_bot.client.longpoll import Longpoll
from longpoll_bot.shared.events import LongpollContext
from longpoll_bot.shared.models import GroupEvent, PollResponse

FAILED_INFO = {
    None: "batch",
    0: "batch",
    1: "history outdated, cursor corrected",
    2: "key expired, session refreshed",
    3: "history lost, session and cursor refreshed",
}

class Visualizer:
    def __init__(self, longpoll: Longpoll):
        self.longpoll = longpoll
        self.recent_events = deque(maxlen=10)
        self.timeline = deque(maxlen=5)
        self.status = "INITIALIZING"

        longpoll.router.add(self.on_event)
        longpoll.full_response(self.on_response)

    def on_event(self, ctx: LongpollContext, event: GroupEvent):
        ts = datetime.now().strftime("%H:%M:%S")
        payload = str(event.object)
        payload_str = payload[:40] + "..." if len(payload) > 40 else payload
        self.recent_events.appendleft((ts, event.type, payload_str, str(ctx.ts)))

    def on_response(self, resp: PollResponse):
        self.status = "ACTIVE (data)" if resp.updates else "ACTIVE (timeout)"
        if resp.failed:
            ts = datetime.now().strftime("%H:%M:%S")
            self.timeline.appendleft(f"[{ts}] failed={resp.failed}: {FAILED_INFO.get(resp.failed, 'unknown')}")

    def generate_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["right"].split_column(
            Layout(name="stats"),
            Layout(name="timeline"),
        )

        color = "green" if "ACTIVE" in self.status else "yellow" if "INITIALIZING" in self.status else "red"
        layout["header"].update(Panel(
            f"[{color} bold]Group: {self.longpoll.group_id} | Status: {self.status}[/]", style=color
        ))

        table = Table(title="Live Event Feed", expand=True)
        table.add_column("Time", justify="left", style="cyan", no_wrap=True)
        table.add_column("Type", style="magenta")
        table.add_column("Object", style="green")
        table.add_column("ts", style="blue")
        for e in self.recent_events:
            table.add_row(*e)
        layout["left"].update(Panel(table, title="Feed"))

        session = self.longpoll.session
        stats_text = (
            f"Polls: {self.longpoll.polls}\n"
            f"Events Dispatched: {self.longpoll.events_dispatched}\n"
            f"Session Refreshes: {self.longpoll.session_refreshes}\n"
            f"Cursor: {session.ts}\n"
            f"Server: {session.server}"
        )
        layout["stats"].update(Panel(stats_text, title="Session"))
        layout["timeline"].update(Panel("\n".join(self.timeline), title="Recoveries"))
        return layout

    async def run(self) -> None:
        task = asyncio.create_task(self.longpoll.start())
        try:
            with Live(self.generate_layout(), refresh_per_second=4) as live:
                while not task.done():
                    live.update(self.generate_layout())
                    await asyncio.sleep(0.25)
                if task.cancelled():
                    self.status = "CANCELLED"
                else:
                    self.status = "STOPPED" if task.exception() is None else "FAILED"
                live.update(self.generate_layout())
        finally:
            if not task.done():
                self.longpoll.stop()
                await task
        await task
