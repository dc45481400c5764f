"""
CLI entrypoint for longpoll-bot.
"""
import asyncio
import signal
import sys
from typing import Optional

import httpx
import typer
from loguru import logger

from longpoll_bot.client.api import VkApi
from longpoll_bot.client.longpoll import Longpoll
from longpoll_bot.client.visualizer import Visualizer
from longpoll_bot.shared.config import settings
from longpoll_bot.shared.errors import LongpollError
from longpoll_bot.shared.events import LongpollContext
from longpoll_bot.shared.models import GroupEvent

app = typer.Typer(help="Bots Long Poll client and development server")

def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())

def log_event(ctx: LongpollContext, event: GroupEvent) -> None:
    logger.info(f"group_id={ctx.group_id} ts={ctx.ts} event={event.type} object={event.object}")

async def listen_async(group_id: int | None, wait: int, dashboard: bool) -> None:
    async with VkApi(settings.VK_TOKEN) as api:
        if group_id is None:
            lp = await Longpoll.for_community(api, wait=wait)
        else:
            lp = await Longpoll.create(api, group_id, wait=wait)

        async with lp:
            # stop() only raises a flag, so it is safe to call from the signal handler.
            loop = asyncio.get_running_loop()
            try:
                loop.add_signal_handler(signal.SIGINT, lp.stop)
                loop.add_signal_handler(signal.SIGTERM, lp.stop)
            except NotImplementedError:
                pass

            if dashboard:
                await Visualizer(lp).run()
            else:
                lp.router.add(log_event)
                await lp.start()

@app.command()
def listen(
    group_id: Optional[int] = typer.Option(settings.GROUP_ID, help="Group to listen to; resolved from the token if omitted"),
    wait: int = typer.Option(settings.LONGPOLL_WAIT_S, help="Seconds the server may hold each poll"),
    dashboard: bool = typer.Option(False, "--dashboard/--plain", help="Show the rich live dashboard"),
):
    """Run the long poll loop until interrupted or until it fails."""
    configure_logging(settings.LOG_LEVEL)
    if not settings.VK_TOKEN:
        typer.echo("VK_TOKEN is not set.")
        raise typer.Exit(2)
    try:
        asyncio.run(listen_async(group_id, wait, dashboard))
    except LongpollError as e:
        typer.echo(f"Long poll stopped: {e}")
        raise typer.Exit(1)

@app.command()
def server(port: int = typer.Option(settings.PORT, help="Port to listen on")):
    """Start the development long poll server using Uvicorn."""
    import uvicorn
    configure_logging(settings.LOG_LEVEL)
    typer.echo(f"Starting development server on port {port}...")
    typer.echo(f"Point API_BASE_URL at http://127.0.0.1:{port}/method to use it.")
    uvicorn.run(
        "longpoll_bot.server.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
    )

@app.command()
def push(
    event_type: str = typer.Argument("message_new", help="Update type"),
    text: str = typer.Option("hello", help="Message text placed in object.message.text"),
    port: int = typer.Option(settings.PORT),
):
    """Push one update into a running development server."""
    resp = httpx.post(
        f"http://127.0.0.1:{port}/debug/events",
        json={"type": event_type, "object": {"message": {"text": text}}},
    )
    resp.raise_for_status()
    typer.echo(resp.json())

if __name__ == "__main__":
    app()
