"""Control endpoints for driving the development server by hand or from tests."""
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

router = APIRouter(prefix="/debug")

class PushEvent(BaseModel):
    type: str = "message_new"
    object: dict[str, Any] = Field(default_factory=dict)

@router.post("/events")
async def push_event(request: Request, body: PushEvent):
    state = request.app.state.longpoll
    event = state.push_event(body.type, body.object)
    return {"ts": str(state.ts), "event_id": event.event_id}

@router.post("/expire-key")
async def expire_key(request: Request):
    request.app.state.longpoll.expire_key()
    return {"ok": True}

@router.post("/lose-history")
async def lose_history(request: Request):
    ts = request.app.state.longpoll.lose_history()
    return {"ts": str(ts)}

@router.get("/stats")
async def stats(request: Request):
    return request.app.state.longpoll.get_stats()
