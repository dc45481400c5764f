"""
MODULE OVERVIEW:
The long poll endpoint (`act=a_check`).

WHAT IS HAPPENING HERE:
The request is validated first: a stale key or an unusable cursor is answered
at once with the matching `failed` code. Otherwise the request is held open
until an update newer than `ts` arrives or `wait` seconds pass, and the answer
always carries the cursor to use next.
"""
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from loguru import logger

router = APIRouter()

MAX_WAIT_S = 90

@router.get("/longpoll/{group_id}")
async def a_check(
    request: Request,
    group_id: int,
    act: str = Query("a_check"),
    key: str = Query(""),
    ts: str = Query(""),
    wait: int = Query(25, ge=0),
):
    state = request.app.state.longpoll
    if group_id != state.group_id or act != "a_check":
        return JSONResponse({"error": "invalid request"}, status_code=404)

    failure = state.check(key, ts)
    if failure is not None:
        logger.debug(f"group_id={group_id} protocol=long_poll event=failed code={failure.failed}")
        return failure.model_dump(exclude_none=True)

    resp = await state.wait_for_events(int(ts), min(wait, MAX_WAIT_S))
    return resp.model_dump(exclude_none=True)
