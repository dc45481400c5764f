"""
MODULE OVERVIEW:
The two API methods a long poll client bootstraps from.

WHAT IS HAPPENING HERE:
Methods accept their parameters either in the query string or as a
form-encoded body, and answer `{"response": ...}` or `{"error": ...}` with a
200 status, the way the real API does.
"""
from urllib.parse import parse_qsl

from fastapi import APIRouter, Request

router = APIRouter()

async def read_params(request: Request) -> dict[str, str]:
    params = dict(request.query_params)
    body = (await request.body()).decode("utf-8")
    if body:
        params.update(parse_qsl(body, keep_blank_values=True))
    return params

def api_error(code: int, message: str) -> dict:
    return {"error": {"error_code": code, "error_msg": message}}

@router.api_route("/method/groups.getLongPollServer", methods=["GET", "POST"])
async def get_long_poll_server(request: Request):
    state = request.app.state.longpoll
    params = await read_params(request)
    if not params.get("access_token"):
        return api_error(5, "User authorization failed: no access_token passed.")
    if params.get("group_id") != str(state.group_id):
        return api_error(100, "One of the parameters specified was missing or invalid: group_id is invalid")

    server = f"{str(request.base_url).rstrip('/')}/longpoll/{state.group_id}"
    return {"response": {"server": server, **state.issue()}}

@router.api_route("/method/groups.getById", methods=["GET", "POST"])
async def get_by_id(request: Request):
    state = request.app.state.longpoll
    params = await read_params(request)
    if not params.get("access_token"):
        return api_error(5, "User authorization failed: no access_token passed.")
    return {"response": {"groups": [
        {"id": state.group_id, "name": "Development community", "screen_name": f"club{state.group_id}"}
    ]}}
