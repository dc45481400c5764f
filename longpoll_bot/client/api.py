"""
MODULE OVERVIEW:
A deliberately tiny API binding: just enough to call the two methods the long
poll loop needs.

WHAT IS HAPPENING HERE:
Every method is a POST to `{base_url}/{method}` carrying the token and API
version. The API reports failures inside a 200 body as `{"error": {...}}`, so
a successful HTTP status is not enough; both layers are checked and turned
into `UpstreamError`/`ApiError`.
"""
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from longpoll_bot.shared.config import settings
from longpoll_bot.shared.errors import ApiError, UpstreamError
from longpoll_bot.shared.models import Group, LongPollServer


class VkApi:
    def __init__(
        self,
        token: str,
        *,
        version: str = settings.API_VERSION,
        base_url: str = settings.API_BASE_URL,
        client: httpx.AsyncClient | None = None,
    ):
        self.token = token
        self.version = version
        self.base_url = base_url.rstrip('/')
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "VkApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def method(self, name: str, params: dict[str, Any] | None = None) -> Any:
        data = {k: v for k, v in (params or {}).items() if v is not None}
        data["access_token"] = self.token
        data["v"] = self.version

        try:
            response = await self.client.post(f"{self.base_url}/{name}", data=data)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:  # ValueError: bad JSON or non UTF-8 body
            logger.warning(f"method={name} event=error reason='{e}'")
            raise UpstreamError(f"{name} failed: {e}") from e

        if not isinstance(body, dict):
            raise UpstreamError(f"{name} returned a non-object body")
        if "error" in body:
            raise self._api_error(name, body["error"])
        if "response" not in body:
            raise UpstreamError(f"{name} returned neither response nor error")
        return body["response"]

    @staticmethod
    def _api_error(name: str, err: Any) -> UpstreamError:
        if not isinstance(err, dict):
            return UpstreamError(f"{name} returned a malformed error: {err!r}")
        try:
            code = int(err.get("error_code", 0))
        except (TypeError, ValueError):
            return UpstreamError(f"{name} returned a malformed error code: {err.get('error_code')!r}")
        return ApiError(code, str(err.get("error_msg", "")), name)

    async def groups_get_long_poll_server(self, group_id: int) -> LongPollServer:
        raw = await self.method("groups.getLongPollServer", {"group_id": group_id})
        try:
            return LongPollServer.model_validate(raw)
        except ValidationError as e:
            raise UpstreamError(f"malformed long poll server: {e}") from e

    async def groups_get_by_id(self, group_id: int | None = None) -> list[Group]:
        raw = await self.method("groups.getById", {"group_id": group_id})
        # Older API versions answer with a bare list, newer ones wrap it.
        if isinstance(raw, dict):
            raw = raw.get("groups", [])
        try:
            return [Group.model_validate(g) for g in raw]
        except (ValidationError, TypeError) as e:
            raise UpstreamError(f"malformed group list: {e}") from e
