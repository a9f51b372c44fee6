import logging
import uuid
from typing import Any

import httpx

from scanorder.config import Settings
from scanorder.errors import ClientError, ErrorKind, message_from_body
from scanorder.storage import CookieJar

logger = logging.getLogger(__name__)


class ApiClient:
    """Single HTTP boundary of the client.

    Every failure leaving this class is a ClientError whose kind comes from
    the transport or the status code.
    """

    def __init__(self, settings: Settings, cookies: CookieJar, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.cookies = cookies
        self._client = httpx.AsyncClient(
            base_url=settings.API_BASE_URL.rstrip("/"),
            timeout=settings.REQUEST_TIMEOUT,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, token: str | None, json_body: bool) -> dict[str, str]:
        headers = {"X-Request-ID": str(uuid.uuid4())}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if json_body:
            headers["Content-Type"] = "application/json"
        cookie = self.cookies.header()
        if cookie:
            headers["Cookie"] = cookie
        return headers

    async def request(self, method: str, path: str, *, token: str | None = None,
                      json: Any = None, params: dict | None = None) -> Any:
        headers = self._headers(token, json is not None)
        req_id = headers["X-Request-ID"]
        try:
            r = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TransportError as e:
            logger.warning("%s %s failed [%s]: %s", method, path, req_id, e)
            raise ClientError(ErrorKind.NETWORK, f"Network error: {e}") from e

        logger.debug("%s %s -> %s [%s]", method, path, r.status_code, req_id)
        self.cookies.store_response(r)
        # the persisted jar is the only cookie store; purged tokens must not come back
        self._client.cookies.clear()

        data = None
        if r.content:
            try:
                data = r.json()
            except ValueError:
                data = None
                if r.is_success:
                    raise ClientError(ErrorKind.MALFORMED, f"Unreadable response from {path}", r.status_code)

        if not r.is_success:
            kind = ErrorKind.for_status(r.status_code)
            msg = message_from_body(data, f"{method} {path} failed with status {r.status_code}")
            logger.info("%s %s -> %s (%s) [%s]", method, path, r.status_code, kind.value, req_id)
            raise ClientError(kind, msg, r.status_code, data)
        return data

    async def get(self, path: str, **kw) -> Any:
        return await self.request("GET", path, **kw)

    async def post(self, path: str, **kw) -> Any:
        return await self.request("POST", path, **kw)

    async def put(self, path: str, **kw) -> Any:
        return await self.request("PUT", path, **kw)

    async def patch(self, path: str, **kw) -> Any:
        return await self.request("PATCH", path, **kw)
