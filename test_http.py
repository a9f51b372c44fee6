# test_http.py
import asyncio

import httpx
import pytest

from scanorder.errors import ClientError, ErrorKind
from scanorder.http import ApiClient
from scanorder.storage import CookieJar


def client(settings, session_factory, handler):
    return ApiClient(settings, CookieJar(session_factory), httpx.MockTransport(handler))


def call(api, *args, **kw):
    async def go():
        try:
            return await api.get(*args, **kw)
        finally:
            await api.aclose()
    return asyncio.run(go())


@pytest.mark.parametrize("status,kind", [
    (401, ErrorKind.AUTH),
    (403, ErrorKind.AUTH),
    (404, ErrorKind.VALIDATION),
    (422, ErrorKind.VALIDATION),
    (500, ErrorKind.SERVER),
    (503, ErrorKind.SERVER),
])
def test_status_maps_to_kind(settings, session_factory, status, kind):
    api = client(settings, session_factory, lambda req: httpx.Response(status, json={"detail": "nope"}))
    with pytest.raises(ClientError) as ei:
        call(api, "/api/x")
    assert ei.value.kind is kind
    assert ei.value.status == status
    assert ei.value.message == "nope"


def test_transport_failure_is_network(settings, session_factory):
    def boom(req):
        raise httpx.ConnectError("refused", request=req)

    with pytest.raises(ClientError) as ei:
        call(client(settings, session_factory, boom), "/api/x")
    assert ei.value.kind is ErrorKind.NETWORK
    assert ei.value.kind.retryable


def test_non_json_success_is_malformed(settings, session_factory):
    api = client(settings, session_factory, lambda req: httpx.Response(200, text="<html>"))
    with pytest.raises(ClientError) as ei:
        call(api, "/api/x")
    assert ei.value.kind is ErrorKind.MALFORMED


def test_headers_and_cookies(settings, session_factory):
    seen = {}

    def handler(req):
        seen.update(req.headers)
        return httpx.Response(200, json={"ok": True}, headers={"set-cookie": "sid=abc; Path=/"})

    jar = CookieJar(session_factory)
    jar.set("auth_token", "t0")
    api = ApiClient(settings, jar, httpx.MockTransport(handler))
    assert call(api, "/api/x", token="t1") == {"ok": True}

    assert seen["authorization"] == "Bearer t1"
    assert seen["x-request-id"]
    assert "auth_token=t0" in seen["cookie"]
    assert jar.get("sid") == "abc"


def test_expired_cookie_is_not_sent(session_factory):
    jar = CookieJar(session_factory)
    jar.set("old", "v", max_age=-1)
    jar.set("new", "w")
    assert jar.get("old") is None
    assert jar.header() == "new=w"


def test_server_cookies_live_only_in_the_jar(settings, session_factory):
    sent = []

    def handler(req):
        sent.append(req.headers.get("cookie"))
        return httpx.Response(200, json={}, headers={"set-cookie": "access_token=abc; Path=/"})

    jar = CookieJar(session_factory)
    api = ApiClient(settings, jar, httpx.MockTransport(handler))

    async def go():
        try:
            await api.get("/api/x")
            jar.expire("access_token")
            await api.get("/api/x")
        finally:
            await api.aclose()

    asyncio.run(go())
    assert sent == [None, None]


def test_zero_default_max_age_is_respected(session_factory):
    jar = CookieJar(session_factory, default_max_age=0)
    assert jar.default_max_age == 0
    jar.set("short", "lived")
    assert jar.get("short") is None
