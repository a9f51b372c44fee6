# test_auth_tokens.py
import asyncio

import pytest

from scanorder.errors import ClientError, ErrorKind
from scanorder.services.auth import TOKEN_KEYS

TABLE = "T-1"


def test_guest_login_remembers_token(session, dev):
    session.table.set(TABLE)
    token = asyncio.run(session.auth.guest_login())

    assert token
    assert session.auth_state.token == token
    assert session.auth_state.is_guest
    assert session.storage.get_item("auth_token") == token
    assert session.cookies.get("auth_token") == token
    assert dev.calls("/api/auth/guest-token") == ["POST /api/auth/guest-token"]


def test_guest_login_refused_returns_none(session, dev):
    dev.guest_tokens_enabled = False
    assert asyncio.run(session.auth.guest_login(TABLE)) is None
    assert session.storage.get_item("auth_token") is None


def test_token_sources_in_order(session, dev):
    session.auth.remember_token("from-state")
    assert asyncio.run(session.tokens.resolve()) == "from-state"
    assert session.tokens.last_source == "auth state"

    session.auth_state.reset()
    session.storage.set_item("auth_token", "from-storage")
    assert asyncio.run(session.tokens.resolve()) == "from-storage"
    assert session.tokens.last_source == "local storage"

    session.storage.remove_item("auth_token")
    assert asyncio.run(session.tokens.resolve()) == "from-state"
    assert session.tokens.last_source == "cookie"
    assert dev.requests == []


def test_token_falls_back_to_guest_login(session, dev):
    session.table.set(TABLE)
    token = asyncio.run(session.tokens.resolve())
    assert token
    assert session.tokens.last_source == "guest token"


def test_no_token_anywhere_resolves_none(session, dev):
    dev.guest_tokens_enabled = False
    assert asyncio.run(session.tokens.resolve()) is None
    assert session.tokens.last_source is None
    assert dev.calls("/api/auth/me") == ["GET /api/auth/me"]


def test_register_login_and_cookie_session(session, dev, rng_suffix):
    email = f"ana-{rng_suffix}@example.com"
    out = asyncio.run(session.auth.register("Ana", email, "s3cret!"))
    assert out.success and out.token
    assert out.user["email"] == email
    assert "pass_hash" not in out.user

    out = asyncio.run(session.auth.login(email, "s3cret!"))
    assert session.cookies.get("access_token") == out.token

    # only the server's cookie is left; /me hands the token back
    session.auth_state.reset()
    session.storage.remove_items(TOKEN_KEYS)
    session.cookies.expire("auth_token")
    assert asyncio.run(session.auth.check_status()) is True
    assert session.auth_state.token == out.token
    assert session.auth_state.user["email"] == email


def test_bad_password_is_auth_error(session, dev, rng_suffix):
    asyncio.run(session.auth.register("Bo", f"bo-{rng_suffix}@example.com", "right"))
    with pytest.raises(ClientError) as ei:
        asyncio.run(session.auth.login(f"bo-{rng_suffix}@example.com", "wrong"))
    assert ei.value.kind is ErrorKind.AUTH
    assert ei.value.message == "Invalid credentials"


def test_logout_purges_everything(session, dev):
    session.table.set(TABLE)
    asyncio.run(session.auth.guest_login())
    asyncio.run(session.auth.logout())

    assert not session.auth_state.is_authenticated
    for key in TOKEN_KEYS:
        assert session.storage.get_item(key) is None
        assert session.cookies.get(key) is None


def test_purged_session_is_signed_out(session, dev, rng_suffix):
    asyncio.run(session.auth.register("Cy", f"cy-{rng_suffix}@example.com", "pw"))
    assert asyncio.run(session.auth.check_status()) is True

    session.auth.purge_tokens()
    assert session.cookies.items() == {}
    # nothing left anywhere the backend could recognise us by
    assert asyncio.run(session.auth.check_status()) is False


def test_me_is_the_last_token_source(session, dev, rng_suffix):
    dev.session_cookie = "sid"
    out = asyncio.run(session.auth.register("Di", f"di-{rng_suffix}@example.com", "pw"))
    assert session.cookies.get("sid") == out.token

    # only the server's own session cookie survives
    session.auth_state.reset()
    session.storage.remove_items(TOKEN_KEYS)
    session.cookies.expire(*TOKEN_KEYS)
    dev.guest_tokens_enabled = False

    assert asyncio.run(session.tokens.resolve()) == out.token
    assert session.tokens.last_source == "/me probe"
