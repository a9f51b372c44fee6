import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from scanorder.config import Settings
from scanorder.errors import ClientError, ErrorKind
from scanorder.http import ApiClient
from scanorder.schemas.common import AuthOut, GuestTokenIn, GuestTokenOut, LoginIn, MeOut, RegisterIn
from scanorder.storage import CookieJar, LocalStorage
from scanorder.stores.table import TableStore

logger = logging.getLogger(__name__)

TOKEN_KEYS = ("auth_token", "access_token")
DEVICE_KEY = "device_id"


@dataclass
class AuthState:
    token: str | None = None
    user: dict[str, Any] | None = None
    is_guest: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token or self.user)

    def reset(self) -> None:
        self.token = None
        self.user = None
        self.is_guest = False


def device_id(storage: LocalStorage) -> str:
    did = storage.get_item(DEVICE_KEY)
    if not did:
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
        did = f"device_{int(time.time() * 1000)}_{suffix}"
        storage.set_item(DEVICE_KEY, did)
    return did


class AuthService:
    def __init__(self, api: ApiClient, storage: LocalStorage, cookies: CookieJar,
                 state: AuthState, table: TableStore, settings: Settings):
        self.api = api
        self.storage = storage
        self.cookies = cookies
        self.state = state
        self.table = table
        self.settings = settings

    @property
    def url(self) -> str:
        return self.settings.auth_url

    def remember_token(self, token: str, *, guest: bool = False) -> None:
        self.state.token = token
        self.state.is_guest = guest
        self.storage.set_item("auth_token", token)
        self.cookies.set("auth_token", token, path="/", max_age=self.settings.COOKIE_MAX_AGE, same_site="Lax")

    def stored_token(self) -> str | None:
        return self.state.token or self.storage.get_item("auth_token")

    async def me(self) -> MeOut:
        data = await self.api.get(f"{self.url}/me", token=self.stored_token())
        try:
            return MeOut.model_validate(data or {})
        except ValidationError as e:
            raise ClientError(ErrorKind.MALFORMED, "Unexpected /me response") from e

    async def check_status(self) -> bool:
        """Ask the backend whether the current token or cookies still identify someone."""
        try:
            me = await self.me()
        except ClientError as e:
            logger.info("auth status check failed (%s): %s", e.kind.value, e.message)
            return False
        if me.success and me.user:
            self.state.user = me.user
            if me.token:
                self.state.token = me.token
            return True
        return False

    async def guest_login(self, table_id: str | None = None) -> str | None:
        table_id = table_id or self.table.resolved_table_id
        body = GuestTokenIn(table_id=table_id, device_id=device_id(self.storage))
        try:
            data = await self.api.post(f"{self.url}/guest-token", json=body.wire(exclude_none=True))
            out = GuestTokenOut.model_validate(data or {})
        except ClientError as e:
            logger.warning("guest token request failed (%s): %s", e.kind.value, e.message)
            return None
        except ValidationError:
            logger.warning("guest token response unreadable")
            return None
        if not out.success or not out.token:
            logger.warning("guest token refused: %s", out.message or "no token")
            return None
        self.remember_token(out.token, guest=True)
        return out.token

    async def login(self, email: str, password: str) -> AuthOut:
        data = await self.api.post(f"{self.url}/login", json=LoginIn(email=email, password=password).wire())
        out = AuthOut.model_validate(data or {})
        if out.token:
            self.remember_token(out.token)
        self.state.user = out.user
        return out

    async def register(self, name: str, email: str, password: str, phone: str | None = None) -> AuthOut:
        body = RegisterIn(name=name, email=email, password=password, phone=phone)
        data = await self.api.post(f"{self.url}/register", json=body.wire(exclude_none=True))
        out = AuthOut.model_validate(data or {})
        if out.token:
            self.remember_token(out.token)
        self.state.user = out.user
        return out

    def purge_tokens(self) -> None:
        self.storage.remove_items(TOKEN_KEYS)
        self.cookies.expire(*TOKEN_KEYS)
        self.state.reset()

    async def logout(self) -> None:
        try:
            await self.api.post(f"{self.url}/logout", json={})
        except ClientError as e:
            # local tokens go regardless
            logger.warning("logout request failed: %s", e.message)
        self.purge_tokens()


class TokenProvider:
    """Best-effort bearer token, tried in a fixed order.

    The first non-empty token wins. A step that fails is logged and the
    next one runs; None means the request goes out without an
    Authorization header and relies on cookies.
    """

    def __init__(self, auth: AuthService):
        self.auth = auth
        self.steps: list[tuple[str, Callable[[], Awaitable[str | None]]]] = [
            ("auth state", self._from_state),
            ("local storage", self._from_storage),
            ("cookie", self._from_cookie),
            ("guest token", self._from_guest),
            ("/me probe", self._from_me),
        ]
        self.last_source: str | None = None

    async def _from_state(self) -> str | None:
        return self.auth.state.token

    async def _from_storage(self) -> str | None:
        return self.auth.storage.get_item("auth_token")

    async def _from_cookie(self) -> str | None:
        return self.auth.cookies.get("auth_token") or self.auth.cookies.get("access_token")

    async def _from_guest(self) -> str | None:
        return await self.auth.guest_login()

    async def _from_me(self) -> str | None:
        me = await self.auth.me()
        return me.token if me.success else None

    async def resolve(self) -> str | None:
        self.last_source = None
        for name, step in self.steps:
            try:
                token = await step()
            except ClientError as e:
                logger.info("token source %s failed (%s): %s", name, e.kind.value, e.message)
                continue
            if token:
                self.last_source = name
                logger.debug("token resolved from %s", name)
                return token
        logger.warning("no token from any source; request will rely on cookies")
        return None
