"""Persisted client state: the key/value "local storage" and the cookie jar.

Both live in the state database so a guest keeps its cart, device id and
tokens across runs.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import httpx
from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker

from scanorder.config import settings
from scanorder.models.core import StoredCookie, StoredValue

logger = logging.getLogger(__name__)


class LocalStorage:
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def get_item(self, key: str) -> str | None:
        with self._sessions() as db:
            row = db.get(StoredValue, key)
            return row.value if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._sessions() as db:
            row = db.get(StoredValue, key)
            if row:
                row.value = value
            else:
                db.add(StoredValue(key=key, value=value))
            db.commit()

    def remove_item(self, key: str) -> None:
        with self._sessions() as db:
            db.execute(delete(StoredValue).where(StoredValue.key == key))
            db.commit()

    def remove_items(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        with self._sessions() as db:
            db.execute(delete(StoredValue).where(StoredValue.key.in_(keys)))
            db.commit()

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("discarding unreadable %r entry in local storage", key)
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, default=str))

    def keys(self) -> list[str]:
        with self._sessions() as db:
            return list(db.scalars(select(StoredValue.key)))

    def clear(self) -> None:
        with self._sessions() as db:
            db.execute(delete(StoredValue))
            db.commit()


def _aware(dt: datetime | None) -> datetime | None:
    # sqlite hands back naive datetimes
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class CookieJar:
    def __init__(self, session_factory: sessionmaker, default_max_age: int | None = None):
        self._sessions = session_factory
        self.default_max_age = settings.COOKIE_MAX_AGE if default_max_age is None else default_max_age

    @staticmethod
    def _live(c: StoredCookie, now: datetime) -> bool:
        exp = _aware(c.expires_at)
        return exp is None or exp > now

    def get(self, name: str) -> str | None:
        with self._sessions() as db:
            c = db.get(StoredCookie, name)
            if not c or not self._live(c, datetime.now(timezone.utc)):
                return None
            return c.value or None

    def set(self, name: str, value: str, *, path: str = "/", max_age: int | None = None,
            same_site: str = "Lax") -> None:
        max_age = self.default_max_age if max_age is None else max_age
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=max_age)
        with self._sessions() as db:
            c = db.get(StoredCookie, name)
            if not c:
                c = StoredCookie(name=name)
                db.add(c)
            c.value = value
            c.path = path
            c.max_age = max_age
            c.same_site = same_site
            c.expires_at = expires_at
            db.commit()

    def expire(self, *names: str) -> None:
        with self._sessions() as db:
            db.execute(delete(StoredCookie).where(StoredCookie.name.in_(names)))
            db.commit()

    def items(self) -> dict[str, str]:
        now = datetime.now(timezone.utc)
        with self._sessions() as db:
            rows = db.scalars(select(StoredCookie)).all()
            return {c.name: c.value for c in rows if self._live(c, now) and c.value}

    def header(self) -> str | None:
        pairs = self.items()
        if not pairs:
            return None
        return "; ".join(f"{k}={v}" for k, v in pairs.items())

    def store_response(self, response: httpx.Response) -> None:
        """Keep what the server set; an empty value clears the cookie."""
        for name, value in response.cookies.items():
            if value:
                self.set(name, value)
            else:
                self.expire(name)
