from datetime import datetime

from sqlalchemy import String, Text, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from scanorder.db import Base
from scanorder.models.common import TSMixin


# ── Local storage ───────────────────────────────────────────────────────────
class StoredValue(Base, TSMixin):
    __tablename__ = "local_storage"
    key: Mapped[str] = mapped_column(String(120), primary_key=True)
    value: Mapped[str] = mapped_column(Text)


# ── Cookies ─────────────────────────────────────────────────────────────────
class StoredCookie(Base, TSMixin):
    __tablename__ = "cookie"
    name: Mapped[str] = mapped_column(String(120), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    path: Mapped[str] = mapped_column(String(200), default="/")
    max_age: Mapped[int | None] = mapped_column(Integer)
    same_site: Mapped[str] = mapped_column(String(10), default="Lax")
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))  # None = session cookie
