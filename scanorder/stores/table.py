import logging
import random
from typing import Mapping

from pydantic import ValidationError

from scanorder.schemas.common import TableSession
from scanorder.storage import LocalStorage

logger = logging.getLogger(__name__)

TABLE_INFO_KEY = "tableInfo"
TABLE_ID_KEYS = ("currentTableId", "tableId")
URL_PARAMS = ("tableId", "table")


def _clean(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class TableStore:
    """Which physical table this client is sitting at."""

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self._current: TableSession | None = self._load()

    def _load(self) -> TableSession | None:
        data = self.storage.get_json(TABLE_INFO_KEY)
        if not data:
            return None
        try:
            return TableSession.model_validate(data)
        except ValidationError:
            logger.warning("ignoring invalid stored table info")
            return None

    def _save(self, ts: TableSession) -> None:
        self.storage.set_json(TABLE_INFO_KEY, ts.wire())
        if ts.placeholder:
            self.storage.remove_items(TABLE_ID_KEYS)
        else:
            for key in TABLE_ID_KEYS:
                self.storage.set_item(key, ts.table_id)

    @property
    def current(self) -> TableSession | None:
        return self._current

    @property
    def resolved_table_id(self) -> str | None:
        """Table id usable for ordering; placeholders never qualify."""
        if self._current and not self._current.placeholder:
            return self._current.table_id
        return None

    def set(self, table_id: str, *, table_number: str | None = None,
            restaurant_name: str | None = None, restaurant_id: str | None = None) -> TableSession:
        prev = self._current
        same = prev is not None and prev.table_id == table_id
        ts = TableSession(
            table_id=table_id,
            table_number=table_number or (prev.table_number if same else table_id),
            restaurant_name=restaurant_name or (prev.restaurant_name if same else "Restaurant"),
            restaurant_id=restaurant_id or (prev.restaurant_id if same else None),
        )
        self._current = ts
        self._save(ts)
        return ts

    def resolve(self, query_params: Mapping[str, str] | None = None) -> TableSession:
        """URL parameters first, then storage, else a random placeholder table."""
        params = query_params or {}
        for name in URL_PARAMS:
            table_id = _clean(params.get(name))
            if table_id:
                logger.info("table %s taken from URL", table_id)
                return self.set(table_id)

        if self._current is not None:
            return self._current

        for key in TABLE_ID_KEYS:
            table_id = _clean(self.storage.get_item(key))
            if table_id:
                return self.set(table_id)

        table_id = f"T{random.randint(1, 99):02d}"
        ts = TableSession(table_id=table_id, table_number=table_id, placeholder=True)
        logger.info("no table in URL or storage; using placeholder %s", ts.table_id)
        self._current = ts
        self._save(ts)
        return ts

    def clear(self) -> None:
        self._current = None
        self.storage.remove_items((TABLE_INFO_KEY, *TABLE_ID_KEYS))
