import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from scanorder.errors import ClientError, ErrorKind, message_from_body, validation_error
from scanorder.http import ApiClient
from scanorder.schemas.cart import MenuItem
from scanorder.schemas.common import TableSession
from scanorder.schemas.menu import Category, MenuHierarchy, Subcategory, TableMenu, TableStatus, Venue
from scanorder.stores.table import TableStore

logger = logging.getLogger(__name__)

INVALID_TABLE_NOTICE = "Invalid table ID."
TABLE_UNAVAILABLE_NOTICE = "This table is currently not available."

_categories = TypeAdapter(list[Category])
_subcategories = TypeAdapter(list[Subcategory])
_items = TypeAdapter(list[MenuItem])


def _data(body: Any, what: str) -> Any:
    """Menu endpoints answer `{success, data}` or the bare payload."""
    if isinstance(body, dict) and "success" in body:
        if not body["success"]:
            raise ClientError(ErrorKind.SERVER, message_from_body(body, f"Failed to fetch {what}"), data=body)
        return body.get("data")
    return body


def _parse(adapter_or_model, body: Any, what: str):
    data = _data(body, what)
    try:
        if isinstance(adapter_or_model, TypeAdapter):
            return adapter_or_model.validate_python(data or [])
        return adapter_or_model.model_validate(data or {})
    except ValidationError as e:
        raise ClientError(ErrorKind.MALFORMED, f"Unexpected {what} response", data=body) from e


class MenuService:
    """Read-only menu and table lookups; none of them need a token."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def verify_table(self, table_id: str) -> TableStatus:
        try:
            body = await self.api.get(f"/api/tables/{table_id}/status")
        except ClientError as e:
            if e.status == 404:
                return TableStatus(exists=False)
            raise
        return _parse(TableStatus, body, "table status")

    async def accept_table(self, table_id: str, tables: TableStore) -> TableSession:
        """Verify a scanned or typed table id and make it the current table."""
        table_id = table_id.strip()
        if not table_id:
            raise validation_error(INVALID_TABLE_NOTICE)
        status = await self.verify_table(table_id)
        if not status.exists:
            raise validation_error(INVALID_TABLE_NOTICE)
        if not status.is_available:
            raise validation_error(TABLE_UNAVAILABLE_NOTICE)

        restaurant_id = restaurant_name = None
        if status.venue:
            restaurant_id, restaurant_name = status.venue.restaurant
        number = (status.table or {}).get("number") or (status.table or {}).get("tableNumber")
        logger.info("table %s verified", table_id)
        return tables.set(table_id, table_number=number and str(number),
                          restaurant_name=restaurant_name, restaurant_id=restaurant_id)

    async def table_menu(self, table_id: str) -> TableMenu:
        return _parse(TableMenu, await self.api.get(f"/api/tables/{table_id}/menu"), "table menu")

    async def categories(self) -> list[Category]:
        return _parse(_categories, await self.api.get("/api/categories"), "categories")

    async def subcategories(self, category_id: str) -> list[Subcategory]:
        body = await self.api.get(f"/api/categories/{category_id}/subcategories")
        return _parse(_subcategories, body, "subcategories")

    async def menu_items(self, category_id: str | None = None, subcategory_id: str | None = None) -> list[MenuItem]:
        params = {}
        if category_id:
            params["categoryId"] = category_id
        if subcategory_id:
            params["subcategoryId"] = subcategory_id
        return _parse(_items, await self.api.get("/api/menu-items", params=params or None), "menu items")

    async def venue(self, venue_id: str) -> Venue:
        return _parse(Venue, await self.api.get(f"/api/venues/{venue_id}"), "venue")

    async def venue_menu_items(self, venue_id: str) -> list[MenuItem]:
        return _parse(_items, await self.api.get(f"/api/venues/{venue_id}/menu-items"), "venue menu items")

    async def full_menu(self, venue_id: str) -> MenuHierarchy:
        venue = await self.venue(venue_id)
        categories = await self.categories()
        items = await self.venue_menu_items(venue_id)
        subs = {c.id: await self.subcategories(c.id) for c in categories}
        return MenuHierarchy(venue=venue, categories=categories, subcategories=subs, menu_items=items)
