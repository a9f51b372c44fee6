from typing import Any, Optional

from pydantic import AliasChoices, Field

from scanorder.schemas.cart import MenuItem
from scanorder.schemas.common import CamelModel


class Category(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str
    description: str = ""
    image: str = ""
    is_active: bool = True
    order: int = 0
    restaurant_id: Optional[str] = None


class Subcategory(Category):
    category_id: str


class Venue(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str
    description: str = ""
    # the backend populates this as {_id, name}
    restaurant_id: Optional[dict[str, Any] | str] = None

    @property
    def restaurant(self) -> tuple[str | None, str | None]:
        """(restaurant id, restaurant name) whichever shape the backend sent."""
        r = self.restaurant_id
        if isinstance(r, dict):
            return r.get("_id") or r.get("id"), r.get("name")
        return r, None


class Menu(CamelModel):
    categories: list[Category] = Field(default_factory=list)
    subcategories: dict[str, list[Subcategory]] = Field(default_factory=dict)
    menu_items: list[MenuItem] = Field(default_factory=list)

    def items_in(self, category_id: str) -> list[MenuItem]:
        return [m for m in self.menu_items if category_id in m.categories]


class TableMenu(CamelModel):
    venue: Venue
    menu: Menu


class MenuHierarchy(Menu):
    venue: Venue


class TableStatus(CamelModel):
    exists: bool
    is_available: bool = False
    venue: Optional[Venue] = None
    table: Optional[dict[str, Any]] = None
