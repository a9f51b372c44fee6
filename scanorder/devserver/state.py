from dataclasses import dataclass, field
from typing import Any


@dataclass
class DevState:
    users: dict[str, dict[str, Any]] = field(default_factory=dict)        # id -> user (with pass_hash)
    tables: dict[str, dict[str, Any]] = field(default_factory=dict)       # id -> table
    venues: dict[str, dict[str, Any]] = field(default_factory=dict)
    categories: dict[str, dict[str, Any]] = field(default_factory=dict)
    subcategories: dict[str, dict[str, Any]] = field(default_factory=dict)
    menu_items: dict[str, dict[str, Any]] = field(default_factory=dict)
    orders: dict[str, dict[str, Any]] = field(default_factory=dict)       # id -> order
    sessions: dict[str, dict[str, Any]] = field(default_factory=dict)     # checkout session id -> session
    waiter_calls: dict[str, dict[str, Any]] = field(default_factory=dict)
    cash_requests: list[dict[str, Any]] = field(default_factory=list)
    requests: list[str] = field(default_factory=list)                     # "METHOD /path"

    # knobs for tests
    guest_tokens_enabled: bool = True
    bare_order_responses: bool = False
    require_auth_for_orders: bool = True
    fail_orders_with: int | None = None
    session_cookie: str = "access_token"  # name of the httpOnly cookie login sets
    # scripted answers per checkout session: [{"status": ..., "paymentProviderStatus": ...} | int]
    payment_script: dict[str, list[Any]] = field(default_factory=dict)
    default_payment: dict[str, Any] = field(default_factory=lambda: {"status": "paid", "paymentProviderStatus": "paid"})

    def calls(self, prefix: str) -> list[str]:
        return [r for r in self.requests if r.split(" ", 1)[1].startswith(prefix)]

    def add_table(self, table_id: str, restaurant_id: str = "rest-1", number: str | None = None,
                  restaurant_name: str = "Dev Bistro", active: bool = True, venue_id: str = "venue-1",
                  occupied: bool = False) -> dict:
        t = {
            "_id": table_id, "id": table_id, "tableNumber": number or table_id, "number": number or table_id,
            "restaurantId": restaurant_id, "restaurantName": restaurant_name, "venueId": venue_id,
            "isActive": active, "isOccupied": occupied, "capacity": 4,
        }
        self.tables[table_id] = t
        return t

    def add_venue(self, venue_id: str, name: str = "Main Hall", restaurant_id: str = "rest-1",
                  restaurant_name: str = "Dev Bistro") -> dict:
        v = {
            "_id": venue_id, "name": name, "description": f"{name} at {restaurant_name}",
            "restaurantId": {"_id": restaurant_id, "name": restaurant_name},
        }
        self.venues[venue_id] = v
        return v

    def add_category(self, category_id: str, name: str, order: int = 0, restaurant_id: str = "rest-1") -> dict:
        c = {"_id": category_id, "name": name, "description": "", "image": "", "isActive": True,
             "order": order, "restaurantId": restaurant_id}
        self.categories[category_id] = c
        return c

    def add_subcategory(self, subcategory_id: str, name: str, category_id: str, order: int = 0) -> dict:
        s = {"_id": subcategory_id, "name": name, "description": "", "image": "", "isActive": True,
             "order": order, "categoryId": category_id}
        self.subcategories[subcategory_id] = s
        return s

    def add_menu_item(self, item_id: str, name: str, price: float, category_id: str,
                      subcategory_id: str | None = None, venue_id: str = "venue-1",
                      available: bool = True) -> dict:
        m = {
            "_id": item_id, "name": name, "description": "", "price": price, "image": "",
            "categories": [category_id], "subCategories": [subcategory_id] if subcategory_id else [],
            "venueId": venue_id, "isAvailable": available, "isActive": True,
        }
        self.menu_items[item_id] = m
        return m

    def seed_demo(self, table_id: str = "T-1") -> None:
        """One venue, one table and a small menu."""
        self.add_venue("venue-1")
        self.add_table(table_id, restaurant_id="rest-1", number="1")
        self.add_category("mains", "Mains", order=1)
        self.add_category("drinks", "Drinks", order=2)
        self.add_subcategory("burgers", "Burgers", "mains")
        self.add_menu_item("burger", "Burger", 10.00, "mains", "burgers")
        self.add_menu_item("veggie", "Veggie Burger", 9.50, "mains", "burgers", available=False)
        self.add_menu_item("soda", "Soda", 2.00, "drinks")
