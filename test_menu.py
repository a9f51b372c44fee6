# test_menu.py
import asyncio

import pytest

from scanorder.errors import ClientError, ErrorKind
from scanorder.services.menu import INVALID_TABLE_NOTICE, TABLE_UNAVAILABLE_NOTICE

TABLE = "T-1"


def test_verify_known_table(session, dev):
    status = asyncio.run(session.menu.verify_table(TABLE))
    assert status.exists and status.is_available
    assert status.venue.id == "venue-1"
    assert status.venue.restaurant == ("rest-1", "Dev Bistro")


def test_verify_unknown_table(session, dev):
    status = asyncio.run(session.menu.verify_table("T-404"))
    assert not status.exists
    assert not status.is_available


def test_accept_table_sets_current_table(session, dev):
    ts = asyncio.run(session.menu.accept_table(f" {TABLE} ", session.table))

    assert ts.table_id == TABLE
    assert ts.table_number == "1"
    assert ts.restaurant_id == "rest-1"
    assert ts.restaurant_name == "Dev Bistro"
    assert session.table.resolved_table_id == TABLE
    assert session.storage.get_item("currentTableId") == TABLE


@pytest.mark.parametrize("table_id,notice", [
    ("T-404", INVALID_TABLE_NOTICE),
    ("T-busy", TABLE_UNAVAILABLE_NOTICE),
    ("T-off", TABLE_UNAVAILABLE_NOTICE),
])
def test_accept_table_rejects(session, dev, table_id, notice):
    dev.add_table("T-busy", occupied=True)
    dev.add_table("T-off", active=False)

    with pytest.raises(ClientError) as ei:
        asyncio.run(session.menu.accept_table(table_id, session.table))
    assert ei.value.kind is ErrorKind.VALIDATION
    assert ei.value.message == notice
    assert session.table.current is None


def test_table_menu(session, dev):
    tm = asyncio.run(session.menu.table_menu(TABLE))

    assert tm.venue.name == "Main Hall"
    assert [c.id for c in tm.menu.categories] == ["mains", "drinks"]
    assert [s.id for s in tm.menu.subcategories["mains"]] == ["burgers"]
    assert tm.menu.subcategories["drinks"] == []
    assert [m.id for m in tm.menu.items_in("mains")] == ["burger", "veggie"]
    veggie = next(m for m in tm.menu.menu_items if m.id == "veggie")
    assert not veggie.is_available


def test_categories_and_filtered_items(session, dev):
    cats = asyncio.run(session.menu.categories())
    assert [c.name for c in cats] == ["Mains", "Drinks"]

    subs = asyncio.run(session.menu.subcategories("mains"))
    assert subs[0].category_id == "mains"

    drinks = asyncio.run(session.menu.menu_items(category_id="drinks"))
    assert [m.name for m in drinks] == ["Soda"]
    burgers = asyncio.run(session.menu.menu_items(subcategory_id="burgers"))
    assert {m.id for m in burgers} == {"burger", "veggie"}
    assert len(asyncio.run(session.menu.menu_items())) == 3


def test_full_menu_for_venue(session, dev):
    menu = asyncio.run(session.menu.full_menu("venue-1"))

    assert menu.venue.id == "venue-1"
    assert set(menu.subcategories) == {"mains", "drinks"}
    assert len(menu.menu_items) == 3
    assert dev.calls("/api/categories/") == [
        "GET /api/categories/mains/subcategories",
        "GET /api/categories/drinks/subcategories",
    ]


def test_unknown_venue(session, dev):
    with pytest.raises(ClientError) as ei:
        asyncio.run(session.menu.full_menu("nowhere"))
    assert ei.value.status == 404


def test_menu_item_goes_straight_into_the_cart(session, dev):
    tm = asyncio.run(session.menu.table_menu(TABLE))
    burger = next(m for m in tm.menu.menu_items if m.id == "burger")
    line = session.cart.add(burger, 2)

    assert line.menu_item_id == "burger"
    assert session.cart.subtotal == 20
