# test_billing.py
from decimal import Decimal

from scanorder.schemas.cart import CartItem, Modifier
from scanorder.schemas.orders import Order, OrderLine
from scanorder.services.billing import compute_totals, money, to_cents
from scanorder.services.payments import checkout_line_items


def line(price, qty=1, mods=()):
    return CartItem(id=f"x-{price}-{qty}", menu_item_id="x", name="Item", price=price, quantity=qty,
                    modifiers=list(mods))


def test_two_ten_dollar_items_total_22_60():
    t = compute_totals([line(10.00, 2)])
    assert t.subtotal == Decimal("20.00")
    assert t.tax == Decimal("1.60")
    assert t.service_fee == Decimal("1.00")
    assert t.tip == Decimal("0.00")
    assert t.total == Decimal("22.60")


def test_tip_and_modifiers_are_included():
    t = compute_totals([line(8.00, 2, [Modifier(id="c", name="Cheese", price=1.00)])], tip=3)
    assert t.subtotal == Decimal("18.00")
    assert t.tax == Decimal("1.44")
    assert t.service_fee == Decimal("0.90")
    assert t.total == Decimal("23.34")


def test_money_rounds_half_up():
    assert money("0.125") == Decimal("0.13")
    assert money(0.1 + 0.2) == Decimal("0.30")
    assert to_cents("12.345") == 1235


def test_empty_items_total_zero():
    assert compute_totals([]).total == Decimal("0.00")


def test_checkout_line_items_carry_fees_but_not_zero_tip():
    order = Order(id="o1", items=[OrderLine(name="Burger", quantity=2, price=10.0,
                                            modifiers=[Modifier(id="c", name="Cheese", price=1.5)])],
                  subtotal=23.0, tax=1.84, service_fee=1.15, tip=0, total=25.99)
    lines = checkout_line_items(order, "usd")

    assert [li.price_data.product_data.name for li in lines] == ["Burger", "Tax", "Service Fee"]
    assert lines[0].price_data.unit_amount == 1150
    assert lines[0].quantity == 2
    assert "with Cheese" in lines[0].price_data.product_data.description
    assert lines[1].price_data.unit_amount == 184
    assert sum(li.price_data.unit_amount * li.quantity for li in lines) == 2599
