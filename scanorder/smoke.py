#!/usr/bin/env python3
"""
Smoke runner: one guest through the whole scan-to-pay flow.

Run:
    API_BASE_URL=http://localhost:8000 TABLE_ID=T-1 python -m scanorder.smoke
"""
import asyncio
import os
import sys
import time
import uuid

from scanorder.config import Settings, configure_logging
from scanorder.errors import ClientError
from scanorder.schemas.cart import Modifier
from scanorder.services.payments import VerificationState
from scanorder.session import OrderingSession

RNG = str(int(time.time()))[-6:] + "-" + uuid.uuid4().hex[:6]


class SmokeFailure(Exception):
    pass


def report(step: str, ok: bool, detail: str = "") -> None:
    if not ok:
        print(f"\n❌ {step}\n{detail}\n", file=sys.stderr)
        raise SmokeFailure(step)
    print(f"✅ {step}" + (f" [{detail}]" if detail else ""))


async def run(session: OrderingSession, table_id: str = "T-1") -> dict:
    """Guest flow against whatever backend `session` talks to; returns what it created."""
    # ===== 1) Table =====
    ts = await session.menu.accept_table(table_id, session.table)
    report("verify table", ts.table_id == table_id and not ts.placeholder,
           f"{ts.table_id} @ {ts.restaurant_name}")

    # ===== 2) Menu + cart =====
    menu = (await session.menu.table_menu(table_id)).menu
    available = [m for m in menu.menu_items if m.is_available]
    report("load menu", bool(available), f"{len(menu.categories)} categories, {len(available)} items")

    session.cart.clear()
    cheese = Modifier(id=f"cheese-{RNG}", name="Cheese", price=1.00)
    session.cart.add(available[0], 2, modifiers=[cheese])
    session.cart.add(available[-1])
    report("fill cart", session.cart.total_items == 3, f"subtotal {session.cart.subtotal}")

    # ===== 3) Order + checkout =====
    res = await session.workflow.submit(instructions="smoke test", pay_now=True)
    detail = res.error.message if res.error else (res.notice or "")
    report("submit order", res.ok and res.order is not None, detail if not res.ok else res.order.id)
    report("open checkout", res.error is None and bool(res.redirect), res.redirect or detail)

    # ===== 4) Verify payment =====
    result = await session.payment_verifier().verify()
    report("verify payment", result.state is VerificationState.PAID,
           result.message or result.state.value)

    # ===== 5) History =====
    history = await session.workflow.refresh_history()
    report("order history", any(o.id == res.order.id for o in history), f"{len(history)} orders")

    bill = session.orders.bill(table_id)
    report("table bill settled", bill.total == 0, f"outstanding {bill.total}")
    return {"order_id": res.order.id, "session_id": result.session_id, "tier": session.loyalty.tier}


async def _main() -> int:
    configure_logging(os.getenv("LOG_LEVEL", "WARNING"))
    settings = Settings(STATE_DB_URL=os.getenv("STATE_DB_URL", "sqlite://"), PAYMENT_POLL_DELAY=1.0)
    async with OrderingSession(settings) as session:
        try:
            out = await run(session, os.getenv("TABLE_ID", "T-1"))
        except SmokeFailure:
            return 1
        except ClientError as e:
            print(f"\n❌ {e.kind.value} error: {e.message}\n", file=sys.stderr)
            return 1
    print(f"\n🎉 Smoke flow complete: order {out['order_id']}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
