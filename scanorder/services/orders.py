import logging
import random
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from scanorder.config import Settings
from scanorder.errors import ClientError, ErrorKind, message_from_body, validation_error
from scanorder.http import ApiClient
from scanorder.schemas.cart import CartItem
from scanorder.schemas.orders import Order, OrderDraft, OrderLine, OrderType, PaymentStatus, Totals
from scanorder.services.auth import AuthService, TokenProvider, device_id
from scanorder.services.billing import compute_totals
from scanorder.storage import LocalStorage
from scanorder.stores.cart import CartStore
from scanorder.stores.orders import OrdersStore
from scanorder.stores.table import TableStore

logger = logging.getLogger(__name__)

SCAN_TABLE_PATH = "/scan-table"
CART_PATH = "/cart"
PENDING_ORDER_KEY = "pending_order_id"

EMPTY_CART_NOTICE = "Your cart is empty"
NO_TABLE_NOTICE = "Please scan your table QR code before ordering"
IN_FLIGHT_NOTICE = "Your order is already being placed"
LOGIN_NOTICE = "Please log in to place your order"
FAILED_NOTICE = "Failed to place order. Please try again."


def login_redirect(return_url: str = CART_PATH) -> str:
    return f"/login?returnUrl={quote(return_url, safe='/')}"


def order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def normalize_order_response(body: Any) -> Order:
    """Accept `{success, data}` envelopes or a bare order object.

    Both shapes yield the same Order; anything else is malformed.
    """
    if isinstance(body, dict) and "success" in body:
        if not body["success"]:
            raise ClientError(ErrorKind.SERVER, message_from_body(body, "Order was not accepted"), data=body)
        body = body.get("data")

    if not isinstance(body, dict) or not (body.get("_id") or body.get("id")):
        raise ClientError(ErrorKind.MALFORMED, "Order response carried no order id", data=body)
    try:
        return Order.model_validate(body)
    except ValidationError as e:
        raise ClientError(ErrorKind.MALFORMED, f"Order response did not parse: {e.error_count()} errors",
                          data=body) from e


def _order_list(body: Any) -> list[Order]:
    if isinstance(body, dict):
        body = body.get("data", body.get("orders", []))
    if not isinstance(body, list):
        raise ClientError(ErrorKind.MALFORMED, "Order list response was not a list", data=body)
    return [normalize_order_response(o) for o in body]


def build_lines(items: list[CartItem]) -> list[OrderLine]:
    return [
        OrderLine(
            menu_item=i.menu_item_id or i.id,
            name=i.name,
            quantity=i.quantity,
            price=i.price,
            subtotal=float(i.line_total),
            special_instructions=i.special_instructions or "",
            modifiers=i.modifiers,
        )
        for i in items
    ]


def build_draft(items: list[CartItem], totals: Totals, *, table_id: str, restaurant_id: str,
                order_type: OrderType = OrderType.DINE_IN, instructions: str = "",
                device: str | None = None) -> OrderDraft:
    return OrderDraft(
        restaurant_id=restaurant_id,
        table_id=table_id,
        items=build_lines(items),
        subtotal=float(totals.subtotal),
        tax=float(totals.tax),
        service_fee=float(totals.service_fee),
        tip=float(totals.tip),
        total=float(totals.total),
        order_type=order_type,
        special_instructions=instructions,
        order_number=order_number(),
        device_id=device,
    )


class OrderService:
    """Thin wrappers over the orders and tables endpoints."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def create(self, draft: OrderDraft, token: str | None) -> Order:
        body = await self.api.post("/api/orders", token=token, json=draft.wire(exclude_none=True))
        return normalize_order_response(body)

    async def my_orders(self, token: str | None) -> list[Order]:
        return _order_list(await self.api.get("/api/orders/my-orders", token=token))

    async def get(self, order_id: str, token: str | None) -> Order:
        return normalize_order_response(await self.api.get(f"/api/orders/{order_id}", token=token))

    async def cancel(self, order_id: str, token: str | None) -> None:
        await self.api.post(f"/api/orders/{order_id}/cancel", token=token, json={})

    async def update_payment_status(self, order_id: str, status: PaymentStatus, token: str | None) -> Any:
        return await self.api.put(f"/api/orders/{order_id}/payment", token=token,
                                  json={"paymentStatus": status.value})

    async def restaurant_id_for_table(self, table_id: str) -> str:
        body = await self.api.get(f"/api/tables/{table_id}")
        data = body.get("data", body) if isinstance(body, dict) else None
        rid = None
        if isinstance(data, dict):
            rid = data.get("restaurantId") or data.get("restaurant_id")
            venue = data.get("venue") or data.get("venueId")
            if not rid and isinstance(venue, dict):
                rid = venue.get("restaurantId")
        if not rid:
            raise ClientError(ErrorKind.MALFORMED, f"No restaurant for table {table_id}", data=body)
        return str(rid)


@dataclass
class SubmissionResult:
    ok: bool
    order: Order | None = None
    redirect: str | None = None
    redirect_delay: float = 0.0
    notice: str | None = None
    close_cart: bool = False
    error: ClientError | None = None


class OrderWorkflow:
    """Cart -> order -> (optional) checkout, plus the order history calls."""

    def __init__(self, *, cart: CartStore, table: TableStore, orders: OrdersStore,
                 auth: AuthService, tokens: TokenProvider, order_api: OrderService,
                 payments, storage: LocalStorage, settings: Settings):
        self.cart = cart
        self.table = table
        self.orders = orders
        self.auth = auth
        self.tokens = tokens
        self.order_api = order_api
        self.payments = payments
        self.storage = storage
        self.settings = settings
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def _restaurant_id(self, table_id: str) -> str:
        ts = self.table.current
        if ts and ts.restaurant_id:
            return ts.restaurant_id
        rid = await self.order_api.restaurant_id_for_table(table_id)
        self.table.set(table_id, restaurant_id=rid)
        return rid

    async def submit(self, *, instructions: str = "", order_type: OrderType = OrderType.DINE_IN,
                     tip=0, pay_now: bool = False) -> SubmissionResult:
        # ===== business rules, before any network call =====
        if self.cart.is_empty:
            return SubmissionResult(False, notice=EMPTY_CART_NOTICE, error=validation_error(EMPTY_CART_NOTICE))

        table_id = self.table.resolved_table_id
        if not table_id:
            return SubmissionResult(False, redirect=SCAN_TABLE_PATH, close_cart=True,
                                    notice=NO_TABLE_NOTICE, error=validation_error(NO_TABLE_NOTICE))

        if self._in_flight:
            return SubmissionResult(False, notice=IN_FLIGHT_NOTICE)

        self._in_flight = True
        try:
            return await self._submit(table_id, instructions, order_type, tip, pay_now)
        finally:
            self._in_flight = False

    async def _submit(self, table_id: str, instructions: str, order_type: OrderType,
                      tip, pay_now: bool) -> SubmissionResult:
        # ===== 1) who is ordering =====
        if not await self.auth.check_status():
            logger.info("not authenticated; trying guest login for table %s", table_id)
            if not await self.auth.guest_login(table_id):
                return SubmissionResult(False, redirect=login_redirect(), close_cart=True, notice=LOGIN_NOTICE)

        try:
            # ===== 2) payload =====
            restaurant_id = await self._restaurant_id(table_id)
            items = self.cart.items
            totals = compute_totals(items, tip=tip, tax_rate=self.settings.TAX_RATE,
                                    service_fee_rate=self.settings.SERVICE_FEE_RATE)
            device = device_id(self.storage) if self.auth.state.is_guest or not self.auth.state.user else None
            draft = build_draft(items, totals, table_id=table_id, restaurant_id=restaurant_id,
                                order_type=order_type, instructions=instructions, device=device)

            # ===== 3) submit =====
            token = await self.tokens.resolve()
            order = await self.order_api.create(draft, token)
        except ClientError as e:
            return self._failed(e)

        # ===== 4) success =====
        order = self.orders.add_order(order)
        self.cart.clear()
        self.storage.set_item(PENDING_ORDER_KEY, order.id)
        logger.info("order %s placed for table %s (total %.2f)", order.id, table_id, order.total)

        result = SubmissionResult(True, order=order, close_cart=True, notice="Order placed successfully!",
                                  redirect=f"/order-confirmation/{order.id}",
                                  redirect_delay=self.settings.REDIRECT_DELAY)
        if pay_now:
            try:
                session = await self.payments.create_checkout_session(
                    order, table_id=table_id, restaurant_id=restaurant_id, token=token)
            except ClientError as e:
                # the order exists; paying can be retried from the order page
                logger.warning("checkout for order %s failed: %s", order.id, e.message)
                result.notice = "Order placed, but payment could not be started"
                result.error = e
            else:
                result.redirect = session.url
                result.redirect_delay = 0.0
        return result

    def _failed(self, e: ClientError) -> SubmissionResult:
        if e.kind is ErrorKind.AUTH:
            logger.info("order rejected as unauthenticated; purging tokens")
            self.auth.purge_tokens()
            return SubmissionResult(False, redirect=login_redirect(), close_cart=True,
                                    notice=LOGIN_NOTICE, error=e)
        logger.warning("order submission failed (%s): %s", e.kind.value, e.message)
        return SubmissionResult(False, notice=FAILED_NOTICE, error=e)

    async def refresh_history(self) -> list[Order]:
        token = await self.tokens.resolve()
        orders = await self.order_api.my_orders(token)
        self.orders.replace_all(orders)
        return self.orders.orders

    async def fetch(self, order_id: str) -> Order | None:
        cached = self.orders.get(order_id)
        if cached is not None:
            return cached
        try:
            order = await self.order_api.get(order_id, await self.tokens.resolve())
        except ClientError as e:
            logger.warning("failed to load order %s: %s", order_id, e.message)
            return None
        return self.orders.add_order(order)

    async def cancel(self, order_id: str) -> Order | None:
        await self.order_api.cancel(order_id, await self.tokens.resolve())
        return self.orders.mark_cancelled(order_id)
