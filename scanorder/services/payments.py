import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable
from urllib.parse import urlencode

from pydantic import ValidationError

from scanorder.config import Settings
from scanorder.errors import ClientError, ErrorKind, message_from_body
from scanorder.http import ApiClient
from scanorder.schemas.orders import Order, PaymentStatus
from scanorder.schemas.payments import (
    CheckoutSession, CheckoutSessionIn, LineItem, PaymentStatusResult, PriceData, ProductData,
)
from scanorder.services.billing import to_cents
from scanorder.storage import LocalStorage
from scanorder.stores.cart import CartStore
from scanorder.stores.orders import OrdersStore

logger = logging.getLogger(__name__)

SESSION_KEY = "stripeSessionId"
PAYMENT_ORDER_KEY = "currentPaymentOrderId"
PENDING_ORDER_KEY = "pending_order_id"
HISTORY_PATH = "/my-orders"


def checkout_line_items(order: Order, currency: str) -> list[LineItem]:
    """Stripe-style line items; fees and tip ride along as their own lines."""
    lines = []
    for item in order.items:
        unit = item.price + sum(m.price for m in item.modifiers)
        description = item.name
        if item.modifiers:
            description += " with " + ", ".join(m.name for m in item.modifiers)
        if item.special_instructions:
            description += f". Note: {item.special_instructions}"
        lines.append(LineItem(
            price_data=PriceData(currency=currency, unit_amount=to_cents(unit),
                                 product_data=ProductData(name=item.name, description=description)),
            quantity=item.quantity,
        ))
    for name, amount in (("Tax", order.tax), ("Service Fee", order.service_fee), ("Tip", order.tip)):
        if amount and amount > 0:
            lines.append(LineItem(
                price_data=PriceData(currency=currency, unit_amount=to_cents(amount),
                                     product_data=ProductData(name=name)),
                quantity=1,
            ))
    return lines


class PaymentService:
    def __init__(self, api: ApiClient, storage: LocalStorage, settings: Settings):
        self.api = api
        self.storage = storage
        self.settings = settings

    def return_urls(self, order_id: str) -> tuple[str, str]:
        base = self.settings.CUSTOMER_URL.rstrip("/")
        q = urlencode({"orderId": order_id})
        # the processor substitutes the placeholder on redirect
        success = f"{base}/payment/success?{q}&sessionId={{CHECKOUT_SESSION_ID}}"
        cancel = f"{base}/payment/cancel?{q}"
        return success, cancel

    async def create_checkout_session(self, order: Order, *, table_id: str, restaurant_id: str | None = None,
                                      token: str | None = None) -> CheckoutSession:
        success_url, cancel_url = self.return_urls(order.id)
        body = CheckoutSessionIn(
            line_items=checkout_line_items(order, self.settings.CURRENCY),
            table_id=table_id,
            restaurant_id=restaurant_id,
            order_id=order.id,
            metadata={
                "orderId": order.id,
                "orderNumber": order.order_number or order.id[-6:],
                "tableId": table_id,
                "restaurantId": restaurant_id or "",
            },
            success_url=success_url,
            cancel_url=cancel_url,
        )
        data = await self.api.post("/api/payments/create-checkout-session", token=token,
                                   json=body.wire(exclude_none=True))
        try:
            session = CheckoutSession.model_validate(data or {})
        except ValidationError as e:
            raise ClientError(ErrorKind.MALFORMED, "Unexpected checkout session response", data=data) from e
        if not session.success or not session.url:
            raise ClientError(ErrorKind.SERVER,
                              message_from_body(data, "Failed to create payment session"), data=data)

        if session.session_id:
            self.storage.set_item(SESSION_KEY, session.session_id)
        self.storage.set_item(PAYMENT_ORDER_KEY, order.id)
        logger.info("checkout session %s opened for order %s", session.session_id, order.id)
        return session

    async def check_status(self, session_id: str, token: str | None = None) -> PaymentStatusResult:
        data = await self.api.get(f"/api/payments/sessions/{session_id}", token=token)
        try:
            return PaymentStatusResult.model_validate(data or {})
        except ValidationError as e:
            raise ClientError(ErrorKind.MALFORMED, "Unexpected payment status response", data=data) from e

    def forget_checkout(self) -> None:
        self.storage.remove_items((SESSION_KEY, PAYMENT_ORDER_KEY))


# ── Verification ────────────────────────────────────────────────────────────
class VerificationState(str, Enum):
    VERIFYING = "verifying"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


@dataclass
class VerificationResult:
    state: VerificationState
    order_id: str | None = None
    session_id: str | None = None
    attempts: int = 0
    checks: int = 0
    processing_retries: int = 0
    message: str | None = None
    payment: PaymentStatusResult | None = None
    optimistic: bool = False
    history: list[VerificationState] = field(default_factory=list)

    @property
    def terminal(self) -> bool:
        return self.state in (VerificationState.PAID, VerificationState.FAILED)


StateCallback = Callable[[VerificationResult], None]


class VerificationCancelled(Exception):
    pass


class PaymentVerifier:
    """Polls the payment status endpoint until paid, failed or out of attempts.

    Errors and unpaid answers each use one of `max_attempts`. A `processing`
    answer schedules exactly one retry after the flat delay without using an
    attempt, up to `max_processing_retries` times; past that it counts like
    any other unpaid answer.
    After cancel() nothing touches the stores or calls `on_state`, and
    whoever awaits verify() or the start() task gets asyncio.CancelledError.
    Client errors never escape; they end in a `failed` result.
    """

    def __init__(self, payments: PaymentService, cart: CartStore, orders: OrdersStore,
                 storage: LocalStorage, settings: Settings,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.payments = payments
        self.cart = cart
        self.orders = orders
        self.storage = storage
        self.max_attempts = settings.PAYMENT_POLL_MAX_ATTEMPTS
        self.max_processing_retries = settings.PAYMENT_PROCESSING_MAX_RETRIES
        self.delay = settings.PAYMENT_POLL_DELAY
        self._sleep = sleep
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def start(self, session_id: str | None = None, order_id: str | None = None,
              on_state: StateCallback | None = None) -> asyncio.Task:
        self._cancelled = False
        self._task = asyncio.ensure_future(self.verify(session_id, order_id, on_state))
        return self._task

    def _guard(self) -> None:
        if self._cancelled:
            raise VerificationCancelled()

    def _emit(self, result: VerificationResult, state: VerificationState, on_state: StateCallback | None,
              message: str | None = None) -> VerificationResult:
        self._guard()
        result.state = state
        result.history.append(state)
        if message is not None:
            result.message = message
        if on_state is not None:
            on_state(result)
        return result

    def _mark_paid(self, result: VerificationResult, on_state: StateCallback | None) -> VerificationResult:
        self._guard()
        self.cart.clear()
        if result.order_id:
            self.orders.add_order(Order(id=result.order_id, payment_status=PaymentStatus.PAID))
        self.payments.forget_checkout()
        self.storage.remove_item(PENDING_ORDER_KEY)
        return self._emit(result, VerificationState.PAID, on_state, "Your payment has been successfully processed.")

    async def verify(self, session_id: str | None = None, order_id: str | None = None,
                     on_state: StateCallback | None = None) -> VerificationResult:
        session_id = session_id or self.storage.get_item(SESSION_KEY)
        order_id = (order_id or self.storage.get_item(PAYMENT_ORDER_KEY)
                    or self.storage.get_item(PENDING_ORDER_KEY))
        result = VerificationResult(VerificationState.VERIFYING, order_id=order_id, session_id=session_id)
        try:
            self._emit(result, VerificationState.VERIFYING, on_state)

            if not session_id:
                if order_id:
                    # an order implies checkout was at least started; do not strand the user
                    logger.warning("no payment session for order %s; assuming paid", order_id)
                    result.optimistic = True
                    return self._mark_paid(result, on_state)
                return self._emit(result, VerificationState.FAILED, on_state,
                                  "Missing session ID. Unable to verify payment.")

            return await self._poll(result, on_state)
        except (VerificationCancelled, asyncio.CancelledError):
            logger.info("payment verification for session %s cancelled", session_id)
            self._cancelled = True
            raise asyncio.CancelledError() from None

    async def _poll(self, result: VerificationResult, on_state: StateCallback | None) -> VerificationResult:
        while result.attempts < self.max_attempts:
            self._guard()
            result.checks += 1
            try:
                status = await self.payments.check_status(result.session_id)
            except ClientError as e:
                self._guard()
                result.attempts += 1
                logger.warning("payment check %d/%d failed (%s): %s",
                               result.attempts, self.max_attempts, e.kind.value, e.message)
                if not e.kind.retryable:
                    return self._emit(result, VerificationState.FAILED, on_state, self._failure_message(e))
                result.message = e.message
            else:
                self._guard()
                result.payment = status
                if status.order_id and not result.order_id:
                    result.order_id = status.order_id
                if status.is_paid:
                    return self._mark_paid(result, on_state)
                if status.is_processing and result.processing_retries < self.max_processing_retries:
                    # one retry per processing answer, outside the attempt cap
                    result.processing_retries += 1
                    self._emit(result, VerificationState.PROCESSING, on_state, "Payment is processing")
                    await self._sleep(self.delay)
                    self._emit(result, VerificationState.VERIFYING, on_state)
                    continue
                result.attempts += 1
                logger.info("payment %s still %s (attempt %d/%d)", result.session_id,
                            status.status, result.attempts, self.max_attempts)
                result.message = "Payment status verification failed. Please try again."

            if result.attempts < self.max_attempts:
                await self._sleep(self.delay)

        return self._emit(result, VerificationState.FAILED, on_state,
                          f"{result.message or 'Payment could not be verified.'} "
                          f"Check {HISTORY_PATH} for your order status.")

    @staticmethod
    def _failure_message(e: ClientError) -> str:
        if e.status == 404:
            return "Payment session not found. It may have expired or been cancelled."
        if e.kind is ErrorKind.AUTH:
            return "Authorization error. Please log in again and try once more."
        return e.message
