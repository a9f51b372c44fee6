# test_payment_verification.py
import asyncio

import pytest

from scanorder.schemas.cart import MenuItem
from scanorder.schemas.orders import PaymentStatus
from scanorder.services.payments import VerificationState as VS

PAID = {"status": "paid", "paymentProviderStatus": "paid"}
UNPAID = {"status": "pending", "paymentProviderStatus": "unpaid"}
PROCESSING = {"status": "pending", "paymentProviderStatus": "processing"}


@pytest.fixture
def checkout(session, dev, place_order):
    """An order with an open checkout session; returns (order_id, session_id)."""
    res = asyncio.run(place_order(pay_now=True))
    assert res.ok and res.error is None
    # something ordered while the guest was away paying
    session.cart.add(MenuItem(id="soda", name="Soda", price=2.0))
    return res.order.id, session.storage.get_item("stripeSessionId")


def verify(session, **kw):
    seen = []
    result = asyncio.run(session.payment_verifier().verify(on_state=lambda r: seen.append(r.state), **kw))
    return result, seen


def test_paid_on_first_check(session, dev, checkout, sleeps):
    order_id, sid = checkout
    result, seen = verify(session)

    assert result.state is VS.PAID
    assert result.order_id == order_id
    assert result.session_id == sid
    assert result.checks == 1
    assert seen == [VS.VERIFYING, VS.PAID]
    assert sleeps == []

    assert session.cart.is_empty
    assert session.orders.get(order_id).payment_status is PaymentStatus.PAID
    for key in ("stripeSessionId", "currentPaymentOrderId", "pending_order_id"):
        assert session.storage.get_item(key) is None


def test_processing_retries_do_not_use_attempts(session, dev, checkout, sleeps):
    _, sid = checkout
    dev.payment_script[sid] = [PROCESSING, PROCESSING, PAID]
    result, seen = verify(session)

    assert result.state is VS.PAID
    assert result.checks == 3
    assert result.attempts == 0
    assert result.processing_retries == 2
    assert seen == [VS.VERIFYING, VS.PROCESSING, VS.VERIFYING, VS.PROCESSING, VS.VERIFYING, VS.PAID]
    assert sleeps == [3.0, 3.0]


def test_unpaid_gives_up_after_three_attempts(session, dev, checkout, sleeps):
    _, sid = checkout
    dev.payment_script[sid] = [UNPAID] * 5
    result, seen = verify(session)

    assert result.state is VS.FAILED
    assert result.attempts == 3
    assert result.checks == 3
    assert sleeps == [3.0, 3.0]
    assert "/my-orders" in result.message
    assert len(dev.calls(f"/api/payments/sessions/{sid}")) == 3
    # nothing settled
    assert not session.cart.is_empty
    assert session.storage.get_item("stripeSessionId") == sid


def test_server_error_is_retried(session, dev, checkout):
    _, sid = checkout
    dev.payment_script[sid] = [502, PAID]
    result, _ = verify(session)

    assert result.state is VS.PAID
    assert result.attempts == 1
    assert result.checks == 2


def test_unknown_session_fails_at_once(session, dev, checkout):
    result, seen = verify(session, session_id="cs_test_gone")

    assert result.state is VS.FAILED
    assert result.checks == 1
    assert result.message.startswith("Payment session not found")
    assert seen == [VS.VERIFYING, VS.FAILED]


def test_endless_processing_is_capped(session, dev, checkout):
    _, sid = checkout
    dev.payment_script[sid] = [PROCESSING] * 30
    result, _ = verify(session)

    assert result.state is VS.FAILED
    assert result.processing_retries == 10
    assert result.attempts == 3
    assert result.checks == 13


def test_missing_session_with_order_is_optimistically_paid(session, dev, checkout):
    order_id, _ = checkout
    session.storage.remove_item("stripeSessionId")
    result, _ = verify(session)

    assert result.state is VS.PAID
    assert result.optimistic
    assert result.checks == 0
    assert session.orders.get(order_id).payment_status is PaymentStatus.PAID
    assert dev.calls("/api/payments/sessions") == []


def test_missing_session_and_order_fails(session, dev):
    result, seen = verify(session)
    assert result.state is VS.FAILED
    assert result.message == "Missing session ID. Unable to verify payment."
    assert seen == [VS.VERIFYING, VS.FAILED]


def test_cancelled_verifier_touches_nothing(session, dev, checkout):
    _, sid = checkout
    dev.payment_script[sid] = [PROCESSING, PAID]
    verifier = session.payment_verifier()
    seen = []

    def on_state(r):
        seen.append(r.state)
        if r.state is VS.PROCESSING:
            verifier.cancel()

    async def go():
        task = verifier.start(on_state=on_state)
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(go())
    assert verifier.cancelled
    assert seen == [VS.VERIFYING, VS.PROCESSING]
    assert not session.cart.is_empty
    assert session.storage.get_item("stripeSessionId") == sid
    assert len(dev.calls(f"/api/payments/sessions/{sid}")) == 1


def test_cancellation_reaches_direct_awaiters(session, dev, checkout):
    _, sid = checkout
    dev.payment_script[sid] = [PROCESSING, PAID]
    verifier = session.payment_verifier()

    def on_state(r):
        if r.state is VS.PROCESSING:
            verifier.cancel()

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(verifier.verify(on_state=on_state))
    assert not session.cart.is_empty
    assert session.orders.get(checkout[0]).payment_status is PaymentStatus.PENDING
