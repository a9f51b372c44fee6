import uuid

from fastapi import APIRouter, Depends, HTTPException

from scanorder.devserver.deps import get_state
from scanorder.devserver.state import DevState
from scanorder.schemas.payments import CheckoutSessionIn

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/create-checkout-session")
def create_checkout_session(body: CheckoutSessionIn, st: DevState = Depends(get_state)):
    if body.order_id not in st.orders:
        raise HTTPException(404, detail="order not found")
    if not body.line_items:
        return {"success": False, "error": {"message": "No line items"}}

    sid = f"cs_test_{uuid.uuid4().hex}"
    cents = sum(li.price_data.unit_amount * li.quantity for li in body.line_items)
    st.sessions[sid] = {
        "sessionId": sid, "orderId": body.order_id, "amount": cents / 100,
        "currency": body.line_items[0].price_data.currency,
        "successUrl": body.success_url.replace("{CHECKOUT_SESSION_ID}", sid),
        "cancelUrl": body.cancel_url,
    }
    return {"success": True, "url": f"https://checkout.stripe.test/c/pay/{sid}", "sessionId": sid}


@router.get("/sessions/{session_id}")
def session_status(session_id: str, st: DevState = Depends(get_state)):
    s = st.sessions.get(session_id)
    if not s:
        raise HTTPException(404, detail="Payment session not found")

    script = st.payment_script.get(session_id)
    step = script.pop(0) if script else st.default_payment
    if isinstance(step, int):
        raise HTTPException(step, detail="Payment provider unavailable")

    out = {"success": True, "orderId": s["orderId"], "sessionId": session_id,
           "amount": s["amount"], "currency": s["currency"], **step}
    if out.get("status") == "paid" or out.get("paymentProviderStatus") == "paid":
        order = st.orders.get(s["orderId"])
        if order:
            order["paymentStatus"] = "paid"
    return out
