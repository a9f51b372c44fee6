import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from scanorder.devserver.deps import get_state, optional_claims, require_claims
from scanorder.devserver.state import DevState
from scanorder.schemas.orders import OrderDraft, OrderStatus

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _shape(st: DevState, order: dict):
    if st.bare_order_responses:
        return order
    return {"success": True, "data": order}


def _owned(st: DevState, order_id: str, claims: dict) -> dict:
    o = st.orders.get(order_id)
    if not o or o.get("userId") != claims["sub"]:
        raise HTTPException(404, detail="order not found")
    return o


@router.post("")
def create_order(body: OrderDraft, claims: dict | None = Depends(optional_claims), st: DevState = Depends(get_state)):
    if st.fail_orders_with:
        raise HTTPException(st.fail_orders_with, detail="Order creation failed")
    if st.require_auth_for_orders and not claims:
        raise HTTPException(401, detail="Authentication required")
    if not body.items:
        raise HTTPException(400, detail="Order has no items")

    oid = uuid.uuid4().hex[:24]
    order = {
        "_id": oid,
        **body.wire(exclude_none=True),
        "userId": claims["sub"] if claims else None,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    st.orders[oid] = order
    return _shape(st, order)


@router.get("/my-orders")
def my_orders(claims: dict = Depends(require_claims), st: DevState = Depends(get_state)):
    mine = [o for o in st.orders.values() if o.get("userId") == claims["sub"]]
    mine.sort(key=lambda o: o["createdAt"], reverse=True)
    return {"success": True, "data": mine}


@router.get("/{order_id}")
def get_order(order_id: str, claims: dict = Depends(require_claims), st: DevState = Depends(get_state)):
    return _shape(st, _owned(st, order_id, claims))


@router.post("/{order_id}/cancel")
def cancel_order(order_id: str, claims: dict = Depends(require_claims), st: DevState = Depends(get_state)):
    o = _owned(st, order_id, claims)
    if o["status"] != OrderStatus.PENDING.value:
        raise HTTPException(409, detail=f"Order is already {o['status']}")
    o["status"] = OrderStatus.CANCELLED.value
    return {"success": True, "data": o}


@router.put("/{order_id}/payment")
def update_payment(order_id: str, body: dict, claims: dict = Depends(require_claims),
                   st: DevState = Depends(get_state)):
    o = _owned(st, order_id, claims)
    if not body.get("paymentStatus"):
        raise HTTPException(400, detail="paymentStatus is required")
    o["paymentStatus"] = body["paymentStatus"]
    return {"success": True, "data": o}
