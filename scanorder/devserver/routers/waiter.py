import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from scanorder.devserver.deps import get_state
from scanorder.devserver.state import DevState
from scanorder.schemas.waiter import CashPaymentIn, WaiterCallIn, WaiterCallStatus

router = APIRouter(prefix="/api", tags=["waiter"])


@router.post("/waiter-calls")
def create_call(body: WaiterCallIn, st: DevState = Depends(get_state)):
    if st.tables and body.table_id not in st.tables:
        raise HTTPException(404, detail=f"Table {body.table_id} not found")
    cid = uuid.uuid4().hex[:24]
    call = {
        "_id": cid, **body.wire(exclude_none=True),
        "status": WaiterCallStatus.ACTIVE.value,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    st.waiter_calls[cid] = call
    return {"success": True, "message": "Waiter has been notified", "data": call}


@router.get("/waiter-calls/table/{table_id}")
def calls_for_table(table_id: str, deviceId: str | None = None, st: DevState = Depends(get_state)):
    calls = [c for c in st.waiter_calls.values()
             if c["tableId"] == table_id and (deviceId is None or c.get("deviceId") in (None, deviceId))]
    return {"success": True, "data": calls}


@router.patch("/waiter-calls/{call_id}/cancel")
def cancel_call(call_id: str, st: DevState = Depends(get_state)):
    c = st.waiter_calls.get(call_id)
    if not c:
        raise HTTPException(404, detail="waiter call not found")
    if c["status"] != WaiterCallStatus.ACTIVE.value:
        raise HTTPException(409, detail=f"Waiter call is already {c['status']}")
    c["status"] = WaiterCallStatus.CANCELLED.value
    return {"success": True, "data": c}


@router.post("/cash-payments")
def cash_payment(body: CashPaymentIn, st: DevState = Depends(get_state)):
    if body.total_amount <= 0:
        raise HTTPException(400, detail="totalAmount must be positive")
    req = {"_id": uuid.uuid4().hex[:24], **body.wire(exclude_none=True), "status": "PENDING"}
    st.cash_requests.append(req)
    return {"success": True, "message": "A staff member will collect your payment", "data": req}
