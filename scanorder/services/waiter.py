import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from scanorder.errors import ClientError, ErrorKind
from scanorder.http import ApiClient
from scanorder.schemas.waiter import CashPaymentIn, WaiterCall, WaiterCallIn, WaiterCallReason
from scanorder.services.auth import AuthState, TokenProvider

logger = logging.getLogger(__name__)

_calls = TypeAdapter(list[WaiterCall])


def _unwrap(body: Any) -> Any:
    if isinstance(body, dict) and "success" in body:
        if not body["success"]:
            raise ClientError(ErrorKind.SERVER, body.get("message") or "Request was not accepted", data=body)
        return body.get("data")
    return body


class WaiterCallService:
    def __init__(self, api: ApiClient, tokens: TokenProvider, state: AuthState, device: str):
        self.api = api
        self.tokens = tokens
        self.state = state
        self.device = device

    async def create(self, table_id: str, reason: WaiterCallReason = WaiterCallReason.NEED_ASSISTANCE,
                     additional_info: str | None = None) -> WaiterCall:
        user_id = (self.state.user or {}).get("id")
        body = WaiterCallIn(
            table_id=table_id,
            reason=reason,
            additional_info=additional_info,
            user_id=user_id,
            device_id=None if user_id else self.device,
            is_guest=not user_id,
        )
        data = await self.api.post("/api/waiter-calls", token=await self.tokens.resolve(),
                                   json=body.wire(exclude_none=True))
        try:
            call = WaiterCall.model_validate(_unwrap(data))
        except ValidationError as e:
            raise ClientError(ErrorKind.MALFORMED, "Unexpected waiter call response", data=data) from e
        logger.info("waiter called to table %s (%s)", table_id, reason.value)
        return call

    async def for_table(self, table_id: str) -> list[WaiterCall]:
        data = await self.api.get(f"/api/waiter-calls/table/{table_id}", token=await self.tokens.resolve(),
                                  params={"deviceId": self.device})
        try:
            return _calls.validate_python(_unwrap(data) or [])
        except ValidationError as e:
            raise ClientError(ErrorKind.MALFORMED, "Unexpected waiter call list", data=data) from e

    async def cancel(self, call_id: str) -> WaiterCall:
        data = await self.api.patch(f"/api/waiter-calls/{call_id}/cancel", token=await self.tokens.resolve(),
                                    json={})
        try:
            return WaiterCall.model_validate(_unwrap(data))
        except ValidationError as e:
            raise ClientError(ErrorKind.MALFORMED, "Unexpected waiter call response", data=data) from e


class CashPaymentService:
    """Asks staff to collect cash at the table instead of paying online."""

    def __init__(self, api: ApiClient, tokens: TokenProvider, state: AuthState, device: str):
        self.api = api
        self.tokens = tokens
        self.state = state
        self.device = device

    async def request(self, table_id: str, total_amount, order_ids: list[str] | None = None,
                      additional_info: str | None = None) -> dict:
        user_id = (self.state.user or {}).get("id")
        body = CashPaymentIn(
            table_id=table_id,
            total_amount=float(total_amount),
            order_ids=order_ids or [],
            additional_info=additional_info,
            user_id=user_id,
            device_id=None if user_id else self.device,
            is_guest=not user_id,
        )
        data = await self.api.post("/api/cash-payments", token=await self.tokens.resolve(),
                                   json=body.wire(exclude_none=True))
        return _unwrap(data) or {}
