from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, Field

from scanorder.schemas.common import CamelModel


class WaiterCallReason(str, Enum):
    NEED_ASSISTANCE = "NEED_ASSISTANCE"
    NEED_REFILL = "NEED_REFILL"
    NEED_UTENSILS = "NEED_UTENSILS"
    OTHER = "OTHER"


class WaiterCallStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    CANCELLED = "CANCELLED"


class WaiterCallIn(CamelModel):
    table_id: str
    reason: WaiterCallReason
    additional_info: Optional[str] = None
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    is_guest: bool = False


class WaiterCall(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    table_id: str
    reason: WaiterCallReason
    additional_info: Optional[str] = None
    status: WaiterCallStatus = WaiterCallStatus.ACTIVE
    device_id: Optional[str] = None
    is_guest: bool = False
    created_at: Optional[datetime] = None


class CashPaymentIn(CamelModel):
    table_id: str
    total_amount: float
    order_ids: list[str] = Field(default_factory=list)
    additional_info: Optional[str] = None
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    is_guest: bool = False
