from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from scanorder.schemas.cart import Modifier
from scanorder.schemas.common import CamelModel


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class OrderType(str, Enum):
    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"


class Totals(BaseModel):
    subtotal: Decimal
    tax: Decimal
    service_fee: Decimal
    tip: Decimal
    total: Decimal


class OrderLine(CamelModel):
    menu_item: Optional[str] = None
    name: str
    quantity: int = Field(ge=1)
    price: float
    subtotal: float = 0.0
    special_instructions: str = ""
    modifiers: list[Modifier] = Field(default_factory=list)


class OrderDraft(CamelModel):
    restaurant_id: str
    table_id: str
    items: list[OrderLine]
    subtotal: float
    tax: float
    service_fee: float
    tip: float = 0.0
    total: float
    order_type: OrderType = OrderType.DINE_IN
    special_instructions: str = ""
    order_number: str
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    device_id: Optional[str] = None  # guests only


class Order(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    order_number: Optional[str] = None
    table_id: Optional[str] = None
    restaurant_id: Optional[str] = None
    items: list[OrderLine] = Field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    service_fee: float = 0.0
    tip: float = 0.0
    total: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    order_type: Optional[OrderType] = None
    special_instructions: Optional[str] = None
    created_at: Optional[datetime] = None
