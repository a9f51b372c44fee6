from typing import Any, Optional

from pydantic import BaseModel

from scanorder.schemas.common import CamelModel


class ProductData(BaseModel):
    name: str
    description: Optional[str] = None


class PriceData(BaseModel):
    currency: str
    product_data: ProductData
    unit_amount: int  # cents


class LineItem(BaseModel):
    price_data: PriceData
    quantity: int


class CheckoutSessionIn(CamelModel):
    line_items: list[LineItem]
    table_id: str
    restaurant_id: Optional[str] = None
    order_id: str
    metadata: dict[str, str]
    success_url: str
    cancel_url: str


class CheckoutSession(CamelModel):
    success: bool
    url: Optional[str] = None
    session_id: Optional[str] = None
    error: Optional[dict[str, Any]] = None


class PaymentStatusResult(CamelModel):
    success: bool = True
    status: Optional[str] = None              # paid | pending | failed
    payment_provider_status: Optional[str] = None  # paid | processing | ...
    order_id: Optional[str] = None
    session_id: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == "paid" or self.payment_provider_status == "paid"

    @property
    def is_processing(self) -> bool:
        return not self.is_paid and self.payment_provider_status == "processing"
