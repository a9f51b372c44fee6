from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, Field

from scanorder.schemas.common import CamelModel


class Modifier(CamelModel):
    id: str
    name: str
    price: float = 0.0


class MenuItem(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str
    price: float
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    sub_categories: list[str] = Field(default_factory=list)
    is_available: bool = True


class CartItem(CamelModel):
    id: str
    menu_item_id: Optional[str] = None
    name: str
    price: float
    quantity: int = Field(ge=1)
    modifiers: list[Modifier] = Field(default_factory=list)
    special_instructions: Optional[str] = None
    image: Optional[str] = None

    @property
    def unit_total(self) -> Decimal:
        return Decimal(str(self.price)) + sum((Decimal(str(m.price)) for m in self.modifiers), Decimal("0"))

    @property
    def line_total(self) -> Decimal:
        return self.unit_total * self.quantity

    def modifier_signature(self) -> tuple[str, ...]:
        return tuple(sorted(m.id for m in self.modifiers))
