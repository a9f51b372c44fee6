import logging
import time
from decimal import Decimal
from typing import Iterable

from pydantic import TypeAdapter, ValidationError

from scanorder.errors import validation_error
from scanorder.schemas.cart import CartItem, MenuItem, Modifier
from scanorder.storage import LocalStorage

logger = logging.getLogger(__name__)

CART_KEY = "cart"
_items = TypeAdapter(list[CartItem])


class CartStore:
    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self._items: list[CartItem] = self._load()

    def _load(self) -> list[CartItem]:
        raw = self.storage.get_json(CART_KEY, [])
        try:
            return _items.validate_python(raw)
        except ValidationError:
            logger.warning("stored cart unreadable, starting empty")
            return []

    def _save(self) -> None:
        self.storage.set_json(CART_KEY, [i.wire() for i in self._items])

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def total_items(self) -> int:
        return sum(i.quantity for i in self._items)

    @property
    def subtotal(self) -> Decimal:
        return sum((i.line_total for i in self._items), Decimal("0"))

    def get(self, item_id: str) -> CartItem | None:
        return next((i for i in self._items if i.id == item_id), None)

    def add(self, menu_item: MenuItem, quantity: int = 1, *,
            modifiers: Iterable[Modifier] | None = None,
            special_instructions: str | None = None) -> CartItem:
        """Add a menu item; the same item with the same modifiers stacks."""
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        if not menu_item.is_available:
            raise validation_error(f"{menu_item.name} is not available right now")
        mods = list(modifiers or [])
        signature = tuple(sorted(m.id for m in mods))

        for idx, line in enumerate(self._items):
            if line.menu_item_id == menu_item.id and line.modifier_signature() == signature:
                line = line.model_copy(update={
                    "quantity": line.quantity + quantity,
                    "special_instructions": special_instructions or line.special_instructions,
                })
                self._items[idx] = line
                self._save()
                logger.info("updated %s quantity in cart", menu_item.name)
                return line

        line_id = f"{menu_item.id}-{int(time.time() * 1000)}"
        taken = {i.id for i in self._items}
        n = 1
        while line_id in taken:
            line_id = f"{menu_item.id}-{int(time.time() * 1000)}-{n}"
            n += 1

        line = CartItem(
            id=line_id,
            menu_item_id=menu_item.id,
            name=menu_item.name,
            price=menu_item.price,
            quantity=quantity,
            modifiers=mods,
            special_instructions=special_instructions,
            image=menu_item.image,
        )
        self._items.append(line)
        self._save()
        logger.info("added %s to cart", menu_item.name)
        return line

    def remove(self, item_id: str) -> None:
        before = len(self._items)
        self._items = [i for i in self._items if i.id != item_id]
        if len(self._items) != before:
            self._save()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        # never below 1: going to zero removes the line
        if quantity <= 0:
            self.remove(item_id)
            return
        self._items = [i.model_copy(update={"quantity": quantity}) if i.id == item_id else i
                       for i in self._items]
        self._save()

    def clear(self) -> None:
        self._items = []
        self._save()
