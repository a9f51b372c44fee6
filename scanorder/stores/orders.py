import logging
from decimal import Decimal
from typing import Iterable

from pydantic import TypeAdapter, ValidationError

from scanorder.schemas.orders import Order, OrderStatus, PaymentStatus, Totals
from scanorder.services.billing import money
from scanorder.storage import LocalStorage

logger = logging.getLogger(__name__)

ORDERS_KEY = "orders"
_orders = TypeAdapter(list[Order])


class OrdersStore:
    """Orders placed from this client, keyed by server id.

    Entries are never dropped one by one; a cancelled order stays with
    status `cancelled`.
    """

    def __init__(self, storage: LocalStorage, mirror: bool = True):
        self.storage = storage
        self.mirror = mirror
        self._by_id: dict[str, Order] = {}
        if mirror:
            try:
                for o in _orders.validate_python(storage.get_json(ORDERS_KEY, [])):
                    self._by_id[o.id] = o
            except ValidationError:
                logger.warning("stored orders unreadable, starting empty")

    def _save(self) -> None:
        if self.mirror:
            self.storage.set_json(ORDERS_KEY, [o.wire() for o in self._by_id.values()])

    def add_order(self, order: Order) -> Order:
        """Upsert by id; fields set on `order` overwrite the cached ones."""
        current = self._by_id.get(order.id)
        if current is not None:
            update = {k: getattr(order, k) for k in order.model_fields_set}
            order = current.model_copy(update=update)
        self._by_id[order.id] = order
        self._save()
        return order

    def get(self, order_id: str) -> Order | None:
        return self._by_id.get(order_id)

    @property
    def orders(self) -> list[Order]:
        return list(reversed(self._by_id.values()))

    def replace_all(self, orders: Iterable[Order]) -> None:
        fresh = list(orders)
        self._by_id = {}
        for o in reversed(fresh):
            self._by_id[o.id] = o
        self._save()

    def mark_cancelled(self, order_id: str) -> Order | None:
        if order_id not in self._by_id:
            return None
        return self.add_order(Order(id=order_id, status=OrderStatus.CANCELLED))

    def bill(self, table_id: str) -> Totals:
        """Outstanding amount for a table: unpaid, uncancelled orders."""
        open_orders = [
            o for o in self._by_id.values()
            if o.table_id == table_id
            and o.status != OrderStatus.CANCELLED
            and o.payment_status not in (PaymentStatus.PAID, PaymentStatus.REFUNDED)
        ]

        def _sum(field: str) -> Decimal:
            return money(sum((Decimal(str(getattr(o, field))) for o in open_orders), Decimal("0")))

        return Totals(
            subtotal=_sum("subtotal"), tax=_sum("tax"), service_fee=_sum("service_fee"),
            tip=_sum("tip"), total=_sum("total"),
        )

    def clear(self) -> None:
        self._by_id = {}
        self.storage.remove_item(ORDERS_KEY)
