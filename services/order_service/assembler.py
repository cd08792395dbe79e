from decimal import Decimal
from typing import Iterable

from .errors import InvalidOrderData
from .schemas import RECEIVED_STATUS, OrderItem, OrderRecord


class OrderAssembler:
    @staticmethod
    def build(
        order_number: str,
        customer_id: int,
        name: str | None,
        email: str | None,
        address: str | None,
        payment_type: str | None,
        items: Iterable[OrderItem],
    ) -> OrderRecord:
        """Builds the stored order. Pure: no I/O, the total is summed in Decimal."""
        items = tuple(items)
        if not items:
            raise InvalidOrderData(f"Order {order_number} has no items")

        total = Decimal(0)
        for position, item in enumerate(items, start=1):
            if item.price < 0:
                raise InvalidOrderData(f"Item {position} ({item.name}) has a negative price")
            if item.qty <= 0:
                raise InvalidOrderData(f"Item {position} ({item.name}) has quantity {item.qty}")
            total += Decimal(item.price) * item.qty

        return OrderRecord(
            order_number=order_number,
            customer_id=customer_id,
            name=name,
            email=email,
            address=address,
            payment_type=payment_type,
            items=items,
            total=total,
            status=RECEIVED_STATUS,
        )
