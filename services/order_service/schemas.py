from decimal import Decimal
from typing import List
from pydantic import BaseModel, ConfigDict, Field, field_serializer

RECEIVED_STATUS = "Order Diterima"
PROCESSED_MESSAGE = "Order Berhasil Diproses"


def _money(amount: Decimal):
    # Whole amounts stay integers in the stored document, cents stay exact strings
    return int(amount) if amount == amount.to_integral_value() else str(amount)


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    product_id: int = Field(alias="id_product")
    name: str
    price: Decimal
    qty: int

    @field_serializer("price")
    def serialize_price(self, price: Decimal):
        return _money(price)


class OrderCreate(BaseModel):
    """Incoming order body. Required-field checks beyond types live upstream."""
    model_config = ConfigDict(populate_by_name=True)

    customer_id: int = Field(alias="id_customer")
    name: str | None = None
    email: str | None = None
    address: str | None = None
    payment_type: str | None = None
    items: List[OrderItem] = []


class OrderRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    order_number: str = Field(alias="no_order")
    customer_id: int = Field(alias="id_customer")
    name: str | None = None
    email: str | None = None
    address: str | None = None
    payment_type: str | None = None
    items: tuple[OrderItem, ...]
    total: Decimal
    status: str = RECEIVED_STATUS

    @field_serializer("total")
    def serialize_total(self, total: Decimal):
        return _money(total)

    def to_document(self) -> dict:
        """The stored JSON shape, using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class OrderResult(BaseModel):
    order_number: str


class OrderResponse(BaseModel):
    message: str = PROCESSED_MESSAGE
    result: OrderResult
