"""Sales order model."""

import secrets
import string
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel, Field, field_serializer

ORDER_STATUS_PENDING = "pending"
_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_CENTS = Decimal("0.01")


def generate_order_number() -> str:
    """Build an order number of the form ORD-<epoch millis>-<6 chars A-Z0-9>."""
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(6))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Quantize a value to two decimal places."""
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)


class Order(BaseModel):
    """A sales order placed through the assistant.

    total_amount is fixed at creation time and never recomputed.
    """

    id: str
    order_number: str
    customer_name: str
    customer_email: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_amount: Decimal
    status: str = ORDER_STATUS_PENDING
    user_id: str
    order_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        user_id: str,
        customer_name: str,
        customer_email: str,
        product_name: str,
        quantity: int,
        unit_price: Decimal | float,
    ) -> "Order":
        price = to_money(unit_price)
        return cls(
            id=uuid.uuid4().hex,
            order_number=generate_order_number(),
            customer_name=customer_name,
            customer_email=customer_email,
            product_name=product_name,
            quantity=quantity,
            unit_price=price,
            total_amount=to_money(price * quantity),
            user_id=user_id,
        )

    @field_serializer("unit_price", "total_amount", when_used="json")
    def _serialize_money(self, value: Decimal) -> str:
        return f"{value:.2f}"
