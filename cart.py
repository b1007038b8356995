import json
import logging
import math
from typing import Any, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError

from schemas import LineItem, Order, PaymentMethod

logger = logging.getLogger(__name__)


class CartError(ValueError):
    """Raised when a submitted cart cannot be accepted."""


class CustomerInfo(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    contact: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    address: str = Field(..., min_length=1)
    city: Optional[str] = None
    payment_method: PaymentMethod
    payment_reference: Optional[str] = None


def parse_cart(raw: Union[str, bytes, None]) -> List[LineItem]:
    """Decode the serialized cart field into validated line items.

    Checks run in order and the first failure wins: JSON decoding, list
    type, non-empty, then each element against LineItem. The running
    total must stay finite.
    """
    if raw is None or (isinstance(raw, (str, bytes)) and not raw.strip()):
        raise CartError("cart is required")
    try:
        decoded: Any = json.loads(raw)
    except (TypeError, ValueError):
        raise CartError("invalid cart format")
    if not isinstance(decoded, list):
        raise CartError("invalid cart format")
    if not decoded:
        raise CartError("cart is empty")

    items = []
    total = 0.0
    for position, entry in enumerate(decoded, start=1):
        if not isinstance(entry, dict):
            raise CartError(f"invalid cart item at position {position}")
        try:
            item = LineItem.model_validate(entry)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            logger.warning("Cart item %s rejected: %s", position, fields)
            raise CartError(f"invalid cart item at position {position}: {fields}")
        total += item.price * item.quantity
        if not math.isfinite(total):
            logger.warning("Cart total overflowed at item %s", position)
            raise CartError(f"invalid cart item at position {position}: price")
        items.append(item)
    return items


def new_order_number() -> str:
    return f"ORD-{str(ObjectId())[-6:].upper()}"


def order_total(items: List[LineItem]) -> float:
    return round(sum(i.price * i.quantity for i in items), 2)


def materialize_order(customer: CustomerInfo, items: List[LineItem], screenshot: Optional[str] = None) -> List[Order]:
    # One document per checkout with the cart embedded; Order rejects an empty items list.
    order = Order(
        order_number=new_order_number(),
        items=list(items),
        total=order_total(items),
        screenshot=screenshot,
        **customer.model_dump(),
    )
    return [order]
