"""
Database Schemas for the Storefront Order Intake API

Each Pydantic model below corresponds to a MongoDB collection.
The collection name is the lowercase class name (e.g., Order -> "order").
"""
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, EmailStr

PaymentMethod = Literal["cash", "easypaisa", "jazzcash", "bank"]


class LineItem(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    product: str = Field(..., min_length=1, description="Product name or identifier")
    size: Optional[str] = Field(None, description="Size variant, if the product has one")
    quantity: int = Field(..., ge=1, le=100000)
    price: float = Field(0.0, ge=0, allow_inf_nan=False, description="Unit price")


class Order(BaseModel):
    order_number: str = Field(..., description="Human-friendly order number")
    name: str = Field(..., description="Customer name")
    contact: str = Field(..., description="Customer phone number")
    email: Optional[EmailStr] = None
    address: str
    city: Optional[str] = None
    payment_method: PaymentMethod
    payment_reference: Optional[str] = Field(None, description="Transaction id for easypaisa/jazzcash/bank")
    screenshot: Optional[str] = Field(None, description="Stored filename of the payment screenshot")
    items: List[LineItem] = Field(..., min_length=1)
    total: float = Field(0.0, ge=0, allow_inf_nan=False)
    status: Literal["pending", "confirmed", "shipped", "delivered", "cancelled"] = "pending"


class Contactmessage(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None


class Review(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, description="Author name")
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)


"""
Notes:
- created_at is assigned by the store on insert; it is never read from a request.
- Orders keep the whole cart embedded in `items` (one document per checkout).
"""
