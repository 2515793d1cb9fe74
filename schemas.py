"""
Database Schemas

Each Pydantic model represents a collection in the MongoDB database.
Model name is converted to lowercase for the collection name:
- User -> "user" collection
- Product -> "product" collection
- Order -> "order" collection

Address, LineItem and PaymentDetails are embedded in Order, not collections
on their own.
"""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

# Cart slots created for a new user. Item ids outside this range still work,
# they just start out absent (zero).
CART_SIZE = 300

PaymentStatus = Literal["Pending", "Completed", "Failed"]
OrderStatus = Literal["Pending", "Shipped", "Delivered", "Cancelled"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_cart() -> Dict[str, int]:
    return {str(i): 0 for i in range(CART_SIZE)}


class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"
    """
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Lower-cased email address, unique")
    password_hash: str = Field(..., description="bcrypt hash, never the password itself")
    cartData: Dict[str, int] = Field(default_factory=empty_cart, description="item id -> quantity")
    date: datetime = Field(default_factory=utcnow)


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    id: int = Field(..., ge=1, description="Sequential product id")
    name: str
    image: str = Field(..., description="URL of the uploaded product photo")
    category: str
    new_price: float = Field(..., ge=0)
    old_price: float = Field(..., ge=0)
    available: bool = True
    date: datetime = Field(default_factory=utcnow)


class Address(BaseModel):
    name: str
    email: Optional[EmailStr] = None
    contact: str
    street: str
    city: str
    state: str
    pincode: str


class LineItem(BaseModel):
    productId: int
    productName: str
    productPrice: float = Field(..., ge=0, description="Price at the time of ordering")
    quantity: int = Field(..., ge=1)


class PaymentDetails(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    orderId: int = Field(..., ge=1)
    userId: str = Field(..., description="User ObjectId as string")
    address: Address
    products: List[LineItem]
    totalAmount: float = Field(..., ge=0)
    paymentStatus: PaymentStatus = "Pending"
    orderStatus: OrderStatus = "Pending"
    paymentDetails: Optional[PaymentDetails] = None
    createdAt: datetime = Field(default_factory=utcnow)
