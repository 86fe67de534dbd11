"""
Schemas for the Innova store

Each stored entity (Product, Category, User, Order, Review) is a Pydantic
model kept in the in-memory Database. Request and response bodies live
alongside them. JSON payloads use camelCase keys (productId, categoryId,
paymentMethod, ...), so every model goes through the CamelModel base.
"""

import enum
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"


# ----------------------------------------------------------------------------
# Catalog
# ----------------------------------------------------------------------------

class Category(CamelModel):
    id: int
    name: str


class Product(CamelModel):
    id: str = Field(..., description="Product id, e.g. p1")
    name: Optional[str] = None
    price: Optional[int] = Field(None, ge=0, description="Price in whole pesos")
    description: Optional[str] = None
    category_id: Optional[int] = None


class ProductCreate(CamelModel):
    id: Optional[str] = Field(None, min_length=1, description="Generated when absent")
    name: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    category_id: Optional[int] = None


class ProductUpdate(CamelModel):
    name: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    category_id: Optional[int] = None


# ----------------------------------------------------------------------------
# Users & auth
# ----------------------------------------------------------------------------

class User(CamelModel):
    """
    Users collection schema

    password_hash is stored but never returned; use UserPublic for output.
    """
    id: int
    name: Optional[str] = None
    email: str
    password_hash: str
    address: str = ""
    role: Role = Role.USER


class UserPublic(CamelModel):
    id: int
    name: Optional[str] = None
    email: str
    address: str = ""
    role: Role


class UserSummary(CamelModel):
    id: int
    name: Optional[str] = None
    email: str
    role: Role


class Identity(CamelModel):
    """Claims carried by an access token."""
    id: int
    email: str
    role: Role


class RegisterRequest(CamelModel):
    name: Optional[str] = None
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    address: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserSummary


# ----------------------------------------------------------------------------
# Cart
# ----------------------------------------------------------------------------

class CartItem(CamelModel):
    product_id: str
    quantity: int = Field(..., gt=0)


class CartAddRequest(CamelModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class CartLine(CamelModel):
    product_id: str
    quantity: int
    product: Optional[Product] = None


class CartView(CamelModel):
    items: List[CartLine] = Field(default_factory=list)


class CartResponse(CamelModel):
    message: str
    cart: List[CartItem]


# ----------------------------------------------------------------------------
# Orders
# ----------------------------------------------------------------------------

class OrderItemRequest(CamelModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class OrderCreate(CamelModel):
    items: Optional[List[OrderItemRequest]] = Field(None, description="Defaults to the caller's cart")
    address: Optional[str] = None
    payment_method: Optional[str] = None


class OrderItem(CamelModel):
    product_id: str
    quantity: int
    price: int = Field(..., description="Unit price snapshotted at order time")


class Order(CamelModel):
    """
    Orders collection schema

    Orders are append-only; total is fixed at creation.
    """
    id: int
    user_id: int
    items: List[OrderItem]
    total: int
    address: str = ""
    payment_method: str = "cash"
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ----------------------------------------------------------------------------
# Reviews
# ----------------------------------------------------------------------------

class ReviewCreate(CamelModel):
    rating: Any = None
    comment: Optional[str] = Field(None, validation_alias=AliasChoices("comment", "comentario"))


class Review(CamelModel):
    id: int
    product_id: str = Field(..., alias="productoId")
    user_id: int
    rating: float = 0
    comment: str = ""


# ----------------------------------------------------------------------------
# Misc
# ----------------------------------------------------------------------------

class Message(CamelModel):
    message: str


class Health(CamelModel):
    status: str = "ok"
    time: datetime
