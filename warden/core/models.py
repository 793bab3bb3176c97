"""
Entity models for the example shop API.

These cover every ownership shape the access layer supports:

- User         the entity is the owner (self)
- Order        owned through a ``user`` relation
- UserAddress  owned through a ``user`` relation, declared in YAML
- Review       owned through an ``owner`` relation, inferred
- GiftCard     owned through a custom accessor
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field

from warden.auth.ownership import user_owned
from warden.core.utils import utc_now
from warden.storage.base import Entities


# =============================================================================
# Enums
# =============================================================================


class OrderStatus(str, Enum):
    """Lifecycle of an order."""

    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# =============================================================================
# Users
# =============================================================================


@user_owned(path="")
class User(BaseModel):
    """A shop customer or administrator."""

    __collection__: ClassVar[str] = Entities.USERS

    id: int
    email: str
    name: str
    is_admin: bool = False


class UserAddress(BaseModel):
    """A saved shipping address. Ownership comes from config/ownership.yaml."""

    __collection__: ClassVar[str] = Entities.ADDRESSES

    id: int
    user: User | None = None
    street: str
    city: str
    postal_code: str = ""
    is_default: bool = False


# =============================================================================
# Orders
# =============================================================================


@user_owned(path="user.id")
class Order(BaseModel):
    """A placed order."""

    __collection__: ClassVar[str] = Entities.ORDERS

    id: int
    user: User | None = None
    status: OrderStatus = OrderStatus.PENDING
    total: Decimal = Decimal("0")
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def can_cancel(self) -> bool:
        return self.status in (OrderStatus.PENDING, OrderStatus.PAID)


class Review(BaseModel):
    """A product review. No ownership declared: inferred as ``owner.id``."""

    __collection__: ClassVar[str] = Entities.REVIEWS

    id: int
    owner: User | None = None
    product_id: int
    rating: int = Field(ge=1, le=5)
    text: str = ""


@user_owned(accessor="owner_user_id")
class GiftCard(BaseModel):
    """
    A gift card.

    Belongs to the recipient once redeemed, to the purchaser before.
    """

    __collection__: ClassVar[str] = Entities.GIFT_CARDS

    id: int
    purchaser_id: int
    recipient_id: int | None = None
    redeemed: bool = False
    balance: Decimal = Decimal("0")

    def owner_user_id(self) -> int:
        if self.redeemed:
            if self.recipient_id is None:
                raise ValueError("redeemed gift card has no recipient")
            return self.recipient_id
        return self.purchaser_id
