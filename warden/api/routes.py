"""
Example shop routes.

Every route declares its access rule with ``@access_control`` and
depends on ``enforce``; none of them contain authorization code of
their own except the bulk endpoint, which opts out with ``skip``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from warden.auth import (
    AccessGrant,
    AccessLevel,
    EntityNotFound,
    Forbidden,
    access_control,
    enforce,
    get_loader,
)
from warden.core.models import GiftCard, Order, OrderStatus, Review, User, UserAddress
from warden.storage.base import EntityStore

router = APIRouter()


async def _target(grant: AccessGrant, loader: EntityStore, entity_type: Any, entity_id: int) -> Any:
    """The entity the access check loaded, or a fresh load (admin bypass)."""
    if grant.entity is not None:
        return grant.entity
    entity = await loader.load(entity_type, entity_id)
    if entity is None:
        raise EntityNotFound(f"{entity_type.__name__} with id {entity_id} not found")
    return entity


# =============================================================================
# Public
# =============================================================================


@router.get("/health")
@access_control(AccessLevel.PUBLIC)
async def health(grant: AccessGrant = Depends(enforce)):
    return {"status": "ok"}


# =============================================================================
# Users
# =============================================================================


@router.get("/users/me", response_model=User)
@access_control(AccessLevel.AUTHENTICATED)
async def get_me(
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    user = await loader.load(User, grant.identity.caller_id)
    if user is None:
        raise EntityNotFound("User not found")
    return user


@router.get("/users", response_model=list[User])
@access_control(AccessLevel.ADMIN_ONLY)
async def list_users(
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    return await loader.list(User)


@router.get("/users/{user_id:int}", response_model=User)
@access_control(AccessLevel.OWNER_OR_ADMIN, entity_type=User, entity_id_param="user_id")
async def get_user(
    user_id: int,
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    return await _target(grant, loader, User, user_id)


# =============================================================================
# Orders
# =============================================================================


@router.get("/orders/{order_id:int}", response_model=Order)
@access_control(AccessLevel.OWNER_OR_ADMIN, entity_type=Order, entity_id_param="order_id")
async def get_order(
    order_id: int,
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    return await _target(grant, loader, Order, order_id)


@router.post("/orders/{order_id:int}/cancel", response_model=Order)
@access_control(
    AccessLevel.OWNER_OR_ADMIN,
    entity_type=Order,
    entity_id_param="order_id",
    denied_message="You can only cancel your own orders",
)
async def cancel_order(
    order_id: int,
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    order = await _target(grant, loader, Order, order_id)
    if order.can_cancel:
        order.status = OrderStatus.CANCELLED
    return order


class BulkStatusUpdate(BaseModel):
    order_ids: list[int]
    status: OrderStatus


@router.post("/orders/bulk-status")
@access_control(AccessLevel.ADMIN_ONLY, skip=True)
async def bulk_update_status(
    update: BulkStatusUpdate,
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    # Spans many orders, so no single-entity rule applies
    if not grant.identity.is_admin:
        raise Forbidden("Admin access required for bulk updates")

    updated = []
    for order_id in update.order_ids:
        order = await loader.load(Order, order_id)
        if order is not None:
            order.status = update.status
            updated.append(order_id)
    return {"updated": updated}


# =============================================================================
# Addresses, reviews, gift cards
# =============================================================================


@router.get("/addresses/{address_id:int}", response_model=UserAddress)
@access_control(AccessLevel.OWNER_OR_ADMIN, entity_type=UserAddress, entity_id_param="address_id")
async def get_address(
    address_id: int,
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    return await _target(grant, loader, UserAddress, address_id)


@router.delete("/addresses/{address_id:int}", status_code=204)
@access_control(AccessLevel.OWNER_OR_ADMIN, entity_type=UserAddress, entity_id_param="address_id")
async def delete_address(
    address_id: int,
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    await _target(grant, loader, UserAddress, address_id)
    await loader.delete(UserAddress, address_id)


@router.get("/reviews/{review_id:int}", response_model=Review)
@access_control(AccessLevel.OWNER_OR_ADMIN, entity_type=Review, entity_id_param="review_id")
async def get_review(
    review_id: int,
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    return await _target(grant, loader, Review, review_id)


@router.get("/gift-cards/{card_id:int}", response_model=GiftCard)
@access_control(AccessLevel.OWNER_OR_ADMIN, entity_type=GiftCard, entity_id_param="card_id")
async def get_gift_card(
    card_id: int,
    grant: AccessGrant = Depends(enforce),
    loader: EntityStore = Depends(get_loader),
):
    return await _target(grant, loader, GiftCard, card_id)
