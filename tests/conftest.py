"""
Shared fixtures for the access control tests.
"""

from decimal import Decimal

import pytest

from warden.auth import IdentityContext, OwnershipDescriptor
from warden.core.models import GiftCard, Order, OrderStatus, Review, User, UserAddress
from warden.core.registry import AccessRegistry
from warden.storage import InMemoryEntityLoader


class RecordingLoader(InMemoryEntityLoader):
    """In-memory loader that remembers every load call."""
    
    def __init__(self, latency: float = 0.0):
        super().__init__(latency=latency)
        self.calls: list[tuple[type, int]] = []
    
    async def load(self, entity_type, entity_id):
        self.calls.append((entity_type, entity_id))
        return await super().load(entity_type, entity_id)


class FailingLoader(InMemoryEntityLoader):
    """Loader whose backend times out."""
    
    async def load(self, entity_type, entity_id):
        raise TimeoutError("database timed out")


# =============================================================================
# Identities
# =============================================================================


@pytest.fixture
def anonymous():
    return IdentityContext.anonymous()


@pytest.fixture
def bob_identity():
    return IdentityContext.user(5)


@pytest.fixture
def carol_identity():
    return IdentityContext.user(9)


@pytest.fixture
def admin_identity():
    return IdentityContext.user(1, is_admin=True)


# =============================================================================
# Entities
# =============================================================================


@pytest.fixture
def bob():
    return User(id=5, email="bob@example.com", name="Bob")


@pytest.fixture
def carol():
    return User(id=9, email="carol@example.com", name="Carol")


@pytest.fixture
def loader(bob, carol):
    """Order#100 belongs to Bob, Order#101 to Carol, Order#102 to nobody."""
    loader = RecordingLoader()
    loader.add_all(
        bob,
        carol,
        Order(id=100, user=bob, status=OrderStatus.PAID, total=Decimal("10")),
        Order(id=101, user=carol),
        Order(id=102, user=None),
        UserAddress(id=10, user=bob, street="1 Main St", city="Springfield"),
        Review(id=20, owner=carol, product_id=7, rating=5),
        GiftCard(id=30, purchaser_id=5, recipient_id=9, redeemed=True),
        GiftCard(id=31, purchaser_id=5),
        GiftCard(id=32, purchaser_id=5, redeemed=True),
    )
    return loader


@pytest.fixture
def registry():
    """Fresh registry with the sample entity types' ownership declared."""
    registry = AccessRegistry()
    registry.register_ownership(User, OwnershipDescriptor.self_owned())
    registry.register_ownership(Order, OwnershipDescriptor.from_path("user.id"))
    registry.register_ownership(UserAddress, OwnershipDescriptor.from_path("user.id"))
    registry.register_ownership(GiftCard, OwnershipDescriptor.from_accessor("owner_user_id"))
    return registry


@pytest.fixture
def failing_loader():
    return FailingLoader()
