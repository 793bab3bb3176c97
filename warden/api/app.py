"""
FastAPI application for the example shop.

Shows the access layer end to end: routes declare rules, startup
validates the whole configuration and refuses to serve if anything is
miswired, and denials come back as 401 / 403 / 404.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
import logging

from fastapi import FastAPI

from warden.api.errors import install_error_handlers
from warden.auth import configure_access_control
from warden.config import Settings, get_settings
from warden.config_loader import load_ownership_config
from warden.core.logging import configure_logging
from warden.core.models import GiftCard, Order, OrderStatus, Review, User, UserAddress
from warden.core.registry import get_registry
from warden.storage import EntityLoader, InMemoryEntityLoader

logger = logging.getLogger(__name__)


# =============================================================================
# Demo data
# =============================================================================


def create_demo_loader() -> InMemoryEntityLoader:
    """In-memory store with a couple of users and their entities."""
    loader = InMemoryEntityLoader()
    alice = User(id=1, email="alice@example.com", name="Alice", is_admin=True)
    bob = User(id=5, email="bob@example.com", name="Bob")
    carol = User(id=9, email="carol@example.com", name="Carol")
    loader.add_all(alice, bob, carol)
    loader.add_all(
        Order(id=100, user=bob, status=OrderStatus.PAID, total=Decimal("59.90")),
        Order(id=101, user=carol, total=Decimal("120.00")),
        Order(id=102, user=None),
        UserAddress(id=10, user=bob, street="1 Main St", city="Springfield", is_default=True),
        Review(id=20, owner=carol, product_id=7, rating=4, text="Comfortable"),
        GiftCard(id=30, purchaser_id=5, recipient_id=9, redeemed=True, balance=Decimal("25")),
        GiftCard(id=31, purchaser_id=5, balance=Decimal("50")),
    )
    return loader


# =============================================================================
# App Setup
# =============================================================================


def create_app(
    loader: EntityLoader | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Build the API.

    Args:
        loader: Entity loader used for ownership checks (demo data if None)
        settings: Settings (environment if None)
    """
    settings = settings or get_settings()
    # Routes declare their rules into the global registry on import
    registry = get_registry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Validate access configuration before serving anything."""
        configure_logging(settings)
        load_ownership_config(settings.ownership_config_path or None, registry)
        configure_access_control(app, loader or create_demo_loader(), registry)
        logger.info(f"Warden API starting in {settings.environment} mode")

        yield

        logger.info("Warden API shutting down")

    app = FastAPI(
        title="Warden Example API",
        description="Declarative owner/admin access control on a small shop API",
        version="0.1.0",
        lifespan=lifespan,
    )
    install_error_handlers(app)

    from warden.api.routes import router
    app.include_router(router)

    return app
