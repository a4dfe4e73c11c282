"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from delivery_cart.api.cart import router as cart_router
from delivery_cart.app_logging import configure_logging
from delivery_cart.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with a cart session."""
    configure_logging(container.settings.log_level.upper())
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        session: AppContainer = app.state.container
        restored = session.coordinator.restore_persisted()
        if restored:
            logger.info("Restored %s cart items from the previous session", restored)
        yield
        await session.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(cart_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
