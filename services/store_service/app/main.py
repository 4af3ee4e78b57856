"""FastAPI application for the Store Service."""

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.middleware import add_observability_middleware
from services.store_service.routers import (
    admin_catalog_router,
    admin_orders_router,
    cart_router,
    catalog_router,
    checkout_router,
    orders_router,
    payments_router,
)


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="BelléaWigs Store Service",
        version="0.1.0",
        description="Storefront backend for BelléaWigs - catalog, cart, checkout, payments, orders.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    # Public store routes (catalog, cart, checkout, payments, orders)
    app.include_router(catalog_router, prefix="/store")
    app.include_router(cart_router, prefix="/store")
    app.include_router(checkout_router, prefix="/store")
    app.include_router(payments_router, prefix="/store")
    app.include_router(orders_router, prefix="/store")

    # Admin routes (catalog management, order management)
    app.include_router(admin_catalog_router, prefix="/admin/store")
    app.include_router(admin_orders_router, prefix="/admin/store")

    return app


app = create_app()
