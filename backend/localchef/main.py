"""
# `localchef/main.py` - Application entry point

## Overview
`create_app()` builds the FastAPI application: the document store, the identity
provider and the payment gateway are built from settings (or injected, as the
tests do) and kept on `app.state`. Nothing is created at import time.

## Routers
- `/users`, `/meals`, `/reviews` + `/user-reviews`, `/favorites`, `/orders`
- `/role-requests`
- `/create-payment-intent`, `/payment-success`, `/payments`
- `/admin/statistics`

## Request gate
Every route passes through `enforce_route_rules` (an app wide dependency) which
applies the route's entry in `core/gate.ROUTE_TABLE`. After the routers are
mounted the table is checked against them; a route without an entry stops the
app from starting.

## Events
- `shutdown`: the document store is closed.

## Running
    uvicorn localchef.main:create_app --factory --port 3000
"""
import logging
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from localchef.config import (
    Settings,
    build_identity_provider,
    build_payment_gateway,
    build_store,
    get_settings,
)
from localchef.core.errors import register_error_handlers
from localchef.core.gate import RequestGate, enforce_route_rules
from localchef.integrations.identity import IdentityProvider
from localchef.integrations.payment import PaymentGateway
from localchef.repositories.base import DocumentStore
from localchef.routers import (
    admin_dashboard,
    favorites,
    meals,
    orders,
    payments as payments_router,
    reviews,
    role_requests,
    users,
)

logger = logging.getLogger("localchef.main")


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[DocumentStore] = None,
    identity: Optional[IdentityProvider] = None,
    payments: Optional[PaymentGateway] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = store if store is not None else build_store(settings)
    identity = identity if identity is not None else build_identity_provider(settings)
    payments = payments if payments is not None else build_payment_gateway(settings)

    app = FastAPI(
        title="LocalChef API",
        description="Backend API for a home cooked meal ordering platform.",
        version="1.0.0",
        debug=settings.debug,
        redirect_slashes=False,
        dependencies=[Depends(enforce_route_rules)],
    )
    app.state.settings = settings
    app.state.store = store
    app.state.identity = identity
    app.state.payments = payments
    app.state.gate = RequestGate(store, identity)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/", tags=["Health"])
    def root():
        return "Hello from Server.."

    app.include_router(users.router)
    app.include_router(meals.router)
    app.include_router(reviews.router)
    app.include_router(favorites.router)
    app.include_router(orders.router)
    app.include_router(role_requests.router)
    app.include_router(payments_router.router)
    app.include_router(admin_dashboard.router)

    app.state.gate.validate_routes(app)

    @app.on_event("shutdown")
    def _close_store():
        logger.info("Closing document store")
        store.close()

    return app


# Run the app directly with uvicorn (for development)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("localchef.main:create_app", factory=True, host="0.0.0.0", port=get_settings().port, reload=True)
