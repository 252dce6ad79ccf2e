"""
FastAPI application factory.

* Registers routes for orders, trips, drivers, financials and admin.
* Starts / stops the background reconcile worker via lifespan events
  when ``RECONCILE_ENABLED`` is set.
* Applies rate-limiting middleware and the uniform error envelope.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fleetops.api.errors import register_exception_handlers
from fleetops.api.middleware import limiter
from fleetops.api.routes import admin, drivers, financials, orders, trips
from fleetops.api.schemas import ErrorResponse
from fleetops.config import settings
from fleetops.workers import reconciler as _reconciler

logging.basicConfig(level=logging.INFO)

_ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reconcile worker on startup; stop on shutdown."""
    if settings.reconcile_enabled:
        await _reconciler.start_reconcile_loop()
    yield
    if settings.reconcile_enabled:
        await _reconciler.stop_reconcile_loop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Fleet Dispatch API",
        description=(
            "Dispatch core for a vehicle-transport fleet: orders move through "
            "a status lifecycle and are grouped into trips whose revenue, "
            "driver pay and net profit are recomputed on every change.  "
            "Period P&L, unit economics and KPIs are derived from the stored "
            "trip snapshots."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    app.include_router(orders.router, prefix="/api/v1", responses=_ERROR_RESPONSES)
    app.include_router(trips.router, prefix="/api/v1", responses=_ERROR_RESPONSES)
    app.include_router(drivers.router, prefix="/api/v1", responses=_ERROR_RESPONSES)
    app.include_router(financials.router, prefix="/api/v1", responses=_ERROR_RESPONSES)
    app.include_router(admin.router, prefix="/api/v1", responses=_ERROR_RESPONSES)

    return app
