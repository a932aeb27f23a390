"""
FastAPI application factory.

* Registers routes for trips, drivers / riders and admin.
* Builds, seeds, starts and stops the dispatch engine via lifespan events.
* Optionally relays bus traffic to Redis pub/sub.
* Maps ``NotFound`` to 404 and ``InvalidTransition`` to 409.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ridehail.api.middleware import limiter
from ridehail.api.routes import admin, drivers, trips
from ridehail.config import Settings, settings
from ridehail.domain.entities import InvalidTransition, NotFound
from ridehail.infrastructure.redis_client import create_redis
from ridehail.infrastructure.relay import RedisRelay
from ridehail.seed import seed_fleet
from ridehail.services.engine import FleetEngine

logging.basicConfig(level=logging.INFO)


async def _not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _invalid_transition_handler(
    request: Request, exc: InvalidTransition
) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def create_app(
    engine: Optional[FleetEngine] = None, config: Optional[Settings] = None
) -> FastAPI:
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build and start an engine on startup; stop it (and the relay) on shutdown.

        An engine handed to ``create_app`` is owned by the caller and is
        neither started nor stopped here.
        """
        fleet = engine
        if fleet is None:
            fleet = FleetEngine(config=config)
            if config.seed_on_startup:
                await seed_fleet(fleet)
            app.state.engine = fleet
            await fleet.start()

        relay = None
        if config.redis_relay_enabled:
            relay = RedisRelay(create_redis(config.redis_url), config.redis_channel_prefix)
            relay.attach(fleet.bus)

        yield

        if relay is not None:
            await relay.close()
        if engine is None:
            await fleet.shutdown()

    app = FastAPI(
        title="Ride-Hailing Dispatch API",
        description=(
            "Matches trip requests to the nearest available driver, tracks "
            "each trip from request to completion or cancellation, and "
            "streams location and status changes to subscribers."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    if engine is not None:
        app.state.engine = engine

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(NotFound, _not_found_handler)
    app.add_exception_handler(InvalidTransition, _invalid_transition_handler)

    # Routers
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
