"""FastAPI dependency injection helpers."""

from fastapi import Request

from ridehail.services.engine import FleetEngine


def get_engine(request: Request) -> FleetEngine:
    """Return the engine built by the application lifespan."""
    return request.app.state.engine
