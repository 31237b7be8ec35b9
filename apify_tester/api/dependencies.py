from __future__ import annotations

from fastapi import Request

from apify_tester.api.errors import APIError
from apify_tester.catalog.actors import ActorCatalog
from apify_tester.clients.apify import ApifyClient
from apify_tester.config.load_config import AppConfig
from apify_tester.runtime.tracker import RunTracker


def _state(request: Request, name: str) -> object:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise APIError(status_code=503, code="unavailable", message=f"Service not initialized: {name}.")
    return value


def get_config(request: Request) -> AppConfig:
    return _state(request, "config")  # type: ignore[return-value]


def get_catalog(request: Request) -> ActorCatalog:
    """FastAPI dependency: the catalog loaded once in `create_app` (read-only)."""
    return _state(request, "catalog")  # type: ignore[return-value]


def get_apify_client(request: Request) -> ApifyClient:
    return _state(request, "apify_client")  # type: ignore[return-value]


def get_tracker(request: Request) -> RunTracker:
    return _state(request, "tracker")  # type: ignore[return-value]
