from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from apify_tester.api.errors import APIError, api_error_handler, unhandled_error_handler, validation_error_handler
from apify_tester.catalog.actors import ActorCatalog
from apify_tester.clients.apify import ApifyClient
from apify_tester.config.load_config import AppConfig, load_app_config
from apify_tester.runtime.tracker import RunTracker

from .routers.catalog import router as catalog_router
from .routers.health import router as health_router
from .routers.runs import router as runs_router


logger = logging.getLogger(__name__)

_STATIC_DIR = Path(__file__).resolve().parent / "static"
_NO_CACHE = "no-cache, no-store, must-revalidate"


def _cors_origins_from_env() -> list[str]:
    # The bundled UI is same-origin; CORS is only enabled when origins are listed explicitly.
    raw = os.getenv("APIFY_TESTER_CORS_ORIGINS", "").strip()
    return [o.strip() for o in raw.split(",") if o.strip()]


def create_app(
    config: AppConfig | None = None,
    *,
    catalog: ActorCatalog | None = None,
    client: ApifyClient | None = None,
) -> FastAPI:
    cfg = config or load_app_config()
    actors = catalog if catalog is not None else ActorCatalog.load(cfg.catalog.path)
    owns_client = client is None
    apify_client = client if client is not None else ApifyClient.from_config(cfg)
    tracker = RunTracker.from_config(apify_client, cfg.polling)

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # noqa: ANN202
        logger.info("Loaded %d actors from %s", len(actors), actors.source or "<memory>")
        if apify_client.has_token:
            logger.info("API key configured: yes")
        else:
            logger.warning("API key configured: no (set %s); remote calls will be rejected", cfg.apify.token_env)
        try:
            yield
        finally:
            if owns_client:
                await apify_client.aclose()

    app = FastAPI(title="Apify API Tester", version="0.1.0", lifespan=lifespan)
    app.state.config = cfg
    app.state.catalog = actors
    app.state.apify_client = apify_client
    app.state.tracker = tracker

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    origins = _cors_origins_from_env()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def no_cache(request: Request, call_next):  # noqa: ANN001, ANN202
        response = await call_next(request)
        response.headers["Cache-Control"] = _NO_CACHE
        return response

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    def index() -> HTMLResponse:
        return HTMLResponse((_STATIC_DIR / "index.html").read_text(encoding="utf-8"))

    app.include_router(health_router, prefix="/api", tags=["system"])
    app.include_router(catalog_router, prefix="/api", tags=["catalog"])
    app.include_router(runs_router, prefix="/api", tags=["runs"])

    return app


app = create_app()
