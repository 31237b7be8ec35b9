from __future__ import annotations

import importlib.metadata
import time
from typing import Any

from fastapi import APIRouter, Depends

from apify_tester.api.dependencies import get_apify_client, get_catalog, get_tracker
from apify_tester.catalog.actors import ActorCatalog
from apify_tester.clients.apify import ApifyClient
from apify_tester.runtime.tracker import RunTracker


router = APIRouter()


def _pkg_version(name: str) -> str | None:
    try:
        return str(importlib.metadata.version(name))
    except importlib.metadata.PackageNotFoundError:
        return None


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/version")
def version() -> dict[str, Any]:
    return {
        "service": "apify-tester",
        "version": _pkg_version("apify-tester"),
        "deps": {
            "fastapi": _pkg_version("fastapi"),
            "uvicorn": _pkg_version("uvicorn"),
            "httpx": _pkg_version("httpx"),
            "pydantic": _pkg_version("pydantic"),
        },
        "ts": time.time(),
    }


@router.get("/system")
def system(
    catalog: ActorCatalog = Depends(get_catalog),
    client: ApifyClient = Depends(get_apify_client),
    tracker: RunTracker = Depends(get_tracker),
) -> dict[str, Any]:
    # Never echo the credential itself.
    return {
        "ts": time.time(),
        "catalog": {"actors": len(catalog), "source": catalog.source},
        "remote": {"hostname": client.hostname, "api_key_configured": client.has_token},
        "polling": {
            "interval_s": tracker.interval_s,
            "max_polls": tracker.max_polls,
            "deadline_s": tracker.deadline_s,
        },
    }
