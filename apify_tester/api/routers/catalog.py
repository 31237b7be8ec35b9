from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from apify_tester.api.dependencies import get_catalog
from apify_tester.api.errors import APIError
from apify_tester.catalog.actors import LIST_LIMIT, ActorCatalog


router = APIRouter()


@router.get("/actors")
def list_actors(
    q: str | None = Query(default=None, description="Case-insensitive filter on title, description, categories."),
    limit: int = Query(default=LIST_LIMIT, ge=1, le=LIST_LIMIT),
    catalog: ActorCatalog = Depends(get_catalog),
) -> list[dict[str, Any]]:
    if q is not None and q.strip():
        return catalog.search(q, limit=int(limit))
    return catalog.list_actors(limit=int(limit))


@router.get("/actors/{actor_id}")
def get_actor(actor_id: str, catalog: ActorCatalog = Depends(get_catalog)) -> dict[str, Any]:
    entry = catalog.get(actor_id)
    if entry is None:
        raise APIError(status_code=404, code="not_found", message="Actor not found.")
    return {"actor": entry}
