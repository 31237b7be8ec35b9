from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field, ValidationError

from apify_tester.api.dependencies import get_apify_client, get_tracker
from apify_tester.api.errors import APIError
from apify_tester.clients.apify import ApifyClient
from apify_tester.runtime.tracker import RunHandle, RunTracker


router = APIRouter()


class RunRequest(BaseModel):
    actorId: str = Field(min_length=1, description="Actor id in the form `username~name`.")
    input: dict[str, Any] = Field(default_factory=dict)


async def _read_run_request(request: Request) -> RunRequest:
    raw = await request.body()
    try:
        obj = json.loads(raw.decode("utf-8") if raw else "")
    except (UnicodeDecodeError, ValueError) as e:
        raise APIError(status_code=400, code="invalid_argument", message=str(e)) from e
    if not isinstance(obj, dict):
        raise APIError(status_code=400, code="invalid_argument", message="Request body must be a JSON object.")
    if obj.get("input") is None:
        obj = {**obj, "input": {}}
    try:
        return RunRequest.model_validate(obj)
    except ValidationError as e:
        raise APIError(
            status_code=400,
            code="invalid_argument",
            message="Request validation failed.",
            details={"errors": json.loads(e.json())},
        ) from e


@router.post("/run")
async def start_run(request: Request, client: ApifyClient = Depends(get_apify_client)) -> dict[str, Any]:
    """Start a run. Returns the remote `{status, data}` or `{error}` unchanged."""
    body = await _read_run_request(request)
    result = await client.start_run(body.actorId, body.input)
    return result.to_payload()


@router.get("/status/{run_id}")
async def get_run_status(run_id: str, client: ApifyClient = Depends(get_apify_client)) -> dict[str, Any]:
    result = await client.get_run_status(run_id)
    return result.to_payload()


@router.get("/dataset/{dataset_id}")
async def get_dataset_items(dataset_id: str, client: ApifyClient = Depends(get_apify_client)) -> dict[str, Any]:
    # Any dataset id may be previewed; no link to a run's status is enforced here.
    result = await client.get_dataset_items(dataset_id)
    return result.to_payload()


@router.get("/runs/{run_id}/poll")
async def poll_run(run_id: str, tracker: RunTracker = Depends(get_tracker)) -> dict[str, Any]:
    """One lifecycle step: status, plus the dataset preview once the run succeeded.

    While the run is pending the caller should poll again after `retryAfterS`.
    """
    outcome = await tracker.poll_once(run_id)
    return outcome.to_payload(retry_after_s=tracker.interval_s)


@router.post("/runs/{run_id}/wait")
async def wait_for_run(run_id: str, tracker: RunTracker = Depends(get_tracker)) -> dict[str, Any]:
    """Poll server-side until terminal, bounded by the configured poll count and deadline."""
    outcome = await tracker.track(RunHandle(run_id=run_id))
    return outcome.to_payload()
