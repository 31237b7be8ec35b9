from __future__ import annotations

import logging
import os
import urllib.parse
from dataclasses import dataclass
from typing import Any

import httpx

from apify_tester.config.load_config import AppConfig


logger = logging.getLogger(__name__)

_DEFAULT_HOSTNAME = "api.apify.com"

# Dataset previews are capped; there is deliberately no parameter to raise it.
DATASET_PAGE_LIMIT = 10


@dataclass(frozen=True)
class RemoteResult:
    """Outcome of one remote call.

    Either `status`/`data` (any HTTP response, including 4xx/5xx; `data` is the
    parsed JSON body or the raw text when the body is not JSON) or `error`
    (no response was received at all).
    """

    status: int | None = None
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        return {"status": self.status, "data": self.data}


def _quote_segment(value: str) -> str:
    # Valid ids (`username~name`, run/dataset ids) pass through unchanged.
    return urllib.parse.quote(str(value), safe="~")


def _parse_response(resp: httpx.Response) -> RemoteResult:
    try:
        data: Any = resp.json()
    except ValueError:
        data = resp.text
    return RemoteResult(status=int(resp.status_code), data=data)


class ApifyClient:
    """Async client for the three Apify REST calls this service proxies.

    The credential goes in the `token` query parameter. When it is missing the
    request is still sent with an empty token and the remote side rejects it.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        hostname: str | None = None,
        scheme: str = "https",
        api_prefix: str = "/v2",
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token if token is not None else (os.getenv("APIFY_API_KEY") or os.getenv("APIFY_TOKEN"))
        self.hostname = hostname or _DEFAULT_HOSTNAME
        self.api_prefix = api_prefix.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{scheme}://{self.hostname}",
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(float(timeout_s)),
            transport=transport,
        )

    @classmethod
    def from_config(cls, cfg: AppConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> "ApifyClient":
        return cls(
            token=cfg.api_token() or "",
            hostname=cfg.apify.hostname,
            scheme=cfg.apify.scheme,
            api_prefix=cfg.apify.api_prefix,
            timeout_s=cfg.apify.timeout_s,
            transport=transport,
        )

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    async def __aenter__(self) -> "ApifyClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> RemoteResult:
        query: dict[str, Any] = {"token": self.token or ""}
        if params:
            query.update(params)
        url = f"{self.api_prefix}{path}"
        try:
            if json_body is None:
                resp = await self._client.request(method, url, params=query)
            else:
                resp = await self._client.request(method, url, params=query, json=json_body)
        except httpx.RequestError as e:
            message = str(e) or type(e).__name__
            logger.warning("%s %s failed: %s", method, path, message)
            return RemoteResult(error=message)
        return _parse_response(resp)

    async def start_run(self, actor_id: str, run_input: dict[str, Any] | None = None) -> RemoteResult:
        return await self._request(
            "POST",
            f"/acts/{_quote_segment(actor_id)}/runs",
            json_body=run_input if run_input is not None else {},
        )

    async def get_run_status(self, run_id: str) -> RemoteResult:
        return await self._request("GET", f"/actor-runs/{_quote_segment(run_id)}")

    async def get_dataset_items(self, dataset_id: str) -> RemoteResult:
        return await self._request(
            "GET",
            f"/datasets/{_quote_segment(dataset_id)}/items",
            params={"limit": DATASET_PAGE_LIMIT},
        )
