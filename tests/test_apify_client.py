from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx

from apify_tester.clients.apify import DATASET_PAGE_LIMIT, ApifyClient, RemoteResult


def _call(handler: Callable[[httpx.Request], httpx.Response], method: str, *args: Any, token: str = "tok") -> RemoteResult:
    async def _go() -> RemoteResult:
        async with ApifyClient(token=token, transport=httpx.MockTransport(handler)) as client:
            return await getattr(client, method)(*args)

    return asyncio.run(_go())


def test_start_run_posts_input_to_actor_id_unmodified() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"data": {"id": "run1", "status": "READY"}})

    res = _call(handler, "start_run", "john~web-scraper", {"startUrls": [{"url": "https://example.com"}]})

    assert res == RemoteResult(status=201, data={"data": {"id": "run1", "status": "READY"}})
    req = seen[0]
    assert req.method == "POST"
    assert req.url.host == "api.apify.com"
    assert req.url.raw_path.split(b"?")[0] == b"/v2/acts/john~web-scraper/runs"
    assert req.url.params["token"] == "tok"
    assert json.loads(req.content) == {"startUrls": [{"url": "https://example.com"}]}


def test_start_run_without_input_sends_empty_object() -> None:
    bodies: list[Any] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={})

    _call(handler, "start_run", "a~b", None)
    assert bodies == [{}]


def test_missing_token_is_still_sent_as_empty_parameter() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(401, json={"error": {"type": "token-not-provided"}})

    res = _call(handler, "get_run_status", "run1", token="")
    assert seen[0].url.params["token"] == ""
    assert res.status == 401
    assert res.data == {"error": {"type": "token-not-provided"}}


def test_non_json_body_is_returned_as_raw_text_with_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    res = _call(handler, "get_run_status", "run1")
    assert res.ok
    assert res.status == 502
    assert res.data == "<html>Bad Gateway</html>"
    assert res.to_payload() == {"status": 502, "data": "<html>Bad Gateway</html>"}


def test_empty_body_is_returned_as_empty_string() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    res = _call(handler, "get_run_status", "run1")
    assert res.status == 204
    assert res.data == ""


def test_transport_failure_is_converted_to_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    res = _call(handler, "start_run", "a~b", {})
    assert not res.ok
    assert res.status is None
    assert res.to_payload() == {"error": "connection refused"}


def test_get_run_status_path() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": {"id": "abc", "status": "RUNNING"}})

    res = _call(handler, "get_run_status", "abc")
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/v2/actor-runs/abc"
    assert res.data["data"]["status"] == "RUNNING"


def test_dataset_items_always_capped_at_page_limit() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"i": i} for i in range(DATASET_PAGE_LIMIT)])

    res = _call(handler, "get_dataset_items", "ds1")
    assert DATASET_PAGE_LIMIT == 10
    assert seen[0].url.path == "/v2/datasets/ds1/items"
    assert seen[0].url.params["limit"] == "10"
    assert len(res.data) == 10


def test_ids_with_unsafe_characters_are_quoted() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(404, json={"error": {"type": "record-not-found"}})

    _call(handler, "start_run", "john/web?scraper", {})
    assert seen[0].url.raw_path.split(b"?")[0] == b"/v2/acts/john%2Fweb%3Fscraper/runs"
