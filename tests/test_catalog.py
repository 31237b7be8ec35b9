from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from apify_tester.catalog.actors import LIST_LIMIT, ActorCatalog, ActorDescriptor, actor_id_for


def _actor(i: int, **overrides: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "username": f"user{i}",
        "name": f"actor-{i}",
        "title": f"Actor {i}",
        "description": f"Does thing number {i}",
        "categories": ["SCRAPING"],
        "url": f"https://apify.com/user{i}/actor-{i}",
        "stats": {"totalRuns": i * 10},
    }
    entry.update(overrides)
    return entry


def _write(tmp_path: Path, obj: Any) -> Path:
    p = tmp_path / "actors.json"
    p.write_text(json.dumps(obj), encoding="utf-8")
    return p


def test_load_and_list_preserves_every_field(tmp_path: Path) -> None:
    raw = [_actor(1, pricingInfo={"pricingModel": "FREE"}, extra_field=[1, "x", None])]
    catalog = ActorCatalog.load(_write(tmp_path, raw))

    listed = catalog.list_actors()

    assert listed == raw
    assert json.dumps(listed, sort_keys=True) == json.dumps(raw, sort_keys=True)


def test_listing_is_capped_at_500(tmp_path: Path) -> None:
    raw = [_actor(i) for i in range(LIST_LIMIT + 25)]
    catalog = ActorCatalog.load(_write(tmp_path, raw))

    assert len(catalog) == LIST_LIMIT + 25
    listed = catalog.list_actors()
    assert len(listed) == 500
    assert listed == raw[:500]
    assert len(catalog.list_actors(limit=10_000)) == 500


def test_listing_returns_copies(tmp_path: Path) -> None:
    catalog = ActorCatalog.load(_write(tmp_path, [_actor(1)]))

    listed = catalog.list_actors()
    listed[0]["title"] = "mutated"
    listed[0]["stats"]["totalRuns"] = -1

    assert catalog.list_actors()[0]["title"] == "Actor 1"
    assert catalog.list_actors()[0]["stats"]["totalRuns"] == 10


@pytest.mark.parametrize(
    "content",
    ["not json at all", json.dumps({"actors": []}), ""],
)
def test_unreadable_catalog_is_empty(tmp_path: Path, content: str) -> None:
    p = tmp_path / "actors.json"
    p.write_text(content, encoding="utf-8")

    catalog = ActorCatalog.load(p)

    assert len(catalog) == 0
    assert catalog.list_actors() == []


def test_missing_catalog_is_empty(tmp_path: Path) -> None:
    catalog = ActorCatalog.load(tmp_path / "nope.json")
    assert len(catalog) == 0
    assert catalog.source == str(tmp_path / "nope.json")


def test_non_object_entries_are_skipped() -> None:
    catalog = ActorCatalog.from_entries([_actor(1), "junk", 3, None, _actor(2)])
    assert [e["name"] for e in catalog.list_actors()] == ["actor-1", "actor-2"]


def test_search_matches_title_description_and_category_case_insensitively() -> None:
    catalog = ActorCatalog.from_entries(
        [
            _actor(1, title="Google Maps Scraper"),
            _actor(2, description="Extract INSTAGRAM posts"),
            _actor(3, categories=["SOCIAL_MEDIA", "LEAD_GENERATION"]),
            _actor(4),
        ]
    )

    assert [e["name"] for e in catalog.search("maps")] == ["actor-1"]
    assert [e["name"] for e in catalog.search("instagram")] == ["actor-2"]
    assert [e["name"] for e in catalog.search("lead_gen")] == ["actor-3"]


def test_search_without_match_is_empty() -> None:
    catalog = ActorCatalog.from_entries([_actor(1), _actor(2)])
    assert catalog.search("zzz-no-such-thing") == []


def test_search_tolerates_missing_and_malformed_fields() -> None:
    catalog = ActorCatalog.from_entries(
        [
            {"username": "a", "name": "b"},
            {"username": "c", "name": "d", "title": None, "description": 42, "categories": "SCRAPING"},
            {"username": "e", "name": "f", "categories": [None, 1, "Scraping"]},
        ]
    )
    assert [e["name"] for e in catalog.search("scraping")] == ["f"]


def test_empty_query_returns_listing() -> None:
    catalog = ActorCatalog.from_entries([_actor(1), _actor(2)])
    assert catalog.search("   ") == catalog.list_actors()


def test_get_by_actor_id() -> None:
    catalog = ActorCatalog.from_entries([_actor(1), _actor(2)])

    assert catalog.get("user2~actor-2")["title"] == "Actor 2"
    assert catalog.get("user2/actor-2")["title"] == "Actor 2"
    assert catalog.get("user9~actor-9") is None
    assert catalog.get("") is None


def test_descriptor_view() -> None:
    view = ActorDescriptor.from_raw(_actor(7, stats={"totalRuns": True}))

    assert view.actor_id == "user7~actor-7"
    assert view.categories == frozenset({"SCRAPING"})
    assert view.total_runs == 0
    assert actor_id_for(_actor(3)) == "user3~actor-3"


def test_bundled_catalog_loads() -> None:
    p = Path(__file__).resolve().parents[1] / "data" / "apify_actors.json"
    catalog = ActorCatalog.load(p)
    assert len(catalog) > 0
    assert all(e.get("username") and e.get("name") for e in catalog.list_actors())
