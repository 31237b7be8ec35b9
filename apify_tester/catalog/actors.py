from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any, Iterable


logger = logging.getLogger(__name__)

# The listing endpoint never returns more than this many descriptors.
LIST_LIMIT = 500


def _str_field(entry: dict[str, Any], key: str) -> str:
    value = entry.get(key)
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class ActorDescriptor:
    """Typed read-only view over one raw catalog entry."""

    username: str
    name: str
    title: str
    description: str
    categories: frozenset[str]
    url: str
    total_runs: int

    @property
    def actor_id(self) -> str:
        return f"{self.username}~{self.name}"

    @classmethod
    def from_raw(cls, entry: dict[str, Any]) -> "ActorDescriptor":
        categories_any = entry.get("categories")
        categories = categories_any if isinstance(categories_any, list) else []
        stats = entry.get("stats")
        total_runs_any = stats.get("totalRuns") if isinstance(stats, dict) else None
        total_runs = (
            int(total_runs_any)
            if isinstance(total_runs_any, (int, float)) and not isinstance(total_runs_any, bool)
            else 0
        )
        return cls(
            username=_str_field(entry, "username"),
            name=_str_field(entry, "name"),
            title=_str_field(entry, "title"),
            description=_str_field(entry, "description"),
            categories=frozenset(c for c in categories if isinstance(c, str)),
            url=_str_field(entry, "url"),
            total_runs=total_runs,
        )

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match against title, description or any category."""
        q = query.lower()
        if q in self.title.lower() or q in self.description.lower():
            return True
        return any(q in c.lower() for c in self.categories)


def actor_id_for(descriptor: ActorDescriptor | dict[str, Any]) -> str:
    if isinstance(descriptor, dict):
        descriptor = ActorDescriptor.from_raw(descriptor)
    return descriptor.actor_id


@dataclass(frozen=True)
class ActorCatalog:
    """Static actor catalog, loaded once at startup and never mutated.

    Raw entries are kept as read from the file so that the listing endpoint
    returns every field unchanged; callers always receive deep copies.
    """

    entries: tuple[dict[str, Any], ...] = ()
    source: str | None = None

    @cached_property
    def _views(self) -> tuple[ActorDescriptor, ...]:
        return tuple(ActorDescriptor.from_raw(e) for e in self.entries)

    @classmethod
    def from_entries(cls, entries: Iterable[Any], *, source: str | None = None) -> "ActorCatalog":
        kept: list[dict[str, Any]] = []
        skipped = 0
        for e in entries:
            if isinstance(e, dict):
                kept.append(copy.deepcopy(e))
            else:
                skipped += 1
        if skipped:
            logger.warning("Skipped %d non-object catalog entries from %s", skipped, source or "<memory>")
        return cls(entries=tuple(kept), source=source)

    @classmethod
    def load(cls, path: str | Path) -> "ActorCatalog":
        """Load the catalog JSON array.

        A missing or unreadable file yields an empty catalog: the service still
        starts and simply lists no actors.
        """
        p = Path(path)
        if not p.exists():
            logger.warning("Actor catalog not found: %s", p)
            return cls(source=str(p))
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Could not load actor catalog %s: %s", p, e)
            return cls(source=str(p))
        if not isinstance(raw, list):
            logger.error("Actor catalog %s is not a JSON array (got %s)", p, type(raw).__name__)
            return cls(source=str(p))
        return cls.from_entries(raw, source=str(p))

    def __len__(self) -> int:
        return len(self.entries)

    def list_actors(self, limit: int = LIST_LIMIT) -> list[dict[str, Any]]:
        n = max(0, min(int(limit), LIST_LIMIT))
        return [copy.deepcopy(e) for e in self.entries[:n]]

    def search(self, query: str, limit: int = LIST_LIMIT) -> list[dict[str, Any]]:
        q = (query or "").strip()
        if not q:
            return self.list_actors(limit)
        n = max(0, min(int(limit), LIST_LIMIT))
        out: list[dict[str, Any]] = []
        for entry, view in zip(self.entries, self._views):
            if len(out) >= n:
                break
            if view.matches(q):
                out.append(copy.deepcopy(entry))
        return out

    def get(self, actor_id: str) -> dict[str, Any] | None:
        """Look up an entry by `username~name` (or `username/name`)."""
        wanted = (actor_id or "").strip().replace("/", "~", 1)
        if not wanted:
            return None
        for entry, view in zip(self.entries, self._views):
            if view.actor_id == wanted:
                return copy.deepcopy(entry)
        return None
