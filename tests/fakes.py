from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from synapse.core.config import Settings
from synapse.core.db import make_engine, make_session_factory
from synapse.core.errors import ErrorKind, provider_error
from synapse.models.base import Base
from synapse.models.tables import Item
from synapse.repository.items import SqlItemStore
from synapse.util.ids import new_uuid
from synapse.util.time import now_utc


def make_settings(**overrides: Any) -> Settings:
    base = {
        "DATABASE_URL": "sqlite+pysqlite:///:memory:",
        "AI_PROVIDER": "local",
        "AI_FALLBACK_PROVIDER": None,
        "EMBEDDING_DIM": 64,
        "ENSURE_EXTERNAL_DEPS_ON_STARTUP": False,
        "REQUEST_TIMEOUT_S": 5.0,
    }
    base.update(overrides)
    return Settings(**base)


def make_item_store() -> SqlItemStore:
    engine = make_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    return SqlItemStore(make_session_factory(engine))


def make_item(**kw: Any) -> Item:
    fields = {
        "id": new_uuid(),
        "title": "",
        "content": "",
        "summary": "",
        "category": "Other",
        "tags": [],
        "source_url": None,
        "type": "note",
        "image_url": None,
        "embed_html": None,
        "created_at": now_utc(),
    }
    fields.update(kw)
    fields.setdefault("embedding_id", fields["id"])
    return Item(**fields)


class Unavailable(Exception):
    pass


@dataclass
class FakeVectorStore:
    """In-memory vector index. `distances` pins query results by id when set."""

    vectors: dict[str, list[float]] = field(default_factory=dict)
    distances: dict[str, float] | None = None
    fail_add: bool = False
    fail_query: bool = False
    queries: list[list[float]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    def add_embedding(self, collection: str, id: str, vector: list[float], attributes: dict[str, Any]) -> None:
        if self.fail_add:
            raise Unavailable("vector store down")
        self.vectors[id] = list(vector)

    def query(self, collection: str, vector: list[float], k: int) -> tuple[list[str], list[float]]:
        self.queries.append(list(vector))
        if self.fail_query:
            raise Unavailable("vector store down")
        if self.distances is not None:
            ranked = sorted(self.distances.items(), key=lambda kv: kv[1])[:k]
            return [i for i, _ in ranked], [d for _, d in ranked]

        def cos(a: list[float], b: list[float]) -> float:
            na = math.sqrt(sum(x * x for x in a)) or 1.0
            nb = math.sqrt(sum(x * x for x in b)) or 1.0
            return sum(x * y for x, y in zip(a, b)) / (na * nb)

        ranked = sorted(((i, 1.0 - cos(vector, v)) for i, v in self.vectors.items()), key=lambda kv: kv[1])[:k]
        return [i for i, _ in ranked], [d for _, d in ranked]

    def delete(self, collection: str, ids: list[str]) -> None:
        for i in ids:
            self.vectors.pop(i, None)
            self.deleted.append(i)

    def existing_ids(self, collection: str, ids: list[str]) -> set[str]:
        return {i for i in ids if i in self.vectors}


@dataclass
class ScriptedBackend:
    """ProviderBackend with canned answers; `fail` maps an operation to an ErrorKind."""

    name: str = "scripted"
    vector: list[float] = field(default_factory=lambda: [1.0, 0.0, 0.0])
    summary: str = "A short summary."
    tags: list[str] = field(default_factory=lambda: ["reading", "classics"])
    category: str = "Books & Reading"
    fail: dict[str, ErrorKind] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    def _maybe_fail(self, op: str, text: str) -> None:
        self.calls.append((op, text))
        if op in self.fail:
            raise provider_error(self.fail[op], f"{op} failed", provider=self.name)

    async def embed(self, text: str) -> list[float]:
        self._maybe_fail("embed", text)
        return list(self.vector)

    async def summarize(self, text: str) -> str:
        self._maybe_fail("summarize", text)
        return self.summary

    async def generate_tags(self, text: str) -> list[str]:
        self._maybe_fail("tags", text)
        return list(self.tags)

    async def categorize(self, title: str, content: str, item_type: str) -> str:
        self._maybe_fail("categorize", content)
        return self.category
