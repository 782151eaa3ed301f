from __future__ import annotations

import time
from typing import Any, Callable, Protocol, TypeVar

from qdrant_client import QdrantClient
from qdrant_client.http import models as qm

from synapse.core.config import Settings

T = TypeVar("T")


class VectorStore(Protocol):
    def add_embedding(self, collection: str, id: str, vector: list[float], attributes: dict[str, Any]) -> None: ...

    def query(self, collection: str, vector: list[float], k: int) -> tuple[list[str], list[float]]: ...

    def delete(self, collection: str, ids: list[str]) -> None: ...

    def existing_ids(self, collection: str, ids: list[str]) -> set[str]: ...


def _with_retry(fn: Callable[[], T], *, attempts: int = 3, sleep_s: float = 0.3) -> T:
    last_exc: Exception | None = None
    for i in range(attempts):
        try:
            return fn()
        except Exception as e:
            last_exc = e
            if i == attempts - 1:
                raise
            time.sleep(sleep_s * (2**i))
    raise last_exc or RuntimeError("qdrant error")


class QdrantVectorStore:
    """Qdrant-backed vector index using cosine distance.

    Qdrant reports cosine similarity as `score`; callers of `query` get
    distances (`1 - score`, clamped at 0) so that smaller means closer.
    """

    def __init__(self, settings: Settings, *, client: QdrantClient | None = None) -> None:
        self.settings = settings
        self._client = client

    def client(self) -> QdrantClient:
        if self._client is None:
            self._client = QdrantClient(url=self.settings.QDRANT_URL, timeout=self.settings.QDRANT_TIMEOUT_S)
        return self._client

    def ready(self) -> bool:
        try:
            _with_retry(lambda: self.client().get_collections(), attempts=1)
            return True
        except Exception:
            return False

    def ensure_collection(self, collection: str, dim: int) -> None:
        def _op() -> None:
            c = self.client()
            existing = {col.name for col in c.get_collections().collections}
            if collection in existing:
                return
            c.create_collection(
                collection_name=collection,
                vectors_config=qm.VectorParams(size=dim, distance=qm.Distance.COSINE),
            )

        _with_retry(_op, attempts=3)

    def add_embedding(self, collection: str, id: str, vector: list[float], attributes: dict[str, Any]) -> None:
        def _op() -> None:
            self.client().upsert(
                collection_name=collection,
                points=[qm.PointStruct(id=id, vector=vector, payload=dict(attributes or {}))],
            )

        _with_retry(_op, attempts=2)

    def query(self, collection: str, vector: list[float], k: int) -> tuple[list[str], list[float]]:
        def _op() -> tuple[list[str], list[float]]:
            res = self.client().query_points(collection_name=collection, query=vector, limit=k).points
            ids = [str(r.id) for r in res]
            distances = [max(0.0, 1.0 - float(r.score)) for r in res]
            return ids, distances

        return _with_retry(_op, attempts=2)

    def delete(self, collection: str, ids: list[str]) -> None:
        if not ids:
            return
        self.client().delete(collection_name=collection, points_selector=qm.PointIdsList(points=list(ids)))

    def existing_ids(self, collection: str, ids: list[str]) -> set[str]:
        if not ids:
            return set()
        points = self.client().retrieve(collection_name=collection, ids=list(ids), with_payload=False, with_vectors=False)
        return {str(p.id) for p in points}
