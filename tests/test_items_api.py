from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from synapse.core.errors import ErrorKind
from tests.fakes import FakeVectorStore, ScriptedBackend, make_item_store, make_settings


def _offline(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404)


@pytest.fixture()
def ctx(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("AI_PROVIDER", "local")
    monkeypatch.setenv("ENSURE_EXTERNAL_DEPS_ON_STARTUP", "0")

    import synapse.main
    from synapse.api.deps import build_services, get_services
    from synapse.enrichment.metadata import MetadataResolver
    from synapse.providers.adapter import ProviderAdapter

    settings = make_settings(CELERY_TASK_ALWAYS_EAGER=True)
    backend = ScriptedBackend()
    vector_store = FakeVectorStore()
    services = build_services(
        settings,
        vector_store=vector_store,
        item_store=make_item_store(),
        provider=ProviderAdapter(settings, primary=backend),
        resolver=MetadataResolver(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(_offline))),
    )

    app = synapse.main.app
    app.dependency_overrides[get_services] = lambda: services
    try:
        yield TestClient(app), services, backend, vector_store
    finally:
        app.dependency_overrides.clear()


def test_create_get_list_delete(ctx):
    client, _, _, _ = ctx

    r = client.post("/items", json={"title": "Carbonara", "content": "pasta with eggs", "type": "recipe"})
    assert r.status_code == 200, r.text
    item = r.json()
    assert item["type"] == "recipe"
    assert item["summary"] == "A short summary."
    assert item["tags"] == ["reading", "classics"]
    assert item["embedding_id"] == item["id"]

    assert client.get(f"/items/{item['id']}").json()["title"] == "Carbonara"
    assert [i["id"] for i in client.get("/items").json()] == [item["id"]]

    assert client.delete(f"/items/{item['id']}").status_code == 200
    assert client.get(f"/items/{item['id']}").status_code == 404
    assert client.delete(f"/items/{item['id']}").status_code == 404


def test_create_requires_title_or_content(ctx):
    client, _, _, _ = ctx
    r = client.post("/items", json={"title": " ", "content": ""})
    assert r.status_code == 400


def test_create_with_image_hint(ctx):
    client, _, _, _ = ctx
    r = client.post("/items", json={"content": "a screenshot", "type": "image", "image_url": "https://img/x.png"})
    assert r.status_code == 200
    assert r.json()["image_url"] == "https://img/x.png"


def test_embedding_unavailable_is_502(ctx):
    client, services, backend, _ = ctx
    backend.fail["embed"] = ErrorKind.AUTH_ERROR
    r = client.post("/items", json={"title": "t", "content": "c"})
    assert r.status_code == 502
    assert r.json()["detail"]["code"] == "EMBEDDING_UNAVAILABLE"
    assert client.get("/items").json() == []


def test_search_response_shape(ctx):
    client, _, _, _ = ctx
    client.post("/items", json={"title": "Pasta night", "content": "cook pasta"})
    r = client.get("/search", params={"q": "pasta #dinner", "limit": 5})
    assert r.status_code == 200
    body = r.json()
    assert body["query"] == "pasta #dinner"
    assert body["filters"]["tags"] == ["dinner"]
    assert body["filters"]["residual"] == "pasta"
    # Structured filters narrow the text path only; the semantic hit remains.
    assert len(body["results"]) == 1

    r = client.get("/search", params={"q": "pasta"})
    results = r.json()["results"]
    assert len(results) == 1
    assert results[0]["item"]["title"] == "Pasta night"
    assert 0 <= results[0]["score"] <= 1


def test_search_unavailable_is_503(ctx):
    client, services, _, vector_store = ctx
    vector_store.fail_query = True

    def broken(filters, limit):
        raise RuntimeError("db down")

    services.item_store.search = broken
    r = client.get("/search", params={"q": "pasta"})
    assert r.status_code == 503
    assert r.json()["detail"]["code"] == "SEARCH_UNAVAILABLE"


def test_reindex_restores_missing_vectors(ctx):
    client, _, _, vector_store = ctx
    vector_store.fail_add = True
    item = client.post("/items", json={"title": "t", "content": "c"}).json()
    assert vector_store.vectors == {}

    vector_store.fail_add = False
    r = client.post("/admin/reindex")
    assert r.status_code == 200
    body = r.json()
    assert body["queued"] is False
    assert body["result"]["indexed"] == 1
    assert item["id"] in vector_store.vectors
