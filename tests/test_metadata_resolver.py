from __future__ import annotations

import asyncio

import httpx
import pytest

from synapse.enrichment.metadata import (
    MetadataResolver,
    extract_isbn,
    extract_preview_image,
    extract_youtube_id,
)
from tests.fakes import make_settings


def _resolver(handler) -> tuple[MetadataResolver, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MetadataResolver(make_settings(), client=client), client


def _resolve(handler, *args, **kwargs):
    async def run():
        resolver, client = _resolver(handler)
        async with client:
            return await resolver.resolve(*args, **kwargs)

    return asyncio.run(run())


def _no_network(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request {request.url}")


@pytest.mark.parametrize(
    "url,video_id",
    [
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://youtu.be/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/embed/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://example.com/watch", None),
    ],
)
def test_extract_youtube_id(url, video_id):
    assert extract_youtube_id(url) == video_id


def test_extract_isbn():
    assert extract_isbn("Great book by Jane Austen, ISBN 9780141439518") == "9780141439518"
    assert extract_isbn("ISBN-10: 014143951X") == "014143951X"
    assert extract_isbn("code 978-0141439518 on the back") == "9780141439518"
    assert extract_isbn("no numbers here") is None


def test_caller_image_wins_without_network():
    res = _resolve(_no_network, "t", "a book", None, "https://example.com", {"thumbnail": "https://img/t.png"})
    assert res.image_url == "https://img/t.png"
    assert res.embed_html is None

    res = _resolve(_no_network, "t", "c", None, None, {"image": "https://img/a.png", "thumbnail": "https://img/b.png"})
    assert res.image_url == "https://img/a.png"


def test_video_url_is_resolved_without_network():
    res = _resolve(_no_network, "", "", None, "https://youtu.be/abc123", {})
    assert 'src="https://www.youtube.com/embed/abc123"' in res.embed_html
    assert res.image_url == "https://img.youtube.com/vi/abc123/maxresdefault.jpg"
    assert res.inferred_type == "video"

    res = _resolve(_no_network, "", "", "note", "https://youtu.be/abc123", {})
    assert res.inferred_type is None


def test_page_preview_image_prefers_og_then_twitter():
    page = """
    <html><head>
      <meta name="twitter:image" content="https://cdn.example.com/tw.png">
      <meta property="og:image" content="/og.png">
    </head><body></body></html>
    """
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, text=page, headers={"content-type": "text/html"})

    res = _resolve(handler, "Post", "some text", None, "https://example.com/blog/post", {})
    assert res.image_url == "https://example.com/og.png"
    assert '<div class="url-preview"><img src="https://example.com/og.png"' in res.embed_html
    assert seen["ua"] == "Mozilla/5.0 (compatible; SynapseBot/1.0)"

    only_twitter = '<meta name="twitter:image" content="https://cdn.example.com/tw.png">'
    assert extract_preview_image(only_twitter, "https://example.com") == "https://cdn.example.com/tw.png"
    assert extract_preview_image("<p>nothing</p>", "https://example.com") is None


def test_book_cover_by_isbn():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "HEAD"
        assert request.url.path == "/b/isbn/9780141439518-L.jpg"
        return httpx.Response(200)

    res = _resolve(handler, "", "Great book by Jane Austen, ISBN 9780141439518", None, None, {})
    assert res.image_url == "https://covers.openlibrary.org/b/isbn/9780141439518-L.jpg"
    assert res.inferred_type == "book"


def test_book_cover_by_title_search():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "openlibrary.org"
        assert request.url.params["title"] == "Pride and Prejudice"
        return httpx.Response(200, json={"docs": [{"cover_i": 12345}]})

    res = _resolve(handler, "Pride and Prejudice", "a novel I want to read", "book", None, {})
    assert res.image_url == "https://covers.openlibrary.org/b/id/12345-L.jpg"
    # Caller already chose a type.
    assert res.inferred_type is None


def test_book_check_precedes_recipe_check():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"docs": [{"cover_i": 7}]})

    res = _resolve(handler, "Salt Fat Acid Heat", "a cookbook with recipes and ingredients", None, None, {})
    assert res.inferred_type == "book"


def test_recipe_when_book_lookup_finds_nothing():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    res = _resolve(handler, "Banana bread", "A cookbook recipe: 2 cups flour", None, None, {})
    assert res.inferred_type == "recipe"
    assert res.image_url == "https://source.unsplash.com/400x300/?recipe,Banana+bread"


def test_network_failures_are_not_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow", request=request)

    res = _resolve(handler, "Some page", "plain text", None, "https://example.com/x", {})
    assert res.image_url is None
    assert res.embed_html is None
    assert res.inferred_type is None


def test_category_image():
    resolver = MetadataResolver(make_settings())
    assert resolver.category_image("My trip", "Travel") == "https://source.unsplash.com/400x300/?travel,My+trip"
    assert resolver.category_image("x", "Other") == "https://source.unsplash.com/400x300/?abstract,x"
    assert resolver.category_image("", None) == "https://source.unsplash.com/400x300/?abstract"
