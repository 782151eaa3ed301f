"""Preview artifacts for captured items: embed markup, image and sub-type.

Resolution order (first success wins):

1. caller-supplied image/thumbnail
2. known video platform URL (deterministic, no network)
3. social preview image of the source page (og:image, then twitter:image)
4. book heuristic -> Open Library cover by ISBN, else by title
5. recipe heuristic -> generic recipe image
6. category fallback image (applied by the orchestrator once the category is known)

The book check runs before the recipe check. Content that matches both
keyword sets ("a cookbook with 40 recipes") is classified as a book; keep
this order, it decides the inferred type.

Every network step is best-effort with its own timeout: a missing image is a
valid outcome, never an error.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote_plus, urljoin

import httpx
from bs4 import BeautifulSoup

from synapse.core.config import Settings

log = logging.getLogger("synapse")

BOOK_KEYWORDS = ("book", "author", "published", "isbn", "chapter", "novel", "read")
RECIPE_KEYWORDS = (
    "recipe",
    "ingredients",
    "cook",
    "bake",
    "prep time",
    "servings",
    "cups",
    "tablespoons",
    "tsp",
    "tbsp",
)

CATEGORY_SEARCH_TERMS = {
    "Technology": "technology",
    "Food & Recipes": "food",
    "Books & Reading": "books",
    "Videos & Entertainment": "entertainment",
    "Shopping & Products": "product",
    "Articles & News": "news",
    "Notes & Ideas": "notebook",
    "Design & Inspiration": "design",
    "Travel": "travel",
    "Health & Fitness": "fitness",
    "Education & Learning": "education",
}
DEFAULT_SEARCH_TERM = "abstract"

CALLER_IMAGE_KEYS = ("image_url", "image", "thumbnail")

YOUTUBE_ID_PATTERNS = [
    re.compile(r"youtube\.com/watch\?(?:.*&)?v=([a-zA-Z0-9_-]+)"),
    re.compile(r"youtu\.be/([a-zA-Z0-9_-]+)"),
    re.compile(r"youtube\.com/embed/([a-zA-Z0-9_-]+)"),
    re.compile(r"youtube\.com/shorts/([a-zA-Z0-9_-]+)"),
]

ISBN_PATTERNS = [
    re.compile(r"ISBN[-\s]*(?:13)?[:\s]*([0-9]{13})", re.IGNORECASE),
    re.compile(r"ISBN[-\s]*(?:10)?[:\s]*([0-9X]{10})", re.IGNORECASE),
    re.compile(r"([0-9]{3}[- ]?[0-9]{10})"),
]

UNSPLASH_SOURCE = "https://source.unsplash.com/400x300/"
OPENLIBRARY_COVERS = "https://covers.openlibrary.org/b"
OPENLIBRARY_SEARCH = "https://openlibrary.org/search.json"


@dataclass(frozen=True)
class MetadataResult:
    embed_html: str | None = None
    image_url: str | None = None
    inferred_type: str | None = None


def _matches_any(keywords: tuple[str, ...], title: str, content: str) -> bool:
    t, c = (title or "").lower(), (content or "").lower()
    return any(k in t or k in c for k in keywords)


def is_book(title: str, content: str) -> bool:
    return _matches_any(BOOK_KEYWORDS, title, content)


def is_recipe(title: str, content: str) -> bool:
    return _matches_any(RECIPE_KEYWORDS, title, content)


def extract_youtube_id(url: str) -> str | None:
    for pattern in YOUTUBE_ID_PATTERNS:
        m = pattern.search(url or "")
        if m:
            return m.group(1)
    return None


def extract_isbn(content: str) -> str | None:
    for pattern in ISBN_PATTERNS:
        m = pattern.search(content or "")
        if m:
            return m.group(1).replace("-", "").replace(" ", "")
    return None


def youtube_embed(video_id: str) -> tuple[str, str]:
    embed = (
        f'<iframe width="560" height="315" src="https://www.youtube.com/embed/{video_id}" frameborder="0" '
        'allow="accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; picture-in-picture" '
        "allowfullscreen></iframe>"
    )
    return embed, f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


def preview_fragment(image_url: str) -> str:
    src = html.escape(image_url, quote=True)
    return f'<div class="url-preview"><img src="{src}" alt="Preview" style="max-width: 100%; border-radius: 8px;" /></div>'


def extract_preview_image(markup: str, page_url: str) -> str | None:
    soup = BeautifulSoup(markup or "", "html.parser")
    for key in ("og:image", "twitter:image"):
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        content = (tag.get("content") or "").strip() if tag else ""
        if content:
            return urljoin(page_url, content)
    return None


def _unsplash(*terms: str) -> str:
    query = ",".join(quote_plus(t.strip()) for t in terms if t and t.strip())
    return f"{UNSPLASH_SOURCE}?{query}"


class MetadataResolver:
    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None) -> None:
        self.timeout_s = settings.METADATA_TIMEOUT_S
        self.user_agent = settings.METADATA_USER_AGENT
        self.client = client

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {"User-Agent": self.user_agent}
        if self.client is not None:
            return await self.client.request(
                method, url, headers=headers, timeout=self.timeout_s, follow_redirects=True, **kwargs
            )
        async with httpx.AsyncClient(timeout=self.timeout_s, follow_redirects=True) as c:
            return await c.request(method, url, headers=headers, **kwargs)

    async def resolve(
        self,
        title: str,
        content: str,
        item_type: str | None,
        source_url: str | None,
        caller_metadata: dict[str, Any] | None = None,
    ) -> MetadataResult:
        meta = caller_metadata or {}
        for key in CALLER_IMAGE_KEYS:
            value = meta.get(key)
            if isinstance(value, str) and value.strip():
                return MetadataResult(image_url=value.strip())

        if source_url:
            video_id = extract_youtube_id(source_url)
            if video_id:
                embed, thumb = youtube_embed(video_id)
                return MetadataResult(embed_html=embed, image_url=thumb, inferred_type=None if item_type else "video")

            image = await self.page_preview_image(source_url)
            if image:
                return MetadataResult(embed_html=preview_fragment(image), image_url=image)

        if is_book(title, content):
            cover = await self.book_cover(title, content)
            if cover:
                return MetadataResult(image_url=cover, inferred_type=None if item_type else "book")

        if is_recipe(title, content):
            return MetadataResult(image_url=self.recipe_image(title), inferred_type=None if item_type else "recipe")

        return MetadataResult()

    async def page_preview_image(self, url: str) -> str | None:
        try:
            resp = await self._request("GET", url)
            if resp.status_code >= 400:
                return None
            return extract_preview_image(resp.text, str(resp.url))
        except httpx.HTTPError as e:
            log.info("Metadata: page fetch failed for %s: %s", url, e)
            return None

    async def book_cover(self, title: str, content: str) -> str | None:
        isbn = extract_isbn(content) or extract_isbn(title)
        if isbn:
            return await self.cover_by_isbn(isbn)
        return await self.cover_by_title(title)

    async def cover_by_isbn(self, isbn: str) -> str | None:
        url = f"{OPENLIBRARY_COVERS}/isbn/{isbn}-L.jpg"
        try:
            # default=false turns "no cover" into a 404 instead of a blank image.
            resp = await self._request("HEAD", url, params={"default": "false"})
        except httpx.HTTPError as e:
            log.info("Metadata: cover check failed for isbn=%s: %s", isbn, e)
            return None
        return url if resp.status_code == 200 else None

    async def cover_by_title(self, title: str) -> str | None:
        if not (title or "").strip():
            return None
        try:
            resp = await self._request("GET", OPENLIBRARY_SEARCH, params={"title": title, "limit": 1})
            if resp.status_code >= 400:
                return None
            docs = (resp.json() or {}).get("docs") or []
        except (httpx.HTTPError, ValueError) as e:
            log.info("Metadata: title search failed for %r: %s", title, e)
            return None
        cover_id = docs[0].get("cover_i") if docs else None
        if isinstance(cover_id, int) and cover_id > 0:
            return f"{OPENLIBRARY_COVERS}/id/{cover_id}-L.jpg"
        return None

    def recipe_image(self, title: str) -> str:
        return _unsplash("recipe", title)

    def category_image(self, title: str, category: str | None) -> str:
        term = CATEGORY_SEARCH_TERMS.get(category or "", DEFAULT_SEARCH_TERM)
        return _unsplash(term, title)
