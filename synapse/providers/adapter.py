from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

import httpx

from synapse.core.config import Settings
from synapse.core.errors import ProviderError
from synapse.models.vocab import normalize_category
from synapse.providers.base import ProviderBackend
from synapse.providers.registry import get_backend

log = logging.getLogger("synapse")

T = TypeVar("T")


def clip(text: str, budget: int) -> str:
    text = text or ""
    return text if len(text) <= budget else text[:budget]


class ProviderAdapter:
    """Single entry point for embeddings and generation.

    Summaries and embeddings fall back to the secondary backend when the
    primary reports a quota or availability failure; the decision is made
    per call. Tags and categories use the primary only.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        primary: ProviderBackend,
        fallback: ProviderBackend | None = None,
    ) -> None:
        self.settings = settings
        self.primary = primary
        self.fallback = fallback

    @classmethod
    def from_settings(cls, settings: Settings, *, client: httpx.AsyncClient | None = None) -> "ProviderAdapter":
        primary = get_backend(settings.AI_PROVIDER, settings, client=client)
        fallback = None
        if settings.AI_FALLBACK_PROVIDER and settings.AI_FALLBACK_PROVIDER != settings.AI_PROVIDER:
            fallback = get_backend(settings.AI_FALLBACK_PROVIDER, settings, client=client)
        return cls(settings, primary=primary, fallback=fallback)

    async def _with_fallback(self, op: str, call: Callable[[ProviderBackend], Awaitable[T]]) -> T:
        try:
            return await call(self.primary)
        except ProviderError as e:
            if not e.transient or self.fallback is None:
                raise
            log.warning("Provider %s %s failed (%s); retrying with %s", self.primary.name, op, e.kind.value, self.fallback.name)
            return await call(self.fallback)

    async def embed(self, text: str) -> list[float]:
        t = clip(text, self.settings.EMBEDDING_INPUT_CHARS)
        return await self._with_fallback("embed", lambda b: b.embed(t))

    async def summarize(self, text: str) -> str:
        t = clip(text, self.settings.SUMMARY_INPUT_CHARS)
        return await self._with_fallback("summarize", lambda b: b.summarize(t))

    async def generate_tags(self, text: str) -> list[str]:
        return await self.primary.generate_tags(clip(text, self.settings.TAGS_INPUT_CHARS))

    async def categorize(self, title: str, content: str, item_type: str) -> str:
        raw = await self.primary.categorize(title, clip(content, self.settings.CATEGORY_INPUT_CHARS), item_type)
        return normalize_category(raw)
