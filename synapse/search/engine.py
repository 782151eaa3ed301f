"""Hybrid retrieval: vector similarity fused with filtered text search.

Scoring:

- found by the vector path only: similarity ``s = max(0, 1 - distance)``
- found by both paths: ``0.7 * s + 0.3``
- found by the text path only: ``0.5``

Results are sorted by score, truncated to the limit and then passed through
the price post-filter. Items without a recognizable price are never excluded.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass

from synapse.core.config import Settings
from synapse.core.errors import DualSubsystemFailure, PartialSubsystemFailure, RequestTimeout
from synapse.memory.vector_store import VectorStore
from synapse.models.tables import Item
from synapse.providers.adapter import ProviderAdapter
from synapse.repository.items import ItemStore
from synapse.search.query_parser import QueryFilters, parse_query

log = logging.getLogger("synapse")

VECTOR_BOOST_WEIGHT = 0.7
TEXT_MATCH_BONUS = 0.3
TEXT_BASE_SCORE = 0.5

PRICE_RE = re.compile(r"price[:\s]+\$?(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass
class SearchResult:
    item: Item
    score: float


def extract_price(content: str) -> float | None:
    m = PRICE_RE.search(content or "")
    if not m:
        return None
    try:
        return float(m.group(1))
    except ValueError:
        return None


def within_price(item: Item, filters: QueryFilters) -> bool:
    price = extract_price(item.content)
    if not price:
        return True
    if filters.price_min is not None and price < filters.price_min:
        return False
    if filters.price_max is not None and price > filters.price_max:
        return False
    return True


def fuse(vector_results: list[SearchResult], text_items: list[Item], limit: int) -> list[SearchResult]:
    by_id: dict[str, SearchResult] = {}
    for r in vector_results:
        if r.item.id not in by_id:
            by_id[r.item.id] = SearchResult(item=r.item, score=r.score)

    for item in text_items:
        hit = by_id.get(item.id)
        if hit is not None:
            hit.score = hit.score * VECTOR_BOOST_WEIGHT + TEXT_MATCH_BONUS
        else:
            by_id[item.id] = SearchResult(item=item, score=TEXT_BASE_SCORE)

    ranked = sorted(by_id.values(), key=lambda r: r.score, reverse=True)
    return ranked[:limit]


def apply_post_filters(results: list[SearchResult], filters: QueryFilters) -> list[SearchResult]:
    if not filters.has_price_bounds:
        return results
    return [r for r in results if within_price(r.item, filters)]


class HybridSearchEngine:
    def __init__(
        self,
        settings: Settings,
        *,
        provider: ProviderAdapter,
        vector_store: VectorStore,
        item_store: ItemStore,
    ) -> None:
        self.settings = settings
        self.provider = provider
        self.vector_store = vector_store
        self.item_store = item_store

    async def search(self, query: str, limit: int | None = None) -> list[SearchResult]:
        _, results = await self.search_with_filters(query, limit)
        return results

    async def search_with_filters(
        self, query: str, limit: int | None = None
    ) -> tuple[QueryFilters, list[SearchResult]]:
        """Like `search`, also returning the filters the query was parsed into."""

        timeout_s = self.settings.REQUEST_TIMEOUT_S
        try:
            return await asyncio.wait_for(self._search(query, limit), timeout=timeout_s)
        except asyncio.TimeoutError as e:
            raise RequestTimeout("search", timeout_s) from e

    async def _search(self, query: str, limit: int | None) -> tuple[QueryFilters, list[SearchResult]]:
        limit = limit if limit and limit > 0 else self.settings.SEARCH_DEFAULT_LIMIT
        filters = parse_query(query)
        k = limit * 2

        vector_o, text_o = await asyncio.gather(
            self._vector_path(filters.residual, k),
            asyncio.to_thread(self.item_store.search, filters, k),
            return_exceptions=True,
        )

        vector_failed = isinstance(vector_o, Exception)
        text_failed = isinstance(text_o, Exception)
        if vector_failed and text_failed:
            log.error("Search %r: both retrieval paths failed", query)
            raise DualSubsystemFailure(vector_o, text_o)
        if vector_failed:
            log.warning("Search %r: %s; text results only", query, PartialSubsystemFailure("semantic search", vector_o))
            vector_o = []
        if text_failed:
            log.warning("Search %r: %s; semantic results only", query, PartialSubsystemFailure("text search", text_o))
            text_o = []

        results = apply_post_filters(fuse(vector_o, text_o, limit), filters)
        log.info("Search %r: %d results (semantic=%d text=%d)", query, len(results), len(vector_o), len(text_o))
        return filters, results

    async def _vector_path(self, residual: str, k: int) -> list[SearchResult]:
        if not residual.strip():
            return []
        vector = await self.provider.embed(residual)
        ids, distances = await asyncio.to_thread(self.vector_store.query, self.settings.QDRANT_COLLECTION, vector, k)
        if not ids:
            return []
        items = {i.id: i for i in await asyncio.to_thread(self.item_store.get_many, ids)}
        results = []
        for item_id, d in zip(ids, distances):
            item = items.get(item_id)
            # Vector entries can outlive their item.
            if item is None:
                continue
            results.append(SearchResult(item=item, score=max(0.0, 1.0 - d)))
        return results
