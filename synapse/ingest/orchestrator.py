from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Generic, TypeVar

from synapse.core.config import Settings
from synapse.core.errors import EmbeddingUnavailable, PartialSubsystemFailure, RequestTimeout
from synapse.enrichment.metadata import MetadataResolver, MetadataResult
from synapse.memory.vector_store import VectorStore
from synapse.models.tables import Item
from synapse.models.vocab import CATEGORY_OTHER, normalize_content_type
from synapse.providers.adapter import ProviderAdapter
from synapse.repository.items import ItemStore
from synapse.util.ids import new_uuid
from synapse.util.time import now_utc

log = logging.getLogger("synapse")

T = TypeVar("T")


@dataclass
class CapturedInput:
    title: str = ""
    content: str = ""
    source_url: str | None = None
    type_hint: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Outcome(Generic[T]):
    """Result slot of one enrichment task: a value or the error that replaced it."""

    name: str
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _slot(name: str, aw: Awaitable[T]) -> Outcome[T]:
    try:
        return Outcome(name, value=await aw)
    except Exception as e:
        return Outcome(name, error=e)


def summary_fallback(content: str, budget: int = 200) -> str:
    content = content or ""
    if len(content) <= budget:
        return content
    return content[:budget] + "..."


def resolve_type(type_hint: str | None, inferred: str | None, source_url: str | None) -> str:
    return normalize_content_type(type_hint) or normalize_content_type(inferred) or ("url" if source_url else "note")


class IngestionOrchestrator:
    """Turns captured input into a stored, enriched item.

    Enrichment calls run concurrently and never cancel each other. Every
    failure except embedding degrades to a default; the relational insert is
    the last step and happens exactly once.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        provider: ProviderAdapter,
        resolver: MetadataResolver,
        vector_store: VectorStore,
        item_store: ItemStore,
    ) -> None:
        self.settings = settings
        self.provider = provider
        self.resolver = resolver
        self.vector_store = vector_store
        self.item_store = item_store

    async def create_item(self, captured: CapturedInput) -> Item:
        timeout_s = self.settings.REQUEST_TIMEOUT_S
        try:
            return await asyncio.wait_for(self._create(captured), timeout=timeout_s)
        except asyncio.TimeoutError as e:
            raise RequestTimeout("create_item", timeout_s) from e

    async def _create(self, captured: CapturedInput) -> Item:
        item_id = new_uuid()
        title = (captured.title or "").strip()
        content = captured.content if (captured.content or "").strip() else title
        type_hint = normalize_content_type(captured.type_hint)

        summary_o, tags_o, embed_o, category_o, meta_o = await asyncio.gather(
            _slot("summary", self.provider.summarize(content)),
            _slot("tags", self.provider.generate_tags(content)),
            _slot("embedding", self.provider.embed(f"{title}\n\n{content}" if title else content)),
            _slot("category", self.provider.categorize(title, content, type_hint or "")),
            _slot(
                "metadata",
                self.resolver.resolve(title, content, type_hint, captured.source_url, captured.metadata),
            ),
        )

        if not embed_o.ok:
            log.error("Ingest %s: embedding failed, nothing stored: %s", item_id, embed_o.error)
            raise EmbeddingUnavailable(embed_o.error)

        if summary_o.ok and summary_o.value:
            summary = summary_o.value
        else:
            log.warning("Ingest %s: summary degraded to content prefix: %s", item_id, summary_o.error)
            summary = summary_fallback(content, self.settings.SUMMARY_FALLBACK_CHARS)

        tags = list(tags_o.value or []) if tags_o.ok else []
        if not tags_o.ok:
            log.warning("Ingest %s: tag generation failed: %s", item_id, tags_o.error)

        category = category_o.value if category_o.ok and category_o.value else CATEGORY_OTHER
        if not category_o.ok:
            log.warning("Ingest %s: categorization failed: %s", item_id, category_o.error)

        meta = meta_o.value if meta_o.ok else None
        if meta is None:
            log.warning("Ingest %s: metadata resolution failed: %s", item_id, meta_o.error)
            meta = MetadataResult()
        elif not meta.image_url:
            meta = MetadataResult(
                embed_html=meta.embed_html,
                image_url=self.resolver.category_image(title, category),
                inferred_type=meta.inferred_type,
            )

        item_type = resolve_type(type_hint, meta.inferred_type, captured.source_url)

        try:
            await asyncio.to_thread(
                self.vector_store.add_embedding,
                self.settings.QDRANT_COLLECTION,
                item_id,
                embed_o.value,
                {"title": title, "type": item_type, "category": category},
            )
        except Exception as e:
            # Still retrievable via text search until re-indexed.
            log.warning("Ingest %s: %s", item_id, PartialSubsystemFailure("vector write", e))

        item = Item(
            id=item_id,
            title=title,
            content=content,
            summary=summary,
            category=category,
            tags=tags,
            source_url=captured.source_url,
            type=item_type,
            embedding_id=item_id,
            image_url=meta.image_url,
            embed_html=meta.embed_html,
            created_at=now_utc(),
        )
        item = await asyncio.to_thread(self.item_store.create, item)
        log.info("Ingest %s: stored type=%s category=%s tags=%d", item_id, item_type, category, len(tags))
        return item

    async def get_item(self, item_id: str) -> Item | None:
        return await asyncio.to_thread(self.item_store.get, item_id)

    async def list_items(self, limit: int = 200) -> list[Item]:
        return await asyncio.to_thread(self.item_store.list_recent, limit)

    async def delete_item(self, item_id: str) -> bool:
        deleted = await asyncio.to_thread(self.item_store.delete, item_id)
        if not deleted:
            return False
        try:
            await asyncio.to_thread(self.vector_store.delete, self.settings.QDRANT_COLLECTION, [item_id])
        except Exception as e:
            log.warning("Delete %s: %s", item_id, PartialSubsystemFailure("vector delete", e))
        return True
