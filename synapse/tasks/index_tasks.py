from __future__ import annotations

import asyncio
import logging

from synapse.core.celery_app import celery
from synapse.memory.vector_store import VectorStore
from synapse.providers.adapter import ProviderAdapter
from synapse.repository.items import ItemStore

log = logging.getLogger("synapse")


async def reindex_missing(
    *,
    collection: str,
    provider: ProviderAdapter,
    vector_store: VectorStore,
    item_store: ItemStore,
    limit: int = 200,
) -> dict:
    """Write vectors for recent items that have none in the index.

    Items whose vector write failed at capture time are searchable by text
    only; this restores them to semantic search. The vector id is the item id,
    so rerunning is harmless.
    """

    items = await asyncio.to_thread(item_store.list_recent, limit)
    present = await asyncio.to_thread(vector_store.existing_ids, collection, [i.id for i in items])
    missing = [i for i in items if i.id not in present]

    indexed = 0
    failed = 0
    for item in missing:
        try:
            text = f"{item.title}\n\n{item.content}" if item.title else item.content
            vector = await provider.embed(text)
            await asyncio.to_thread(
                vector_store.add_embedding,
                collection,
                item.embedding_id or item.id,
                vector,
                {"title": item.title, "type": item.type, "category": item.category},
            )
            indexed += 1
        except Exception as e:
            log.warning("Reindex %s failed: %s", item.id, e)
            failed += 1

    log.info("Reindex: checked=%d missing=%d indexed=%d failed=%d", len(items), len(missing), indexed, failed)
    return {"checked": len(items), "missing": len(missing), "indexed": indexed, "failed": failed}


@celery.task(name="synapse.tasks.index_tasks.reindex_missing_embeddings")
def reindex_missing_embeddings(*, limit: int = 200) -> dict:
    from synapse.api.deps import get_services

    services = get_services()
    return asyncio.run(
        reindex_missing(
            collection=services.settings.QDRANT_COLLECTION,
            provider=services.provider,
            vector_store=services.vector_store,
            item_store=services.item_store,
            limit=limit,
        )
    )
