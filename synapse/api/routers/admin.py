from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from synapse.api.deps import Services, get_services
from synapse.tasks.index_tasks import reindex_missing, reindex_missing_embeddings

router = APIRouter()


@router.post("/reindex")
async def reindex(limit: int = Query(default=200, ge=1, le=5000), services: Services = Depends(get_services)) -> dict:
    """Restore vectors for items whose vector write failed at capture time.

    Runs inline when Celery is in eager mode, otherwise enqueues the worker task.
    """

    if services.settings.CELERY_TASK_ALWAYS_EAGER:
        result = await reindex_missing(
            collection=services.settings.QDRANT_COLLECTION,
            provider=services.provider,
            vector_store=services.vector_store,
            item_store=services.item_store,
            limit=limit,
        )
        return {"queued": False, "result": result}

    task = reindex_missing_embeddings.delay(limit=limit)
    return {"queued": True, "task_id": task.id}
