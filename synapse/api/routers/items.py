from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from synapse.api.deps import Services, get_services
from synapse.core.errors import EmbeddingUnavailable, RequestTimeout
from synapse.schemas.items_v1 import CaptureRequest, ItemOut

router = APIRouter()


@router.post("", response_model=ItemOut)
async def create_item(payload: CaptureRequest, services: Services = Depends(get_services)):
    if not payload.title.strip() and not payload.content.strip():
        raise HTTPException(status_code=400, detail="Missing title/content")
    try:
        item = await services.ingest.create_item(payload.to_captured())
    except EmbeddingUnavailable as e:
        raise HTTPException(status_code=502, detail={"code": "EMBEDDING_UNAVAILABLE", "message": str(e)}) from e
    except RequestTimeout as e:
        raise HTTPException(status_code=504, detail={"code": "TIMEOUT", "message": str(e)}) from e
    return item


@router.get("", response_model=list[ItemOut])
async def list_items(limit: int = Query(default=200, ge=1, le=1000), services: Services = Depends(get_services)):
    return await services.ingest.list_items(limit)


@router.get("/{item_id}", response_model=ItemOut)
async def get_item(item_id: str, services: Services = Depends(get_services)):
    item = await services.ingest.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.delete("/{item_id}")
async def delete_item(item_id: str, services: Services = Depends(get_services)) -> dict:
    if not await services.ingest.delete_item(item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return {"ok": True, "id": item_id}
