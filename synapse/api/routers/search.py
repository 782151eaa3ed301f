from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from synapse.api.deps import Services, get_services
from synapse.core.errors import DualSubsystemFailure, RequestTimeout
from synapse.schemas.items_v1 import ItemOut, ScoredItem, SearchResponse

router = APIRouter()


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query(default=""),
    limit: int | None = Query(default=None, ge=1, le=200),
    services: Services = Depends(get_services),
):
    try:
        filters, results = await services.search.search_with_filters(q, limit)
    except DualSubsystemFailure as e:
        raise HTTPException(status_code=503, detail={"code": "SEARCH_UNAVAILABLE", "message": str(e)}) from e
    except RequestTimeout as e:
        raise HTTPException(status_code=504, detail={"code": "TIMEOUT", "message": str(e)}) from e

    return SearchResponse(
        query=q,
        filters=filters.to_dict(),
        results=[ScoredItem(item=ItemOut.model_validate(r.item), score=round(r.score, 6)) for r in results],
    )
