from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from synapse.ingest.orchestrator import CapturedInput


class CaptureRequest(BaseModel):
    title: str = ""
    content: str = ""
    source_url: str | None = Field(default=None, max_length=2000)
    type: str | None = None
    image_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_captured(self) -> CapturedInput:
        meta = dict(self.metadata or {})
        if self.image_url and not meta.get("image_url"):
            meta["image_url"] = self.image_url
        return CapturedInput(
            title=self.title,
            content=self.content,
            source_url=(self.source_url or "").strip() or None,
            type_hint=self.type,
            metadata=meta,
        )


class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    summary: str
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    source_url: str | None = None
    type: str
    embedding_id: str | None = None
    image_url: str | None = None
    embed_html: str | None = None
    created_at: datetime


class ScoredItem(BaseModel):
    item: ItemOut
    score: float


class SearchResponse(BaseModel):
    query: str
    filters: dict[str, Any]
    results: list[ScoredItem]
