from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from synapse.core.config import Settings, settings
from synapse.core.db import get_session_factory
from synapse.enrichment.metadata import MetadataResolver
from synapse.ingest.orchestrator import IngestionOrchestrator
from synapse.memory.vector_store import QdrantVectorStore, VectorStore
from synapse.providers.adapter import ProviderAdapter
from synapse.repository.items import ItemStore, SqlItemStore
from synapse.search.engine import HybridSearchEngine


@dataclass(frozen=True)
class Services:
    settings: Settings
    provider: ProviderAdapter
    vector_store: VectorStore
    item_store: ItemStore
    ingest: IngestionOrchestrator
    search: HybridSearchEngine


def build_services(
    cfg: Settings,
    *,
    vector_store: VectorStore,
    item_store: ItemStore,
    provider: ProviderAdapter | None = None,
    resolver: MetadataResolver | None = None,
) -> Services:
    provider = provider or ProviderAdapter.from_settings(cfg)
    resolver = resolver or MetadataResolver(cfg)
    return Services(
        settings=cfg,
        provider=provider,
        vector_store=vector_store,
        item_store=item_store,
        ingest=IngestionOrchestrator(
            cfg, provider=provider, resolver=resolver, vector_store=vector_store, item_store=item_store
        ),
        search=HybridSearchEngine(cfg, provider=provider, vector_store=vector_store, item_store=item_store),
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    # Override in tests via app.dependency_overrides[get_services].
    return build_services(
        settings,
        vector_store=QdrantVectorStore(settings),
        item_store=SqlItemStore(get_session_factory()),
    )
