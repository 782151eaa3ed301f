"""Language-model providers: embeddings, summaries, tags and categories."""

from synapse.providers.adapter import ProviderAdapter
from synapse.providers.base import ProviderBackend, ProviderName

__all__ = ["ProviderAdapter", "ProviderBackend", "ProviderName"]
