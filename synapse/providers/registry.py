from __future__ import annotations

import httpx

from synapse.core.config import Settings
from synapse.providers.base import ProviderBackend, ProviderName
from synapse.providers.gemini_api import GeminiTransport
from synapse.providers.llm import PromptedBackend
from synapse.providers.local import LocalBackend
from synapse.providers.openai_api import OpenAITransport


def get_backend(name: str, settings: Settings, *, client: httpx.AsyncClient | None = None) -> ProviderBackend:
    try:
        kind = ProviderName((name or "").strip().lower())
    except ValueError:
        raise ValueError(f"No provider for name={name}") from None

    if kind == ProviderName.GEMINI:
        return PromptedBackend(
            GeminiTransport(
                api_key=settings.GEMINI_API_KEY,
                api_base=settings.GEMINI_API_BASE,
                chat_model=settings.GEMINI_CHAT_MODEL,
                embedding_model=settings.GEMINI_EMBEDDING_MODEL,
                dimensions=settings.EMBEDDING_DIM,
                timeout_s=settings.PROVIDER_TIMEOUT_S,
                client=client,
            )
        )
    if kind == ProviderName.OPENAI:
        return PromptedBackend(
            OpenAITransport(
                api_key=settings.OPENAI_API_KEY,
                api_base=settings.OPENAI_API_BASE,
                chat_model=settings.OPENAI_CHAT_MODEL,
                embedding_model=settings.OPENAI_EMBEDDING_MODEL,
                dimensions=settings.EMBEDDING_DIM,
                timeout_s=settings.PROVIDER_TIMEOUT_S,
                client=client,
            )
        )
    return LocalBackend(dim=settings.EMBEDDING_DIM)
