from __future__ import annotations

from dataclasses import dataclass

import httpx

from synapse.core.errors import ErrorKind, ProviderError
from synapse.providers.base import post_json


@dataclass
class OpenAITransport:
    api_key: str | None
    api_base: str = "https://api.openai.com/v1"
    chat_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    dimensions: int | None = None
    timeout_s: float = 20.0
    temperature: float = 0.7
    client: httpx.AsyncClient | None = None
    name: str = "openai"

    def _headers(self) -> dict:
        if not self.api_key:
            raise ProviderError(ErrorKind.AUTH_ERROR, "missing OPENAI_API_KEY", provider=self.name)
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    async def complete(self, prompt: str, *, max_tokens: int) -> str:
        headers = self._headers()
        payload = {
            "model": self.chat_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": self.temperature,
        }
        data = await post_json(
            self.client,
            f"{self.api_base.rstrip('/')}/chat/completions",
            provider=self.name,
            payload=payload,
            headers=headers,
            timeout_s=self.timeout_s,
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(ErrorKind.MALFORMED, "no response from OpenAI", provider=self.name) from e
        return (content or "").strip()

    async def embed(self, text: str) -> list[float]:
        headers = self._headers()
        payload = {"input": text, "model": self.embedding_model}
        if self.dimensions:
            payload["dimensions"] = self.dimensions
        data = await post_json(
            self.client,
            f"{self.api_base.rstrip('/')}/embeddings",
            provider=self.name,
            payload=payload,
            headers=headers,
            timeout_s=self.timeout_s,
        )
        rows = data.get("data") or []
        if not rows or not rows[0].get("embedding"):
            raise ProviderError(ErrorKind.MALFORMED, "no embedding data returned", provider=self.name)
        return [float(v) for v in rows[0]["embedding"]]
