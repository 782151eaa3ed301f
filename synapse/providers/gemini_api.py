from __future__ import annotations

from dataclasses import dataclass

import httpx

from synapse.core.errors import ErrorKind, ProviderError
from synapse.providers.base import classify_status, post_json


def classify_gemini_error(resp: httpx.Response) -> ErrorKind:
    # Gemini answers 400 (not 401) for a bad key; the reason is in error.details.
    try:
        body = resp.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    details = error.get("details") if isinstance(error, dict) else None
    for d in details if isinstance(details, list) else []:
        if isinstance(d, dict) and d.get("reason") == "API_KEY_INVALID":
            return ErrorKind.AUTH_ERROR
    return classify_status(resp.status_code)


@dataclass
class GeminiTransport:
    api_key: str | None
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    chat_model: str = "gemini-1.5-flash"
    embedding_model: str = "text-embedding-004"
    dimensions: int | None = None
    timeout_s: float = 20.0
    temperature: float = 0.7
    client: httpx.AsyncClient | None = None
    name: str = "gemini"

    def _url(self, model: str, method: str) -> str:
        return f"{self.api_base.rstrip('/')}/models/{model}:{method}?key={self.api_key}"

    def _require_key(self) -> None:
        if not self.api_key:
            raise ProviderError(ErrorKind.AUTH_ERROR, "missing GEMINI_API_KEY", provider=self.name)

    async def _post(self, url: str, payload: dict) -> dict:
        return await post_json(
            self.client,
            url,
            provider=self.name,
            payload=payload,
            timeout_s=self.timeout_s,
            classify=classify_gemini_error,
        )

    async def complete(self, prompt: str, *, max_tokens: int) -> str:
        self._require_key()
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": max_tokens, "temperature": self.temperature},
        }
        data = await self._post(self._url(self.chat_model, "generateContent"), payload)
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(ErrorKind.MALFORMED, "no response from Gemini", provider=self.name) from e
        return (text or "").strip()

    async def embed(self, text: str) -> list[float]:
        self._require_key()
        payload = {
            "model": f"models/{self.embedding_model}",
            "content": {"parts": [{"text": text}]},
        }
        if self.dimensions:
            payload["outputDimensionality"] = self.dimensions
        data = await self._post(self._url(self.embedding_model, "embedContent"), payload)
        values = ((data.get("embedding") or {}).get("values")) or []
        if not values:
            raise ProviderError(ErrorKind.MALFORMED, "no embedding data returned", provider=self.name)
        return [float(v) for v in values]
