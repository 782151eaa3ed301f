"""Provider protocols and the HTTP error mapping shared by backends.

A backend is chosen by name at runtime (see registry.py). Remote backends
only need to know how to complete a prompt and embed a text; the prompts and
response parsing live in llm.PromptedBackend.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Protocol

import httpx

from synapse.core.errors import ErrorKind, ProviderError, provider_error


class ProviderName(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    LOCAL = "local"


class ChatTransport(Protocol):
    name: str

    async def complete(self, prompt: str, *, max_tokens: int) -> str: ...

    async def embed(self, text: str) -> list[float]: ...


class ProviderBackend(Protocol):
    name: str

    async def embed(self, text: str) -> list[float]: ...

    async def summarize(self, text: str) -> str: ...

    async def generate_tags(self, text: str) -> list[str]: ...

    async def categorize(self, title: str, content: str, item_type: str) -> str: ...


def _truncate(s: str, n: int = 200) -> str:
    s = s or ""
    return s if len(s) <= n else s[:n] + "…"


def classify_status(status_code: int) -> ErrorKind:
    if status_code == 429:
        return ErrorKind.QUOTA_EXCEEDED
    if status_code in (401, 403):
        return ErrorKind.AUTH_ERROR
    if status_code >= 500:
        return ErrorKind.UNAVAILABLE
    return ErrorKind.MALFORMED


async def post_json(
    client: httpx.AsyncClient | None,
    url: str,
    *,
    provider: str,
    payload: dict,
    headers: dict | None = None,
    timeout_s: float = 20.0,
    classify: Callable[[httpx.Response], ErrorKind] | None = None,
) -> dict[str, Any]:
    """POST a JSON payload and return the decoded body or raise ProviderError.

    `classify` maps an error response to a kind; the default looks at the
    status code only.
    """

    try:
        if client is not None:
            resp = await client.post(url, json=payload, headers=headers, timeout=timeout_s)
        else:
            async with httpx.AsyncClient(timeout=timeout_s) as c:
                resp = await c.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        raise provider_error(ErrorKind.UNAVAILABLE, f"{provider} timeout: {e}", provider=provider) from e
    except httpx.TransportError as e:
        raise provider_error(ErrorKind.UNAVAILABLE, f"{provider} transport: {e}", provider=provider) from e

    if resp.status_code >= 400:
        raise provider_error(
            classify(resp) if classify else classify_status(resp.status_code),
            f"{provider}_http_{resp.status_code}:{_truncate(resp.text)}",
            provider=provider,
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise ProviderError(
            ErrorKind.MALFORMED, f"Non-JSON response: status={resp.status_code} body={_truncate(resp.text)}", provider=provider
        ) from e
    if not isinstance(data, dict):
        raise ProviderError(ErrorKind.MALFORMED, "unexpected response shape", provider=provider)
    return data
