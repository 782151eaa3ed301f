from __future__ import annotations

from dataclasses import dataclass

from synapse.core.errors import ErrorKind, ProviderError
from synapse.providers.base import ChatTransport
from synapse.providers.prompts import (
    CATEGORY_MAX_TOKENS,
    CATEGORY_PROMPT,
    SUMMARY_MAX_TOKENS,
    SUMMARY_PROMPT,
    TAGS_MAX_TOKENS,
    TAGS_PROMPT,
)


def parse_tags(raw: str) -> list[str]:
    """Split a comma-separated model answer into clean, case-insensitively unique tags."""

    tags: list[str] = []
    seen: set[str] = set()
    for part in (raw or "").replace("\n", ",").split(","):
        tag = part.strip().strip("#*-.\"'").strip()
        if not tag:
            continue
        key = tag.lower()
        if key in seen:
            continue
        seen.add(key)
        tags.append(tag)
    return tags


@dataclass(frozen=True)
class PromptedBackend:
    """Implements the generation operations on top of a bare chat transport."""

    transport: ChatTransport

    @property
    def name(self) -> str:
        return self.transport.name

    async def embed(self, text: str) -> list[float]:
        return await self.transport.embed(text)

    async def summarize(self, text: str) -> str:
        out = await self.transport.complete(SUMMARY_PROMPT.format(content=text), max_tokens=SUMMARY_MAX_TOKENS)
        if not out:
            raise ProviderError(ErrorKind.MALFORMED, "empty summary", provider=self.name)
        return out

    async def generate_tags(self, text: str) -> list[str]:
        out = await self.transport.complete(TAGS_PROMPT.format(content=text), max_tokens=TAGS_MAX_TOKENS)
        return parse_tags(out)

    async def categorize(self, title: str, content: str, item_type: str) -> str:
        prompt = CATEGORY_PROMPT.format(title=title, item_type=item_type, content=content)
        return await self.transport.complete(prompt, max_tokens=CATEGORY_MAX_TOKENS)
