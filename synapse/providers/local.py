from __future__ import annotations

import hashlib
import math
import re
from collections import Counter
from dataclasses import dataclass

from synapse.models.vocab import CATEGORY_OTHER

_WORD_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")

STOPWORDS = frozenset(
    """
    a about above after again all also am an and any are as at be because been before being below between both
    but by can could did do does doing down during each few for from further had has have having he her here
    hers him his how i if in into is it its itself just me more most my no nor not now of off on once only or
    other our ours out over own same she should so some such than that the their theirs them then there these
    they this those through to too under until up very was we were what when where which while who whom why
    will with would you your yours
    """.split()
)

CATEGORY_KEYWORDS = {
    "Technology": ["software", "code", "python", "api", "computer", "ai", "programming", "tech", "app"],
    "Food & Recipes": ["recipe", "ingredients", "cook", "bake", "pasta", "dinner", "tbsp", "tsp"],
    "Books & Reading": ["book", "novel", "author", "isbn", "chapter", "reading"],
    "Videos & Entertainment": ["video", "youtube", "movie", "film", "episode", "music"],
    "Shopping & Products": ["price", "buy", "product", "amazon", "deal", "shop"],
    "Articles & News": ["article", "news", "blog", "report", "post"],
    "Notes & Ideas": ["idea", "note", "todo", "thought", "maybe"],
    "Design & Inspiration": ["design", "ui", "color", "typography", "inspiration"],
    "Travel": ["travel", "trip", "flight", "hotel", "visit"],
    "Health & Fitness": ["health", "fitness", "workout", "run", "diet", "sleep"],
    "Education & Learning": ["learn", "course", "tutorial", "lesson", "study"],
}


def tokenize(text: str) -> list[str]:
    return _WORD_RE.findall((text or "").lower())


def hash_embedding(text: str, dim: int) -> list[float]:
    """Deterministic feature-hashed bag-of-words vector, L2-normalized.

    This is not a semantic embedding, but texts sharing words end up close,
    which keeps vector search meaningful without an external model.
    """

    vec = [0.0] * dim
    for tok in tokenize(text):
        if tok in STOPWORDS:
            continue
        h = hashlib.sha256(tok.encode("utf-8")).digest()
        idx = int.from_bytes(h[:4], "big") % dim
        vec[idx] += 1.0 if h[4] & 1 else -1.0
    norm = math.sqrt(sum(v * v for v in vec))
    if norm == 0:
        vec[0] = 1.0
        return vec
    return [v / norm for v in vec]


@dataclass(frozen=True)
class LocalBackend:
    """Offline backend: no network, deterministic output."""

    dim: int = 768
    summary_chars: int = 300
    max_tags: int = 5
    name: str = "local"

    async def embed(self, text: str) -> list[float]:
        return hash_embedding(text, self.dim)

    async def summarize(self, text: str) -> str:
        text = " ".join((text or "").split())
        sentences = re.split(r"(?<=[.!?])\s+", text)
        out = " ".join(sentences[:2])
        if len(out) > self.summary_chars:
            out = out[: self.summary_chars].rstrip() + "..."
        return out

    async def generate_tags(self, text: str) -> list[str]:
        words = [w for w in tokenize(text) if w not in STOPWORDS and len(w) > 2 and not w.isdigit()]
        return [w for w, _ in Counter(words).most_common(self.max_tags)]

    async def categorize(self, title: str, content: str, item_type: str) -> str:
        words = set(tokenize(f"{title} {content} {item_type}"))
        scores = {cat: sum(1 for k in kws if k in words) for cat, kws in CATEGORY_KEYWORDS.items()}
        best = max(scores, key=scores.get)
        if scores[best] == 0:
            return CATEGORY_OTHER
        return best
