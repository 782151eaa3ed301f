from __future__ import annotations

CONTENT_TYPES = ("url", "video", "amazon", "blog", "book", "recipe", "image", "note")

CATEGORY_OTHER = "Other"

CATEGORIES = (
    "Technology",
    "Food & Recipes",
    "Books & Reading",
    "Videos & Entertainment",
    "Shopping & Products",
    "Articles & News",
    "Notes & Ideas",
    "Design & Inspiration",
    "Travel",
    "Health & Fitness",
    "Education & Learning",
    CATEGORY_OTHER,
)


def normalize_content_type(value: str | None) -> str | None:
    v = (value or "").strip().lower()
    return v if v in CONTENT_TYPES else None


def normalize_category(value: str | None) -> str:
    raw = (value or "").strip()
    if "\n" in raw:
        raw = raw.split("\n", 1)[0].strip()
    raw = raw.strip(" .\"'*-")
    for c in CATEGORIES:
        if raw.lower() == c.lower():
            return c
    return CATEGORY_OTHER
