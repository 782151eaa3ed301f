from __future__ import annotations

from synapse.models.vocab import CATEGORIES

SUMMARY_PROMPT = """
Summarize the following content in 2-3 concise sentences. Focus on the key points:

{content}
""".strip()

TAGS_PROMPT = """
Extract 3-5 relevant tags for this content. Return only comma-separated tags, no explanations, no numbering, just tags separated by commas:

{content}
""".strip()

CATEGORY_PROMPT = (
    "Categorize this content into ONE of these specific sections:\n"
    + "\n".join(f"- {c}" for c in CATEGORIES)
    + """

Title: {title}
Type: {item_type}
Content: {content}

Return ONLY the category name, nothing else."""
)

SUMMARY_MAX_TOKENS = 150
TAGS_MAX_TOKENS = 50
CATEGORY_MAX_TOKENS = 20
