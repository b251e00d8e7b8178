"""Slug Helpers: URL-safe identifiers and keyword extraction for swarms and templates.

Invariants:
    - Slugs match ^[a-z0-9]+(-[a-z0-9]+)*$ and are at most 100 chars
    - generate_unique_slug never returns a member of existing
    - extract_keywords ties keep first-seen order (stable sort)
"""

import re

MAX_SLUG_LENGTH = 100

_STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "is", "are", "was", "were", "be", "been",
    "being", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "shall", "can", "need",
    "this", "that", "these", "those", "it", "its", "as", "if", "then",
    "than", "so", "such", "both", "each", "few", "more", "most", "other",
    "some", "any", "no", "not", "only", "same", "how", "what", "when",
    "where", "which", "who", "why", "all", "also", "just", "because",
})

_VALID_SLUG = re.compile(r"^[a-z0-9-]+$")


def generate_slug(text: str) -> str:
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug[:MAX_SLUG_LENGTH]


def is_valid_slug(slug: str) -> bool:
    if not slug or len(slug) > MAX_SLUG_LENGTH:
        return False
    if slug.startswith("-") or slug.endswith("-") or "--" in slug:
        return False
    return bool(_VALID_SLUG.match(slug))


def sanitize_slug(slug: str) -> str:
    if is_valid_slug(slug):
        return slug
    return generate_slug(slug)


def generate_unique_slug(base: str, existing: list[str] | set[str]) -> str:
    """Sanitize base, then append -1, -2, ... until it is not taken."""
    taken = set(existing)
    slug = sanitize_slug(base)
    if slug not in taken:
        return slug
    counter = 1
    while f"{slug}-{counter}" in taken:
        counter += 1
    return f"{slug}-{counter}"


def extract_keywords(text: str, max_keywords: int = 5) -> list[str]:
    """Most frequent non-stop-words longer than two characters."""
    cleaned = re.sub(r"[^\w\s]", "", text.lower(), flags=re.ASCII)
    counts: dict[str, int] = {}
    for word in cleaned.split():
        if len(word) > 2 and word not in _STOP_WORDS:
            counts[word] = counts.get(word, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [word for word, _ in ranked[:max_keywords]]
