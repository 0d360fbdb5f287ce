# socialsphere/utils/text_utils.py
import math
from typing import Iterable, List

WORDS_PER_MINUTE = 200
ELLIPSIS = "..."


def word_count(content: str) -> int:
    """Number of whitespace-delimited, non-empty tokens."""
    return len((content or "").split())


def estimate_read_time(content: str) -> int:
    """Minutes needed to read `content` at 200 words per minute, at least 1."""
    return max(1, math.ceil(word_count(content) / WORDS_PER_MINUTE))


def preview(content: str, limit: int = 300) -> str:
    """First `limit` characters plus an ellipsis when the content is longer."""
    content = content or ""
    if len(content) <= limit:
        return content
    return content[:limit] + ELLIPSIS


def is_truncated(content: str, limit: int = 300) -> bool:
    return len(content or "") > limit


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Trim tags, drop empty ones and remove duplicates keeping first-seen order."""
    normalized = []
    for tag in tags or []:
        tag = (tag or "").strip()
        if tag and tag not in normalized:
            normalized.append(tag)
    return normalized
