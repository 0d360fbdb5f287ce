# socialsphere/models/post.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from socialsphere.utils.datetime_utils import DateTimeUtils
from socialsphere.utils import text_utils


def _coerce_int(value: Any, default: int, field_name: str, post_id: str) -> int:
    """Stored counter as int; malformed values fall back to `default`."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (ValueError, TypeError, OverflowError):
        logging.warning(f"Malformed {field_name} on post {post_id}: {value!r}; using {default}")
        return default


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


class Mood(Enum):
    """Mood a post can be tagged with."""
    EXCITED = "excited"
    THOUGHTFUL = "thoughtful"
    CELEBRATING = "celebrating"
    GRATEFUL = "grateful"
    MOTIVATED = "motivated"

    @classmethod
    def values(cls) -> List[str]:
        return [m.value for m in cls]


@dataclass
class Post:
    """
    Document structure of the Firestore 'posts' collection.

    Author fields are copied from the profile at write time and are not
    refreshed afterwards.
    """
    post_id: str
    content: str
    author_id: str
    author_name: str
    author_email: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    likes: List[str] = field(default_factory=list)
    likes_count: int = 0
    comments_count: int = 0
    tags: List[str] = field(default_factory=list)
    mood: Optional[Mood] = None
    read_time: int = 1

    def is_liked_by(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in self.likes

    def preview(self, limit: int = 300) -> str:
        return text_utils.preview(self.content, limit)

    def is_truncated(self, limit: int = 300) -> bool:
        return text_utils.is_truncated(self.content, limit)

    def to_document(self) -> Dict[str, Any]:
        """Field layout stored in Firestore (the document id is not a field)."""
        return {
            'content': self.content,
            'authorId': self.author_id,
            'authorName': self.author_name,
            'authorEmail': self.author_email,
            'createdAt': self.created_at,
            'likes': list(self.likes),
            'likesCount': self.likes_count,
            'commentsCount': self.comments_count,
            'tags': list(self.tags),
            'mood': self.mood.value if self.mood else None,
            'readTime': self.read_time,
        }

    @classmethod
    def from_document(cls, post_id: str, data: Dict[str, Any]) -> 'Post':
        """Build a Post from stored fields, tolerating partial documents."""
        mood_value = data.get('mood')
        try:
            mood = Mood(mood_value) if mood_value else None
        except ValueError:
            mood = None

        # Duplicates can only come from writes outside this service; keep order.
        likes = list(dict.fromkeys(_string_list(data.get('likes'))))

        return cls(
            post_id=post_id,
            content=data.get('content') if isinstance(data.get('content'), str) else "",
            author_id=data.get('authorId') or "",
            author_name=data.get('authorName') or "",
            author_email=data.get('authorEmail') or "",
            created_at=DateTimeUtils.coerce_or_now(data.get('createdAt'), context=f"post {post_id}"),
            likes=likes,
            likes_count=_coerce_int(data.get('likesCount'), 0, 'likesCount', post_id),
            comments_count=_coerce_int(data.get('commentsCount'), 0, 'commentsCount', post_id),
            tags=_string_list(data.get('tags')),
            mood=mood,
            read_time=_coerce_int(data.get('readTime'), 1, 'readTime', post_id) or 1,
        )
