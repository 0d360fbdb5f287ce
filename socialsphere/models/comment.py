# socialsphere/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any

from socialsphere.utils.datetime_utils import DateTimeUtils


@dataclass
class Comment:
    """
    Document structure of the Firestore 'comments' collection. Append-only.
    """
    comment_id: str
    post_id: str
    content: str
    author_id: str
    author_name: str
    author_email: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    def to_document(self) -> Dict[str, Any]:
        return {
            'postId': self.post_id,
            'content': self.content,
            'authorId': self.author_id,
            'authorName': self.author_name,
            'authorEmail': self.author_email,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_document(cls, comment_id: str, data: Dict[str, Any]) -> 'Comment':
        return cls(
            comment_id=comment_id,
            post_id=data.get('postId') or "",
            content=data.get('content') or "",
            author_id=data.get('authorId') or "",
            author_name=data.get('authorName') or "",
            author_email=data.get('authorEmail') or "",
            created_at=DateTimeUtils.coerce_or_now(data.get('createdAt'), context=f"comment {comment_id}"),
        )
