# socialsphere/models/feed.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from socialsphere.models.post import Post


@dataclass(frozen=True)
class FeedStats:
    """Aggregates recomputed over the visible feed window on every snapshot."""
    total_posts: int = 0
    active_users: int = 0
    trending: int = 0


@dataclass(frozen=True)
class FeedState:
    """One published feed window. Replaced as a whole, never mutated."""
    posts: Tuple[Post, ...] = ()
    stats: FeedStats = field(default_factory=FeedStats)
    received_at: Optional[datetime] = None
    version: int = 0


@dataclass
class LikeProjection:
    """
    A viewer's optimistic like state for one post.

    `likes_count` is display-only and independent of the stored likesCount.
    """
    post_id: str
    user_id: str
    liked: bool
    likes_count: int
    pending: bool = True
