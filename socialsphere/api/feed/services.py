# socialsphere/api/feed/services.py
import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple

from socialsphere.models.feed import FeedState, FeedStats
from socialsphere.models.post import Post
from socialsphere.services.document_store import (
    DocumentStore, OrderBy, StoredDocument, query_newest_first
)
from socialsphere.utils.datetime_utils import DateTimeUtils

FeedListener = Callable[[FeedState], None]


class FeedSubscription:
    """Handle returned by FeedService.subscribe."""

    def __init__(self, service: 'FeedService', limit: int):
        self._service = service
        self.limit = limit
        self.active = True

    @property
    def posts(self) -> Tuple[Post, ...]:
        return self._service.current().posts

    @property
    def stats(self) -> FeedStats:
        return self._service.current().stats

    def unsubscribe(self) -> None:
        self._service.release(self)


class FeedService:
    """
    Keeps the most recent posts in memory through a live query.

    Every snapshot replaces the whole window, the statistics are recomputed
    over it, and the result is published as a single FeedState before the
    listeners are called. The snapshot handler is the only writer of that
    state; readers just take the current reference.
    """
    COLLECTION = 'posts'

    def __init__(self, store: DocumentStore, limit: int = 10, trending_threshold: int = 5):
        self.store = store
        self.default_limit = limit
        self.trending_threshold = trending_threshold
        self._state = FeedState()
        self._listeners: List[FeedListener] = []
        self._subscription: Optional[FeedSubscription] = None
        self._release_watch: Optional[Callable[[], None]] = None
        # Guards opening/closing the watch, not the published state.
        self._lifecycle_lock = threading.RLock()

    # --- live window ---
    def subscribe(self, limit: Optional[int] = None) -> FeedSubscription:
        """Open the live feed query, releasing any previous one first."""
        with self._lifecycle_lock:
            return self._open(limit or self.default_limit)

    def ensure_subscribed(self) -> FeedSubscription:
        """Return the active subscription, opening one if there is none."""
        with self._lifecycle_lock:
            if self._subscription is not None and self._subscription.active:
                return self._subscription
            return self._open(self.default_limit)

    def unsubscribe(self) -> None:
        with self._lifecycle_lock:
            self._close()

    def release(self, subscription: FeedSubscription) -> None:
        with self._lifecycle_lock:
            if subscription is self._subscription:
                self._close()
            subscription.active = False

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def _open(self, limit: int) -> FeedSubscription:
        self._close()
        subscription = FeedSubscription(self, limit)
        # Set before subscribing: a store may deliver the first snapshot synchronously.
        self._subscription = subscription

        def _on_snapshot(docs: List[StoredDocument]):
            if self._subscription is not subscription:
                # Late delivery from a released watch.
                return
            self._handle_snapshot(docs)

        try:
            self._release_watch = self.store.subscribe_query(
                self.COLLECTION, (), OrderBy('createdAt', descending=True), limit, _on_snapshot
            )
        except Exception:
            self._subscription = None
            subscription.active = False
            raise
        logging.info(f"Feed subscription opened (limit: {limit})")
        return subscription

    def _close(self) -> None:
        release_watch, subscription = self._release_watch, self._subscription
        self._release_watch = None
        self._subscription = None
        if subscription is not None:
            subscription.active = False
        if release_watch is not None:
            release_watch()
            logging.info("Feed subscription released")

    @staticmethod
    def _decode_posts(docs: Sequence[StoredDocument]) -> Tuple[Post, ...]:
        posts = []
        for doc in docs:
            try:
                posts.append(Post.from_document(doc.doc_id, doc.data))
            except Exception as e:
                # One unreadable document must not freeze the whole window.
                logging.error(f"Skipping undecodable post (post_id: {doc.doc_id}): {e}", exc_info=True)
        return tuple(posts)

    def _handle_snapshot(self, docs: Sequence[StoredDocument]) -> None:
        posts = self._decode_posts(docs)
        state = FeedState(
            posts=posts,
            stats=self.compute_stats(posts, self.trending_threshold),
            received_at=DateTimeUtils.now(),
            version=self._state.version + 1
        )
        self._state = state

        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                # Runs on the store's delivery thread; a failing observer must not stop the feed.
                logging.error(f"Feed listener failed: {e}", exc_info=True)

    @staticmethod
    def compute_stats(posts: Sequence[Post], trending_threshold: int = 5) -> FeedStats:
        return FeedStats(
            total_posts=len(posts),
            active_users=len({post.author_id for post in posts}),
            trending=sum(1 for post in posts if post.likes_count > trending_threshold)
        )

    def current(self) -> FeedState:
        return self._state

    def find_post(self, post_id: str) -> Optional[Post]:
        """Post from the current window, if it is visible."""
        for post in self._state.posts:
            if post.post_id == post_id:
                return post
        return None

    def add_listener(self, listener: FeedListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: FeedListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --- one-shot reads ---
    def fetch_author_posts(self, author_id: str) -> List[Post]:
        """Posts by one author, newest first."""
        docs = query_newest_first(self.store, self.COLLECTION, [('authorId', '==', author_id)])
        return [Post.from_document(doc.doc_id, doc.data) for doc in docs]

    def fetch_page(self, limit: int, cursor: Optional[str] = None) -> Tuple[List[Post], Optional[str]]:
        """Page through the feed past the live window. Returns (posts, next_cursor)."""
        docs = self.store.query_documents(
            self.COLLECTION, (), order_by=OrderBy('createdAt', descending=True), limit=limit, cursor=cursor
        )
        posts = [Post.from_document(doc.doc_id, doc.data) for doc in docs]
        next_cursor = posts[-1].post_id if posts and len(posts) == limit else None
        return posts, next_cursor
