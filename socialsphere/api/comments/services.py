# socialsphere/api/comments/services.py

import logging
import threading
from collections import OrderedDict
from typing import Optional, List, Set, Tuple

from marshmallow import ValidationError

from socialsphere.core.errors import MutationError
from socialsphere.models.comment import Comment
from socialsphere.models.user import UserProfile
from socialsphere.services.document_store import DocumentStore, Increment, query_newest_first
from socialsphere.utils.datetime_utils import DateTimeUtils


class CommentService:
    """
    Comment submission and on-demand loading.

    Comments are not part of the live feed. They are fetched when a post's
    comment section is opened and kept locally so new submissions can be
    prepended without another round trip.
    """
    COLLECTION = 'comments'
    POSTS_COLLECTION = 'posts'

    def __init__(self, store: DocumentStore, max_length: int = 1000, max_cached_posts: int = 500):
        self.store = store
        self.max_length = max_length
        self.max_cached_posts = max_cached_posts
        self._local: "OrderedDict[str, List[Comment]]" = OrderedDict()
        # Request threads share the local lists.
        self._local_lock = threading.Lock()
        # Posts whose commentsCount may have drifted after a partial two-step write.
        self.pending_reconciliation: Set[str] = set()

    def _remember(self, post_id: str, comments: List[Comment], prepend: bool = False) -> None:
        with self._local_lock:
            if prepend:
                comments = comments + self._local.get(post_id, [])
            self._local[post_id] = comments
            self._local.move_to_end(post_id)
            while len(self._local) > self.max_cached_posts:
                self._local.popitem(last=False)

    def local_comments(self, post_id: str) -> List[Comment]:
        """Locally held comments of a post, newest first."""
        with self._local_lock:
            return list(self._local.get(post_id, []))

    def submit_comment(self, post_id: str, content: str, author: UserProfile) -> Comment:
        """
        Store a comment and bump the post's commentsCount.

        Both writes go out as one atomic batch when the store supports it.
        Otherwise they are two separate writes; if the count update fails after
        the comment landed, the post is queued for reconciliation.
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError({'content': ["Comment cannot be empty."]})
        if len(text) > self.max_length:
            raise ValidationError({'content': [f"Comment must be at most {self.max_length} characters."]})

        if self.store.get_document(self.POSTS_COLLECTION, post_id) is None:
            raise ValueError("The post to comment on does not exist.")

        new_comment = Comment(
            comment_id="",
            post_id=post_id,
            content=text,
            author_id=author.user_id,
            author_name=author.name,
            author_email=author.email,
            created_at=DateTimeUtils.now()
        )
        count_update = {'commentsCount': Increment(1)}

        if self.store.supports_atomic_batch:
            created_ids = self.store.commit_atomically(
                creates=[(self.COLLECTION, new_comment.to_document())],
                updates=[(self.POSTS_COLLECTION, post_id, count_update)]
            )
            new_comment.comment_id = created_ids[0]
        else:
            new_comment.comment_id = self.store.create_document(self.COLLECTION, new_comment.to_document())
            try:
                self.store.update_fields(self.POSTS_COLLECTION, post_id, count_update)
            except MutationError as e:
                self.pending_reconciliation.add(post_id)
                logging.error(f"commentsCount not incremented, queued for reconciliation (post_id: {post_id}): {e}")

        self._remember(post_id, [new_comment], prepend=True)
        logging.info(f"Comment created (comment_id: {new_comment.comment_id}, post_id: {post_id})")
        return new_comment

    def load_comments(self, post_id: str) -> List[Comment]:
        """Fetch every comment of a post, newest first, and keep them locally."""
        docs = query_newest_first(self.store, self.COLLECTION, [('postId', '==', post_id)])
        comments = [Comment.from_document(doc.doc_id, doc.data) for doc in docs]
        self._remember(post_id, list(comments))
        return comments

    def reconcile_comment_count(self, post_id: str) -> int:
        """Recompute commentsCount from the stored comments and fix it if it drifted."""
        return self._reconcile(post_id)[0]

    def _reconcile(self, post_id: str) -> Tuple[int, bool]:
        post_data = self.store.get_document(self.POSTS_COLLECTION, post_id)
        if post_data is None:
            raise ValueError(f"Post not found: {post_id}")

        actual = self.store.count_documents(self.COLLECTION, [('postId', '==', post_id)])
        stored = post_data.get('commentsCount') or 0
        if stored != actual:
            self.store.update_fields(self.POSTS_COLLECTION, post_id, {'commentsCount': actual})
            logging.warning(f"commentsCount corrected (post_id: {post_id}, stored: {stored}, actual: {actual})")
        self.pending_reconciliation.discard(post_id)
        return actual, stored != actual

    def reconcile_all(self, post_ids: Optional[List[str]] = None) -> int:
        """Reconcile the given posts, or every post. Returns how many were corrected."""
        if post_ids is None:
            post_ids = [doc.doc_id for doc in self.store.query_documents(self.POSTS_COLLECTION)]

        corrected = 0
        for post_id in post_ids:
            try:
                if self._reconcile(post_id)[1]:
                    corrected += 1
            except ValueError as e:
                logging.warning(f"Skipping reconciliation: {e}")
        return corrected
