# socialsphere/api/posts/services.py
import logging
from typing import Optional, Dict, Any, List, Union

from marshmallow import ValidationError

from socialsphere.api.feed.services import FeedService
from socialsphere.core.errors import MutationError
from socialsphere.models.feed import LikeProjection
from socialsphere.models.post import Post, Mood
from socialsphere.models.user import UserProfile
from socialsphere.services.document_store import DocumentStore, Increment, SetAdd, SetRemove
from socialsphere.services.optimistic_service import LikeOverlay
from socialsphere.utils.datetime_utils import DateTimeUtils
from socialsphere.utils.text_utils import estimate_read_time, normalize_tags

POPULAR_LIKES = 10
POPULAR_COMMENTS = 5


class PostService:
    """
    Post authoring, likes and the per-viewer presentation of posts.
    Likes are applied optimistically through the LikeOverlay.
    """
    def __init__(self, store: DocumentStore, feed_service: FeedService,
                 max_length: int = 2000, max_tags: int = 5, preview_length: int = 300,
                 rollback_on_failure: bool = True):
        self.store = store
        self.feed = feed_service
        self.max_length = max_length
        self.max_tags = max_tags
        self.preview_length = preview_length
        self.rollback_on_failure = rollback_on_failure
        self.likes = LikeOverlay()
        self.feed.add_listener(self.likes.reconcile)

    def create_post(self, content: str, author: UserProfile, tags: Optional[List[str]] = None,
                    mood: Optional[Union[str, Mood]] = None) -> Post:
        """Validate and store a new post. Author fields are copied from `author`."""
        content = content or ""
        errors: Dict[str, List[str]] = {}

        if not content.strip():
            errors['content'] = ["Post content cannot be empty."]
        elif len(content) > self.max_length:
            errors['content'] = [f"Post content must be at most {self.max_length} characters."]

        normalized_tags = normalize_tags(tags or [])
        if len(normalized_tags) > self.max_tags:
            errors['tags'] = [f"A post can have at most {self.max_tags} tags."]

        post_mood = None
        if mood:
            try:
                post_mood = mood if isinstance(mood, Mood) else Mood(mood)
            except ValueError:
                errors['mood'] = [f"Must be one of: {', '.join(Mood.values())}."]

        if errors:
            raise ValidationError(errors)

        new_post = Post(
            post_id="",
            content=content,
            author_id=author.user_id,
            author_name=author.name,
            author_email=author.email,
            created_at=DateTimeUtils.now(),
            tags=normalized_tags,
            mood=post_mood,
            read_time=estimate_read_time(content)
        )
        new_post.post_id = self.store.create_document(FeedService.COLLECTION, new_post.to_document())
        logging.info(f"Post created (post_id: {new_post.post_id}, author_id: {author.user_id})")
        return new_post

    def get_post(self, post_id: str) -> Optional[Post]:
        data = self.store.get_document(FeedService.COLLECTION, post_id)
        if data is None:
            return None
        return Post.from_document(post_id, data)

    # --- likes ---
    def _displayed_likes_count(self, post_id: str, user_id: str) -> int:
        projection = self.likes.get(post_id, user_id)
        if projection is not None:
            return projection.likes_count
        post = self.feed.find_post(post_id) or self.get_post(post_id)
        if post is None:
            raise ValueError("Post not found.")
        return post.likes_count

    def toggle_like(self, post_id: str, user_id: str, currently_liked: bool) -> LikeProjection:
        """
        Like or unlike a post for `user_id`.

        The viewer's projection flips immediately; then one atomic update adds
        or removes the user from `likes` and moves `likesCount` by one.
        Repeated toggles are not deduplicated; each one issues its own update.

        Raises:
            ValueError: the post does not exist.
            MutationError: the remote update failed. With rollback enabled the
                projection is restored to what it was before this toggle.

        A settled projection stays until the next feed snapshot when the post
        is in the live window; otherwise it is dropped right away.
        """
        displayed = self._displayed_likes_count(post_id, user_id)
        projection, previous = self.likes.begin(post_id, user_id, currently_liked, displayed)

        if currently_liked:
            mutation = {'likes': SetRemove(user_id), 'likesCount': Increment(-1)}
        else:
            mutation = {'likes': SetAdd(user_id), 'likesCount': Increment(1)}

        try:
            self.store.update_fields(FeedService.COLLECTION, post_id, mutation)
        except MutationError as e:
            logging.error(f"Like toggle failed (user_id: {user_id}, post_id: {post_id}): {e}")
            if self.rollback_on_failure:
                self.likes.rollback(projection, previous)
            else:
                # Left as is; the next snapshot overwrites it.
                self._settle(projection)
            raise

        self._settle(projection)
        return projection

    def _covered_by_live_feed(self, post_id: str) -> bool:
        """Whether a later feed snapshot will carry `post_id` and clear its projections."""
        return self.feed.is_subscribed and self.feed.find_post(post_id) is not None

    def _settle(self, projection: LikeProjection) -> None:
        self.likes.settle(projection)
        # No snapshot will reconcile it; the stored post is authoritative from here on.
        if not self._covered_by_live_feed(projection.post_id):
            self.likes.discard(projection)

    # --- presentation ---
    def view_for(self, post: Post, viewer_id: Optional[str]) -> Dict[str, Any]:
        """Post as shown to `viewer_id`, including that viewer's optimistic like state."""
        projection = self.likes.get(post.post_id, viewer_id) if viewer_id else None
        if projection is not None and not projection.pending and not self._covered_by_live_feed(post.post_id):
            # Settled while the feed was released or the post left the window.
            self.likes.discard(projection)
            projection = None
        if projection is not None:
            is_liked, likes_count = projection.liked, projection.likes_count
        else:
            is_liked, likes_count = post.is_liked_by(viewer_id), post.likes_count

        return {
            'post_id': post.post_id,
            'content': post.content,
            'preview': post.preview(self.preview_length),
            'is_truncated': post.is_truncated(self.preview_length),
            'author': {
                'user_id': post.author_id,
                'name': post.author_name,
                'email': post.author_email,
            },
            'created_at': post.created_at,
            'time_ago': DateTimeUtils.time_ago(post.created_at),
            'likes_count': likes_count,
            'comments_count': post.comments_count,
            'tags': post.tags,
            'mood': post.mood.value if post.mood else None,
            'read_time': post.read_time,
            'is_liked': is_liked,
            'is_popular': likes_count > POPULAR_LIKES or post.comments_count > POPULAR_COMMENTS,
        }
