# socialsphere/api/posts/test_post_services.py
"""
Post authoring and optimistic like tests.

Usage: python -m pytest socialsphere/api/posts/test_post_services.py -v
"""
import pytest
from marshmallow import ValidationError

from conftest import post_document
from socialsphere.api.feed.services import FeedService
from socialsphere.api.posts.services import PostService
from socialsphere.core.errors import MutationError
from socialsphere.models.post import Mood
from socialsphere.models.user import UserProfile
from socialsphere.services.document_store import Increment, SetAdd

AUTHOR = UserProfile(user_id="u1", email="ada@example.com", name="Ada")


@pytest.fixture
def feed(store):
    feed = FeedService(store)
    feed.subscribe()
    return feed


@pytest.fixture
def posts(store, feed):
    return PostService(store, feed)


# --- authoring ---
def test_create_post_scenario(store, posts):
    post = posts.create_post("Hello world", AUTHOR, tags=["intro"], mood="excited")

    stored = store.get_document('posts', post.post_id)
    assert stored['readTime'] == 1
    assert stored['likesCount'] == 0
    assert stored['commentsCount'] == 0
    assert stored['likes'] == []
    assert stored['tags'] == ["intro"]
    assert stored['mood'] == "excited"
    assert stored['authorName'] == "Ada"
    assert post.mood is Mood.EXCITED

def test_created_post_reaches_the_feed(posts, feed):
    post = posts.create_post("Live!", AUTHOR)
    assert feed.find_post(post.post_id) is not None

def test_read_time_for_201_words(posts):
    post = posts.create_post(" ".join(["word"] * 201), AUTHOR)
    assert post.read_time == 2

@pytest.mark.parametrize("content", ["", "   \n", "x" * 2001])
def test_invalid_content_is_rejected_before_any_write(store, posts, content):
    with pytest.raises(ValidationError) as exc_info:
        posts.create_post(content, AUTHOR)
    assert 'content' in exc_info.value.messages
    assert store.collections['posts'] == {}

def test_six_tags_are_rejected(store, posts):
    with pytest.raises(ValidationError) as exc_info:
        posts.create_post("Hello", AUTHOR, tags=["a", "b", "c", "d", "e", "f"])
    assert 'tags' in exc_info.value.messages
    assert store.collections['posts'] == {}

def test_duplicate_tags_are_collapsed(posts):
    post = posts.create_post("Hello", AUTHOR, tags=["a", "a ", "b", "c", "d", "e"])
    assert post.tags == ["a", "b", "c", "d", "e"]

def test_unknown_mood_is_rejected(posts):
    with pytest.raises(ValidationError) as exc_info:
        posts.create_post("Hello", AUTHOR, mood="furious")
    assert 'mood' in exc_info.value.messages


# --- likes ---
def test_like_then_unlike_restores_the_post(store, posts):
    post_id = store.put('posts', post_document("u2", likes=["u3"], likesCount=1))

    posts.toggle_like(post_id, "u1", False)
    liked = store.get_document('posts', post_id)
    assert liked['likes'] == ["u3", "u1"] and liked['likesCount'] == 2

    posts.toggle_like(post_id, "u1", True)
    restored = store.get_document('posts', post_id)
    assert "u1" not in restored['likes']
    assert restored['likesCount'] == 1

def test_like_is_one_atomic_update(store, posts):
    post_id = store.put('posts', post_document("u2"))

    posts.toggle_like(post_id, "u1", False)

    assert len(store.update_calls) == 1
    _, _, fields = store.update_calls[0]
    assert set(fields) == {'likes', 'likesCount'}

def test_projection_flips_immediately(store, posts):
    post_id = store.put('posts', post_document("u2", likesCount=4))
    seen = []
    store.before_update = lambda *args: seen.append(posts.likes.get(post_id, "u1"))

    projection = posts.toggle_like(post_id, "u1", False)

    assert seen[0].liked is True and seen[0].likes_count == 5
    assert projection.pending is False

def test_snapshot_during_flight_keeps_projection(store, posts, feed):
    post_id = store.put('posts', post_document("u2"))
    store.before_update = lambda *args: store.deliver('posts')

    posts.toggle_like(post_id, "u1", False)
    # The snapshot caused by the write itself also arrived while pending.
    assert posts.likes.get(post_id, "u1") is not None

    store.before_update = None
    store.deliver('posts')
    assert posts.likes.get(post_id, "u1") is None

def test_failed_like_rolls_back_and_raises(store, posts):
    post_id = store.put('posts', post_document("u2", likesCount=3))
    store.fail_updates = 1

    with pytest.raises(MutationError):
        posts.toggle_like(post_id, "u1", False)

    assert posts.likes.get(post_id, "u1") is None
    view = posts.view_for(posts.get_post(post_id), "u1")
    assert view['is_liked'] is False and view['likes_count'] == 3

def test_failed_like_restores_earlier_projection(store, posts):
    post_id = store.put('posts', post_document("u2"))
    first = posts.toggle_like(post_id, "u1", False)
    store.fail_updates = 1

    with pytest.raises(MutationError):
        posts.toggle_like(post_id, "u1", True)

    assert posts.likes.get(post_id, "u1") is first

def test_failed_like_without_rollback_keeps_flip_until_snapshot(store, feed):
    posts = PostService(store, feed, rollback_on_failure=False)
    post_id = store.put('posts', post_document("u2"))
    store.fail_updates = 1

    with pytest.raises(MutationError):
        posts.toggle_like(post_id, "u1", False)

    assert posts.likes.get(post_id, "u1").liked is True
    store.deliver('posts')
    assert posts.likes.get(post_id, "u1") is None

def _liked_by_others(store, post_id, *user_ids):
    for user_id in user_ids:
        store.update_fields('posts', post_id, {'likes': SetAdd(user_id), 'likesCount': Increment(1)})

def test_like_without_live_feed_converges_to_stored_post(store):
    posts = PostService(store, FeedService(store))
    post_id = store.put('posts', post_document("u2"))

    posts.toggle_like(post_id, "viewer", False)
    _liked_by_others(store, post_id, "a", "b", "c")

    view = posts.view_for(posts.get_post(post_id), "viewer")
    assert view['likes_count'] == 4 and view['is_liked'] is True
    assert len(posts.likes) == 0

def test_overlay_does_not_grow_without_live_feed(store):
    posts = PostService(store, FeedService(store))
    post_id = store.put('posts', post_document("u2"))

    for n in range(50):
        posts.toggle_like(post_id, f"user-{n}", False)

    assert len(posts.likes) == 0
    assert store.get_document('posts', post_id)['likesCount'] == 50

def test_like_outside_the_live_window_converges(store):
    old_id = store.put('posts', post_document("u2", minutes_ago=60))
    feed = FeedService(store, limit=2)
    feed.subscribe()
    posts = PostService(store, feed)
    store.put('posts', post_document("u3", minutes_ago=5))
    store.put('posts', post_document("u4", minutes_ago=1))
    assert feed.find_post(old_id) is None

    posts.toggle_like(old_id, "viewer", False)
    _liked_by_others(store, old_id, "a")

    view = posts.view_for(posts.get_post(old_id), "viewer")
    assert view['likes_count'] == 2 and view['is_liked'] is True
    assert len(posts.likes) == 0

def test_settled_projection_ignored_after_feed_release(store, posts, feed):
    post_id = store.put('posts', post_document("u2"))
    posts.toggle_like(post_id, "viewer", False)
    assert posts.likes.get(post_id, "viewer") is not None

    feed.unsubscribe()
    _liked_by_others(store, post_id, "a", "b")

    view = posts.view_for(posts.get_post(post_id), "viewer")
    assert view['likes_count'] == 3
    assert posts.likes.get(post_id, "viewer") is None

def test_like_on_missing_post(posts):
    with pytest.raises(ValueError):
        posts.toggle_like("missing", "u1", False)


# --- presentation ---
def test_view_truncates_long_content(store, posts):
    post_id = store.put('posts', post_document("u2", content="z" * 301))

    view = posts.view_for(posts.get_post(post_id), "u1")

    assert view['preview'] == "z" * 300 + "..."
    assert view['is_truncated'] is True
    assert view['content'] == "z" * 301

def test_view_uses_viewer_like_state(store, posts):
    post_id = store.put('posts', post_document("u2", likes=["u1"], likesCount=11))
    post = posts.get_post(post_id)

    assert posts.view_for(post, "u1")['is_liked'] is True
    assert posts.view_for(post, "u9")['is_liked'] is False
    assert posts.view_for(post, None)['is_popular'] is True
