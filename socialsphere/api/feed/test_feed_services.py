# socialsphere/api/feed/test_feed_services.py
"""
Live feed window tests (ordering, statistics, subscription lifecycle).

Usage: python -m pytest socialsphere/api/feed/test_feed_services.py -v
"""
from conftest import InMemoryDocumentStore, post_document
from socialsphere.api.feed.services import FeedService
from socialsphere.models.post import Post
from socialsphere.services.document_store import StoredDocument


def _seed(store, *authors_and_ages, **overrides):
    return [store.put('posts', post_document(author, minutes_ago=age, **overrides))
            for author, age in authors_and_ages]


def test_feed_is_newest_first_and_bounded_by_limit(store):
    _seed(store, ("u1", 30), ("u2", 5), ("u1", 60), ("u3", 1))
    feed = FeedService(store, limit=3)

    subscription = feed.subscribe()

    created = [post.created_at for post in subscription.posts]
    assert len(created) == 3
    assert all(a > b for a, b in zip(created, created[1:]))
    assert [post.author_id for post in subscription.posts] == ["u3", "u2", "u1"]

def test_snapshot_replaces_the_whole_window(store):
    feed = FeedService(store, limit=2)
    feed.subscribe()
    first = feed.current()

    _seed(store, ("u1", 10))
    store.put('posts', post_document("u2", minutes_ago=0))

    state = feed.current()
    assert state is not first
    assert state.version > first.version
    assert [post.author_id for post in state.posts] == ["u2", "u1"]

def test_stats_empty_window():
    stats = FeedService.compute_stats(())
    assert (stats.total_posts, stats.active_users, stats.trending) == (0, 0, 0)

def test_active_users_counts_distinct_authors(store):
    _seed(store, ("u1", 1), ("u1", 2), ("u2", 3), ("u3", 4))
    feed = FeedService(store)
    feed.subscribe()

    assert feed.current().stats.total_posts == 4
    assert feed.current().stats.active_users == 3

def test_trending_boundary_is_more_than_five_likes():
    posts = [
        Post(post_id="p1", content="a", author_id="u1", author_name="", author_email="", likes_count=5),
        Post(post_id="p2", content="b", author_id="u1", author_name="", author_email="", likes_count=6),
        Post(post_id="p3", content="c", author_id="u2", author_name="", author_email="", likes_count=0),
    ]
    assert FeedService.compute_stats(posts).trending == 1

def test_listeners_receive_each_published_state(store):
    feed = FeedService(store)
    received = []
    feed.add_listener(received.append)
    feed.subscribe()
    _seed(store, ("u1", 1))

    assert [state.version for state in received] == [1, 2]
    assert received[-1] is feed.current()

def test_failing_listener_does_not_stop_the_feed(store):
    feed = FeedService(store)

    def _broken(state):
        raise RuntimeError("boom")

    feed.add_listener(_broken)
    feed.subscribe()
    _seed(store, ("u1", 1))

    assert feed.current().stats.total_posts == 1

def test_ensure_subscribed_opens_a_single_watch(store):
    feed = FeedService(store)

    first = feed.ensure_subscribed()
    second = feed.ensure_subscribed()

    assert first is second
    assert len(store.active_watches()) == 1

def test_resubscribe_releases_the_previous_watch(store):
    feed = FeedService(store)

    old = feed.subscribe()
    new = feed.subscribe()

    assert len(store.active_watches()) == 1
    assert not old.active and new.active

def test_unsubscribe_releases_the_watch(store):
    feed = FeedService(store)
    subscription = feed.subscribe()

    subscription.unsubscribe()

    assert store.active_watches() == []
    assert not feed.is_subscribed

def test_late_delivery_from_released_watch_is_ignored(store):
    _seed(store, ("u1", 1))
    feed = FeedService(store)
    feed.subscribe()
    stale_callback = store.watches[0]['callback']
    feed.subscribe()
    version = feed.current().version

    stale_callback([StoredDocument("ghost", post_document("u9"))])

    assert feed.current().version == version
    assert feed.find_post("ghost") is None

def test_author_posts_fallback_matches_native_order():
    # Two posts share a timestamp; the tie is broken by document id either way.
    native, no_index = InMemoryDocumentStore(), InMemoryDocumentStore(ordered_filter_queries=False)
    for backing in (native, no_index):
        same_time = post_document("u1", minutes_ago=10)['createdAt']
        backing.put('posts', post_document("u1", minutes_ago=30))
        backing.put('posts', post_document("u1", createdAt=same_time))
        backing.put('posts', post_document("u2", minutes_ago=1))
        backing.put('posts', post_document("u1", createdAt=same_time))
        backing.put('posts', post_document("u1", minutes_ago=2))

    native_ids = [post.post_id for post in FeedService(native).fetch_author_posts("u1")]
    fallback_ids = [post.post_id for post in FeedService(no_index).fetch_author_posts("u1")]

    assert native_ids == fallback_ids == ["doc0005", "doc0004", "doc0002", "doc0001"]

def test_fetch_page_walks_past_the_window(store):
    ids = _seed(store, ("u1", 1), ("u1", 2), ("u1", 3))
    feed = FeedService(store)

    first, cursor = feed.fetch_page(2)
    rest, end = feed.fetch_page(2, cursor)

    assert [post.post_id for post in first] == ids[:2]
    assert [post.post_id for post in rest] == ids[2:]
    assert end is None

def test_bad_timestamp_does_not_drop_the_post(store):
    store.put('posts', post_document("u1", createdAt="not-a-date"))
    feed = FeedService(store)
    feed.subscribe()

    assert feed.current().stats.total_posts == 1

def test_malformed_counters_do_not_stop_the_feed(store):
    feed = FeedService(store)
    feed.subscribe()
    bad_id = store.put('posts', post_document("u1", minutes_ago=5, likesCount="n/a", commentsCount=[], readTime="?"))
    good_id = store.put('posts', post_document("u2", minutes_ago=1, likesCount=7))

    assert [post.post_id for post in feed.current().posts] == [good_id, bad_id]
    bad = feed.find_post(bad_id)
    assert (bad.likes_count, bad.comments_count, bad.read_time) == (0, 0, 1)
    assert feed.current().stats.trending == 1

def test_undecodable_document_is_skipped(store):
    feed = FeedService(store)
    feed.subscribe()
    deliver = store.active_watches()[0]['callback']

    deliver([StoredDocument("broken", None), StoredDocument("ok", post_document("u1"))])

    assert [post.post_id for post in feed.current().posts] == ["ok"]
    assert feed.current().stats.total_posts == 1
