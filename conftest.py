# conftest.py
"""
Shared pytest fixtures.

The services are exercised against an in-memory DocumentStore that mimics the
Firestore behaviour they depend on: atomic field transforms, descending
(createdAt, document id) ordering, live queries re-delivered after every
write, and the missing composite index failure on filtered+ordered queries.
"""
import itertools
from collections import defaultdict
from datetime import timedelta
from typing import Any, Dict, List, Optional

import pytest

from socialsphere import create_app
from socialsphere.core.errors import AuthError, MutationError, QueryCapabilityError
from socialsphere.models.user import Identity
from socialsphere.services.document_store import (
    DocumentStore, Increment, OrderBy, SetAdd, SetRemove, StoredDocument
)
from socialsphere.services.identity_service import IdentityProvider
from socialsphere.utils.datetime_utils import DateTimeUtils


class InMemoryDocumentStore(DocumentStore):

    def __init__(self, supports_atomic_batch: bool = True, ordered_filter_queries: bool = True):
        self.supports_atomic_batch = supports_atomic_batch
        # False simulates a missing composite index.
        self.ordered_filter_queries = ordered_filter_queries
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.watches: List[Dict[str, Any]] = []
        self.update_calls: List[tuple] = []
        # Number of upcoming update_fields / commit_atomically calls that fail.
        self.fail_updates = 0
        self.fail_commits = 0
        # Called with (collection, doc_id, fields) before an update is applied.
        self.before_update = None
        self._ids = itertools.count(1)

    # --- test helpers ---
    def put(self, collection: str, data: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        doc_id = doc_id or self._next_id()
        self.collections[collection][doc_id] = dict(data)
        self._notify(collection)
        return doc_id

    def active_watches(self) -> List[Dict[str, Any]]:
        return [watch for watch in self.watches if watch['active']]

    def deliver(self, collection: str) -> None:
        self._notify(collection)

    def _next_id(self) -> str:
        return f"doc{next(self._ids):04d}"

    # --- DocumentStore ---
    def create_document(self, collection: str, data: Dict[str, Any]) -> str:
        return self.put(collection, data)

    def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.put(collection, data, doc_id=doc_id)

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        data = self.collections[collection].get(doc_id)
        return dict(data) if data is not None else None

    def query_documents(self, collection, filters=(), order_by=None, limit=None, cursor=None):
        if filters and order_by and not self.ordered_filter_queries:
            raise QueryCapabilityError("The query requires an index.")
        docs = [StoredDocument(doc_id, dict(data)) for doc_id, data in self.collections[collection].items()
                if self._matches(data, filters)]
        if order_by:
            docs.sort(key=lambda doc: self._sort_key(doc, order_by), reverse=order_by.descending)
        if cursor:
            ids = [doc.doc_id for doc in docs]
            docs = docs[ids.index(cursor) + 1:] if cursor in ids else docs
        return docs[:limit] if limit else docs

    def update_fields(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self.update_calls.append((collection, doc_id, fields))
        if self.before_update is not None:
            self.before_update(collection, doc_id, fields)
        if self.fail_updates:
            self.fail_updates -= 1
            raise MutationError("update rejected", collection=collection, document_id=doc_id)
        self._apply_update(collection, doc_id, fields)
        self._notify(collection)

    def subscribe_query(self, collection, filters, order_by, limit, on_snapshot):
        watch = {'collection': collection, 'filters': filters, 'order_by': order_by,
                 'limit': limit, 'callback': on_snapshot, 'active': True}
        self.watches.append(watch)
        on_snapshot(self.query_documents(collection, filters, order_by, limit))

        def _unsubscribe():
            watch['active'] = False
        return _unsubscribe

    def commit_atomically(self, creates, updates):
        if self.fail_commits:
            self.fail_commits -= 1
            raise MutationError("batch rejected")
        for collection, doc_id, _ in updates:
            if doc_id not in self.collections[collection]:
                raise MutationError("no document to update", collection=collection, document_id=doc_id)

        created_ids = []
        for collection, data in creates:
            doc_id = self._next_id()
            self.collections[collection][doc_id] = dict(data)
            created_ids.append(doc_id)
        for collection, doc_id, fields in updates:
            self._apply_update(collection, doc_id, fields)

        for collection in {c for c, _ in creates} | {c for c, _, _ in updates}:
            self._notify(collection)
        return created_ids

    def count_documents(self, collection: str, filters=()) -> int:
        return len(self.query_documents(collection, filters))

    # --- internals ---
    @staticmethod
    def _matches(data: Dict[str, Any], filters) -> bool:
        for field_path, op, value in filters or ():
            if op == '==' and data.get(field_path) != value:
                return False
            if op == 'array_contains' and value not in (data.get(field_path) or []):
                return False
        return True

    @staticmethod
    def _sort_key(doc: StoredDocument, order_by: OrderBy):
        return DateTimeUtils.coerce_or_now(doc.data.get(order_by.field)), doc.doc_id

    def _apply_update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        data = self.collections[collection].get(doc_id)
        if data is None:
            raise MutationError("no document to update", collection=collection, document_id=doc_id)
        for path, value in fields.items():
            if isinstance(value, SetAdd):
                current = list(data.get(path) or [])
                data[path] = current + [v for v in value.values if v not in current]
            elif isinstance(value, SetRemove):
                data[path] = [v for v in (data.get(path) or []) if v not in value.values]
            elif isinstance(value, Increment):
                data[path] = (data.get(path) or 0) + value.amount
            else:
                data[path] = value

    def _notify(self, collection: str) -> None:
        for watch in self.active_watches():
            if watch['collection'] == collection:
                watch['callback'](self.query_documents(
                    collection, watch['filters'], watch['order_by'], watch['limit']
                ))


class FakeIdentityProvider(IdentityProvider):
    """Accounts kept in memory, with the same error categories as Firebase Auth."""

    def __init__(self):
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.ended_sessions: List[str] = []
        self.fail_end_session = False
        self._uids = itertools.count(1)

    def create_account(self, email, password, display_name=None):
        if email in self.accounts:
            raise AuthError(AuthError.ACCOUNT_EXISTS, "An account already exists for this email address.")
        if len(password or "") < 6:
            raise AuthError(AuthError.WEAK_PASSWORD, "Password must be at least 6 characters.")
        uid = f"uid-{next(self._uids)}"
        self.accounts[email] = {'uid': uid, 'password': password, 'display_name': display_name}
        return Identity(uid=uid, email=email, display_name=display_name)

    def authenticate(self, email, password):
        account = self.accounts.get(email)
        if account is None:
            raise AuthError(AuthError.ACCOUNT_NOT_FOUND, "No account exists for this email address.")
        if account['password'] != password:
            raise AuthError(AuthError.WRONG_PASSWORD, "The password is incorrect.")
        return Identity(uid=account['uid'], email=email, display_name=account['display_name'])

    def end_session(self, uid):
        if self.fail_end_session:
            raise RuntimeError("provider unavailable")
        self.ended_sessions.append(uid)


def post_document(author_id: str = "u1", minutes_ago: int = 0, **overrides) -> Dict[str, Any]:
    """Stored 'posts' document, created `minutes_ago` before now."""
    data = {
        'content': "Hello SocialSphere",
        'authorId': author_id,
        'authorName': f"Author {author_id}",
        'authorEmail': f"{author_id}@example.com",
        'createdAt': DateTimeUtils.now() - timedelta(minutes=minutes_ago),
        'likes': [],
        'likesCount': 0,
        'commentsCount': 0,
        'tags': [],
        'mood': None,
        'readTime': 1,
    }
    data.update(overrides)
    return data


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def app(store, identity_provider):
    app = create_app('testing', document_store=store, identity_provider=identity_provider)
    yield app
    app.services['feed'].unsubscribe()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signed_up(client):
    """Sign up a user through the API; returns (response json, Authorization headers)."""
    def _sign_up(email="ada@example.com", password="secret123", name="Ada Lovelace", bio=""):
        response = client.post('/api/auth/signup', json={
            'email': email, 'password': password, 'name': name, 'bio': bio
        })
        assert response.status_code == 201, response.get_json()
        body = response.get_json()
        return body, {'Authorization': f"Bearer {body['access_token']}"}
    return _sign_up
