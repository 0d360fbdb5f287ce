# socialsphere/services/document_store.py
"""
Minimal document store contract the services are written against.

`FirestoreDocumentStore` implements it on top of firebase_admin. Field
mutations are expressed with the value markers below so that callers never
touch SDK sentinels directly.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from socialsphere.core.errors import QueryCapabilityError
from socialsphere.utils.datetime_utils import DateTimeUtils

# (field_path, operator, value), e.g. ('authorId', '==', 'u1')
Filter = Tuple[str, str, Any]


class SetAdd:
    """Add values to an array field, skipping ones already present."""
    def __init__(self, *values: Any):
        self.values = list(values)

    def __repr__(self):
        return f"SetAdd({', '.join(map(repr, self.values))})"


class SetRemove:
    """Remove every occurrence of the values from an array field."""
    def __init__(self, *values: Any):
        self.values = list(values)

    def __repr__(self):
        return f"SetRemove({', '.join(map(repr, self.values))})"


class Increment:
    """Add `amount` to a numeric field (negative to decrement)."""
    def __init__(self, amount: int):
        self.amount = amount

    def __repr__(self):
        return f"Increment({self.amount})"


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = True


@dataclass
class StoredDocument:
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[List[StoredDocument]], None]


class DocumentStore:
    """
    Capabilities required from the remote document store.

    update_fields must apply every listed field change atomically.
    subscribe_query must re-deliver the full result set on every change and
    return a callable that releases the subscription.
    """
    # Whether commit_atomically is available.
    supports_atomic_batch = True

    def create_document(self, collection: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def query_documents(self, collection: str, filters: Sequence[Filter] = (),
                        order_by: Optional[OrderBy] = None, limit: Optional[int] = None,
                        cursor: Optional[str] = None) -> List[StoredDocument]:
        raise NotImplementedError

    def update_fields(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    def subscribe_query(self, collection: str, filters: Sequence[Filter],
                        order_by: Optional[OrderBy], limit: Optional[int],
                        on_snapshot: SnapshotCallback) -> Callable[[], None]:
        raise NotImplementedError

    def commit_atomically(self, creates: Sequence[Tuple[str, Dict[str, Any]]],
                          updates: Sequence[Tuple[str, str, Dict[str, Any]]]) -> List[str]:
        """Create documents and update fields in one all-or-nothing write."""
        raise NotImplementedError

    def count_documents(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        raise NotImplementedError


def _created_at_key(doc: StoredDocument, order_field: str):
    created_at = DateTimeUtils.coerce_or_now(doc.data.get(order_field), context=doc.doc_id)
    return created_at, doc.doc_id


def query_newest_first(store: DocumentStore, collection: str, filters: Sequence[Filter],
                       limit: Optional[int] = None, order_field: str = 'createdAt') -> List[StoredDocument]:
    """
    Filtered query ordered by `order_field` descending.

    When the store cannot serve the ordered query (typically a composite index
    that was never provisioned), the unordered filtered result is sorted in
    memory instead. Equal timestamps fall back to descending document id, the
    same tie-break Firestore applies to a descending order.
    """
    try:
        return store.query_documents(collection, filters, order_by=OrderBy(order_field, descending=True), limit=limit)
    except QueryCapabilityError as e:
        logging.info(f"Ordered query unavailable on '{collection}' ({e}); sorting in memory.")

    docs = store.query_documents(collection, filters)
    docs.sort(key=lambda doc: _created_at_key(doc, order_field), reverse=True)
    return docs[:limit] if limit else docs
