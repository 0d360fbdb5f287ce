# socialsphere/services/firestore_service.py
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as gcp_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from socialsphere.core.errors import MutationError, QueryCapabilityError
from socialsphere.services.document_store import (
    DocumentStore, Filter, Increment, OrderBy, SetAdd, SetRemove, SnapshotCallback, StoredDocument
)
from socialsphere.utils.datetime_utils import DateTimeUtils

# Errors Firestore raises when a query needs an index that does not exist.
_CAPABILITY_ERRORS = (gcp_exceptions.FailedPrecondition, gcp_exceptions.MethodNotImplemented)


def init_firebase(credentials_path: Optional[str], project_id: Optional[str] = None) -> None:
    """Initialize the default firebase_admin app once per process."""
    if firebase_admin._apps:
        return
    if not credentials_path or not os.path.exists(credentials_path):
        raise FileNotFoundError(f"Firebase credentials file not found: {credentials_path}")
    cred = credentials.Certificate(credentials_path)
    options = {'projectId': project_id} if project_id else None
    firebase_admin.initialize_app(cred, options)
    logging.info("Firebase app initialized")


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore backed by a Firestore client."""
    supports_atomic_batch = True

    def __init__(self, client=None):
        self.db = client or firestore.client()

    # --- helpers ---
    @staticmethod
    def _to_firestore_value(value: Any) -> Any:
        if isinstance(value, SetAdd):
            return firestore.ArrayUnion(value.values)
        if isinstance(value, SetRemove):
            return firestore.ArrayRemove(value.values)
        if isinstance(value, Increment):
            return firestore.Increment(value.amount)
        return DateTimeUtils.for_firestore(value)

    def _to_payload(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return {path: self._to_firestore_value(value) for path, value in fields.items()}

    def _build_query(self, collection: str, filters: Sequence[Filter], order_by: Optional[OrderBy],
                     limit: Optional[int], cursor: Optional[str] = None):
        collection_ref = self.db.collection(collection)
        query = collection_ref
        for field_path, op, value in filters or ():
            query = query.where(filter=FieldFilter(field_path, op, value))
        if order_by:
            direction = firestore.Query.DESCENDING if order_by.descending else firestore.Query.ASCENDING
            query = query.order_by(order_by.field, direction=direction)
        if cursor:
            cursor_doc = collection_ref.document(cursor).get()
            if cursor_doc.exists:
                query = query.start_after(cursor_doc)
        if limit:
            query = query.limit(limit)
        return query

    @staticmethod
    def _wrap(doc) -> StoredDocument:
        return StoredDocument(doc.id, doc.to_dict() or {})

    # --- DocumentStore ---
    def create_document(self, collection: str, data: Dict[str, Any]) -> str:
        doc_ref = self.db.collection(collection).document()
        try:
            doc_ref.set(DateTimeUtils.for_firestore(data))
        except gcp_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore create failed (collection: {collection}): {e}", exc_info=True)
            raise MutationError(f"could not create document in '{collection}'", collection) from e
        logging.info(f"Firestore document created (collection: {collection}, doc_id: {doc_ref.id})")
        return doc_ref.id

    def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        try:
            self.db.collection(collection).document(doc_id).set(DateTimeUtils.for_firestore(data))
        except gcp_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore set failed ({collection}/{doc_id}): {e}", exc_info=True)
            raise MutationError(f"could not write '{collection}/{doc_id}'", collection, doc_id) from e

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self.db.collection(collection).document(doc_id).get()
        if not doc.exists:
            return None
        return doc.to_dict()

    def query_documents(self, collection: str, filters: Sequence[Filter] = (),
                        order_by: Optional[OrderBy] = None, limit: Optional[int] = None,
                        cursor: Optional[str] = None) -> List[StoredDocument]:
        query = self._build_query(collection, filters, order_by, limit, cursor)
        try:
            # The index check happens server side, so errors surface while streaming.
            return [self._wrap(doc) for doc in query.stream()]
        except _CAPABILITY_ERRORS as e:
            raise QueryCapabilityError(f"'{collection}' query not supported: {e}") from e

    def update_fields(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        try:
            self.db.collection(collection).document(doc_id).update(self._to_payload(fields))
        except gcp_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore update failed ({collection}/{doc_id}, fields: {list(fields)}): {e}", exc_info=True)
            raise MutationError(f"could not update '{collection}/{doc_id}'", collection, doc_id) from e

    def subscribe_query(self, collection: str, filters: Sequence[Filter],
                        order_by: Optional[OrderBy], limit: Optional[int],
                        on_snapshot: SnapshotCallback) -> Callable[[], None]:
        query = self._build_query(collection, filters, order_by, limit)

        def _deliver(docs, changes, read_time):
            on_snapshot([self._wrap(doc) for doc in docs])

        watch = query.on_snapshot(_deliver)
        logging.info(f"Live query opened on '{collection}' (limit: {limit})")
        return watch.unsubscribe

    def commit_atomically(self, creates: Sequence[Tuple[str, Dict[str, Any]]],
                          updates: Sequence[Tuple[str, str, Dict[str, Any]]]) -> List[str]:
        batch = self.db.batch()
        created_ids = []
        for collection, data in creates:
            doc_ref = self.db.collection(collection).document()
            batch.set(doc_ref, DateTimeUtils.for_firestore(data))
            created_ids.append(doc_ref.id)
        for collection, doc_id, fields in updates:
            batch.update(self.db.collection(collection).document(doc_id), self._to_payload(fields))
        try:
            batch.commit()
        except gcp_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore batch commit failed: {e}", exc_info=True)
            raise MutationError("atomic write failed") from e
        return created_ids

    def count_documents(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        query = self._build_query(collection, filters, None, None)
        # count() aggregates server side without fetching the documents.
        count_result = query.count().get()
        return count_result[0][0].value
