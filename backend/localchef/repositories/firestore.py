"""
Firestore implementation of the document store.

- `find` builds an equality query with FieldFilter and optional order_by/limit.
- Unique keys live in a sibling guard collection (`<name>_unique_keys`). The guard
  document is written with `create()` in the same batch as the insert, so two
  concurrent inserts with the same key cannot both commit: the loser gets
  AlreadyExists, surfaced as DuplicateKeyError.
- Driver errors (GoogleAPICallError) are logged and re-raised as StoreError.
"""
from __future__ import annotations

import functools
import hashlib
import logging
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import AlreadyExists, GoogleAPICallError
from google.cloud import firestore as gcf
from google.cloud.firestore_v1 import FieldFilter

from localchef.repositories.base import (
    DESCENDING,
    Collection,
    DeleteResult,
    DocumentStore,
    DuplicateKeyError,
    Filters,
    InsertResult,
    Sort,
    StoreError,
    UpdateResult,
    matches_filters,
    strip_id,
)

logger = logging.getLogger("localchef.store")


def _translate_errors(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except GoogleAPICallError as exc:
            logger.exception("Firestore %s.%s failed", self.name, method.__name__)
            raise StoreError() from exc
    return wrapper


def _to_dict(snap) -> dict:
    data = snap.to_dict() or {}
    data["_id"] = snap.id
    return data


def _guard_id(unique_key: str) -> str:
    # keys may contain characters that are not allowed in document ids ('/')
    return hashlib.sha256(unique_key.encode("utf-8")).hexdigest()


class FirestoreCollection(Collection):
    def __init__(self, client, name: str, label: str):
        super().__init__(name, label)
        self._client = client
        self._ref = client.collection(name)

    def _guard_ref(self, unique_key: str):
        return self._client.collection(f"{self.name}_unique_keys").document(_guard_id(unique_key))

    def _query(self, filters: Optional[Filters]):
        q = self._ref
        for field, value in (filters or {}).items():
            q = q.where(filter=FieldFilter(field, "==", value))
        return q

    @_translate_errors
    def find(self, filters: Optional[Filters] = None, *, sort: Optional[Sort] = None,
             limit: Optional[int] = None) -> List[dict]:
        q = self._query(filters)
        if sort:
            field, direction = sort
            q = q.order_by(
                field,
                direction=gcf.Query.DESCENDING if direction == DESCENDING else gcf.Query.ASCENDING,
            )
        if limit is not None:
            q = q.limit(limit)
        return [_to_dict(doc) for doc in q.stream()]

    @_translate_errors
    def count(self, filters: Optional[Filters] = None) -> int:
        result = self._query(filters).count().get()
        return int(result[0][0].value)

    @_translate_errors
    def insert_one(self, data: Dict[str, Any], *, unique_key: Optional[str] = None) -> InsertResult:
        doc_ref = self._ref.document()
        if unique_key is None:
            doc_ref.set(strip_id(data))
            return InsertResult(inserted_id=doc_ref.id)

        batch = self._client.batch()
        batch.create(self._guard_ref(unique_key), {"key": unique_key, "docId": doc_ref.id})
        batch.set(doc_ref, strip_id(data))
        try:
            batch.commit()
        except AlreadyExists as exc:
            raise DuplicateKeyError(f"Duplicate key in {self.name}: {unique_key}") from exc
        return InsertResult(inserted_id=doc_ref.id)

    @_translate_errors
    def release_unique_key(self, unique_key: str) -> None:
        self._guard_ref(unique_key).delete()

    @_translate_errors
    def update_one(self, filters: Filters, changes: Dict[str, Any]) -> UpdateResult:
        docs = list(self._query(filters).limit(1).stream())
        if not docs:
            return UpdateResult(matched_count=0, modified_count=0)
        return self._apply(docs[0], strip_id(changes))

    def _apply(self, snap, changes: Dict[str, Any]) -> UpdateResult:
        current = snap.to_dict() or {}
        modified = any(k not in current or current.get(k) != v for k, v in changes.items())
        if modified:
            snap.reference.update(changes)
        return UpdateResult(matched_count=1, modified_count=int(modified))

    @_translate_errors
    def _get(self, doc_id: str) -> Optional[dict]:
        snap = self._ref.document(doc_id).get()
        return _to_dict(snap) if snap.exists else None

    @_translate_errors
    def _update(self, doc_id: str, changes: Dict[str, Any],
                expected: Optional[Filters] = None) -> UpdateResult:
        if expected:
            return self._update_if(self._ref.document(doc_id), changes, expected)
        snap = self._ref.document(doc_id).get()
        if not snap.exists:
            return UpdateResult(matched_count=0, modified_count=0)
        return self._apply(snap, changes)

    def _update_if(self, ref, changes: Dict[str, Any], expected: Filters) -> UpdateResult:
        # read and write in one transaction; Firestore retries it if the document changed meanwhile
        @gcf.transactional
        def run(transaction):
            snap = ref.get(transaction=transaction)
            if not snap.exists or not matches_filters(snap.to_dict() or {}, expected):
                return UpdateResult(matched_count=0, modified_count=0)
            transaction.update(ref, changes)
            return UpdateResult(matched_count=1, modified_count=1)

        return run(self._client.transaction())

    @_translate_errors
    def _delete(self, doc_id: str) -> DeleteResult:
        ref = self._ref.document(doc_id)
        if not ref.get().exists:
            return DeleteResult(deleted_count=0)
        ref.delete()
        return DeleteResult(deleted_count=1)


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, client):
        self._client = client
        self._collections: Dict[str, FirestoreCollection] = {}

    def collection(self, name: str) -> FirestoreCollection:
        if name not in self._collections:
            self._collections[name] = FirestoreCollection(self._client, name, self.LABELS.get(name, name))
        return self._collections[name]

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            close()
