"""
In-memory document store for development and tests.

Behaves like the Firestore store: auto generated 20 character ids, equality
filters, single field sorting and an atomic uniqueness guard. Sync route
handlers run in a thread pool, so every operation takes the store lock.
"""
from __future__ import annotations

import copy
import secrets
import string
import threading
from typing import Any, Dict, List, Optional

from localchef.repositories.base import (
    DESCENDING,
    Collection,
    DeleteResult,
    DocumentStore,
    DuplicateKeyError,
    Filters,
    InsertResult,
    Sort,
    UpdateResult,
    matches_filters,
    strip_id,
)

_ID_ALPHABET = string.ascii_letters + string.digits


def _auto_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(20))


def _sort_key(field: str):
    # None sorts first, like a missing field in Firestore ordering
    def key(doc: dict):
        value = doc.get(field)
        return (value is not None, value)
    return key


class InMemoryCollection(Collection):
    def __init__(self, name: str, label: str, lock: threading.RLock):
        super().__init__(name, label)
        self._lock = lock
        self._docs: Dict[str, dict] = {}
        self._unique_keys: set = set()

    def _out(self, doc_id: str, doc: dict) -> dict:
        return {"_id": doc_id, **copy.deepcopy(doc)}

    def find(self, filters: Optional[Filters] = None, *, sort: Optional[Sort] = None,
             limit: Optional[int] = None) -> List[dict]:
        with self._lock:
            rows = [self._out(doc_id, doc) for doc_id, doc in self._docs.items() if matches_filters(doc, filters)]
        if sort:
            field, direction = sort
            rows.sort(key=_sort_key(field), reverse=direction == DESCENDING)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def count(self, filters: Optional[Filters] = None) -> int:
        with self._lock:
            return sum(1 for doc in self._docs.values() if matches_filters(doc, filters))

    def insert_one(self, data: Dict[str, Any], *, unique_key: Optional[str] = None) -> InsertResult:
        with self._lock:
            if unique_key is not None:
                if unique_key in self._unique_keys:
                    raise DuplicateKeyError(f"Duplicate key in {self.name}: {unique_key}")
                self._unique_keys.add(unique_key)
            doc_id = _auto_id()
            while doc_id in self._docs:
                doc_id = _auto_id()
            self._docs[doc_id] = copy.deepcopy(strip_id(data))
        return InsertResult(inserted_id=doc_id)

    def release_unique_key(self, unique_key: str) -> None:
        with self._lock:
            self._unique_keys.discard(unique_key)

    def update_one(self, filters: Filters, changes: Dict[str, Any]) -> UpdateResult:
        with self._lock:
            for doc_id, doc in self._docs.items():
                if matches_filters(doc, filters):
                    return self._apply(doc_id, strip_id(changes))
        return UpdateResult(matched_count=0, modified_count=0)

    def _apply(self, doc_id: str, changes: Dict[str, Any]) -> UpdateResult:
        doc = self._docs[doc_id]
        modified = any(doc.get(k) != v or k not in doc for k, v in changes.items())
        doc.update(copy.deepcopy(changes))
        return UpdateResult(matched_count=1, modified_count=int(modified))

    def _get(self, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._docs.get(doc_id)
            return self._out(doc_id, doc) if doc is not None else None

    def _update(self, doc_id: str, changes: Dict[str, Any],
                expected: Optional[Filters] = None) -> UpdateResult:
        with self._lock:
            doc = self._docs.get(doc_id)
            if doc is None or not matches_filters(doc, expected):
                return UpdateResult(matched_count=0, modified_count=0)
            return self._apply(doc_id, changes)

    def _delete(self, doc_id: str) -> DeleteResult:
        with self._lock:
            return DeleteResult(deleted_count=1 if self._docs.pop(doc_id, None) is not None else 0)


class InMemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._lock = threading.RLock()
        self._collections: Dict[str, InMemoryCollection] = {}

    def collection(self, name: str) -> InMemoryCollection:
        with self._lock:
            if name not in self._collections:
                self._collections[name] = InMemoryCollection(name, self.LABELS.get(name, name), self._lock)
            return self._collections[name]
