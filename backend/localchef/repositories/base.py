"""
Document store abstraction.

Routers and the authorization gate reach the database only through these
interfaces. The concrete store (Firestore in production, in-memory for
development and tests) is built once at startup and injected, so there is no
module level client anywhere in the package.

Documents are plain dicts. A stored document always comes back with its
store generated identifier under `_id`.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from localchef.core.errors import Conflict, Internal, InvalidArgument

ASCENDING = 1
DESCENDING = -1

# Firestore auto-IDs: 20 alphanumeric characters
OBJECT_ID_RE = re.compile(r"^[A-Za-z0-9]{20}$")

Filters = Dict[str, Any]
Sort = Tuple[str, int]


class StoreError(Internal):
    """The backing store failed in a way the request cannot recover from."""


class DuplicateKeyError(Conflict):
    """A uniqueness key is already claimed in the collection."""


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_RE.match(value))


def ensure_valid_id(value: Any, label: str = "document") -> str:
    if not is_valid_id(value):
        raise InvalidArgument(f"Invalid {label} id")
    return value


@dataclass
class InsertResult:
    inserted_id: str
    acknowledged: bool = True

    def to_dict(self) -> dict:
        return {"acknowledged": self.acknowledged, "insertedId": self.inserted_id}


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int
    acknowledged: bool = True

    def to_dict(self) -> dict:
        return {
            "acknowledged": self.acknowledged,
            "matchedCount": self.matched_count,
            "modifiedCount": self.modified_count,
        }


@dataclass
class DeleteResult:
    deleted_count: int
    acknowledged: bool = True

    def to_dict(self) -> dict:
        return {"acknowledged": self.acknowledged, "deletedCount": self.deleted_count}


def matches_filters(doc: Dict[str, Any], filters: Optional[Filters]) -> bool:
    return all(doc.get(field) == value for field, value in (filters or {}).items())


def strip_id(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of `data` without the identifier key; ids are never client supplied."""
    return {k: v for k, v in data.items() if k != "_id"}


class Collection(ABC):
    """
    One named collection of documents.

    The id keyed operations are template methods: they validate the
    identifier before the backend hook is called, so a malformed id never
    reaches the store.
    """

    def __init__(self, name: str, label: Optional[str] = None):
        self.name = name
        self.label = label or name

    # --- queries ---

    @abstractmethod
    def find(self, filters: Optional[Filters] = None, *, sort: Optional[Sort] = None,
             limit: Optional[int] = None) -> List[dict]:
        ...

    def find_one(self, filters: Filters) -> Optional[dict]:
        rows = self.find(filters, limit=1)
        return rows[0] if rows else None

    def find_by_id(self, doc_id: Any) -> Optional[dict]:
        return self._get(ensure_valid_id(doc_id, self.label))

    @abstractmethod
    def count(self, filters: Optional[Filters] = None) -> int:
        ...

    # --- writes ---

    @abstractmethod
    def insert_one(self, data: Dict[str, Any], *, unique_key: Optional[str] = None) -> InsertResult:
        """
        Insert a document. With `unique_key`, the key is claimed atomically with
        the insert and a second claim raises DuplicateKeyError.
        """

    @abstractmethod
    def release_unique_key(self, unique_key: str) -> None:
        ...

    @abstractmethod
    def update_one(self, filters: Filters, changes: Dict[str, Any]) -> UpdateResult:
        ...

    def update_by_id(self, doc_id: Any, changes: Dict[str, Any], *,
                     expected: Optional[Filters] = None) -> UpdateResult:
        """
        With `expected`, the update applies only while the stored document still
        matches those fields (checked and written atomically); otherwise matchedCount is 0.
        """
        return self._update(ensure_valid_id(doc_id, self.label), strip_id(changes), expected)

    def delete_by_id(self, doc_id: Any) -> DeleteResult:
        return self._delete(ensure_valid_id(doc_id, self.label))

    # --- backend hooks (identifier already validated) ---

    @abstractmethod
    def _get(self, doc_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def _update(self, doc_id: str, changes: Dict[str, Any],
                expected: Optional[Filters] = None) -> UpdateResult:
        ...

    @abstractmethod
    def _delete(self, doc_id: str) -> DeleteResult:
        ...


class DocumentStore(ABC):
    """Handle on the whole database. Owned by the app; closed on shutdown."""

    # collection name -> label used in "Invalid <label> id" messages
    LABELS = {
        "users": "user",
        "meals": "meal",
        "reviews": "review",
        "favorites": "favorite",
        "orders": "order",
        "roleRequests": "role request",
        "payments": "payment",
    }

    @abstractmethod
    def collection(self, name: str) -> Collection:
        ...

    def close(self) -> None:
        pass

    @property
    def users(self) -> Collection:
        return self.collection("users")

    @property
    def meals(self) -> Collection:
        return self.collection("meals")

    @property
    def reviews(self) -> Collection:
        return self.collection("reviews")

    @property
    def favorites(self) -> Collection:
        return self.collection("favorites")

    @property
    def orders(self) -> Collection:
        return self.collection("orders")

    @property
    def role_requests(self) -> Collection:
        return self.collection("roleRequests")

    @property
    def payments(self) -> Collection:
        return self.collection("payments")
