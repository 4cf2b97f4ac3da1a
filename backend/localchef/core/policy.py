"""
Policy checks evaluated by the request gate.

Each check either returns quietly (allow) or raises one of the taxonomy errors
(deny). Checks are small frozen dataclasses so a route's requirements read as a
plain tuple in the route table, e.g.

    (ValidId("id", "meal"), OwnsStored("meals", "chefEmail"), requires_role("chef"))

Checks carry a `cost` tier. The route table must list them in non-decreasing
cost order, so request-local checks (path/query/body ownership, id syntax) always
fail before anything touches the store:

    REQUEST_LOCAL  -> no lookup
    RESOURCE       -> loads the addressed document
    PROFILE        -> loads the caller's user record (shared by all profile checks)
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Literal, Mapping, Optional, Tuple

from localchef.core.errors import Forbidden, InvalidArgument, NotFound
from localchef.repositories.base import DocumentStore, ensure_valid_id
from localchef.schemas.principal import Principal

REQUEST_LOCAL = 0
RESOURCE = 1
PROFILE = 2

Source = Literal["path", "body"]

_UNSET = object()


class GateContext:
    """Everything a check may look at for one request. Lookups are cached."""

    def __init__(
        self,
        *,
        store: DocumentStore,
        principal: Optional[Principal],
        path_params: Mapping[str, str],
        query_params: Mapping[str, str],
        raw_body: bytes = b"",
    ):
        self.store = store
        self.principal = principal
        self.path_params = path_params
        self.query_params = query_params
        self.raw_body = raw_body
        self.resources: Dict[str, dict] = {}
        self._body: Any = _UNSET
        self._profile: Any = _UNSET

    @property
    def email(self) -> str:
        return self.principal.email

    @property
    def body(self) -> dict:
        if self._body is _UNSET:
            if not self.raw_body:
                self._body = {}
            else:
                try:
                    parsed = json.loads(self.raw_body)
                except ValueError:
                    raise InvalidArgument("Malformed JSON body")
                if not isinstance(parsed, dict):
                    raise InvalidArgument("Request body must be a JSON object")
                self._body = parsed
        return self._body

    def value(self, name: str, source: Source) -> Any:
        if source == "path":
            return self.path_params.get(name)
        return self.body.get(name)

    def profile(self) -> Optional[dict]:
        if self._profile is _UNSET:
            self._profile = self.store.users.find_one({"email": self.email})
        return self._profile

    def require_profile(self) -> dict:
        profile = self.profile()
        if profile is None:
            raise NotFound("User profile not found")
        return profile


class Check(ABC):
    cost: ClassVar[int] = REQUEST_LOCAL
    requires_principal: ClassVar[bool] = True

    @abstractmethod
    def evaluate(self, ctx: GateContext) -> None:
        ...


@dataclass(frozen=True)
class ValidId(Check):
    """The addressed identifier must be a syntactically valid store id."""

    requires_principal: ClassVar[bool] = False

    param: str = "id"
    label: str = "document"
    source: Source = "path"

    def evaluate(self, ctx: GateContext) -> None:
        value = ctx.value(self.param, self.source)
        if value is None and self.source == "body":
            raise InvalidArgument(f"{self.param} required")
        ensure_valid_id(value, self.label)


@dataclass(frozen=True)
class OwnsPathParam(Check):
    param: str = "email"

    def evaluate(self, ctx: GateContext) -> None:
        if ctx.path_params.get(self.param) != ctx.email:
            raise Forbidden()


@dataclass(frozen=True)
class OwnsQueryParam(Check):
    param: str = "email"

    def evaluate(self, ctx: GateContext) -> None:
        value = ctx.query_params.get(self.param)
        if not value:
            raise InvalidArgument(f"{self.param} query required")
        if value != ctx.email:
            raise Forbidden()


@dataclass(frozen=True)
class OwnsBodyField(Check):
    """
    The owner field of a resource being created must be the caller.
    With required=False an absent field passes; the router stamps it.
    """

    field: str
    required: bool = False

    def evaluate(self, ctx: GateContext) -> None:
        value = ctx.body.get(self.field)
        if value in (None, ""):
            if self.required:
                raise InvalidArgument(f"{self.field} required")
            return
        if value != ctx.email:
            raise Forbidden()


@dataclass(frozen=True)
class OwnsStored(Check):
    """
    Load the addressed document and require its owner field to be the caller.
    The loaded document is kept on the context for the route handler.
    """

    cost: ClassVar[int] = RESOURCE

    collection: str
    owner_field: str
    param: str = "id"
    source: Source = "path"
    not_found: str = "Not found"

    def evaluate(self, ctx: GateContext) -> None:
        doc = ctx.store.collection(self.collection).find_by_id(ctx.value(self.param, self.source))
        if doc is None:
            raise NotFound(self.not_found)
        if doc.get(self.owner_field) != ctx.email:
            raise Forbidden()
        ctx.resources[self.collection] = doc


@dataclass(frozen=True)
class HasRole(Check):
    cost: ClassVar[int] = PROFILE

    roles: Tuple[str, ...]
    message: str = "Forbidden!"

    def evaluate(self, ctx: GateContext) -> None:
        profile = ctx.require_profile()
        if profile.get("role", "user") not in self.roles:
            raise Forbidden(self.message)


@dataclass(frozen=True)
class NotFraud(Check):
    """
    Fraud gate. Blocks a fraud-flagged caller only when their role is one of
    `roles`; other roles (admin in particular) pass.
    """

    cost: ClassVar[int] = PROFILE

    roles: Tuple[str, ...]
    message: str = "Fraud accounts cannot perform this action"

    def evaluate(self, ctx: GateContext) -> None:
        profile = ctx.require_profile()
        if profile.get("status") == "fraud" and profile.get("role", "user") in self.roles:
            raise Forbidden(self.message)


def requires_role(*roles: str, message: str = "Forbidden!") -> HasRole:
    return HasRole(roles=tuple(roles), message=message)


def admin_only() -> HasRole:
    return HasRole(roles=("admin",), message="Admin only!")


def fraud_gate(*roles: str, message: str) -> NotFraud:
    return NotFraud(roles=tuple(roles), message=message)
