"""
# `localchef/core/security.py` - Handler dependencies

The request gate (`core/gate.py`) has already authenticated the caller and run the
route's policy checks by the time a handler's own parameters are resolved. The
dependencies here only hand the results to the handler:

- `get_store` / `get_payments` / `get_app_settings`: what the app owns.
- `get_principal`: the verified caller of a protected route.
- `get_profile`: the caller's user record (re-uses the gate's lookup).
- `loaded("meals")`: the document an `OwnsStored` check loaded for this request.
- `json_body(Model)`: parses and validates the body *after* the gate ran, so a
  request without credentials gets 401 even if its body is malformed.
"""
from typing import Callable, Optional, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from localchef.config import Settings
from localchef.core.errors import InvalidArgument, Unauthenticated, describe_validation_errors
from localchef.core.policy import GateContext
from localchef.integrations.payment import PaymentGateway
from localchef.repositories.base import DocumentStore
from localchef.schemas.principal import Principal

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_payments(request: Request) -> PaymentGateway:
    return request.app.state.payments


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _gate_context(request: Request) -> GateContext:
    return request.state.gate_context


def get_principal(request: Request) -> Principal:
    principal = _gate_context(request).principal
    if principal is None:
        # handler asked for a caller on a route the table marks public
        raise Unauthenticated()
    return principal


def get_profile(request: Request) -> Optional[dict]:
    ctx = _gate_context(request)
    if ctx.principal is None:
        return None
    return ctx.profile()


def loaded(collection: str) -> Callable[[Request], dict]:
    def dependency(request: Request) -> dict:
        return _gate_context(request).resources[collection]
    return dependency


def json_body(model: Type[ModelT]) -> Callable[[Request], ModelT]:
    def dependency(request: Request) -> ModelT:
        body = _gate_context(request).body
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            raise InvalidArgument(describe_validation_errors(exc.errors()))
    return dependency
