"""
# `localchef/core/gate.py` - Request gate

## Overview
Every route of the API is declared exactly once in `ROUTE_TABLE`, keyed by
`(method, path template)`. An entry says whether the route is protected and which
policy checks run, in order, before the handler executes.

The table is enforced by one app-wide dependency (`enforce_route_rules`):

1. Look up the matched route in the table (an unknown route is refused).
2. Protected route: resolve the bearer token into a Principal (401 on failure).
3. Run the checks in order; the first failure ends the request (400/403/404).
4. Leave the Principal, the loaded documents and the cached profile on
   `request.state` for the handler.

At startup `RequestGate.validate_routes(app)` compares the table with the mounted
routes. A route without an entry, or an entry without a route, stops the app from
booting.

## Check order
Within an entry the checks are sorted by cost: request-local checks first, then
the addressed document, then the caller's user record. `RouteRule` refuses any
other order, and refuses principal-dependent checks on a public route.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Set, Tuple

from fastapi import Depends, FastAPI, Request
from fastapi.security import HTTPAuthorizationCredentials

from localchef.core.auth import bearer_scheme, resolve_principal
from localchef.core.errors import ConfigurationError, Internal
from localchef.core.policy import (
    Check,
    GateContext,
    OwnsBodyField,
    OwnsPathParam,
    OwnsQueryParam,
    OwnsStored,
    ValidId,
    admin_only,
    fraud_gate,
    requires_role,
)
from localchef.integrations.identity import IdentityProvider
from localchef.repositories.base import DocumentStore

logger = logging.getLogger("localchef.gate")

RouteKey = Tuple[str, str]


@dataclass(frozen=True)
class RouteRule:
    protected: bool
    checks: Tuple[Check, ...] = ()

    def __post_init__(self):
        costs = [check.cost for check in self.checks]
        if costs != sorted(costs):
            raise ConfigurationError(f"Checks must be ordered cheapest first: {self.checks}")
        if not self.protected and any(check.requires_principal for check in self.checks):
            raise ConfigurationError(f"Public route cannot run principal checks: {self.checks}")


def public(*checks: Check) -> RouteRule:
    return RouteRule(protected=False, checks=checks)


def protected(*checks: Check) -> RouteRule:
    return RouteRule(protected=True, checks=checks)


_meal_owner = OwnsStored("meals", "chefEmail", not_found="Meal not found")
_review_owner = OwnsStored("reviews", "reviewerEmail", not_found="Review not found")
_order_buyer = OwnsStored("orders", "userEmail", param="orderId", source="body", not_found="Order not found")

ROUTE_TABLE: Dict[RouteKey, RouteRule] = {
    ("GET", "/"): public(),

    # users
    ("POST", "/users"): protected(OwnsBodyField("email", required=True)),
    ("GET", "/users"): protected(admin_only()),
    ("GET", "/users/{email}"): protected(OwnsPathParam("email")),
    ("PATCH", "/users/make-fraud/{email}"): protected(admin_only()),
    ("PATCH", "/users/update-role/{email}"): protected(admin_only()),

    # meals
    ("POST", "/meals"): protected(
        OwnsBodyField("chefEmail"),
        requires_role("chef", message="Only chefs can create meals"),
        fraud_gate("chef", message="Fraud chefs cannot create meals"),
    ),
    ("GET", "/meals"): public(),
    ("GET", "/meals/{id}"): public(ValidId("id", "meal")),
    ("PATCH", "/meals/{id}"): protected(ValidId("id", "meal"), _meal_owner, requires_role("chef")),
    ("DELETE", "/meals/{id}"): protected(ValidId("id", "meal"), _meal_owner, requires_role("chef")),

    # reviews
    ("POST", "/reviews"): protected(OwnsBodyField("reviewerEmail")),
    ("GET", "/reviews"): public(),
    ("GET", "/reviews/{mealId}"): public(ValidId("mealId", "meal")),
    ("PATCH", "/reviews/{id}"): protected(ValidId("id", "review"), _review_owner),
    ("DELETE", "/reviews/{id}"): protected(ValidId("id", "review"), _review_owner),
    ("GET", "/user-reviews"): protected(OwnsQueryParam("email")),

    # favorites
    ("POST", "/favorites"): protected(OwnsBodyField("userEmail", required=True)),
    ("GET", "/favorites/{email}"): protected(OwnsPathParam("email")),
    ("DELETE", "/favorites/{id}"): protected(
        ValidId("id", "favorite"),
        OwnsStored("favorites", "userEmail", not_found="Favorite not found"),
    ),

    # orders
    ("POST", "/orders"): protected(
        OwnsBodyField("userEmail"),
        ValidId("mealId", "meal", source="body"),
        fraud_gate("user", message="Fraud users cannot place orders"),
    ),
    ("GET", "/orders"): protected(OwnsQueryParam("email")),
    ("GET", "/orders/chef/{email}"): protected(OwnsPathParam("email"), requires_role("chef")),
    ("PATCH", "/orders/{id}"): protected(
        ValidId("id", "order"),
        OwnsStored("orders", "chefEmail", not_found="Order not found"),
        requires_role("chef"),
    ),

    # role requests
    ("POST", "/role-requests"): protected(OwnsBodyField("userEmail", required=True)),
    ("GET", "/role-requests"): protected(admin_only()),
    ("PATCH", "/role-requests/accept/{id}"): protected(ValidId("id", "role request"), admin_only()),
    ("PATCH", "/role-requests/reject/{id}"): protected(ValidId("id", "role request"), admin_only()),

    # payments
    ("POST", "/create-payment-intent"): protected(ValidId("orderId", "order", source="body"), _order_buyer),
    ("POST", "/payment-success"): protected(ValidId("orderId", "order", source="body"), _order_buyer),
    ("GET", "/payments"): protected(OwnsQueryParam("email")),
    ("GET", "/payments/{id}"): protected(
        ValidId("id", "payment"),
        OwnsStored("payments", "customerEmail", not_found="Payment not found"),
    ),

    # admin
    ("GET", "/admin/statistics"): protected(admin_only()),
}


HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


def mounted_routes(app: FastAPI) -> Set[RouteKey]:
    """
    `(METHOD, path template)` of every operation the app serves, read from its
    OpenAPI document so routers included with a prefix are seen with their full path.
    """
    paths = app.openapi().get("paths", {})
    return {
        (method.upper(), path)
        for path, operations in paths.items()
        for method in operations
        if method in HTTP_METHODS
    }


class RequestGate:
    """Evaluates the route table. Owns references to the store and the identity provider."""

    def __init__(self, store: DocumentStore, identity: IdentityProvider,
                 table: Optional[Mapping[RouteKey, RouteRule]] = None):
        self.store = store
        self.identity = identity
        self.table = dict(ROUTE_TABLE if table is None else table)

    def evaluate(
        self,
        method: str,
        path: str,
        *,
        credentials: Optional[HTTPAuthorizationCredentials],
        path_params: Mapping[str, str],
        query_params: Mapping[str, str],
        raw_body: bytes = b"",
    ) -> GateContext:
        rule = self.table.get((method, path))
        if rule is None:
            # validate_routes() makes this unreachable for mounted routes; fail closed anyway
            logger.error("No gate rule for %s %s", method, path)
            raise Internal()

        principal = resolve_principal(credentials, self.identity) if rule.protected else None
        ctx = GateContext(
            store=self.store,
            principal=principal,
            path_params=path_params,
            query_params=query_params,
            raw_body=raw_body,
        )
        for check in rule.checks:
            check.evaluate(ctx)
        return ctx

    def validate_routes(self, app: FastAPI) -> None:
        mounted = mounted_routes(app)

        missing = sorted(mounted - set(self.table))
        stale = sorted(set(self.table) - mounted)
        problems = [f"route without gate rule: {m} {p}" for m, p in missing]
        problems += [f"gate rule without route: {m} {p}" for m, p in stale]
        if problems:
            raise ConfigurationError("; ".join(problems))
        logger.info("Gate covers %d routes", len(mounted))


async def _raw_body(request: Request) -> bytes:
    return await request.body()


def enforce_route_rules(
    request: Request,
    raw_body: bytes = Depends(_raw_body),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """App-wide dependency; runs before any handler parameter is resolved."""
    gate: RequestGate = request.app.state.gate
    route = request.scope.get("route")
    path = getattr(route, "path", request.url.path)
    ctx = gate.evaluate(
        request.method,
        path,
        credentials=credentials,
        path_params=request.path_params,
        query_params=request.query_params,
        raw_body=raw_body,
    )
    request.state.gate_context = ctx
