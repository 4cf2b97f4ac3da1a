"""
# `localchef/routers/orders.py` - Orders

## `POST /orders`
Price, meal name and chef are copied from the stored meal; the client only
chooses the meal, the quantity and the address. A new order starts as
`orderStatus=pending`, `paymentStatus=pending`.

## `PATCH /orders/{id}`
The chef of the order moves it along `ORDER_TRANSITIONS`; any other move is a
409. Setting the current status again is a no-op.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from localchef.core.errors import Conflict, NotFound
from localchef.core.security import get_principal, get_store, json_body, loaded
from localchef.repositories.base import DESCENDING, DocumentStore
from localchef.schemas.order import ORDER_TRANSITIONS, OrderCreate, OrderStatusUpdate
from localchef.schemas.principal import Principal

logger = logging.getLogger("localchef.orders")

router = APIRouter(prefix="/orders", tags=["Orders"])

NEWEST = ("orderTime", DESCENDING)


@router.post("")
def place_order(
    payload: OrderCreate = Depends(json_body(OrderCreate)),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
):
    meal = store.meals.find_by_id(payload.mealId)
    if not meal:
        raise NotFound("Meal not found")

    price = meal.get("price", 0)
    order = {
        "mealId": payload.mealId,
        "mealName": meal.get("foodName"),
        "price": price,
        "quantity": payload.quantity,
        "totalPrice": round(price * payload.quantity, 2),
        "chefEmail": meal.get("chefEmail"),
        "chefId": meal.get("chefId"),
        "userEmail": principal.email,
        "userAddress": payload.userAddress,
        "orderStatus": "pending",
        "paymentStatus": "pending",
        "orderTime": datetime.now(timezone.utc),
    }
    result = store.orders.insert_one(order)
    logger.info("Order %s placed by %s for meal %s", result.inserted_id, principal.email, payload.mealId)
    return result.to_dict()


@router.get("")
def my_orders(
    email: str = Query(..., description="Buyer e-mail; must be the caller"),
    store: DocumentStore = Depends(get_store),
):
    return store.orders.find({"userEmail": email}, sort=NEWEST)


@router.get("/chef/{email}")
def chef_orders(email: str, store: DocumentStore = Depends(get_store)):
    return store.orders.find({"chefEmail": email}, sort=NEWEST)


@router.patch("/{id}")
def update_order_status(
    id: str,
    payload: OrderStatusUpdate = Depends(json_body(OrderStatusUpdate)),
    order: dict = Depends(loaded("orders")),
    store: DocumentStore = Depends(get_store),
):
    current = order.get("orderStatus", "pending")
    target = payload.orderStatus
    if target != current and target not in ORDER_TRANSITIONS.get(current, frozenset()):
        raise Conflict(f"Cannot move order from {current} to {target}")

    result = store.orders.update_by_id(order["_id"], {"orderStatus": target})
    return {"success": True, "orderStatus": target, "result": result.to_dict()}
