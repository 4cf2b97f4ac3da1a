"""
Admin Dashboard Router
Platform wide counters for the admin panel.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from localchef.core.security import get_store
from localchef.repositories.base import DocumentStore
from localchef.schemas.order import ORDER_TRANSITIONS

router = APIRouter(prefix="/admin", tags=["Admin Dashboard"])


@router.get("/statistics")
def get_statistics(store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
    """
    Totals of users, meals, orders (overall and per status), pending role
    requests and completed payments with their revenue.
    """
    stats: Dict[str, Any] = {
        "totalUsers": store.users.count(),
        "fraudUsers": store.users.count({"status": "fraud"}),
        "totalMeals": store.meals.count(),
        "totalOrders": store.orders.count(),
        "ordersByStatus": {},
        "pendingRoleRequests": store.role_requests.count({"requestStatus": "pending"}),
        "totalPayments": 0,
        "totalRevenue": 0.0,
    }

    for status in ORDER_TRANSITIONS:
        stats["ordersByStatus"][status] = store.orders.count({"orderStatus": status})

    # revenue comes from payment records, not from orders
    for payment in store.payments.find():
        stats["totalPayments"] += 1
        stats["totalRevenue"] += float(payment.get("amount") or 0)
    stats["totalRevenue"] = round(stats["totalRevenue"], 2)

    return stats
